"""Entry point for ``python -m seren``."""

from seren.cli import main

if __name__ == "__main__":
    main()
