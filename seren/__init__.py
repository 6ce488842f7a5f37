"""seren -- a CLI for scaffolding monorepo projects."""

__version__ = "0.1.0"
