"""Command-line entry point."""

from hledger_install.cli.app import app, execute, main

__all__ = ["app", "execute", "main"]
