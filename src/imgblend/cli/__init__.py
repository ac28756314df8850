"""
Command-line interface for imgblend.

This package contains CLI implementations using Click.
Uses only the public API: from imgblend import ...
"""

from imgblend.cli.commands import cli, main

__all__ = ["cli", "main"]
