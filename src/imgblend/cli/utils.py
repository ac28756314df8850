"""
Utility functions for the CLI.

This module contains helper functions used by CLI commands,
such as output path resolution and exit code constants.
"""

from pathlib import Path

from imgblend.core.session import RESULT_FILENAME

# Exit codes
EXIT_SUCCESS = 0
EXIT_API_OR_NETWORK = 1
EXIT_VALIDATION_OR_CONFIG = 2


def resolve_output_path(out: Path | None) -> Path:
    """Return the output file: ``out`` as given, ``out/result.png`` for a directory, else ./result.png."""
    if out is None:
        return Path(RESULT_FILENAME)
    if out.is_dir():
        return out / RESULT_FILENAME
    return out


__all__ = [
    "EXIT_SUCCESS",
    "EXIT_API_OR_NETWORK",
    "EXIT_VALIDATION_OR_CONFIG",
    "resolve_output_path",
]
