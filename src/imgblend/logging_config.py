"""
Logging configuration for imgblend.

Logging is configured lazily so library users who never call set_verbosity or
configure_logging get no logs unless they configure logging themselves.

Verbosity levels:
- 0 (default): INFO: activity and timing only
- 1 (info): INFO + the blend instruction text
- 2 (verbose): DEBUG + instruction text, API calls, request/response shapes

Use set_verbosity(level) or configure_logging(verbose_level, quiet).
IMGBLEND_VERBOSITY env (0/1/2) is read when the CLI or UI starts; CLI flags
override env.
"""

import logging
import os
from typing import Any

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "imgblend"

_log_prompts: bool = False
_configured: bool = False


def _ensure_handler() -> None:
    """Add a stderr handler to the root imgblend logger if not already present."""
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    _configured = True


def set_verbosity(level: int) -> None:
    """
    Set logging verbosity (0=default, 1=info, 2=verbose).

    - 0: INFO level; activity and timing only (no prompt text).
    - 1: INFO level; same + log the blend instruction.
    - 2: DEBUG level; same + API calls, request/response (no secrets, image data truncated).
    """
    global _log_prompts
    _ensure_handler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if level <= 0:
        root.setLevel(logging.INFO)
        _log_prompts = False
    elif level == 1:
        root.setLevel(logging.INFO)
        _log_prompts = True
    else:
        root.setLevel(logging.DEBUG)
        _log_prompts = True


def log_prompts() -> bool:
    """Return True if prompt text should be logged at INFO (verbosity 1 or 2)."""
    return _log_prompts


def configure_logging(verbose_level: int = 0, quiet: bool = False) -> None:
    """
    Configure logging from CLI, UI or library.

    When quiet is True, sets level to WARNING (no activity/timing).
    Otherwise calls set_verbosity(verbose_level).
    """
    global _log_prompts
    _ensure_handler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if quiet:
        root.setLevel(logging.WARNING)
        _log_prompts = False
        return
    set_verbosity(verbose_level)


def get_verbosity_from_env() -> int:
    """
    Read IMGBLEND_VERBOSITY from environment (0, 1, or 2).

    Invalid or missing values return 0.
    """
    raw = os.environ.get("IMGBLEND_VERBOSITY", "0").strip()
    if raw == "1":
        return 1
    if raw == "2":
        return 2
    return 0


_TRUNCATE_THRESHOLD = 200
_NEVER_TRUNCATE_KEYS = frozenset({"text", "message", "raw"})


def redact_image_data(obj: Any, parent_key: str | None = None) -> Any:
    """Recursively replace long base64/data URL strings with placeholders for safe logging.

    Used by providers when config.debug_api is on, so request and response
    bodies can be logged without dumping megabytes of image data.
    """
    if isinstance(obj, dict):
        return {k: redact_image_data(v, k) for k, v in obj.items()}
    if isinstance(obj, list):
        return [redact_image_data(v, None) for v in obj]
    if isinstance(obj, str) and len(obj) >= _TRUNCATE_THRESHOLD:
        if parent_key in _NEVER_TRUNCATE_KEYS:
            return obj
        if obj.startswith("data:"):
            return f"<data URL, {len(obj)} chars>"
        return f"<string, {len(obj)} chars>"
    return obj


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under imgblend (e.g. imgblend.core.image_gen)."""
    if name.startswith(ROOT_LOGGER_NAME + ".") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME + "." + name)


__all__ = [
    "configure_logging",
    "get_logger",
    "get_verbosity_from_env",
    "log_prompts",
    "redact_image_data",
    "set_verbosity",
]
