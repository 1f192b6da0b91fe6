"""
Logging for the ShopGo client.

    from shopgo.logging import get_logger
    logger = get_logger(__name__)

The root handler is installed once, on first import, and only when the host
application has not configured logging itself. LOG_LEVEL picks the level;
SHOPGO_LOG_SIMPLE=1 drops timestamps for hosts that add their own.
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

_MAX_ID_LENGTH = 8


def _install_handler() -> None:
    root = logging.getLogger()
    if root.handlers:
        return

    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    simple = os.environ.get("SHOPGO_LOG_SIMPLE") == "1"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if simple else LOG_FORMAT))
    root.setLevel(level)
    root.addHandler(handler)

    # httpx logs every request line at INFO, bearer-authenticated URLs included
    logging.getLogger("httpx").setLevel(logging.WARNING)


_install_handler()


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for a shopgo module (pass __name__)."""
    return logging.getLogger(name)


def _escape(value: str) -> str:
    # Newlines in user-supplied values could forge extra log records
    return value.replace("\r", "\\r").replace("\n", "\\n").replace("\t", "\\t").replace("\x00", "")


def sanitize_id_for_logging(id_value: str | int | None) -> str:
    """
    Shorten an id (cart line, product, user) for logs.

    Returns the first 8 characters, escaped, or "N/A" when empty.
    """
    if id_value is None or id_value == "":
        return "N/A"
    return _escape(str(id_value))[:_MAX_ID_LENGTH]


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """Escape and truncate a free-form value such as a request path."""
    if not value:
        return "N/A"
    safe = _escape(str(value))
    return safe if len(safe) <= max_length else safe[:max_length] + "..."


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
