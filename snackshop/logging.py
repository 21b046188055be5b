"""
Logging for the snack shop cart.

Usage:
    from snackshop.logging import get_logger, get_cart_logger
    logger = get_logger(__name__)

    # Inside an engine, so every line names the cart and tab it concerns
    log = get_cart_logger(__name__, engine.storage_key, engine.origin_id)
    log.warning("Failed to save cart to storage")
    # -> ... WARNING - [snackshop_cart:browser- tab:3fa9c1d2] Failed to save cart to storage
"""

import logging
import sys
from functools import cache

from snackshop import config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# Libraries that log every HTTP round-trip at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "upstash_redis")

# Cart ids and codes come from the browser; these would forge or recolor log lines
_CONTROL_ESCAPES = str.maketrans({
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\x1b": "\\x1b",
    "\x00": None,
})


def _configure_root_logger() -> None:
    """Attach a stdout handler to the root logger unless the host already did."""
    root = logging.getLogger()
    if root.handlers:
        return

    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if config.LOG_COMPACT else LOG_FORMAT))
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_root_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    """Get or create a logger with the given name (typically ``__name__``)."""
    return logging.getLogger(name)


def _escape(value: object) -> str:
    return str(value).translate(_CONTROL_ESCAPES)


def sanitize_id_for_logging(id_value: str | None) -> str:
    """Product, user, tab or order id for a log line: escaped and cut to 8 chars."""
    if not id_value:
        return "N/A"
    return _escape(id_value)[:8]


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """
    Free-form input (discount codes, product names) for a log line.

    Args:
        value: String value to sanitize (can be None)
        max_length: Maximum length to keep

    Returns:
        Escaped string, with "..." when truncated, or "N/A" if empty
    """
    if not value:
        return "N/A"
    safe_value = _escape(value)
    if len(safe_value) <= max_length:
        return safe_value
    return safe_value[:max_length] + "..."


def sanitize_storage_key_for_logging(storage_key: str | None) -> str:
    """
    Storage key for a log line.

    Keys look like ``snackshop_cart:<cart id>``; the configured prefix is
    kept whole and the browser-chosen cart id is cut like any other id.
    """
    if not storage_key:
        return "N/A"
    prefix, sep, cart_id = str(storage_key).partition(":")
    safe_prefix = sanitize_string_for_logging(prefix, 40)
    if not sep:
        return safe_prefix
    return f"{safe_prefix}:{sanitize_id_for_logging(cart_id)}"


class CartLoggerAdapter(logging.LoggerAdapter):
    """Prefixes each message with the cart (and tab) it concerns."""

    def process(self, msg, kwargs):
        return f"[{self.extra['cart']}] {msg}", kwargs


def get_cart_logger(name: str, storage_key: str, origin_id: str | None = None) -> CartLoggerAdapter:
    """Logger for one engine: ``[<storage key> tab:<origin>]`` on every line."""
    label = sanitize_storage_key_for_logging(storage_key)
    if origin_id:
        label = f"{label} tab:{sanitize_id_for_logging(origin_id)}"
    return CartLoggerAdapter(get_logger(name), {"cart": label})


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "CartLoggerAdapter",
    "get_logger",
    "get_cart_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
    "sanitize_storage_key_for_logging",
]
