"""
User-facing notifications emitted by the cart.

The presentation layer injects a Notifier (toast, message box, SSE push).
Without one the cart falls back to LoggingNotifier.
"""
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from snackshop.logging import get_logger

logger = get_logger(__name__)


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Notifier(ABC):
    """Receives (message, severity) pairs. May return an awaitable."""

    @abstractmethod
    def notify(self, message: str, severity: Severity) -> Any:
        pass


class LoggingNotifier(Notifier):
    """Fallback when no UI notifier is attached: ``[SUCCESS] message`` on the log."""

    _LEVELS = {
        Severity.SUCCESS: logging.INFO,
        Severity.INFO: logging.INFO,
        Severity.WARNING: logging.WARNING,
        Severity.ERROR: logging.ERROR,
    }

    def notify(self, message: str, severity: Severity) -> None:
        logger.log(self._LEVELS.get(severity, logging.INFO), f"[{severity.value.upper()}] {message}")
