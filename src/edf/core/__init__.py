"""Core infrastructure for Edit Desktop Files.

Provides:
- Structured logging
- Error handling with graceful degradation
- Gettext plumbing
"""

from edf.core.error_handling import ErrorContext, ErrorSeverity, GracefulErrorHandler
from edf.core.i18n import GETTEXT_DOMAIN, _
from edf.core.logging import (
    LogEntry,
    LogLevel,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_loggers,
)

__all__ = [
    # Logging
    "LogLevel",
    "LogEntry",
    "StructuredLogger",
    "get_logger",
    "reset_loggers",
    "configure_logging",
    # Error handling
    "ErrorSeverity",
    "ErrorContext",
    "GracefulErrorHandler",
    # Localization
    "GETTEXT_DOMAIN",
    "_",
]
