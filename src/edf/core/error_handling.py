"""Error handling that keeps an editing session alive.

Failures inside the session manager, validation pipeline and workflow are
logged with the operation and session they belong to, then reduced to an
EdfErrorType so the caller can decide how to continue.
"""

from __future__ import annotations

import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from edf.core.logging import StructuredLogger
    from edf.session.exceptions import EdfErrorType


class ErrorSeverity(Enum):
    """How loudly a handled error is logged."""

    WARNING = "warning"  # Recoverable, the session goes on
    ERROR = "error"  # The current operation failed
    CRITICAL = "critical"  # Programming error, e.g. unknown session


@dataclass
class ErrorContext:
    """Where an error happened."""

    operation: str
    component: str
    session_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def fields(self) -> dict[str, Any]:
        """Flatten into logger keyword arguments."""
        result: dict[str, Any] = {
            "operation": self.operation,
            "failed_component": self.component,
            **self.details,
        }
        if self.session_id is not None:
            result["session_id"] = self.session_id
        return result


_LOG_METHODS = {
    ErrorSeverity.WARNING: "warning",
    ErrorSeverity.ERROR: "error",
    ErrorSeverity.CRITICAL: "critical",
}


class GracefulErrorHandler:
    """Logs and classifies errors instead of letting them propagate."""

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        self._logger = logger

    def handle_error(
        self,
        error: Exception,
        context: ErrorContext,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> EdfErrorType:
        """Log an error and classify it.

        Args:
            error: The exception that occurred
            context: Where it occurred
            severity: Level to log at

        Returns:
            The error's own type for EdfError, UNKNOWN otherwise
        """
        if self._logger is not None:
            log = getattr(self._logger, _LOG_METHODS[severity])
            fields = context.fields()
            # Only raised exceptions carry a traceback
            if error.__traceback__ is not None:
                fields["traceback"] = "".join(traceback.format_exception(error))
            log(
                f"{context.operation} failed: {error}",
                error_type=type(error).__name__,
                severity=severity.value,
                **fields,
            )

        # Deferred to break the session -> core import cycle
        from edf.session.exceptions import EdfError, EdfErrorType

        if isinstance(error, EdfError):
            return error.error_type
        return EdfErrorType.UNKNOWN

    def wrap_operation(
        self,
        operation: Callable[[], Any],
        context: ErrorContext,
        default_return: Any = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> Any:
        """Run operation, returning default_return if it raises."""
        try:
            return operation()
        except Exception as e:
            self.handle_error(e, context, severity)
            return default_return
