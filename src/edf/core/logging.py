"""Structured logging for Edit Desktop Files.

Every component logs through a StructuredLogger that writes one entry per
line, either as JSON or as a short text line for terminals. Editing
sessions are identified by their session id, which is promoted to a
top-level field so all lines of one edit can be grepped together.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


@dataclass
class LogEntry:
    """A single log line."""

    timestamp: str
    level: str
    message: str
    component: str
    event_type: str | None = None
    session_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Serialize as one JSON object; unset fields are left out."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "level": self.level,
            "message": self.message,
            "component": self.component,
        }
        if self.event_type is not None:
            data["event_type"] = self.event_type
        if self.session_id is not None:
            data["session_id"] = self.session_id
        if self.extra:
            data["extra"] = self.extra
        return json.dumps(data, default=str)

    def to_text(self) -> str:
        """Format as "<time> <LEVEL> <component>[<session>] <message> k=v"."""
        source = self.component
        if self.session_id:
            source += f"[{self.session_id}]"
        line = f"{self.timestamp} {self.level:<8} {source}: {self.message}"
        if self.event_type:
            line += f" ({self.event_type})"
        details = " ".join(f"{key}={value}" for key, value in self.extra.items())
        if details:
            line += f" {details}"
        return line


class StructuredLogger:
    """Per-component logger.

    Keyword arguments passed to the logging methods end up in the entry's
    ``extra`` mapping, except ``session_id`` which becomes a field of its
    own.
    """

    def __init__(
        self,
        component: str,
        level: LogLevel = LogLevel.INFO,
        output: TextIO | None = None,
        json_format: bool = True,
    ) -> None:
        """Initialize logger.

        Args:
            component: Component name (session, workflow, launcher, cli)
            level: Minimum log level
            output: Output stream (defaults to stderr)
            json_format: JSON lines if True, text lines otherwise
        """
        self.component = component
        self.level = level
        self.output = output or sys.stderr
        self.json_format = json_format

    def _log(
        self,
        level: LogLevel,
        message: str,
        event_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        if level.value < self.level.value:
            return

        session_id = kwargs.pop("session_id", None)
        entry = LogEntry(
            timestamp=datetime.now(UTC).isoformat(timespec="milliseconds"),
            level=level.name,
            message=message,
            component=self.component,
            event_type=event_type,
            session_id=session_id,
            extra=kwargs,
        )

        line = entry.to_json() if self.json_format else entry.to_text()
        self.output.write(line + "\n")
        self.output.flush()

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log(LogLevel.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log critical message."""
        self._log(LogLevel.CRITICAL, message, **kwargs)

    # Event logging

    def log_state_transition(
        self,
        from_state: str,
        to_state: str,
        reason: str = "",
        **kwargs: Any,
    ) -> None:
        """Log a workflow state transition."""
        fields: dict[str, Any] = {"from_state": from_state, "to_state": to_state}
        if reason:
            fields["reason"] = reason
        self._log(
            LogLevel.DEBUG,
            f"{from_state} -> {to_state}",
            event_type="state_transition",
            **fields,
            **kwargs,
        )

    def log_session_start(
        self,
        session_id: str,
        original_path: str,
        intermediate_path: str,
    ) -> None:
        """Log creation of an editing session.

        Args:
            session_id: Session identifier (intermediate file stem)
            original_path: Desktop entry being edited
            intermediate_path: Scratch copy handed to the editor
        """
        self._log(
            LogLevel.INFO,
            f"Editing {original_path}",
            event_type="session_start",
            session_id=session_id,
            original_path=original_path,
            intermediate_path=intermediate_path,
        )

    def log_session_end(self, session_id: str, final_state: str) -> None:
        """Log removal of an editing session."""
        self._log(
            LogLevel.INFO,
            f"Session ended {final_state}",
            event_type="session_end",
            session_id=session_id,
            final_state=final_state,
        )

    def log_validation_result(
        self,
        session_id: str,
        valid: bool,
        tier: str | None,
        error_count: int,
    ) -> None:
        """Log the outcome of a validation run.

        Failures are logged as warnings so they show with the default
        CLI log level.

        Args:
            session_id: Session identifier
            valid: Whether the content passed every tier
            tier: Name of the rejecting tier (None when valid)
            error_count: Number of error lines reported to the user
        """
        if valid:
            self._log(
                LogLevel.INFO,
                "Validation passed",
                event_type="validation_result",
                session_id=session_id,
                valid=True,
            )
            return
        self._log(
            LogLevel.WARNING,
            f"Validation failed at {tier} tier",
            event_type="validation_result",
            session_id=session_id,
            valid=False,
            tier=tier,
            error_count=error_count,
        )

    def log_editor_launch(
        self,
        session_id: str,
        argv: list[str],
        custom: bool,
    ) -> None:
        """Log an editor launch with its full command line."""
        self._log(
            LogLevel.INFO,
            f"Launching {argv[0] if argv else 'editor'}",
            event_type="editor_launch",
            session_id=session_id,
            argv=argv,
            custom=custom,
        )


# One logger per component
_loggers: dict[str, StructuredLogger] = {}

# Settings for loggers created after configure_logging()
_defaults: dict[str, Any] = {}


def get_logger(component: str) -> StructuredLogger:
    """Get or create the logger of a component.

    Args:
        component: Component name

    Returns:
        Logger instance, shared by all callers for that component
    """
    if component not in _loggers:
        _loggers[component] = StructuredLogger(component, **_defaults)
    return _loggers[component]


def reset_loggers() -> None:
    """Forget all loggers and configured defaults. Useful for testing."""
    _loggers.clear()
    _defaults.clear()


def configure_logging(
    level: LogLevel = LogLevel.INFO,
    json_format: bool = True,
    output: TextIO | None = None,
) -> None:
    """Configure every component logger, existing and future.

    Args:
        level: Minimum log level
        json_format: JSON lines if True, text lines otherwise
        output: Output stream (unchanged if None)
    """
    _defaults.update(level=level, json_format=json_format)
    if output is not None:
        _defaults["output"] = output
    for logger in _loggers.values():
        logger.level = level
        logger.json_format = json_format
        if output is not None:
            logger.output = output
