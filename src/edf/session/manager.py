"""Editing session management.

Owns the intermediate files used to edit desktop entries safely: their
creation with a help header, validation with errors written back into
the file, emptiness detection, committing accepted content to the
user's applications directory and cleanup.
"""

import contextlib
import os
import shutil
import tempfile
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from send2trash import send2trash

from edf.config.env import get_user_applications_dir
from edf.core.error_handling import ErrorContext, ErrorSeverity, GracefulErrorHandler
from edf.core.i18n import _
from edf.core.logging import StructuredLogger, get_logger
from edf.session.annotations import (
    build_help_header,
    format_error_block,
    is_blank,
    strip_annotations,
)
from edf.session.exceptions import (
    CommitError,
    EdfError,
    IntermediateFileCreationError,
    SessionLookupError,
    TrashError,
)
from edf.session.validation import ValidationPipeline, ValidationResult, ValidationTier

INTERMEDIATE_PREFIX = "edf-"
INTERMEDIATE_SUFFIX = ".desktop"
DEFAULT_DESKTOP_FILE_MODE = 0o644

# Notification callback: (title, body)
Notifier = Callable[[str, str], None]


def notification_title() -> str:
    """Title used for every user-visible notification."""
    return _("Edit Desktop Files")


class SessionState(Enum):
    """Lifecycle states of an editing session."""

    CREATED = "created"  # Intermediate file written
    EDITING = "editing"  # Editor running on the intermediate file
    INVALID = "invalid"  # Last validation failed, errors written into the file
    COMMITTED = "committed"  # Content saved to the applications directory
    DELETED = "deleted"  # Local launcher moved to the trash
    DISCARDED = "discarded"  # Abandoned without changes


TERMINAL_SESSION_STATES = frozenset({
    SessionState.COMMITTED,
    SessionState.DELETED,
    SessionState.DISCARDED,
})


@dataclass
class EditingSession:
    """One in-flight edit of one desktop entry.

    Attributes:
        original_path: Authoritative desktop entry (may not exist yet)
        intermediate_path: Scratch copy the user edits
        help_header: Annotation block written at the top of the scratch copy
        state: Current lifecycle state
        created_at: UTC timestamp of session creation
        validation_count: Number of validations run so far
        last_errors: Errors reported by the latest validation
    """

    original_path: Path
    intermediate_path: Path
    help_header: str
    state: SessionState = SessionState.CREATED
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    validation_count: int = 0
    last_errors: list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        """Session identifier, derived from the intermediate file name."""
        return self.intermediate_path.stem

    @property
    def original_name(self) -> str:
        """Base name of the desktop entry being edited."""
        return self.original_path.name

    def is_terminal(self) -> bool:
        """Check if the session reached a terminal state."""
        return self.state in TERMINAL_SESSION_STATES

    def to_dict(self) -> dict[str, Any]:
        """Convert session to dictionary for logging."""
        return {
            "id": self.id,
            "original_path": str(self.original_path),
            "intermediate_path": str(self.intermediate_path),
            "state": self.state.value,
            "created_at": self.created_at.isoformat(),
            "validation_count": self.validation_count,
            "last_errors": self.last_errors,
        }


def _atomic_write(path: Path, data: bytes, mode: int) -> None:
    """Replace a file's content in one step.

    The data goes to a temporary sibling that is renamed over the target,
    so readers see either the old or the new content.

    Raises:
        OSError: If writing or renaming fails. The target is untouched.
    """
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def _file_mode(path: Path, default: int) -> int:
    """Permission bits of an existing file, or a default."""
    try:
        return path.stat().st_mode & 0o777
    except OSError:
        return default


class EditingSessionManager:
    """Manages intermediate files for safe desktop entry editing.

    The manager keeps a registry of sessions keyed by intermediate path.
    Each tracked session has an intermediate file on disk until it is
    removed. None of the public operations raise on I/O errors: failures
    are logged and reported through return values.
    """

    def __init__(
        self,
        applications_dir: Path | None = None,
        temp_dir: Path | None = None,
        pipeline: ValidationPipeline | None = None,
        notify: Notifier | None = None,
        help_text: str | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the session manager.

        Args:
            applications_dir: Where commits are written (defaults to
                $XDG_DATA_HOME/applications).
            temp_dir: Where intermediate files are created (defaults to
                the system temporary directory).
            pipeline: Validation pipeline (defaults to one using
                desktop-file-validate).
            notify: Callback for user-visible notifications.
            help_text: Help text override (defaults to the localized text).
            logger: Logger (defaults to the "session" component logger).
        """
        self.applications_dir = applications_dir or get_user_applications_dir()
        self.temp_dir = temp_dir or Path(tempfile.gettempdir())
        self._logger = logger or get_logger("session")
        self._pipeline = pipeline or ValidationPipeline(logger=self._logger)
        self._notify = notify
        self._help_text = help_text
        self._errors = GracefulErrorHandler(logger=self._logger)
        self._sessions: dict[Path, EditingSession] = {}
        self.last_error: EdfError | None = None

    @property
    def sessions(self) -> dict[Path, EditingSession]:
        """Snapshot of tracked sessions keyed by intermediate path."""
        return dict(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session: object) -> bool:
        if not isinstance(session, EditingSession):
            return False
        return self._sessions.get(session.intermediate_path) is session

    def get_session(self, intermediate_path: Path | str) -> EditingSession | None:
        """Look up a tracked session by its intermediate file."""
        return self._sessions.get(Path(intermediate_path))

    def destination_for(self, session: EditingSession) -> Path:
        """Local override path a session commits to."""
        return self.applications_dir / session.original_name

    # Session creation

    def _new_intermediate_path(self) -> Path:
        """Generate a unique intermediate file path."""
        return self.temp_dir / f"{INTERMEDIATE_PREFIX}{uuid.uuid4()}{INTERMEDIATE_SUFFIX}"

    def start_session(self, original_path: Path | str) -> EditingSession | None:
        """Create an intermediate file for editing a desktop entry.

        The file holds the help header followed by a byte-for-byte copy
        of the original. A missing original yields an empty body, which
        is how new launchers are created.

        Args:
            original_path: Desktop entry to edit.

        Returns:
            The new session, or None if the intermediate file could not
            be written (the user is notified).
        """
        original = Path(original_path).expanduser().absolute()
        session = EditingSession(
            original_path=original,
            intermediate_path=self._new_intermediate_path(),
            help_header=build_help_header(original.name, self._help_text),
        )
        # Tracked before any I/O so a partial file is still cleaned up
        self._sessions[session.intermediate_path] = session

        try:
            with session.intermediate_path.open("xb") as f:
                f.write(session.help_header.encode("utf-8"))

            if original.exists():
                with (
                    original.open("rb") as src,
                    session.intermediate_path.open("ab") as dst,
                ):
                    shutil.copyfileobj(src, dst)
        except OSError as e:
            error = IntermediateFileCreationError(
                f"Failed to create intermediate file for {original}: {e}",
                original_path=str(original),
            )
            self._fail(error, "start_session", session)
            self._send_notification(_("Cannot create temporary file for editing"))
            self.remove(session)
            return None

        self._logger.log_session_start(
            session.id,
            str(session.original_path),
            str(session.intermediate_path),
        )
        return session

    # Content inspection

    def read_user_content(self, session: EditingSession) -> bytes | None:
        """Read the intermediate file without its annotation lines.

        Returns:
            User content, or None if the file cannot be read.
        """
        try:
            data = session.intermediate_path.read_bytes()
        except OSError as e:
            self._fail(e, "read_user_content", session)
            return None
        return strip_annotations(data)

    def is_empty_content(self, session: EditingSession) -> bool:
        """Check whether the user cleared the file.

        Returns:
            True if only annotation lines and whitespace remain. False
            when the file has content or cannot be read.
        """
        if not self._require(session, "is_empty_content"):
            return False
        content = self.read_user_content(session)
        if content is None:
            return False
        return is_blank(content)

    # Validation

    def validate(self, session: EditingSession) -> ValidationResult:
        """Validate the user's edits.

        On failure the intermediate file is rewritten as: help header,
        ``#EDF#ERROR:`` block, then the user's latest content, so the
        errors show up above the text when the editor is reopened.

        Args:
            session: Session to validate.

        Returns:
            Validation result.
        """
        if not self._require(session, "validate"):
            return ValidationResult.failed(
                ValidationTier.STRUCTURAL, [_("Unknown editing session")]
            )

        content = self.read_user_content(session)
        if content is None:
            return ValidationResult.failed(
                ValidationTier.STRUCTURAL,
                [_("Cannot read {path}").format(path=session.intermediate_path)],
            )

        result = self._errors.wrap_operation(
            lambda: self._pipeline.validate(content, session.intermediate_path),
            ErrorContext(
                operation="validate",
                component="session",
                session_id=session.id,
            ),
        )
        if result is None:
            result = ValidationResult.failed(
                ValidationTier.STRUCTURAL,
                [_("Validation could not be completed")],
            )

        session.validation_count += 1
        session.last_errors = list(result.errors)
        self._logger.log_validation_result(
            session.id,
            result.valid,
            result.tier.value if result.tier else None,
            len(result.errors),
        )

        if not result.valid:
            session.state = SessionState.INVALID
            self._rewrite_with_errors(session, content, result.errors)

        return result

    def _rewrite_with_errors(
        self,
        session: EditingSession,
        content: bytes,
        errors: list[str],
    ) -> bool:
        """Rewrite the intermediate file with an error block.

        Args:
            session: Session whose file is rewritten.
            content: User content read before the rewrite.
            errors: Error lines to list.

        Returns:
            True if the file was replaced. On failure the previous file,
            with the user's edits, is left in place.
        """
        data = (
            session.help_header.encode("utf-8")
            + format_error_block(errors).encode("utf-8")
            + content
        )
        path = session.intermediate_path
        try:
            _atomic_write(path, data, _file_mode(path, DEFAULT_DESKTOP_FILE_MODE))
        except OSError as e:
            self._fail(e, "rewrite_with_errors", session)
            return False
        return True

    # Terminal operations

    def commit(self, session: EditingSession) -> bool:
        """Save the user's content as the local launcher.

        Writes the annotation-free content to
        ``<applications_dir>/<original name>``, creating the directory if
        needed and atomically replacing any existing file.

        Returns:
            True on success; False on any I/O error (logged, the caller
            notifies the user).
        """
        if not self._require(session, "commit"):
            return False

        destination = self.destination_for(session)
        try:
            data = strip_annotations(session.intermediate_path.read_bytes())
            destination.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(
                destination,
                data,
                _file_mode(destination, DEFAULT_DESKTOP_FILE_MODE),
            )
        except OSError as e:
            error = CommitError(
                f"Failed to save {destination}: {e}",
                destination=str(destination),
            )
            self._fail(error, "commit", session)
            return False

        session.state = SessionState.COMMITTED
        self._logger.info(
            "Desktop entry saved",
            session_id=session.id,
            destination=str(destination),
        )
        return True

    def trash_local_copy(self, session: EditingSession) -> bool:
        """Move the local launcher override to the trash.

        Only the copy in the applications directory is touched; the
        original system file is never deleted.

        Returns:
            True if the local copy was trashed or did not exist.
        """
        if not self._require(session, "trash_local_copy"):
            return False

        local_copy = self.destination_for(session)
        if local_copy.exists() or local_copy.is_symlink():
            try:
                send2trash(str(local_copy))
            except OSError as e:
                error = TrashError(
                    f"Failed to move {local_copy} to trash: {e}",
                    path=str(local_copy),
                )
                self._fail(error, "trash_local_copy", session)
                return False
            self._logger.info(
                "Local launcher moved to trash",
                session_id=session.id,
                path=str(local_copy),
            )

        session.state = SessionState.DELETED
        return True

    # Removal

    def remove(self, session: EditingSession) -> None:
        """Stop tracking a session and delete its intermediate file.

        Removing an untracked or already removed session does nothing.
        The registry entry is dropped even if the file cannot be deleted.
        """
        tracked = self._sessions.pop(session.intermediate_path, None)
        if tracked is None:
            return

        if not tracked.is_terminal():
            tracked.state = SessionState.DISCARDED

        self._delete_intermediate(tracked, "remove")
        self._logger.log_session_end(tracked.id, tracked.state.value)

    def cleanup(self) -> None:
        """Remove every tracked session."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            if not session.is_terminal():
                session.state = SessionState.DISCARDED
            self._delete_intermediate(session, "cleanup")
            self._logger.log_session_end(session.id, session.state.value)

    def _delete_intermediate(self, session: EditingSession, operation: str) -> None:
        """Delete an intermediate file, tolerating a missing file."""
        try:
            session.intermediate_path.unlink(missing_ok=True)
        except OSError as e:
            self._fail(e, operation, session, ErrorSeverity.WARNING)

    # Helpers

    def _require(self, session: EditingSession, operation: str) -> bool:
        """Check that a session is tracked.

        An untracked session means the workflow called operations out of
        order. This is logged as critical and the operation is skipped.
        """
        if session in self:
            return True
        error = SessionLookupError(
            f"Unknown editing session: {session.intermediate_path}",
            intermediate_path=str(session.intermediate_path),
        )
        self._fail(error, operation, session, ErrorSeverity.CRITICAL)
        return False

    def _fail(
        self,
        error: Exception,
        operation: str,
        session: EditingSession,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> None:
        """Log an error with session context and remember it."""
        self._errors.handle_error(
            error,
            ErrorContext(
                operation=operation,
                component="session",
                session_id=session.id,
                details={"original_path": str(session.original_path)},
            ),
            severity,
        )
        if isinstance(error, EdfError):
            self.last_error = error

    def _send_notification(self, body: str) -> None:
        """Fire a notification; notifier failures are ignored."""
        if self._notify is None:
            return
        with contextlib.suppress(Exception):
            self._notify(notification_title(), body)
