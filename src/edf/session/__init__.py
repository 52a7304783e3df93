"""Editing sessions - intermediate files, validation and commit.

A session wraps one desktop entry being edited through an annotated
scratch copy. The manager creates the copy, validates it after each
editor run, writes errors back into it, and finally commits it to the
user's applications directory or discards it.
"""

from edf.session.annotations import (
    ERROR_TAG,
    FILE_TAG,
    MARKER,
    build_help_header,
    format_as_annotations,
    format_error_block,
    get_help_text,
    is_blank,
    load_fallback_help_text,
    strip_annotations,
)
from edf.session.desktop_entry import (
    APPLICATION_TYPE,
    DESKTOP_ENTRY_GROUP,
    DesktopEntryDescriptor,
)
from edf.session.exceptions import (
    CommitError,
    ConfirmationAbortedError,
    EdfError,
    EdfErrorType,
    EditorLaunchError,
    IntermediateFileCreationError,
    LinterUnavailableError,
    SessionLookupError,
    TrashError,
    ValidationFailedError,
)
from edf.session.keyfile import KeyFile, KeyFileError, KeyFileGroup, parse_key_file
from edf.session.manager import (
    TERMINAL_SESSION_STATES,
    EditingSession,
    EditingSessionManager,
    Notifier,
    SessionState,
    notification_title,
)
from edf.session.validation import (
    ValidationPipeline,
    ValidationResult,
    ValidationTier,
    check_schema,
    check_structure,
    run_linter,
)

__all__ = [
    # Annotations
    "MARKER",
    "ERROR_TAG",
    "FILE_TAG",
    "build_help_header",
    "format_as_annotations",
    "format_error_block",
    "get_help_text",
    "load_fallback_help_text",
    "strip_annotations",
    "is_blank",
    # Key files
    "KeyFile",
    "KeyFileGroup",
    "KeyFileError",
    "parse_key_file",
    # Desktop entries
    "DesktopEntryDescriptor",
    "DESKTOP_ENTRY_GROUP",
    "APPLICATION_TYPE",
    # Validation
    "ValidationPipeline",
    "ValidationResult",
    "ValidationTier",
    "check_structure",
    "check_schema",
    "run_linter",
    # Sessions
    "EditingSession",
    "EditingSessionManager",
    "SessionState",
    "TERMINAL_SESSION_STATES",
    "Notifier",
    "notification_title",
    # Exceptions
    "EdfError",
    "EdfErrorType",
    "IntermediateFileCreationError",
    "ValidationFailedError",
    "LinterUnavailableError",
    "CommitError",
    "TrashError",
    "EditorLaunchError",
    "ConfirmationAbortedError",
    "SessionLookupError",
]
