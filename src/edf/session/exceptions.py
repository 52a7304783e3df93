"""Editing session exceptions hierarchy.

Defines exception classes for intermediate file creation, validation,
commit, trash, editor launch and confirmation errors. These are raised
at their origin and converted into results before they reach the caller
of the session manager or the edit workflow.
"""

from enum import Enum


class EdfErrorType(Enum):
    """Types of editing errors."""

    INTERMEDIATE_FILE = "intermediate_file"
    VALIDATION = "validation"
    LINTER_UNAVAILABLE = "linter_unavailable"
    COMMIT = "commit"
    TRASH = "trash"
    EDITOR_LAUNCH = "editor_launch"
    CONFIRMATION_ABORTED = "confirmation_aborted"
    SESSION_LOOKUP = "session_lookup"
    UNKNOWN = "unknown"


class EdfError(Exception):
    """Base exception for all editing errors."""

    def __init__(
        self,
        message: str,
        error_type: EdfErrorType = EdfErrorType.UNKNOWN,
    ) -> None:
        """Initialize EdfError.

        Args:
            message: Error message.
            error_type: Type of error.
        """
        super().__init__(message)
        self.error_type = error_type


class IntermediateFileCreationError(EdfError):
    """The scratch copy of a desktop entry could not be written."""

    def __init__(self, message: str, original_path: str = "") -> None:
        """Initialize IntermediateFileCreationError.

        Args:
            message: Error message.
            original_path: Desktop entry the session was created for.
        """
        super().__init__(message, EdfErrorType.INTERMEDIATE_FILE)
        self.original_path = original_path


class ValidationFailedError(EdfError):
    """Edited content was rejected by one of the validation tiers."""

    def __init__(self, message: str, tier: str, errors: list[str]) -> None:
        """Initialize ValidationFailedError.

        Args:
            message: Error message.
            tier: Name of the tier that rejected the content.
            errors: Collected error lines.
        """
        super().__init__(message, EdfErrorType.VALIDATION)
        self.tier = tier
        self.errors = errors


class LinterUnavailableError(EdfError):
    """The external desktop entry linter could not be run."""

    def __init__(self, message: str, linter: str) -> None:
        super().__init__(message, EdfErrorType.LINTER_UNAVAILABLE)
        self.linter = linter


class CommitError(EdfError):
    """Accepted changes could not be written to the applications directory."""

    def __init__(self, message: str, destination: str = "") -> None:
        """Initialize CommitError.

        Args:
            message: Error message.
            destination: Path that was being written.
        """
        super().__init__(message, EdfErrorType.COMMIT)
        self.destination = destination


class TrashError(EdfError):
    """The local launcher could not be moved to the trash."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message, EdfErrorType.TRASH)
        self.path = path


class EditorLaunchError(EdfError):
    """The external editor process could not be started."""

    def __init__(self, message: str, argv: list[str] | None = None) -> None:
        super().__init__(message, EdfErrorType.EDITOR_LAUNCH)
        self.argv = argv or []


class ConfirmationAbortedError(EdfError):
    """A confirmation prompt was dismissed without an answer."""

    def __init__(self, message: str) -> None:
        super().__init__(message, EdfErrorType.CONFIRMATION_ABORTED)


class SessionLookupError(EdfError):
    """An operation referenced a session the manager does not track."""

    def __init__(self, message: str, intermediate_path: str = "") -> None:
        super().__init__(message, EdfErrorType.SESSION_LOOKUP)
        self.intermediate_path = intermediate_path
