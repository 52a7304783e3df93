"""Edit workflow states and results."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from edf.session.exceptions import EdfError


class WorkflowState(Enum):
    """States of the edit workflow state machine."""

    CREATED = "CREATED"  # Intermediate file ready, editor not yet running
    EDITING = "EDITING"  # Waiting for the editor process to exit
    EXITED = "EXITED"  # Editor exited; file content is authoritative
    CONFIRM_DELETE = "CONFIRM_DELETE"  # File emptied, asking to delete
    VALIDATING = "VALIDATING"  # Running the validation tiers
    CONFIRM_RETRY = "CONFIRM_RETRY"  # Invalid content, asking to continue
    COMMITTING = "COMMITTING"  # Writing the local launcher

    COMMITTED = "COMMITTED"  # Local launcher saved
    DELETED = "DELETED"  # Local launcher moved to trash
    DISCARDED = "DISCARDED"  # User abandoned the edit
    COMMIT_FAILED = "COMMIT_FAILED"  # Saving failed
    TRASH_FAILED = "TRASH_FAILED"  # Moving to trash failed
    LAUNCH_FAILED = "LAUNCH_FAILED"  # Editor could not be started
    CREATION_FAILED = "CREATION_FAILED"  # Intermediate file could not be written


# Terminal states - the session has been removed
TERMINAL_STATES = frozenset({
    WorkflowState.COMMITTED,
    WorkflowState.DELETED,
    WorkflowState.DISCARDED,
    WorkflowState.COMMIT_FAILED,
    WorkflowState.TRASH_FAILED,
    WorkflowState.LAUNCH_FAILED,
    WorkflowState.CREATION_FAILED,
})

# Terminal states where the user's request was carried out or declined
SUCCESSFUL_STATES = frozenset({
    WorkflowState.COMMITTED,
    WorkflowState.DELETED,
    WorkflowState.DISCARDED,
})

# Allowed transitions of the state machine
TRANSITIONS: dict[WorkflowState, frozenset[WorkflowState]] = {
    WorkflowState.CREATED: frozenset({WorkflowState.EDITING}),
    WorkflowState.EDITING: frozenset({
        WorkflowState.EXITED,
        WorkflowState.LAUNCH_FAILED,
    }),
    WorkflowState.EXITED: frozenset({
        WorkflowState.CONFIRM_DELETE,
        WorkflowState.VALIDATING,
    }),
    WorkflowState.CONFIRM_DELETE: frozenset({
        WorkflowState.DELETED,
        WorkflowState.TRASH_FAILED,
        WorkflowState.DISCARDED,
    }),
    WorkflowState.VALIDATING: frozenset({
        WorkflowState.COMMITTING,
        WorkflowState.CONFIRM_RETRY,
    }),
    WorkflowState.CONFIRM_RETRY: frozenset({
        WorkflowState.CREATED,
        WorkflowState.DISCARDED,
    }),
    WorkflowState.COMMITTING: frozenset({
        WorkflowState.COMMITTED,
        WorkflowState.COMMIT_FAILED,
    }),
}


def is_terminal_state(state: WorkflowState) -> bool:
    """Check if a state is terminal (no further transitions possible)."""
    return state in TERMINAL_STATES


def can_transition(from_state: WorkflowState, to_state: WorkflowState) -> bool:
    """Check if the state machine allows a transition."""
    return to_state in TRANSITIONS.get(from_state, frozenset())


@dataclass
class WorkflowResult:
    """Outcome of one edit workflow run.

    Attributes:
        original_path: Desktop entry that was edited
        state: Terminal state reached
        intermediate_path: Scratch copy used (None if it was never created)
        destination: Local launcher written or trashed (None otherwise)
        editor_runs: Number of times the editor was launched
        errors: Errors of the last failed validation
        history: States visited, in order
        error: Error that ended the workflow, if any
    """

    original_path: Path
    state: WorkflowState
    intermediate_path: Path | None = None
    destination: Path | None = None
    editor_runs: int = 0
    errors: list[str] = field(default_factory=list)
    history: list[WorkflowState] = field(default_factory=list)
    error: EdfError | None = None

    @property
    def succeeded(self) -> bool:
        """Whether the workflow ended without an error."""
        return self.state in SUCCESSFUL_STATES

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            "original_path": str(self.original_path),
            "state": self.state.value,
            "intermediate_path": (
                str(self.intermediate_path) if self.intermediate_path else None
            ),
            "destination": str(self.destination) if self.destination else None,
            "editor_runs": self.editor_runs,
            "errors": self.errors,
            "history": [s.value for s in self.history],
            "error": str(self.error) if self.error else None,
        }
