"""Edit workflow - editor launch, validation retries and commit.

The workflow drives an editing session through an explicit state
machine and reports the outcome as a WorkflowResult.
"""

from edf.workflow.launcher import (
    DEFAULT_EDIT_COMMAND,
    EditCommand,
    EditorLauncher,
    build_edit_command,
)
from edf.workflow.state import (
    SUCCESSFUL_STATES,
    TERMINAL_STATES,
    TRANSITIONS,
    WorkflowResult,
    WorkflowState,
    can_transition,
    is_terminal_state,
)
from edf.workflow.workflow import ConfirmFn, EditWorkflow

__all__ = [
    # Launcher
    "DEFAULT_EDIT_COMMAND",
    "EditCommand",
    "EditorLauncher",
    "build_edit_command",
    # State
    "WorkflowState",
    "WorkflowResult",
    "TERMINAL_STATES",
    "SUCCESSFUL_STATES",
    "TRANSITIONS",
    "is_terminal_state",
    "can_transition",
    # Workflow
    "ConfirmFn",
    "EditWorkflow",
]
