"""Edit workflow state machine.

Drives one editing session from creation to a terminal state: launch
the editor, wait for it to exit, then either confirm deletion of an
emptied launcher, or validate and commit the edits, looping back to the
editor for as long as the user wants to fix invalid content.
"""

import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from edf.config.schema import EditorSettings
from edf.core.error_handling import ErrorContext, ErrorSeverity, GracefulErrorHandler
from edf.core.i18n import _
from edf.core.logging import StructuredLogger, get_logger
from edf.session.exceptions import (
    ConfirmationAbortedError,
    EditorLaunchError,
    ValidationFailedError,
)
from edf.session.manager import (
    EditingSession,
    EditingSessionManager,
    Notifier,
    SessionState,
    notification_title,
)
from edf.workflow.launcher import EditorLauncher, build_edit_command
from edf.workflow.state import (
    WorkflowResult,
    WorkflowState,
    can_transition,
    is_terminal_state,
)

# Confirmation prompt: (title, message, confirm_label, cancel_label) -> answer
ConfirmFn = Callable[[str, str, str, str], Awaitable[bool]]


@dataclass
class _Run:
    """Mutable context of one workflow run."""

    session: EditingSession
    result: WorkflowResult
    errors: list[str] = field(default_factory=list)
    failed_tier: str = ""


class EditWorkflow:
    """Runs the edit, validate, retry and commit loop for desktop entries.

    Several runs for different desktop entries may be awaited
    concurrently; they share only the session manager's registry.
    """

    def __init__(
        self,
        manager: EditingSessionManager,
        confirm: ConfirmFn,
        settings: EditorSettings | None = None,
        notify: Notifier | None = None,
        launcher: EditorLauncher | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the workflow.

        Args:
            manager: Session manager owning the intermediate files.
            confirm: Yes/no prompt; a dismissed prompt counts as "no".
            settings: Editor command settings.
            notify: Callback for user-visible notifications.
            launcher: Editor process launcher.
            logger: Logger (defaults to the "workflow" component logger).
        """
        self.manager = manager
        self.settings = settings or EditorSettings()
        self._confirm = confirm
        self._notify = notify
        self._launcher = launcher or EditorLauncher()
        self._logger = logger or get_logger("workflow")
        self._errors = GracefulErrorHandler(logger=self._logger)
        self._handlers: dict[
            WorkflowState, Callable[[_Run], Awaitable[WorkflowState]]
        ] = {
            WorkflowState.CREATED: self._on_created,
            WorkflowState.EDITING: self._on_editing,
            WorkflowState.EXITED: self._on_exited,
            WorkflowState.CONFIRM_DELETE: self._on_confirm_delete,
            WorkflowState.VALIDATING: self._on_validating,
            WorkflowState.CONFIRM_RETRY: self._on_confirm_retry,
            WorkflowState.COMMITTING: self._on_committing,
        }

    async def run(self, original_path: Path | str) -> WorkflowResult:
        """Edit a desktop entry until a terminal state is reached.

        Args:
            original_path: Desktop entry to edit (may not exist yet).

        Returns:
            The workflow result. Errors are reported in the result, never
            raised; the session is always removed before returning.
        """
        original = Path(original_path).expanduser().absolute()
        session = self.manager.start_session(original)
        if session is None:
            return WorkflowResult(
                original_path=original,
                state=WorkflowState.CREATION_FAILED,
                history=[WorkflowState.CREATION_FAILED],
                error=self.manager.last_error,
            )

        run = _Run(
            session=session,
            result=WorkflowResult(
                original_path=original,
                state=WorkflowState.CREATED,
                intermediate_path=session.intermediate_path,
                history=[WorkflowState.CREATED],
            ),
        )

        try:
            state = WorkflowState.CREATED
            while not is_terminal_state(state):
                next_state = await self._handlers[state](run)
                self._transition(run, state, next_state)
                state = next_state
        finally:
            self.manager.remove(session)

        run.result.errors = run.errors
        return run.result

    def teardown(self) -> None:
        """Discard every open session, e.g. when the host shuts down."""
        self.manager.cleanup()

    def _transition(
        self,
        run: _Run,
        from_state: WorkflowState,
        to_state: WorkflowState,
        reason: str = "",
    ) -> None:
        """Record a state change."""
        if not can_transition(from_state, to_state):
            self._logger.critical(
                "Invalid workflow transition",
                session_id=run.session.id,
                from_state=from_state.value,
                to_state=to_state.value,
            )
        run.result.state = to_state
        run.result.history.append(to_state)
        self._logger.log_state_transition(
            from_state.value,
            to_state.value,
            reason,
            session_id=run.session.id,
        )

    # State handlers

    async def _on_created(self, run: _Run) -> WorkflowState:
        run.session.state = SessionState.EDITING
        return WorkflowState.EDITING

    async def _on_editing(self, run: _Run) -> WorkflowState:
        command = build_edit_command(
            run.session.intermediate_path, self.settings, self._logger
        )
        self._logger.log_editor_launch(run.session.id, command.argv, command.custom)
        run.result.editor_runs += 1

        try:
            # Exit code is ignored: only the file content matters
            await self._launcher.run(command.argv)
        except EditorLaunchError as e:
            self._errors.handle_error(e, self._context(run, "launch_editor"))
            run.result.error = e
            return WorkflowState.LAUNCH_FAILED

        return WorkflowState.EXITED

    async def _on_exited(self, run: _Run) -> WorkflowState:
        if self.manager.is_empty_content(run.session):
            return WorkflowState.CONFIRM_DELETE
        return WorkflowState.VALIDATING

    async def _on_confirm_delete(self, run: _Run) -> WorkflowState:
        name = run.session.original_name
        confirmed = await self._ask(
            run,
            _("Delete launcher?"),
            _(
                "{name} is empty. Move your local copy of this launcher to the trash?"
            ).format(name=name),
            _("Delete"),
            _("Cancel"),
        )
        if not confirmed:
            return WorkflowState.DISCARDED

        if not self.manager.trash_local_copy(run.session):
            run.result.error = self.manager.last_error
            self._send_notification(
                _("Cannot move {name} to the trash").format(name=name)
            )
            return WorkflowState.TRASH_FAILED

        run.result.destination = self.manager.destination_for(run.session)
        return WorkflowState.DELETED

    async def _on_validating(self, run: _Run) -> WorkflowState:
        validation = self.manager.validate(run.session)
        if validation.valid:
            run.errors = []
            return WorkflowState.COMMITTING
        run.errors = list(validation.errors)
        run.failed_tier = validation.tier.value if validation.tier else ""
        return WorkflowState.CONFIRM_RETRY

    async def _on_confirm_retry(self, run: _Run) -> WorkflowState:
        name = run.session.original_name
        confirmed = await self._ask(
            run,
            _("Invalid desktop entry"),
            _(
                "{name} contains errors:\n\n{errors}\n\n"
                "The errors are listed at the top of the file."
            ).format(name=name, errors="\n".join(run.errors)),
            _("Continue editing"),
            _("Discard changes"),
        )
        if confirmed:
            return WorkflowState.CREATED

        run.result.error = ValidationFailedError(
            f"Edits to {name} were discarded after failed validation",
            tier=run.failed_tier,
            errors=list(run.errors),
        )
        return WorkflowState.DISCARDED

    async def _on_committing(self, run: _Run) -> WorkflowState:
        if self.manager.commit(run.session):
            run.result.destination = self.manager.destination_for(run.session)
            return WorkflowState.COMMITTED

        run.result.error = self.manager.last_error
        self._send_notification(
            _("Cannot save changes to {name}").format(name=run.session.original_name)
        )
        return WorkflowState.COMMIT_FAILED

    # Helpers

    async def _ask(
        self,
        run: _Run,
        title: str,
        message: str,
        confirm_label: str,
        cancel_label: str,
    ) -> bool:
        """Ask a yes/no question; failures and dismissals count as "no"."""
        try:
            answer = await self._confirm(title, message, confirm_label, cancel_label)
        except Exception as e:
            error = ConfirmationAbortedError(f"Confirmation prompt failed: {e}")
            self._errors.handle_error(
                error, self._context(run, "confirm"), ErrorSeverity.WARNING
            )
            return False
        return bool(answer)

    def _context(self, run: _Run, operation: str) -> ErrorContext:
        return ErrorContext(
            operation=operation,
            component="workflow",
            session_id=run.session.id,
            details={"original_path": str(run.session.original_path)},
        )

    def _send_notification(self, body: str) -> None:
        """Fire a notification; notifier failures are ignored."""
        if self._notify is None:
            return
        with contextlib.suppress(Exception):
            self._notify(notification_title(), body)
