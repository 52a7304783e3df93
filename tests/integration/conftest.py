"""Shared fixtures for integration tests."""

from __future__ import annotations

from collections.abc import Callable
from io import StringIO
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from edf.core.logging import StructuredLogger
from edf.session.manager import EditingSessionManager
from edf.session.validation import ValidationPipeline
from edf.workflow.launcher import EditorLauncher
from edf.workflow.workflow import EditWorkflow

# Launcher from the "original file" scenario
FOO_ENTRY = b"[Desktop Entry]\nName=Foo\nExec=foo\n"

HELP_TEXT = "Edit Desktop Files\nLines starting with #EDF# are removed."

EditAction = Callable[[Path], None]


# =============================================================================
# Filesystem Fixtures
# =============================================================================


@pytest.fixture
def desktop_dirs(tmp_path: Path) -> dict[str, Path]:
    """Directories of a desktop session: system, local and temp."""
    dirs = {
        "system": tmp_path / "usr" / "share" / "applications",
        "local": tmp_path / "home" / ".local" / "share" / "applications",
        "temp": tmp_path / "tmp",
    }
    dirs["system"].mkdir(parents=True)
    dirs["temp"].mkdir()
    return dirs


@pytest.fixture
def foo_launcher(desktop_dirs: dict[str, Path]) -> Path:
    """The system launcher being edited."""
    path = desktop_dirs["system"] / "foo.desktop"
    path.write_bytes(FOO_ENTRY)
    return path


@pytest.fixture
def log_output() -> StringIO:
    """Captured JSON log lines."""
    return StringIO()


@pytest.fixture
def session_manager(
    desktop_dirs: dict[str, Path], log_output: StringIO
) -> EditingSessionManager:
    """Session manager wired to the temporary desktop directories."""
    logger = StructuredLogger(component="session", output=log_output)
    return EditingSessionManager(
        applications_dir=desktop_dirs["local"],
        temp_dir=desktop_dirs["temp"],
        pipeline=ValidationPipeline(logger=logger),
        notify=MagicMock(),
        help_text=HELP_TEXT,
        logger=logger,
    )


# =============================================================================
# Editor Simulation
# =============================================================================


def replace_user_content(content: bytes) -> EditAction:
    """Editor action keeping the #EDF# lines and replacing everything else."""

    def action(path: Path) -> None:
        lines = path.read_bytes().splitlines(keepends=True)
        annotations = b"".join(line for line in lines if line.startswith(b"#EDF#"))
        path.write_bytes(annotations + b"\n" + content)

    return action


def clear_file() -> EditAction:
    """Editor action deleting everything, hints included."""
    return lambda path: path.write_bytes(b"")


def save_unchanged() -> EditAction:
    """Editor action closing the file without changes."""
    return lambda path: None


class FakeEditor:
    """Stands in for the external editor process.

    Each run applies the next scripted action to the file named on the
    command line and records what the user saw when the editor opened.
    """

    def __init__(self, *actions: EditAction) -> None:
        self.actions = list(actions)
        self.opened: list[bytes] = []
        self.argvs: list[list[str]] = []

    async def run(self, argv: list[str]) -> int:
        path = Path(argv[-1])
        self.argvs.append(argv)
        self.opened.append(path.read_bytes())
        self.actions.pop(0)(path)
        return 0

    def as_launcher(self) -> MagicMock:
        launcher = MagicMock(spec=EditorLauncher)
        launcher.run = AsyncMock(side_effect=self.run)
        return launcher


def make_workflow(
    manager: EditingSessionManager,
    editor: FakeEditor,
    answers: list[bool] | None = None,
    notify: MagicMock | None = None,
) -> tuple[EditWorkflow, AsyncMock]:
    """Create a workflow whose prompts return the given answers in order."""
    confirm = AsyncMock(side_effect=list(answers or []))
    workflow = EditWorkflow(
        manager,
        confirm,
        notify=notify,
        launcher=editor.as_launcher(),
        logger=StructuredLogger(component="workflow", output=StringIO()),
    )
    return workflow, confirm
