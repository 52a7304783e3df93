"""Unit tests for edf.session.manager module."""

from __future__ import annotations

import json
import os
import stat
from io import StringIO
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from edf.core.logging import StructuredLogger
from edf.session.annotations import strip_annotations
from edf.session.exceptions import (
    CommitError,
    IntermediateFileCreationError,
    TrashError,
)
from edf.session.manager import (
    INTERMEDIATE_PREFIX,
    EditingSession,
    EditingSessionManager,
    SessionState,
)
from edf.session.validation import ValidationPipeline, ValidationResult, ValidationTier

HELP = "Edit Desktop Files\nHelp line"
ENTRY = b"[Desktop Entry]\nType=Application\nName=Foo\nExec=foo\n"


@pytest.fixture
def log_output() -> StringIO:
    return StringIO()


@pytest.fixture
def manager(tmp_path: Path, log_output: StringIO) -> EditingSessionManager:
    """Manager writing into temporary directories."""
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    logger = StructuredLogger(component="session", output=log_output)
    return EditingSessionManager(
        applications_dir=tmp_path / "applications",
        temp_dir=temp_dir,
        pipeline=ValidationPipeline(linter="desktop-file-validate", logger=logger),
        notify=MagicMock(),
        help_text=HELP,
        logger=logger,
    )


@pytest.fixture
def original(tmp_path: Path) -> Path:
    """A system launcher."""
    path = tmp_path / "system" / "foo.desktop"
    path.parent.mkdir()
    path.write_bytes(ENTRY)
    return path


def _edit(session: EditingSession, content: bytes) -> None:
    """Simulate the user replacing everything below the header."""
    session.intermediate_path.write_bytes(session.help_header.encode() + content)


def _log_levels(output: StringIO) -> list[str]:
    return [json.loads(line)["level"] for line in output.getvalue().splitlines()]


class TestStartSession:
    """Tests for start_session()."""

    def test_creates_intermediate_file(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """The scratch copy is header plus the original bytes."""
        session = manager.start_session(original)
        assert session is not None
        assert session in manager
        assert session.state == SessionState.CREATED
        assert session.intermediate_path.parent == manager.temp_dir
        assert session.intermediate_path.name.startswith(INTERMEDIATE_PREFIX)
        assert session.intermediate_path.suffix == ".desktop"

        data = session.intermediate_path.read_bytes()
        assert data.startswith(b"#EDF# Edit Desktop Files\n#EDF# @File: foo.desktop\n")
        assert data.endswith(b"\n\n" + ENTRY)
        assert strip_annotations(data) == ENTRY

    def test_missing_original_gives_empty_body(
        self, manager: EditingSessionManager, tmp_path: Path
    ) -> None:
        """A launcher that does not exist yet starts empty."""
        session = manager.start_session(tmp_path / "new.desktop")
        assert session is not None
        assert session.intermediate_path.read_bytes() == session.help_header.encode()
        assert manager.is_empty_content(session)

    def test_sessions_for_same_file_are_independent(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Each session gets its own intermediate file."""
        first = manager.start_session(original)
        second = manager.start_session(original)
        assert first is not None and second is not None
        assert first.intermediate_path != second.intermediate_path
        assert len(manager) == 2
        assert manager.get_session(first.intermediate_path) is first

    def test_creation_failure(self, tmp_path: Path, original: Path) -> None:
        """An unwritable temp directory yields None and a notification."""
        notify = MagicMock()
        manager = EditingSessionManager(
            applications_dir=tmp_path / "applications",
            temp_dir=tmp_path / "missing",
            notify=notify,
            help_text=HELP,
            logger=StructuredLogger(component="session", output=StringIO()),
        )
        assert manager.start_session(original) is None
        assert len(manager) == 0
        assert isinstance(manager.last_error, IntermediateFileCreationError)
        notify.assert_called_once_with(
            "Edit Desktop Files", "Cannot create temporary file for editing"
        )

    def test_notifier_errors_are_ignored(self, tmp_path: Path, original: Path) -> None:
        """A failing notifier does not break error handling."""
        manager = EditingSessionManager(
            applications_dir=tmp_path / "applications",
            temp_dir=tmp_path / "missing",
            notify=MagicMock(side_effect=RuntimeError("no bus")),
            help_text=HELP,
            logger=StructuredLogger(component="session", output=StringIO()),
        )
        assert manager.start_session(original) is None


class TestIsEmptyContent:
    """Tests for is_empty_content()."""

    def test_content_is_not_empty(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        session = manager.start_session(original)
        assert session is not None
        assert not manager.is_empty_content(session)

    def test_whitespace_only_is_empty(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Annotations plus whitespace count as empty."""
        session = manager.start_session(original)
        assert session is not None
        _edit(session, b"\n  \n\t\n")
        assert manager.is_empty_content(session)

    def test_fully_cleared_file_is_empty(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Deleting the header too still counts as empty."""
        session = manager.start_session(original)
        assert session is not None
        session.intermediate_path.write_bytes(b"")
        assert manager.is_empty_content(session)

    def test_unreadable_file_is_not_empty(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """A vanished file is not treated as a delete request."""
        session = manager.start_session(original)
        assert session is not None
        session.intermediate_path.unlink()
        assert not manager.is_empty_content(session)

    def test_unknown_session_is_critical(
        self,
        manager: EditingSessionManager,
        original: Path,
        log_output: StringIO,
    ) -> None:
        """Untracked sessions are logged as critical and skipped."""
        session = manager.start_session(original)
        assert session is not None
        manager.remove(session)
        assert not manager.is_empty_content(session)
        assert "CRITICAL" in _log_levels(log_output)


class TestValidate:
    """Tests for validate()."""

    def test_valid_content(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Valid content leaves the file untouched."""
        session = manager.start_session(original)
        assert session is not None
        before = session.intermediate_path.read_bytes()

        result = manager.validate(session)

        assert result.valid
        assert session.validation_count == 1
        assert session.last_errors == []
        assert session.intermediate_path.read_bytes() == before

    def test_invalid_content_writes_error_block(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Errors are written between the header and the content."""
        session = manager.start_session(original)
        assert session is not None
        content = b"[Desktop Entry]\nName=Foo\nnot a pair\n"
        _edit(session, content)

        result = manager.validate(session)

        assert not result.valid
        assert result.tier == ValidationTier.STRUCTURAL
        assert session.state == SessionState.INVALID
        data = session.intermediate_path.read_bytes()
        expected_block = f"#EDF#ERROR: {result.errors[0]}\n\n".encode()
        assert data == session.help_header.encode() + expected_block + content
        assert strip_annotations(data) == content

    def test_errors_are_replaced_not_accumulated(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Only the latest validation's errors are shown."""
        session = manager.start_session(original)
        assert session is not None
        _edit(session, b"first error\n")
        manager.validate(session)
        # The user edits the file, keeping the stale error lines
        stale = session.intermediate_path.read_bytes()
        session.intermediate_path.write_bytes(
            stale.replace(b"\nfirst error\n", b"\n[G]\nsecond\n")
        )

        result = manager.validate(session)

        data = session.intermediate_path.read_bytes()
        assert data.count(b"#EDF#ERROR:") == 1
        assert b"Line 2" in data
        assert session.validation_count == 2
        assert session.last_errors == result.errors

    @pytest.mark.parametrize(
        "target",
        ["edf.session.manager.os.replace", "edf.session.manager.tempfile.mkstemp"],
        ids=["replace", "mkstemp"],
    )
    def test_failed_rewrite_keeps_user_edits(
        self,
        manager: EditingSessionManager,
        original: Path,
        log_output: StringIO,
        target: str,
    ) -> None:
        """If the error rewrite fails, the file keeps the user's edits."""
        session = manager.start_session(original)
        assert session is not None
        _edit(session, b"[Desktop Entry]\nName=Foo\nnot a pair\n")
        before = session.intermediate_path.read_bytes()

        with patch(target, side_effect=OSError("disk full")):
            result = manager.validate(session)

        assert not result.valid
        assert result.tier == ValidationTier.STRUCTURAL
        assert result.errors[0].startswith("Line 3: ")
        assert session.intermediate_path.read_bytes() == before
        assert list(session.intermediate_path.parent.iterdir()) == [
            session.intermediate_path
        ]
        assert "ERROR" in _log_levels(log_output)

    def test_unknown_session(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """An untracked session fails validation without touching disk."""
        session = manager.start_session(original)
        assert session is not None
        manager.remove(session)
        result = manager.validate(session)
        assert not result.valid
        assert result.errors == ["Unknown editing session"]
        assert not session.intermediate_path.exists()

    def test_pipeline_crash_is_contained(
        self, tmp_path: Path, original: Path
    ) -> None:
        """An unexpected pipeline error becomes a failed result."""
        temp_dir = tmp_path / "tmp"
        temp_dir.mkdir()
        pipeline = MagicMock(spec=ValidationPipeline)
        pipeline.validate.side_effect = RuntimeError("bug")
        manager = EditingSessionManager(
            applications_dir=tmp_path / "applications",
            temp_dir=temp_dir,
            pipeline=pipeline,
            help_text=HELP,
            logger=StructuredLogger(component="session", output=StringIO()),
        )
        session = manager.start_session(original)
        assert session is not None

        result = manager.validate(session)

        assert not result.valid
        assert result.errors == ["Validation could not be completed"]
        assert b"#EDF#ERROR: Validation could not be completed" in (
            session.intermediate_path.read_bytes()
        )

    def test_pipeline_receives_intermediate_path(
        self, tmp_path: Path, original: Path
    ) -> None:
        """Stripped content and the intermediate file are validated."""
        temp_dir = tmp_path / "tmp"
        temp_dir.mkdir()
        pipeline = MagicMock(spec=ValidationPipeline)
        pipeline.validate.return_value = ValidationResult.passed()
        manager = EditingSessionManager(
            applications_dir=tmp_path / "applications",
            temp_dir=temp_dir,
            pipeline=pipeline,
            help_text=HELP,
            logger=StructuredLogger(component="session", output=StringIO()),
        )
        session = manager.start_session(original)
        assert session is not None

        manager.validate(session)

        pipeline.validate.assert_called_once_with(ENTRY, session.intermediate_path)


class TestCommit:
    """Tests for commit()."""

    def test_writes_local_override(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """The stripped content lands in the applications directory."""
        session = manager.start_session(original)
        assert session is not None
        edited = ENTRY.replace(b"Name=Foo", b"Name=Bar")
        _edit(session, edited)

        assert manager.commit(session)

        destination = manager.applications_dir / "foo.desktop"
        assert destination.read_bytes() == edited
        assert manager.destination_for(session) == destination
        assert session.state == SessionState.COMMITTED
        assert original.read_bytes() == ENTRY
        assert stat.S_IMODE(destination.stat().st_mode) == 0o644

    def test_replaces_existing_override(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """An existing local copy is replaced and keeps its mode."""
        manager.applications_dir.mkdir()
        destination = manager.applications_dir / "foo.desktop"
        destination.write_bytes(b"old")
        os.chmod(destination, 0o600)
        session = manager.start_session(original)
        assert session is not None

        assert manager.commit(session)

        assert destination.read_bytes() == ENTRY
        assert stat.S_IMODE(destination.stat().st_mode) == 0o600
        assert [p.name for p in manager.applications_dir.iterdir()] == ["foo.desktop"]

    def test_failure_returns_false(self, tmp_path: Path, original: Path) -> None:
        """I/O errors are reported, not raised."""
        temp_dir = tmp_path / "tmp"
        temp_dir.mkdir()
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        manager = EditingSessionManager(
            applications_dir=blocker,
            temp_dir=temp_dir,
            help_text=HELP,
            logger=StructuredLogger(component="session", output=StringIO()),
        )
        session = manager.start_session(original)
        assert session is not None

        assert not manager.commit(session)
        assert isinstance(manager.last_error, CommitError)
        assert session.state == SessionState.CREATED

    def test_unknown_session(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Committing an untracked session does nothing."""
        session = manager.start_session(original)
        assert session is not None
        manager.remove(session)
        assert not manager.commit(session)
        assert not (manager.applications_dir / "foo.desktop").exists()


class TestTrashLocalCopy:
    """Tests for trash_local_copy()."""

    def test_trashes_existing_copy(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """The local override is sent to the trash."""
        manager.applications_dir.mkdir()
        local = manager.applications_dir / "foo.desktop"
        local.write_bytes(ENTRY)
        session = manager.start_session(original)
        assert session is not None

        with patch("edf.session.manager.send2trash") as mock_trash:
            assert manager.trash_local_copy(session)

        mock_trash.assert_called_once_with(str(local))
        assert session.state == SessionState.DELETED
        assert original.exists()

    def test_missing_copy_is_success(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Nothing to trash is not an error."""
        session = manager.start_session(original)
        assert session is not None
        with patch("edf.session.manager.send2trash") as mock_trash:
            assert manager.trash_local_copy(session)
        mock_trash.assert_not_called()

    def test_trash_failure(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Trash errors are reported, not raised."""
        manager.applications_dir.mkdir()
        (manager.applications_dir / "foo.desktop").write_bytes(ENTRY)
        session = manager.start_session(original)
        assert session is not None

        with patch(
            "edf.session.manager.send2trash", side_effect=OSError("no trash")
        ):
            assert not manager.trash_local_copy(session)

        assert isinstance(manager.last_error, TrashError)
        assert session.state != SessionState.DELETED


class TestRemove:
    """Tests for remove() and cleanup()."""

    def test_remove_deletes_file(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Removal untracks the session and deletes its file."""
        session = manager.start_session(original)
        assert session is not None
        manager.remove(session)
        assert session not in manager
        assert not session.intermediate_path.exists()
        assert session.state == SessionState.DISCARDED

    def test_remove_is_idempotent(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """Removing twice is harmless."""
        session = manager.start_session(original)
        assert session is not None
        manager.remove(session)
        manager.remove(session)
        assert len(manager) == 0

    def test_remove_keeps_terminal_state(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """A committed session stays committed."""
        session = manager.start_session(original)
        assert session is not None
        manager.commit(session)
        manager.remove(session)
        assert session.state == SessionState.COMMITTED

    def test_remove_tolerates_missing_file(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """A file deleted behind our back does not matter."""
        session = manager.start_session(original)
        assert session is not None
        session.intermediate_path.unlink()
        manager.remove(session)
        assert len(manager) == 0

    def test_cleanup_removes_everything(
        self, manager: EditingSessionManager, original: Path
    ) -> None:
        """cleanup() discards all sessions."""
        sessions = [manager.start_session(original) for _ in range(3)]
        manager.cleanup()
        assert len(manager) == 0
        assert list(manager.temp_dir.iterdir()) == []
        assert all(s is not None and s.state == SessionState.DISCARDED for s in sessions)


class TestEditingSession:
    """Tests for EditingSession."""

    def test_id_and_name(self, tmp_path: Path) -> None:
        session = EditingSession(
            original_path=tmp_path / "foo.desktop",
            intermediate_path=tmp_path / "edf-abc.desktop",
            help_header="",
        )
        assert session.id == "edf-abc"
        assert session.original_name == "foo.desktop"
        assert session.to_dict()["state"] == "created"
