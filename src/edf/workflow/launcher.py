"""External editor launching.

Builds the editor command line for an intermediate file and runs it,
suspending until the editor process exits.
"""

import asyncio
import shlex
from dataclasses import dataclass
from pathlib import Path

from edf.config.schema import FILE_PLACEHOLDER, EditorSettings
from edf.core.logging import StructuredLogger, get_logger
from edf.session.exceptions import EditorLaunchError

# --standalone keeps the process alive until its window is closed
DEFAULT_EDIT_COMMAND = f"gnome-text-editor --standalone {FILE_PLACEHOLDER}"


@dataclass
class EditCommand:
    """A resolved editor command line."""

    argv: list[str]
    custom: bool = False


def _substitute(tokens: list[str], path: Path) -> list[str]:
    """Replace the placeholder in every token with the file path."""
    return [token.replace(FILE_PLACEHOLDER, str(path)) for token in tokens]


def build_edit_command(
    path: Path,
    settings: EditorSettings | None = None,
    logger: StructuredLogger | None = None,
) -> EditCommand:
    """Build the command that opens a file in the editor.

    The custom command is used only if it is enabled and contains the
    file placeholder. Otherwise the default editor is used and a warning
    is logged.

    Args:
        path: File to edit.
        settings: Editor settings (defaults to the built-in editor).
        logger: Logger for fallback warnings.

    Returns:
        The command to run.
    """
    logger = logger or get_logger("launcher")

    if settings is not None and settings.use_custom_command:
        template = settings.custom_command
        if FILE_PLACEHOLDER not in template:
            logger.warning(
                f"Custom edit command is missing '{FILE_PLACEHOLDER}', "
                "falling back to default editor",
                custom_command=template,
            )
        else:
            try:
                tokens = shlex.split(template)
            except ValueError as e:
                logger.warning(
                    "Custom edit command cannot be parsed, "
                    "falling back to default editor",
                    custom_command=template,
                    error_message=str(e),
                )
            else:
                return EditCommand(argv=_substitute(tokens, path), custom=True)

    return EditCommand(argv=_substitute(shlex.split(DEFAULT_EDIT_COMMAND), path))


class EditorLauncher:
    """Runs editor processes."""

    async def run(self, argv: list[str]) -> int:
        """Start the editor and wait for it to exit.

        Args:
            argv: Command line to execute.

        Returns:
            The process exit code.

        Raises:
            EditorLaunchError: If the process cannot be started.
        """
        try:
            process = await asyncio.create_subprocess_exec(*argv)
        except (OSError, ValueError) as e:
            raise EditorLaunchError(
                f"Failed to start editor {argv[0] if argv else ''!r}: {e}",
                argv=argv,
            ) from e
        return await process.wait()
