"""CLI entry point for Edit Desktop Files.

Provides commands for:
- Editing a launcher in an external editor (edf edit)
- Validating a desktop entry file (edf validate)
- Finding the file behind a desktop file ID (edf locate)
- Showing the effective configuration (edf config)
"""

import asyncio
import os
import sys
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm

from edf import __version__
from edf.config import (
    ConfigError,
    EditorSettings,
    Settings,
    find_desktop_file,
    get_config_path,
    get_user_applications_dir,
    load_settings,
)
from edf.config.env import DESKTOP_SUFFIX
from edf.core.logging import LogLevel, configure_logging
from edf.session import (
    EditingSessionManager,
    ValidationPipeline,
    strip_annotations,
)
from edf.workflow import EditWorkflow, WorkflowResult, WorkflowState

# Global console for Rich output
console = Console()

RESULT_MESSAGES: dict[WorkflowState, str] = {
    WorkflowState.COMMITTED: "[green]Saved[/green] {destination}",
    WorkflowState.DELETED: "[green]Moved to trash[/green] {destination}",
    WorkflowState.DISCARDED: "[yellow]Changes discarded[/yellow]",
    WorkflowState.COMMIT_FAILED: "[red]Could not save[/red] {original}",
    WorkflowState.TRASH_FAILED: "[red]Could not move to trash[/red] {original}",
    WorkflowState.LAUNCH_FAILED: "[red]Could not start the editor[/red]",
    WorkflowState.CREATION_FAILED: "[red]Could not create a temporary file[/red]",
}


def notify_console(title: str, body: str) -> None:
    """Print a notification."""
    console.print(f"[bold red]{escape(title)}:[/bold red] {escape(body)}")


async def confirm_on_terminal(
    title: str,
    message: str,
    confirm_label: str,
    cancel_label: str,
) -> bool:
    """Ask a yes/no question on the terminal without blocking the event loop."""
    console.print(Panel(escape(message), title=escape(title), expand=False))
    return await asyncio.to_thread(
        Confirm.ask,
        f"{confirm_label}? [dim](no: {cancel_label})[/dim]",
        console=console,
        default=False,
    )


def _load_settings() -> Settings:
    """Load settings, exiting with an error message on failure."""
    try:
        return load_settings()
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)


def resolve_target(target: str, create: bool = False) -> Path | None:
    """Resolve a launcher path or desktop file ID.

    Args:
        target: Path or desktop file ID.
        create: Whether a missing launcher should be created.

    Returns:
        Path of the launcher to edit, or None if it cannot be found.
    """
    path = find_desktop_file(target)
    if path is not None or not create:
        return path

    if os.sep in target:
        return Path(target).expanduser().absolute()

    name = target if target.endswith(DESKTOP_SUFFIX) else target + DESKTOP_SUFFIX
    return get_user_applications_dir() / name


def _print_result(result: WorkflowResult) -> None:
    """Print the outcome of an edit."""
    template = RESULT_MESSAGES.get(result.state, "{state}")
    console.print(
        template.format(
            destination=result.destination or "",
            original=result.original_path,
            state=result.state.value,
        )
    )
    if result.error is not None and not result.succeeded:
        console.print(f"[dim]{escape(str(result.error))}[/dim]", highlight=False)


@click.group()
@click.version_option(version=__version__, prog_name="edf")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logs")
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Format of log lines written to stderr",
)
def main(verbose: bool, log_format: str) -> None:
    """Edit Desktop Files - safely edit .desktop launchers."""
    configure_logging(
        level=LogLevel.DEBUG if verbose else LogLevel.WARNING,
        json_format=log_format == "json",
    )


@main.command()
@click.argument("target", required=True)
@click.option("--new", "create", is_flag=True, help="Create the launcher if missing")
@click.option(
    "--editor",
    "edit_command",
    help="Editor command line, with %U where the file goes",
)
def edit(target: str, create: bool, edit_command: str | None) -> None:
    """Edit a launcher in an external editor.

    TARGET is a path to a .desktop file or a desktop file ID. The result
    is saved to your local applications directory.

    Examples:
        edf edit firefox
        edf edit --editor "code --wait %U" org.gnome.TextEditor.desktop
        edf edit --new my-script
    """
    settings = _load_settings()
    editor_settings = settings.editor
    if edit_command:
        editor_settings = EditorSettings(use_custom_command=True, custom_command=edit_command)

    original = resolve_target(target, create)
    if original is None:
        console.print(f"[red]Error:[/red] No launcher found for {target}")
        console.print("[dim]Use --new to create it[/dim]")
        sys.exit(1)

    manager = EditingSessionManager(
        pipeline=ValidationPipeline(linter=settings.validation.linter),
        notify=notify_console,
    )
    workflow = EditWorkflow(
        manager,
        confirm_on_terminal,
        settings=editor_settings,
        notify=notify_console,
    )

    try:
        result = asyncio.run(workflow.run(original))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        sys.exit(130)  # Standard "interrupted" exit code
    finally:
        workflow.teardown()

    _print_result(result)
    sys.exit(0 if result.succeeded else 1)


@main.command()
@click.argument(
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def validate(file: Path) -> None:
    """Validate a desktop entry file.

    Lines carrying the #EDF# marker are ignored, so intermediate files
    can be checked too.
    """
    settings = _load_settings()
    pipeline = ValidationPipeline(linter=settings.validation.linter)

    try:
        content = strip_annotations(file.read_bytes())
    except OSError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    result = pipeline.validate(content, file)
    if result.valid:
        console.print(f"[green]Valid[/green] {file}")
        return

    tier = result.tier.value if result.tier else "unknown"
    console.print(f"[red]Invalid[/red] {file} [dim]({tier})[/dim]")
    for error in result.errors:
        console.print(f"  - {error}", markup=False, highlight=False)
    sys.exit(1)


@main.command()
@click.argument("target", required=True)
def locate(target: str) -> None:
    """Show the file behind a launcher path or desktop file ID."""
    path = find_desktop_file(target)
    if path is None:
        console.print(f"[red]No launcher found for {target}[/red]")
        sys.exit(1)

    console.print(str(path), markup=False, highlight=False)
    local_dir = get_user_applications_dir().absolute()
    if path.is_relative_to(local_dir):
        console.print("[dim]Local override[/dim]")


@main.command(name="config")
def show_config() -> None:
    """Show the effective configuration."""
    settings = _load_settings()
    config_path = get_config_path()
    state = "" if config_path.exists() else " [dim](not found, using defaults)[/dim]"
    console.print(f"[bold]Config file:[/bold] {config_path}{state}")
    console.print(
        yaml.safe_dump(settings.to_dict(), sort_keys=False).rstrip(),
        markup=False,
        highlight=False,
    )


if __name__ == "__main__":
    main()
