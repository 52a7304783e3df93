"""Annotation block handling for intermediate files.

An intermediate file starts with tool-generated lines carrying the
``#EDF#`` marker: help text, the name of the file being edited and,
after a failed validation, ``#EDF#ERROR:`` lines. Everything else is
user content. Annotation lines, and the single empty line that
separates an annotation block from what follows, are removed before
the content is validated or committed.
"""

from importlib import resources

from edf.core.i18n import _
from edf.core.logging import get_logger

MARKER = "#EDF#"
ERROR_TAG = "ERROR:"
FILE_TAG = "@File:"

HELP_TEXT_MSGID = "<help_text>"
FALLBACK_HELP_FILENAME = "fallback-help-text.txt"

_MARKER_BYTES = MARKER.encode("ascii")
_SEPARATOR_LINES = (b"\n", b"\r\n", b"\r")

logger = get_logger("session")


def load_fallback_help_text() -> str:
    """Load the bundled English help text.

    Returns:
        Help text, or an empty string if the data file cannot be read.
    """
    try:
        data_dir = resources.files("edf.session") / "data"
        return (data_dir / FALLBACK_HELP_FILENAME).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(
            "Error loading help text",
            error_type=type(e).__name__,
            error_message=str(e),
        )
        return ""


def get_help_text() -> str:
    """Get help text in the current locale, falling back to English."""
    text = _(HELP_TEXT_MSGID)
    if text == HELP_TEXT_MSGID:
        text = load_fallback_help_text()
    return text


def format_as_annotations(text: str) -> str:
    """Format text as annotation lines.

    Every line gets the marker; non-empty lines are separated from it by a
    space. The block is terminated by an empty separator line.

    Args:
        text: Raw text, possibly multi-line.

    Returns:
        Annotation block ending in a blank line.
    """
    lines = text.split("\n")
    return (
        "\n".join(f"{MARKER} {line}" if line.strip() else MARKER for line in lines)
        + "\n\n"
    )


def build_help_header(original_name: str, help_text: str | None = None) -> str:
    """Build the annotation header for a session.

    The ``@File:`` line naming the edited launcher is inserted as the
    second line, right below the help text title.

    Args:
        original_name: Base name of the desktop entry being edited.
        help_text: Help text to use (defaults to get_help_text()).

    Returns:
        Annotation block ending in a blank line.
    """
    if help_text is None:
        help_text = get_help_text()

    lines = help_text.strip("\n").split("\n") if help_text.strip() else []
    lines.insert(min(1, len(lines)), f"{FILE_TAG} {original_name}")
    return format_as_annotations("\n".join(lines))


def format_error_block(errors: list[str]) -> str:
    """Format validation errors as ``#EDF#ERROR:`` annotation lines.

    Multi-line messages produce one marked line per message line.

    Args:
        errors: Error messages in the order they were collected.

    Returns:
        Annotation block ending in a blank line, or "" for no errors.
    """
    lines = [
        f"{MARKER}{ERROR_TAG} {part}".rstrip()
        for error in errors
        for part in error.splitlines() or [""]
    ]
    if not lines:
        return ""
    return "\n".join(lines) + "\n\n"


def is_annotation_line(line: bytes) -> bool:
    """Check whether a raw line is tool-generated."""
    return line.startswith(_MARKER_BYTES)


def strip_annotations(data: bytes) -> bytes:
    """Remove annotation lines from intermediate file content.

    Line endings of the remaining lines are preserved byte for byte.

    Args:
        data: Raw intermediate file content.

    Returns:
        The user content.
    """
    kept: list[bytes] = []
    after_annotation = False
    for line in data.splitlines(keepends=True):
        if is_annotation_line(line):
            after_annotation = True
            continue
        if after_annotation and line in _SEPARATOR_LINES:
            after_annotation = False
            continue
        after_annotation = False
        kept.append(line)
    return b"".join(kept)


def is_blank(data: bytes) -> bool:
    """Check whether content has nothing but whitespace."""
    return not data.strip()
