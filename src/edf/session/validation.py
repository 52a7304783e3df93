"""Three-tier validation of edited desktop entries.

Tiers run in order and stop at the first failure:
1. Structural: the content must parse as a key file.
2. Schema: the key file must describe a launchable desktop entry.
3. Diagnostics: only when tier 2 fails, the external linter explains why.
"""

import shlex
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from edf.config.schema import DEFAULT_LINTER
from edf.core.error_handling import ErrorContext, ErrorSeverity, GracefulErrorHandler
from edf.core.i18n import _
from edf.core.logging import StructuredLogger, get_logger
from edf.session.desktop_entry import DesktopEntryDescriptor
from edf.session.exceptions import LinterUnavailableError
from edf.session.keyfile import KeyFile, KeyFileError, parse_key_file

LINTER_TIMEOUT_SECONDS = 30


class ValidationTier(Enum):
    """Validation tiers, in execution order."""

    STRUCTURAL = "structural"
    SCHEMA = "schema"
    DIAGNOSTICS = "diagnostics"


@dataclass
class ValidationResult:
    """Outcome of validating edited content."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    needs_detailed_diagnostics: bool = False
    tier: ValidationTier | None = None

    @classmethod
    def passed(cls) -> "ValidationResult":
        """Create a result for content that passed every tier."""
        return cls(valid=True)

    @classmethod
    def failed(
        cls,
        tier: ValidationTier,
        errors: list[str] | None = None,
        needs_detailed_diagnostics: bool = False,
    ) -> "ValidationResult":
        """Create a result for content rejected by a tier."""
        return cls(
            valid=False,
            errors=list(errors or []),
            needs_detailed_diagnostics=needs_detailed_diagnostics,
            tier=tier,
        )


def check_structure(content: bytes) -> tuple[ValidationResult, KeyFile | None]:
    """Tier 1: parse content as a key file.

    Args:
        content: User content with annotations already removed.

    Returns:
        Tuple of (result, parsed key file or None on failure).
    """
    try:
        key_file = parse_key_file(content)
    except KeyFileError as e:
        message = str(e)
        if e.line_number:
            message = _("Line {line}: {message}").format(
                line=e.line_number, message=message
            )
        return ValidationResult.failed(ValidationTier.STRUCTURAL, [message]), None
    return ValidationResult.passed(), key_file


def check_schema(key_file: KeyFile, locale: str | None = None) -> ValidationResult:
    """Tier 2: build a desktop entry descriptor.

    Construction gives no reason when it fails, so a failure only asks
    for detailed diagnostics.

    Args:
        key_file: Structurally valid key file.
        locale: Locale for localized key lookup.

    Returns:
        Validation result.
    """
    if DesktopEntryDescriptor.from_key_file(key_file, locale) is None:
        return ValidationResult.failed(
            ValidationTier.SCHEMA, needs_detailed_diagnostics=True
        )
    return ValidationResult.passed()


def _clean_linter_line(line: str, path: Path) -> str:
    """Drop the "<path>: " prefix the linter puts on every line."""
    prefix = f"{path}: "
    if line.startswith(prefix):
        return line[len(prefix) :]
    return line


def run_linter(
    path: Path,
    linter: str = DEFAULT_LINTER,
    timeout: float = LINTER_TIMEOUT_SECONDS,
) -> list[str]:
    """Run the external desktop entry linter on a file.

    Args:
        path: File to lint.
        linter: Linter command line; the path is appended as last argument.
        timeout: Seconds to wait for the linter.

    Returns:
        Non-empty diagnostic lines (stderr, or stdout when stderr is empty).

    Raises:
        LinterUnavailableError: If the linter cannot be run.
    """
    try:
        argv = [*shlex.split(linter), str(path)]
    except ValueError as e:
        raise LinterUnavailableError(
            _("Invalid linter command: {error}").format(error=e), linter
        ) from e

    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise LinterUnavailableError(
            _("Cannot show details: {linter} is not installed").format(linter=argv[0]),
            linter,
        ) from e
    except subprocess.TimeoutExpired as e:
        raise LinterUnavailableError(
            _("Cannot show details: {linter} is not responding").format(
                linter=argv[0]
            ),
            linter,
        ) from e
    except (OSError, subprocess.SubprocessError) as e:
        raise LinterUnavailableError(
            _("Cannot show details: failed to run {linter}: {error}").format(
                linter=argv[0], error=e
            ),
            linter,
        ) from e

    output = result.stderr if result.stderr.strip() else result.stdout
    return [
        _clean_linter_line(line.strip(), path)
        for line in output.splitlines()
        if line.strip()
    ]


class ValidationPipeline:
    """Runs the validation tiers in order.

    The pipeline never raises: linter problems are reported as errors
    of the diagnostics tier.
    """

    def __init__(
        self,
        linter: str = DEFAULT_LINTER,
        locale: str | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            linter: Linter command line for tier 3.
            locale: Locale for localized key lookup in tier 2.
            logger: Logger (defaults to the "session" component logger).
        """
        self.linter = linter
        self.locale = locale
        self._logger = logger or get_logger("session")
        self._errors = GracefulErrorHandler(logger=self._logger)

    def validate(self, content: bytes, path: Path) -> ValidationResult:
        """Validate user content.

        Args:
            content: User content with annotations removed.
            path: File holding the content, handed to the linter.

        Returns:
            Result of the first failing tier, or a passing result.
        """
        result, key_file = check_structure(content)
        if not result.valid or key_file is None:
            return result

        result = check_schema(key_file, self.locale)
        if result.valid or not result.needs_detailed_diagnostics:
            return result

        return self.diagnose(path)

    def diagnose(self, path: Path) -> ValidationResult:
        """Tier 3: collect linter diagnostics for a rejected entry.

        Args:
            path: File to lint.

        Returns:
            Failed result carrying the linter's lines.
        """
        try:
            errors = run_linter(path, self.linter)
        except LinterUnavailableError as e:
            self._errors.handle_error(
                e,
                ErrorContext(
                    operation="run_linter",
                    component="session",
                    details={"linter": self.linter, "path": str(path)},
                ),
                ErrorSeverity.WARNING,
            )
            errors = [str(e)]

        if not errors:
            errors = [_("Desktop entry cannot be launched")]

        return ValidationResult.failed(ValidationTier.DIAGNOSTICS, errors)
