"""YAML schema validation for the config.yaml settings file."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# Token in a custom edit command that is replaced by the file to edit
FILE_PLACEHOLDER = "%U"

DEFAULT_LINTER = "desktop-file-validate"


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigParseError(ConfigError):
    """Error parsing YAML configuration."""

    pass


class ConfigValidationError(ConfigError):
    """Error validating configuration schema."""

    pass


@dataclass
class EditorSettings:
    """External editor configuration."""

    use_custom_command: bool = False
    custom_command: str = ""


@dataclass
class ValidationSettings:
    """Validation pipeline configuration."""

    linter: str = DEFAULT_LINTER


@dataclass
class Settings:
    """Complete config.yaml configuration."""

    editor: EditorSettings = field(default_factory=EditorSettings)
    validation: ValidationSettings = field(default_factory=ValidationSettings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the mapping layout used by config.yaml."""
        return {
            "editor": {
                "use_custom_command": self.editor.use_custom_command,
                "custom_command": self.editor.custom_command,
            },
            "validation": {
                "linter": self.validation.linter,
            },
        }


def _parse_yaml(content: str) -> dict[str, Any]:
    """Parse YAML content into a dictionary.

    Args:
        content: Raw YAML string.

    Returns:
        Parsed dictionary.

    Raises:
        ConfigParseError: If YAML parsing fails.
    """
    try:
        result = yaml.safe_load(content)
        if result is None:
            return {}
        if not isinstance(result, dict):
            raise ConfigParseError("Configuration must be a YAML mapping")
        return result
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}") from e


def _validate_editor(data: dict[str, Any]) -> EditorSettings:
    """Validate the editor section of configuration.

    Args:
        data: Raw configuration dictionary.

    Returns:
        Validated EditorSettings with defaults if not specified.

    Raises:
        ConfigValidationError: If editor validation fails.
    """
    if "editor" not in data:
        return EditorSettings()

    editor = data["editor"]
    if not isinstance(editor, dict):
        raise ConfigValidationError("editor must be a mapping")

    use_custom_command = editor.get("use_custom_command", False)
    custom_command = editor.get("custom_command", "")

    if not isinstance(use_custom_command, bool):
        raise ConfigValidationError("editor.use_custom_command must be a boolean")

    if custom_command is None:
        custom_command = ""
    if not isinstance(custom_command, str):
        raise ConfigValidationError("editor.custom_command must be a string")

    return EditorSettings(
        use_custom_command=use_custom_command,
        custom_command=custom_command,
    )


def _validate_validation(data: dict[str, Any]) -> ValidationSettings:
    """Validate the validation section of configuration.

    Args:
        data: Raw configuration dictionary.

    Returns:
        Validated ValidationSettings with defaults if not specified.
    """
    if "validation" not in data:
        return ValidationSettings()

    validation = data["validation"]
    if not isinstance(validation, dict):
        raise ConfigValidationError("validation must be a mapping")

    linter = validation.get("linter", DEFAULT_LINTER)
    if not isinstance(linter, str) or not linter.strip():
        raise ConfigValidationError("validation.linter must be a non-empty string")

    return ValidationSettings(linter=linter)


def parse_config(content: str) -> Settings:
    """Parse and validate config.yaml content.

    Args:
        content: Raw YAML string.

    Returns:
        Validated Settings object.

    Raises:
        ConfigParseError: If YAML parsing fails.
        ConfigValidationError: If schema validation fails.
    """
    data = _parse_yaml(content)
    editor = _validate_editor(data)
    validation = _validate_validation(data)

    return Settings(editor=editor, validation=validation)


def load_config(path: Path) -> Settings:
    """Load and validate config.yaml from a file.

    Args:
        path: Path to config.yaml.

    Returns:
        Validated Settings object.

    Raises:
        ConfigParseError: If file reading or YAML parsing fails.
        ConfigValidationError: If schema validation fails.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigParseError(f"Failed to read configuration file: {e}") from e

    return parse_config(content)
