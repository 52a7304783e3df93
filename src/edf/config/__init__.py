"""Configuration parsing, environment overrides and XDG paths."""

from edf.config.env import (
    APPLICATIONS_DIR_NAME,
    CONFIG_DIR_NAME,
    CONFIG_FILENAME,
    ENV_CONFIG,
    ENV_EDIT_COMMAND,
    ENV_LINTER,
    find_desktop_file,
    get_applications_dirs,
    get_config_path,
    get_user_applications_dir,
    get_user_data_dir,
    load_settings,
)
from edf.config.schema import (
    DEFAULT_LINTER,
    FILE_PLACEHOLDER,
    ConfigError,
    ConfigParseError,
    ConfigValidationError,
    EditorSettings,
    Settings,
    ValidationSettings,
    load_config,
    parse_config,
)

__all__ = [
    # Schema types
    "Settings",
    "EditorSettings",
    "ValidationSettings",
    # Schema functions
    "parse_config",
    "load_config",
    # Schema errors
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # Schema constants
    "DEFAULT_LINTER",
    "FILE_PLACEHOLDER",
    # Environment functions
    "load_settings",
    "get_config_path",
    "get_user_data_dir",
    "get_user_applications_dir",
    "get_applications_dirs",
    "find_desktop_file",
    # Environment constants
    "ENV_CONFIG",
    "ENV_EDIT_COMMAND",
    "ENV_LINTER",
    "CONFIG_DIR_NAME",
    "CONFIG_FILENAME",
    "APPLICATIONS_DIR_NAME",
]
