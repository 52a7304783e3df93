"""Environment and XDG base directory configuration."""

import os
from dataclasses import replace
from pathlib import Path

from xdg import BaseDirectory

from edf.config.schema import Settings, load_config

# Environment variable names
ENV_CONFIG = "EDF_CONFIG"
ENV_EDIT_COMMAND = "EDF_EDIT_COMMAND"
ENV_LINTER = "EDF_LINTER"

CONFIG_DIR_NAME = "edit-desktop-files"
CONFIG_FILENAME = "config.yaml"
APPLICATIONS_DIR_NAME = "applications"
DESKTOP_SUFFIX = ".desktop"


def get_config_path() -> Path:
    """Get the settings file location.

    Returns:
        EDF_CONFIG if set, else $XDG_CONFIG_HOME/edit-desktop-files/config.yaml.
    """
    config_path_str = os.environ.get(ENV_CONFIG)
    if config_path_str:
        return Path(config_path_str).expanduser()
    return Path(BaseDirectory.xdg_config_home) / CONFIG_DIR_NAME / CONFIG_FILENAME


def get_user_data_dir() -> Path:
    """Get the user's data directory ($XDG_DATA_HOME)."""
    return Path(BaseDirectory.xdg_data_home)


def get_user_applications_dir() -> Path:
    """Get the directory where local launcher overrides are stored."""
    return get_user_data_dir() / APPLICATIONS_DIR_NAME


def get_applications_dirs() -> list[Path]:
    """Get every applications directory in lookup order.

    The user's directory comes first so local overrides shadow
    system launchers.

    Returns:
        List of applications directories, without duplicates.
    """
    dirs = [get_user_applications_dir()]
    for data_dir in BaseDirectory.xdg_data_dirs:
        candidate = Path(data_dir) / APPLICATIONS_DIR_NAME
        if candidate not in dirs:
            dirs.append(candidate)
    return dirs


def find_desktop_file(target: str) -> Path | None:
    """Resolve a launcher path or desktop file ID.

    Args:
        target: Either a path to a .desktop file or an ID such as
            "firefox" or "org.gnome.TextEditor.desktop".

    Returns:
        Absolute path of the first matching file, None if not found.
        Symlinks are not followed, so the name matches the requested ID.
    """
    candidate = Path(target).expanduser()
    if os.sep in target or candidate.is_file():
        return candidate.absolute() if candidate.exists() else None

    desktop_id = target if target.endswith(DESKTOP_SUFFIX) else target + DESKTOP_SUFFIX

    for apps_dir in get_applications_dirs():
        path = apps_dir / desktop_id
        if path.is_file():
            return path.absolute()
        # Desktop file IDs map "-" to subdirectories (kde4-foo.desktop)
        if "-" in desktop_id:
            nested = apps_dir / desktop_id.replace("-", os.sep, 1)
            if nested.is_file():
                return nested.absolute()

    return None


def _apply_env_overrides(settings: Settings) -> Settings:
    """Overlay environment variables on file-based settings.

    Args:
        settings: Settings loaded from config.yaml or defaults.

    Returns:
        New Settings with EDF_EDIT_COMMAND and EDF_LINTER applied.
    """
    edit_command = os.environ.get(ENV_EDIT_COMMAND)
    if edit_command:
        settings = replace(
            settings,
            editor=replace(
                settings.editor,
                use_custom_command=True,
                custom_command=edit_command,
            ),
        )

    linter = os.environ.get(ENV_LINTER)
    if linter:
        settings = replace(
            settings,
            validation=replace(settings.validation, linter=linter),
        )

    return settings


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from config.yaml and the environment.

    A missing settings file is not an error: defaults are used.

    Args:
        path: Settings file (defaults to get_config_path()).

    Returns:
        Effective Settings.

    Raises:
        ConfigParseError: If the file exists but cannot be read or parsed.
        ConfigValidationError: If the file does not match the schema.
    """
    config_path = path or get_config_path()
    settings = load_config(config_path) if config_path.exists() else Settings()
    return _apply_env_overrides(settings)
