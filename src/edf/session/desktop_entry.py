"""Desktop entry descriptors built from parsed key files.

A descriptor can only be built when the key file describes a launchable
application, mirroring the checks GDesktopAppInfo applies when loading a
launcher. Construction reports no reason on failure; detailed diagnostics
come from the external linter.
"""

import os
import shlex
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from edf.session.keyfile import KeyFile

DESKTOP_ENTRY_GROUP = "Desktop Entry"
APPLICATION_TYPE = "Application"


@dataclass
class DesktopEntryDescriptor:
    """A launchable application described by a desktop entry."""

    name: str
    exec: str | None
    icon: str | None = None
    comment: str | None = None
    try_exec: str | None = None
    terminal: bool = False
    no_display: bool = False
    dbus_activatable: bool = False
    categories: list[str] = field(default_factory=list)

    @classmethod
    def from_key_file(
        cls,
        key_file: KeyFile,
        locale: str | None = None,
    ) -> "DesktopEntryDescriptor | None":
        """Build a descriptor from a parsed key file.

        Args:
            key_file: Structurally valid key file.
            locale: Locale used for Name/Comment lookup.

        Returns:
            The descriptor, or None if the entry cannot be launched.
        """
        group = DESKTOP_ENTRY_GROUP
        if not key_file.has_group(group):
            return None

        # A missing Type is read as Application
        entry_type = key_file.get(group, "Type")
        if entry_type is not None and entry_type != APPLICATION_TYPE:
            return None

        if key_file.get_boolean(group, "Hidden"):
            return None

        name = key_file.get_locale_string(group, "Name", locale)
        if not name:
            return None

        try_exec = key_file.get(group, "TryExec")
        if try_exec and not _find_program(try_exec):
            return None

        dbus_activatable = bool(key_file.get_boolean(group, "DBusActivatable"))
        exec_line = key_file.get(group, "Exec")
        if not exec_line and not dbus_activatable:
            return None
        if exec_line:
            try:
                argv = shlex.split(exec_line)
            except ValueError:
                return None
            if not argv:
                return None

        categories = key_file.get(group, "Categories") or ""

        return cls(
            name=name,
            exec=exec_line or None,
            icon=key_file.get_locale_string(group, "Icon", locale),
            comment=key_file.get_locale_string(group, "Comment", locale),
            try_exec=try_exec or None,
            terminal=bool(key_file.get_boolean(group, "Terminal")),
            no_display=bool(key_file.get_boolean(group, "NoDisplay")),
            dbus_activatable=dbus_activatable,
            categories=[c for c in categories.split(";") if c],
        )


def _find_program(program: str) -> bool:
    """Check that a TryExec program exists and is executable."""
    if os.path.isabs(program):
        path = Path(program)
        return path.is_file() and os.access(path, os.X_OK)
    return shutil.which(program) is not None
