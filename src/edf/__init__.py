"""Edit Desktop Files - safe editing of freedesktop .desktop launchers."""

__version__ = "0.1.0"
