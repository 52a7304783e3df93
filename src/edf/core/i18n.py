"""Gettext plumbing for user-visible strings."""

import gettext

GETTEXT_DOMAIN = "edit-desktop-files"

_translation = gettext.translation(GETTEXT_DOMAIN, fallback=True)


def _(message: str) -> str:
    """Translate a message, returning it unchanged when no catalog is installed."""
    return _translation.gettext(message)
