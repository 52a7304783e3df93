"""Strict key-file parser.

Parses the INI-like format shared by desktop entries: bracketed group
headers, ``Key=Value`` pairs with optional ``Key[locale]`` suffixes and
``#`` comments. Parsing stops at the first malformed line and reports it
with its line number, the way GLib's GKeyFile does.
"""

import re
from dataclasses import dataclass, field

# Key names: anything but "=", "[" and "]", optionally followed by a locale
_KEY_RE = re.compile(r"^(?P<name>[^=\[\]]+?)(?:\[(?P<locale>[^\[\]=]*)\])?$")
# lang_COUNTRY.ENCODING@MODIFIER
_LOCALE_RE = re.compile(r"^[A-Za-z]+(?:_[A-Za-z0-9]+)?(?:\.[A-Za-z0-9_-]+)?(?:@[A-Za-z0-9]+)?$")


class KeyFileError(Exception):
    """Error parsing key-file content."""

    def __init__(self, message: str, line_number: int = 0) -> None:
        """Initialize KeyFileError.

        Args:
            message: Error message.
            line_number: 1-based line of the offending text (0 if unknown).
        """
        super().__init__(message)
        self.line_number = line_number


@dataclass
class KeyFileGroup:
    """A group of key/value pairs with its comments."""

    name: str
    entries: dict[str, str] = field(default_factory=dict)
    comments: list[str] = field(default_factory=list)


@dataclass
class KeyFile:
    """Parsed key-file content."""

    groups: dict[str, KeyFileGroup] = field(default_factory=dict)
    leading_comments: list[str] = field(default_factory=list)

    def has_group(self, group: str) -> bool:
        """Check whether a group exists."""
        return group in self.groups

    def keys(self, group: str) -> list[str]:
        """Get the keys of a group, in file order."""
        if group not in self.groups:
            return []
        return list(self.groups[group].entries)

    def get(self, group: str, key: str) -> str | None:
        """Get the raw value of a key.

        Args:
            group: Group name.
            key: Key name, including any locale suffix.

        Returns:
            The value, or None if the group or key is absent.
        """
        if group not in self.groups:
            return None
        return self.groups[group].entries.get(key)

    def get_locale_string(
        self, group: str, key: str, locale: str | None = None
    ) -> str | None:
        """Get a value, preferring the best matching locale variant.

        Lookup order for ``lang_COUNTRY@MODIFIER``: the full locale,
        ``lang_COUNTRY``, ``lang@MODIFIER``, ``lang``, then the bare key.
        """
        if locale:
            for variant in _locale_variants(locale):
                value = self.get(group, f"{key}[{variant}]")
                if value is not None:
                    return value
        return self.get(group, key)

    def get_boolean(self, group: str, key: str) -> bool | None:
        """Get a boolean value.

        Returns:
            True/False for "true"/"false", None if absent or not a boolean.
        """
        value = self.get(group, key)
        if value == "true":
            return True
        if value == "false":
            return False
        return None


def _locale_variants(locale: str) -> list[str]:
    """Expand a locale into its lookup variants, most specific first."""
    base, _, modifier = locale.partition("@")
    base = base.split(".", 1)[0]
    lang, _, country = base.partition("_")

    variants = []
    if country and modifier:
        variants.append(f"{lang}_{country}@{modifier}")
    if country:
        variants.append(f"{lang}_{country}")
    if modifier:
        variants.append(f"{lang}@{modifier}")
    variants.append(lang)
    return variants


def _parse_group_header(line: str, line_number: int) -> str:
    """Parse a "[Group Name]" line.

    Raises:
        KeyFileError: If the header is unterminated, empty or has
            trailing text.
    """
    end = line.find("]")
    if end == -1:
        raise KeyFileError(
            f'Key file contains line "{line}" which is not a key-value pair, '
            "group, or comment",
            line_number,
        )
    name = line[1:end]
    if line[end + 1 :].strip():
        raise KeyFileError(
            f'Key file contains line "{line}" which is not a key-value pair, '
            "group, or comment",
            line_number,
        )
    if not name or "[" in name or any(ord(c) < 0x20 for c in name):
        raise KeyFileError(f'Invalid group name: "{name}"', line_number)
    return name


def _validate_key(key: str, line_number: int) -> None:
    """Check a key name and its optional locale suffix.

    Raises:
        KeyFileError: If the key is empty or malformed.
    """
    if not key:
        raise KeyFileError("Key file contains an empty key name", line_number)

    match = _KEY_RE.match(key)
    if match is None:
        raise KeyFileError(f'Invalid key name: "{key}"', line_number)

    locale = match.group("locale")
    if locale is not None and not _LOCALE_RE.match(locale):
        raise KeyFileError(
            f'Key file contains key "{key}" with invalid locale "{locale}"',
            line_number,
        )


def parse_key_file(content: bytes | str) -> KeyFile:
    """Parse key-file content.

    Args:
        content: UTF-8 encoded bytes or already decoded text.

    Returns:
        Parsed KeyFile.

    Raises:
        KeyFileError: On the first malformed line, or if the bytes are
            not valid UTF-8.
    """
    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise KeyFileError(
                f"Key file contains invalid UTF-8 at byte {e.start}"
            ) from e
    else:
        text = content

    key_file = KeyFile()
    current: KeyFileGroup | None = None

    # Only "\n" ends a line; other Unicode separators are value text
    for line_number, raw_line in enumerate(text.split("\n"), start=1):
        raw_line = raw_line.removesuffix("\r")
        line = raw_line.lstrip()

        if not line:
            continue

        if line.startswith("#"):
            if current is None:
                key_file.leading_comments.append(raw_line)
            else:
                current.comments.append(raw_line)
            continue

        if line.startswith("["):
            name = _parse_group_header(line.rstrip(), line_number)
            # Repeated groups are merged, as GKeyFile does
            current = key_file.groups.setdefault(name, KeyFileGroup(name=name))
            continue

        if "=" not in line or line.startswith("="):
            raise KeyFileError(
                f'Key file contains line "{raw_line}" which is not a key-value '
                "pair, group, or comment",
                line_number,
            )

        if current is None:
            raise KeyFileError("Key file does not start with a group", line_number)

        key, _, value = line.partition("=")
        key = key.rstrip()
        _validate_key(key, line_number)
        current.entries[key] = value.lstrip()

    return key_file
