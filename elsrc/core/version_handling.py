import re
from typing import Sequence, Tuple, Union

from elsrc.core.exceptions import VersionFormatError

Version = Tuple[int, ...]

# Pre-release words map to negative components: 1.0pre1 sorts below 1.0.0.
_PRIORITY_WORDS = {
    "snapshot": -4,
    "alpha": -3,
    "beta": -2,
    "pre": -1,
    "rc": -1,
}
_PRIORITY_NAMES = {-4: "snapshot", -3: "alpha", -2: "beta", -1: "pre"}

_TOKEN_RE = re.compile(r"\d+|[A-Za-z]+|[._+\- ]")
_VERSION_RE = re.compile(r"^[0-9][0-9A-Za-z._+\- ]*$")


def parse_version(text: Union[str, Sequence[int]]) -> Version:
    """
    Parse a dotted version string into a tuple of integers.

    Numeric parts are kept as-is, pre-release words become negative
    components and a single trailing letter counts as a small positive
    component ("1.0a" -> (1, 0, 1)).

    Args:
        text: Version string such as "1.2", "20240101.1230" or "2.0beta3".
            A sequence of ints is accepted and normalized to a tuple.

    Returns:
        Tuple of integers.

    Raises:
        VersionFormatError: If the string is not a valid version.
    """
    if not isinstance(text, str):
        try:
            return tuple(int(part) for part in text)
        except (TypeError, ValueError):
            raise VersionFormatError(str(text))

    cleaned = text.strip()
    if not cleaned or not _VERSION_RE.match(cleaned):
        raise VersionFormatError(text)

    parts = []
    for token in _TOKEN_RE.findall(cleaned):
        if token.isdigit():
            parts.append(int(token))
        elif token.isalpha():
            word = token.lower()
            if word in _PRIORITY_WORDS:
                parts.append(_PRIORITY_WORDS[word])
            elif len(word) == 1:
                parts.append(ord(word) - ord("a") + 1)
            else:
                raise VersionFormatError(text)

    if not parts:
        raise VersionFormatError(text)
    return tuple(parts)


def format_version(version: Sequence[int]) -> str:
    """Join a version tuple back into its dotted string form."""
    out = ""
    previous_negative = False
    for index, part in enumerate(version):
        if part < 0:
            out += _PRIORITY_NAMES.get(part, "pre")
            previous_negative = True
            continue
        if index > 0 and not previous_negative:
            out += "."
        out += str(part)
        previous_negative = False
    return out


def validate_version(version: str) -> bool:
    """Return True if the given string parses as a version."""
    try:
        parse_version(version)
        return True
    except VersionFormatError:
        return False


def version_at_least(version: Sequence[int], baseline: Sequence[int]) -> bool:
    """
    Component-wise numeric comparison: version >= baseline.

    A missing component is lower than any present one, so (1, 2) is lower
    than (1, 2, 0).
    """
    return tuple(version) >= tuple(baseline)
