"""
Address helpers.

A platform address is a classic XRPL r-address with an optional numeric
destination tag appended after ``+``:

    rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh
    rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh+12345

Tags are unsigned 32-bit integers. ``0`` is accepted as written.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass

ADDRESS_SEPARATOR = "+"

MAX_TAG = 4294967295

_RIPPLE_ADDRESS_RE = re.compile(
    r"^r[rpshnaf39wBUDNEGHJKLM4PQRST7VWXYZ2bcdeCg65jkm8oFqi1tuvAxyz]{27,35}$"
)
_POSITIVE_INTEGER_RE = re.compile(r"^[1-9]\d*$")
# Characters that are never valid in a storage key.
_INVALID_KEY_CHARS_RE = re.compile(r"[/\\#?\n\r\t\u0000-\u001F\u007F-\u009F]")


@dataclass(frozen=True)
class SplitAddress:
    """An address split into its base r-address and optional tag."""

    address: str
    tag: int | None = None


def split_address(value: str) -> SplitAddress:
    """Split ``address[+tag]`` into base address and integer tag."""
    base, _, tag = value.partition(ADDRESS_SEPARATOR)
    return SplitAddress(address=base, tag=int(tag) if tag else None)


def is_ripple_address(value: str | None) -> bool:
    """True if value is an r-address with an optional valid tag extension."""
    if not value or _INVALID_KEY_CHARS_RE.search(value):
        return False

    parts = value.split(ADDRESS_SEPARATOR)
    if len(parts) > 2 or not _RIPPLE_ADDRESS_RE.match(parts[0]):
        return False

    if len(parts) == 2 and parts[1] != "0":
        if not _POSITIVE_INTEGER_RE.match(parts[1]) or int(parts[1]) > MAX_TAG:
            return False

    return True


def is_positive_integer(value: int | str | None) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value > 0
    return bool(value) and bool(_POSITIVE_INTEGER_RE.match(value))


def is_uuid(value: str | None) -> bool:
    if not value:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True
