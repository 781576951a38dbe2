"""Serial number clean-up helpers.

Serials arrive typed by hand or pasted from a supplier's packing list, so
stray whitespace and mixed separators are common. Comparison after clean-up
stays exact: two serials that differ only in letter case are different
devices.
"""

from __future__ import annotations

import re
from typing import Iterable, List

__all__ = ["normalize_serial", "split_serials", "find_duplicates"]


_WHITESPACE_RE = re.compile(r"\s+")
_SEPARATOR_RE = re.compile(r"[\n\r,;]+")


def normalize_serial(raw: str | None) -> str | None:
    """Trim outer whitespace and squash internal runs into one space."""

    if raw is None:
        return None
    cleaned = _WHITESPACE_RE.sub(" ", raw.strip())
    return cleaned or None


def split_serials(raw: str | None) -> list[str]:
    """Split pasted text into serial numbers.

    Newlines, commas and semicolons all separate entries; blank entries are
    dropped but duplicates are kept so the caller can report them.
    """

    if not raw:
        return []
    serials: List[str] = []
    for chunk in _SEPARATOR_RE.split(raw):
        serial = normalize_serial(chunk)
        if serial:
            serials.append(serial)
    return serials


def find_duplicates(values: Iterable[str]) -> list[str]:
    """Return values that appear more than once, in first-seen order."""

    seen: set[str] = set()
    duplicates: List[str] = []
    for value in values:
        if value in seen and value not in duplicates:
            duplicates.append(value)
        seen.add(value)
    return duplicates
