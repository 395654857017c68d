"""Helpers for parsing user supplied lists."""

from __future__ import annotations

from typing import Iterable, List, Optional


def split_list(text: Optional[str], *, separator: str = ",") -> Optional[List[str]]:
    """Split a comma separated option value.

    Whitespace around items is stripped, empty items are dropped and
    duplicates keep their first position. ``None`` stays ``None`` so callers
    can tell "not given" from "given but empty".
    """
    if text is None:
        return None
    return unique(item.strip() for item in text.split(separator) if item.strip())


def unique(items: Iterable[str]) -> List[str]:
    """Drop repeated items, keeping the first occurrence."""
    seen: set[str] = set()
    result: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
