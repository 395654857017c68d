"""Utility helpers for working with output files."""

from __future__ import annotations

import os


def indexed_name(base_name: str, index: int) -> str:
    """Insert ``_<index>`` right before the extension of ``base_name``.

    ``out.png`` becomes ``out_2.png``; a name without an extension gets the
    suffix appended.
    """
    root, extension = os.path.splitext(base_name)
    return f"{root}_{index}{extension}"
