"""Filtering of the series catalog by plugin, process and memory metric."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from cgg.errors import FilterError
from cgg.models import Plugin, SeriesKey

LOGGER = logging.getLogger(__name__)

DEFAULT_MEMORY_METRICS = ("free",)


def _require(requested: Sequence[str], available: set[str], kind: str) -> None:
    for name in requested:
        if name not in available:
            raise FilterError(
                f"Unknown {kind} {name!r}, available: {', '.join(sorted(available)) or 'none'}",
                name,
            )


def select_series(
    catalog: Iterable[SeriesKey],
    plugins: Sequence[Plugin],
    *,
    processes: Optional[Sequence[str]] = None,
    memory: Optional[Sequence[str]] = None,
) -> List[SeriesKey]:
    """Return the sorted catalog keys matching every active filter.

    An explicit process or memory metric name missing from the catalog raises
    ``FilterError``; with no filter every process passes and memory falls
    back to ``free``.
    """
    keys = set(catalog)
    selected: set[SeriesKey] = set()

    if Plugin.PROCESSES in plugins:
        found = {key for key in keys if key.plugin is Plugin.PROCESSES}
        if processes is not None:
            _require(processes, {key.instance for key in found}, "process")
            found = {key for key in found if key.instance in processes}
        if not found:
            LOGGER.warning("No processes found")
        selected |= found

    if Plugin.MEMORY in plugins:
        metrics = list(memory) if memory is not None else list(DEFAULT_MEMORY_METRICS)
        found = {key for key in keys if key.plugin is Plugin.MEMORY}
        _require(metrics, {key.metric for key in found}, "memory metric")
        selected |= {key for key in found if key.metric in metrics}

    LOGGER.debug("Selected %d of %d series", len(selected), len(keys))
    return sorted(selected)
