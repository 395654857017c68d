"""Grouping of series into bounded chart batches."""

from __future__ import annotations

from typing import Iterable, List, Optional

from cgg.errors import ConfigurationError
from cgg.models import ChartBatch, Plugin, Series
from cgg.utils.files import indexed_name

# One colour per line on a chart
MAX_SERIES_PER_CHART = 20


def check_batch_size(max_per_batch: Optional[int]) -> int:
    """Validate the batch cap, ``None`` meaning the hard cap."""
    if max_per_batch is None:
        return MAX_SERIES_PER_CHART
    if not 1 <= max_per_batch <= MAX_SERIES_PER_CHART:
        raise ConfigurationError(
            f"Maximum number of processes per chart must be between 1 and "
            f"{MAX_SERIES_PER_CHART}, got {max_per_batch}"
        )
    return max_per_batch


def partition(
    series: Iterable[Series],
    output_name: str,
    *,
    max_per_batch: Optional[int] = None,
) -> List[ChartBatch]:
    """Split series into ordered batches of at most ``max_per_batch`` processes.

    Memory series always share a single batch placed after the process
    batches. With more than one batch every output name gets an ``_<index>``
    suffix before its extension.
    """
    size = check_batch_size(max_per_batch)
    ordered = sorted(series, key=lambda item: item.key)

    processes = [item for item in ordered if item.key.plugin is Plugin.PROCESSES]
    memory = [item for item in ordered if item.key.plugin is Plugin.MEMORY]

    groups = [processes[start : start + size] for start in range(0, len(processes), size)]
    if memory:
        groups.append(memory)

    if len(groups) == 1:
        return [ChartBatch(index=1, series=groups[0], output_name=output_name)]
    return [
        ChartBatch(index=index, series=group, output_name=indexed_name(output_name, index))
        for index, group in enumerate(groups, start=1)
    ]
