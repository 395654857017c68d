"""Core cgg data models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering
from pathlib import Path
from typing import List, Optional, Union

from cgg.errors import TimeRangeError

MEMORY_METRICS = ("buffered", "cached", "free", "slab_recl", "slab_unrecl", "used")
PROCESS_METRIC = "ps_rss"
MEMORY_INSTANCE = "memory"


class Plugin(Enum):
    """collectd plugins cgg knows how to read."""

    PROCESSES = "processes"
    MEMORY = "memory"

    @property
    def order(self) -> int:
        return list(Plugin).index(self)


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Half-open ``[start, end)`` range of epoch seconds."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise TimeRangeError(
                f"Invalid time range: start {self.start} must be before end {self.end}"
            )

    @property
    def duration(self) -> int:
        return self.end - self.start

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp < self.end


@total_ordering
@dataclass(frozen=True, slots=True)
class SeriesKey:
    """Identifies one archive series: plugin, instance and metric."""

    plugin: Plugin
    instance: str
    metric: str

    @property
    def sort_key(self) -> tuple[int, str, str]:
        return (self.plugin.order, self.instance, self.metric)

    @property
    def label(self) -> str:
        """Legend text: process name or memory metric."""
        if self.plugin is Plugin.MEMORY:
            return self.metric
        return self.instance

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SeriesKey):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __str__(self) -> str:
        return f"{self.plugin.value}/{self.instance}/{self.metric}"


@dataclass(frozen=True, slots=True)
class Sample:
    """One reading; ``value`` is None when the archive has no value."""

    timestamp: int
    value: Optional[float]

    @property
    def is_gap(self) -> bool:
        return self.value is None


@dataclass(slots=True)
class Series:
    key: SeriesKey
    samples: List[Sample] = field(default_factory=list)

    def timestamps(self) -> List[int]:
        return [sample.timestamp for sample in self.samples]

    def values(self) -> List[float]:
        """Sample values with gaps as NaN, ready for plotting."""
        return [math.nan if sample.value is None else sample.value for sample in self.samples]

    @property
    def gap_count(self) -> int:
        return sum(1 for sample in self.samples if sample.is_gap)


@dataclass(slots=True)
class ChartBatch:
    """Group of series rendered into one output file."""

    index: int
    series: List[Series]
    output_name: str

    @property
    def plugin(self) -> Optional[Plugin]:
        return self.series[0].key.plugin if self.series else None


@dataclass(frozen=True, slots=True)
class LocalSource:
    path: Path

    def __str__(self) -> str:
        return str(self.path)


@dataclass(frozen=True, slots=True)
class RemoteSource:
    user: str
    host: str
    path: str

    @property
    def address(self) -> str:
        return f"{self.user}@{self.host}"

    def __str__(self) -> str:
        return f"{self.address}:{self.path}"


DataSource = Union[LocalSource, RemoteSource]
