"""Extraction pipeline: catalog, select, decode, partition."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from cgg.archive.rrd import decode_series
from cgg.archive.transport import Runner, Transport, open_transport
from cgg.charts.partition import partition
from cgg.charts.selector import select_series
from cgg.config import AppConfig
from cgg.errors import FormatError
from cgg.models import ChartBatch, Plugin, Series, SeriesKey, TimeWindow

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ExtractionStats:
    selected: int = 0
    decoded: int = 0
    failed: int = 0
    samples: int = 0
    gaps: int = 0

    def add(self, series: Series) -> None:
        self.decoded += 1
        self.samples += len(series.samples)
        self.gaps += series.gap_count


@dataclass(slots=True)
class ExtractionResult:
    window: TimeWindow
    batches: List[ChartBatch] = field(default_factory=list)
    failures: Dict[SeriesKey, str] = field(default_factory=dict)
    stats: ExtractionStats = field(default_factory=ExtractionStats)

    @property
    def partial(self) -> bool:
        return bool(self.failures)


class Extractor:
    """Runs one extraction pass against an open transport."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    def catalog(self, plugins: List[Plugin]) -> Set[SeriesKey]:
        keys: Set[SeriesKey] = set()
        for plugin in plugins:
            keys |= self.transport.list(plugin)
        return keys

    def run(self, config: AppConfig, window: TimeWindow) -> ExtractionResult:
        plugins = list(config.plugins)
        keys = select_series(
            self.catalog(plugins),
            plugins,
            processes=config.processes,
            memory=config.memory,
        )

        result = ExtractionResult(window=window)
        result.stats.selected = len(keys)
        decoded: List[Series] = []

        for key in keys:
            try:
                series = decode_series(key, self.transport.read(key), window)
            except FormatError as exc:
                LOGGER.warning("Skipping series: %s", exc.message)
                result.failures[key] = exc.message
                result.stats.failed += 1
                continue
            result.stats.add(series)
            decoded.append(series)

        if result.failures:
            LOGGER.warning(
                "%d of %d series could not be decoded and were skipped",
                len(result.failures),
                len(keys),
            )

        result.batches = partition(decoded, config.output, max_per_batch=config.max_processes)
        LOGGER.debug(
            "%d series should be saved on %d charts", len(decoded), len(result.batches)
        )
        return result


def extract(
    config: AppConfig,
    *,
    now: Optional[float] = None,
    runner: Optional[Runner] = None,
) -> ExtractionResult:
    """Validate ``config``, then run one extraction pass over its data source."""
    window = config.validate(now=now)
    with open_transport(config.source(), runner=runner) as transport:
        return Extractor(transport).run(config, window)
