"""Chart rendering of extracted batches with matplotlib."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.dates as mdates  # noqa: E402
import matplotlib.pyplot as plt  # noqa: E402

from cgg.models import ChartBatch, Plugin, TimeWindow  # noqa: E402

LOGGER = logging.getLogger(__name__)

COLORS = (
    "#e6194b", "#3cb44b", "#ffe119", "#4363d8", "#f58231", "#911eb4", "#46f0f0", "#f032e6",
    "#bcf60c", "#fabebe", "#008080", "#e6beff", "#9a6324", "#800000", "#aaffc3", "#808000",
    "#ffd8b1", "#000075", "#808080", "#000000",
)
DPI = 100

TITLES = {
    Plugin.PROCESSES: "Process resident memory",
    Plugin.MEMORY: "System memory",
}


def _to_datetime(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp)


def render_batch(batch: ChartBatch, window: TimeWindow, width: int, height: int) -> Path:
    """Draw one line per series of ``batch`` and save it to ``batch.output_name``."""
    output = Path(batch.output_name)
    fig, ax = plt.subplots(figsize=(width / DPI, height / DPI), dpi=DPI)
    try:
        # Few memory lines, drawn thicker
        linewidth = 2.0 if batch.plugin is Plugin.MEMORY else 1.2
        for position, series in enumerate(batch.series):
            ax.plot(
                [_to_datetime(ts) for ts in series.timestamps()],
                series.values(),
                label=series.key.label,
                color=COLORS[position % len(COLORS)],
                linewidth=linewidth,
            )

        ax.set_xlim(_to_datetime(window.start), _to_datetime(window.end))
        ax.xaxis.set_major_formatter(mdates.ConciseDateFormatter(ax.xaxis.get_major_locator()))
        ax.set_ylabel("Bytes")
        ax.grid(True, alpha=0.3)
        if batch.plugin is not None:
            ax.set_title(TITLES[batch.plugin])
        if batch.series:
            ax.legend(loc="upper left", fontsize="small")

        fig.tight_layout()
        fig.savefig(output, dpi=DPI)
    finally:
        plt.close(fig)

    LOGGER.info("Successfully saved %s", output)
    return output
