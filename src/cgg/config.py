"""Application configuration defaults."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from cgg.charts.partition import check_batch_size
from cgg.errors import ConfigurationError
from cgg.models import MEMORY_METRICS, DataSource, LocalSource, Plugin, RemoteSource, TimeWindow
from cgg.timespan import resolve_window
from cgg.utils.text import split_list

DEFAULT_OUTPUT = "out.png"
DEFAULT_WIDTH = 1024
DEFAULT_HEIGHT = 768

_REMOTE_RE = re.compile(r"^(?P<user>[^@/]+)@(?P<host>[^:/]+):(?P<path>.*)$")


def parse_source(text: str) -> DataSource:
    """Interpret ``user@host:path`` as a remote source, anything else as local."""
    match = _REMOTE_RE.match(text)
    if match is None:
        return LocalSource(Path(text))
    if not match.group("path"):
        raise ConfigurationError(f"Remote input {text!r} has no path")
    return RemoteSource(match.group("user"), match.group("host"), match.group("path"))


def parse_plugins(text: str) -> Tuple[Plugin, ...]:
    names = split_list(text) or []
    plugins: List[Plugin] = []
    for name in names:
        try:
            plugins.append(Plugin(name.lower()))
        except ValueError:
            available = ", ".join(plugin.value for plugin in Plugin)
            raise ConfigurationError(
                f"Unknown plugin {name!r}, available plugins: {available}"
            ) from None
    return tuple(plugins)


@dataclass(slots=True)
class AppConfig:
    input: str
    output: str = DEFAULT_OUTPUT
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    timespan: Optional[str] = None
    start: Optional[int] = None
    end: Optional[int] = None
    plugins: Sequence[Plugin] = (Plugin.PROCESSES,)
    processes: Optional[List[str]] = None
    max_processes: Optional[int] = None
    memory: Optional[List[str]] = None

    def source(self) -> DataSource:
        return parse_source(self.input)

    def validate(self, *, now: Optional[float] = None) -> TimeWindow:
        """Check every option that can be checked before I/O and resolve the window."""
        if not self.input:
            raise ConfigurationError("Input path is required")
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                f"Width and height must be positive, got {self.width}x{self.height}"
            )
        if not self.plugins:
            raise ConfigurationError("At least one plugin must be selected")
        check_batch_size(self.max_processes)
        for metric in self.memory or ():
            if metric not in MEMORY_METRICS:
                raise ConfigurationError(
                    f"Unknown memory type {metric!r}, available: {', '.join(MEMORY_METRICS)}"
                )
        self.source()
        return resolve_window(self.timespan, self.start, self.end, now=now)
