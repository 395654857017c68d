"""Time window resolution from absolute bounds or ``last <N> <unit>`` descriptors.

Months and years are approximated as 30 and 365 days; they are not
calendar-exact.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Optional

from cgg.errors import ConfigurationError, TimeRangeError
from cgg.models import TimeWindow

LOGGER = logging.getLogger(__name__)

UNIT_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 60 * 60,
    "day": 24 * 60 * 60,
    "week": 7 * 24 * 60 * 60,
    "month": 30 * 24 * 60 * 60,
    "year": 365 * 24 * 60 * 60,
}

_TIMESPAN_RE = re.compile(
    r"^\s*last\s+(?P<count>\d+)\s+(?P<unit>" + "|".join(UNIT_SECONDS) + r")s?\s*$",
    re.IGNORECASE,
)


def parse_timespan(text: str) -> int:
    """Return the length in seconds of a ``last <N> <unit>`` descriptor."""
    match = _TIMESPAN_RE.match(text)
    if match is None:
        raise TimeRangeError(
            f"Cannot parse timespan {text!r}, expected e.g. 'last 2 hours'",
            {"timespan": text},
        )
    return int(match.group("count")) * UNIT_SECONDS[match.group("unit").lower()]


def resolve_window(
    timespan: Optional[str] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
    *,
    now: Optional[float] = None,
) -> TimeWindow:
    """Resolve either a descriptor or an explicit start/end pair into a window."""
    has_range = start is not None or end is not None
    if timespan is not None and has_range:
        raise ConfigurationError("Timespan cannot be combined with explicit start/end")
    if timespan is None and not has_range:
        raise ConfigurationError("Either a timespan or both start and end are required")

    if timespan is not None:
        end = int(now if now is not None else time.time())
        start = end - parse_timespan(timespan)
        LOGGER.debug("Resolved timespan %r to [%s, %s)", timespan, start, end)
    elif start is None or end is None:
        raise ConfigurationError("Start and end must be supplied together")

    return TimeWindow(start=int(start), end=int(end))
