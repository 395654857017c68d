"""Decoder for rrdtool archives as written by collectd.

An RRD file is a native C struct dump::

    stat_head | ds_def[ds_cnt] | rra_def[rra_cnt] | live_head
    | pdp_prep[ds_cnt] | cdp_prep[rra_cnt * ds_cnt] | rra_ptr[rra_cnt]
    | rra data (row_cnt * ds_cnt doubles per rra)

Byte order and word size follow the machine that created the file. Both are
detected from the float cookie stored in the header. Only the parts needed
to fetch consolidated rows are decoded.
"""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from cgg.errors import FormatError
from cgg.models import Sample, Series, SeriesKey, TimeWindow

LOGGER = logging.getLogger(__name__)

COOKIE = b"RRD\0"
FLOAT_COOKIE = 8.642135e130
SUPPORTED_VERSIONS = ("0001", "0002", "0003", "0004")

NAME_SIZE = 20
LAST_DS_SIZE = 30
PARAM_BLOCK = 10 * 8
CDP_PREP_SIZE = 10 * 8

DEFAULT_CF = "AVERAGE"
DEFAULT_DS = "value"


def _align(offset: int, alignment: int) -> int:
    return (offset + alignment - 1) // alignment * alignment


@dataclass(frozen=True, slots=True)
class _Layout:
    """Native struct layout: byte order and ``sizeof(long)``."""

    byteorder: str
    word: int

    def words(self, count: int) -> str:
        """struct format for ``count`` unsigned longs."""
        return self.byteorder + ("Q" if self.word == 8 else "I") * count

    @property
    def signed(self) -> str:
        return self.byteorder + ("q" if self.word == 8 else "i")

    @property
    def float_cookie_offset(self) -> int:
        return _align(len(COOKIE) + 5, self.word)

    @property
    def stat_head_size(self) -> int:
        counts = self.float_cookie_offset + 8
        return _align(counts + 3 * self.word, self.word) + PARAM_BLOCK

    @property
    def ds_def_size(self) -> int:
        return _align(2 * NAME_SIZE, self.word) + PARAM_BLOCK

    @property
    def rra_def_size(self) -> int:
        return _align(NAME_SIZE, self.word) + 2 * self.word + PARAM_BLOCK

    @property
    def pdp_prep_size(self) -> int:
        return _align(LAST_DS_SIZE, self.word) + PARAM_BLOCK


_LAYOUTS = [_Layout(order, word) for order in ("<", ">") for word in (8, 4)]


@dataclass(slots=True)
class RoundRobinArchive:
    """One consolidated archive (one CF at one resolution)."""

    cf: str
    row_count: int
    pdp_count: int
    step: int
    cur_row: int
    rows: np.ndarray

    def last_row_time(self, last_update: int) -> int:
        return last_update - last_update % self.step

    def first_row_time(self, last_update: int) -> int:
        return self.last_row_time(last_update) - (self.row_count - 1) * self.step

    def unrolled(self, ds_index: int, last_update: int) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(timestamps, values)`` oldest row first."""
        values = np.roll(self.rows[:, ds_index], -(self.cur_row + 1))
        first = self.first_row_time(last_update)
        timestamps = first + self.step * np.arange(self.row_count, dtype=np.int64)
        return timestamps, values


@dataclass(slots=True)
class RRDArchive:
    version: str
    pdp_step: int
    last_update: int
    data_sources: List[str]
    archives: List[RoundRobinArchive]

    @classmethod
    def parse(cls, data: bytes, key: SeriesKey) -> "RRDArchive":
        """Parse raw archive bytes, raising ``FormatError`` for ``key`` on bad input."""
        try:
            return _parse(data, key)
        except struct.error as exc:
            raise FormatError(f"truncated archive ({exc})", key) from exc

    def ds_index(self, name: str) -> int:
        if name in self.data_sources:
            return self.data_sources.index(name)
        return 0

    def select(self, window: TimeWindow, cf: str, key: SeriesKey) -> RoundRobinArchive:
        """Finest ``cf`` archive reaching back to ``window.start``.

        Falls back to the archive with the widest span when none does.
        """
        candidates = [rra for rra in self.archives if rra.cf == cf]
        if not candidates:
            raise FormatError(f"no {cf} archive", key)
        covering = [
            rra for rra in candidates if rra.first_row_time(self.last_update) <= window.start
        ]
        if covering:
            return min(covering, key=lambda rra: rra.step)
        return max(candidates, key=lambda rra: (rra.row_count * rra.step, -rra.step))


def _detect_layout(data: bytes, key: SeriesKey) -> Tuple[_Layout, str]:
    if data[: len(COOKIE)] != COOKIE:
        raise FormatError("not an RRD file (bad cookie)", key)
    version = data[4:9].rstrip(b"\0").decode("ascii", errors="replace")
    if version not in SUPPORTED_VERSIONS:
        raise FormatError(f"unsupported RRD version {version!r}", key)
    for layout in _LAYOUTS:
        offset = layout.float_cookie_offset
        if len(data) < offset + 8:
            continue
        (cookie,) = struct.unpack_from(layout.byteorder + "d", data, offset)
        if cookie == FLOAT_COOKIE:
            return layout, version
    raise FormatError("float cookie mismatch, unknown architecture", key)


def _name(data: bytes, offset: int, size: int = NAME_SIZE) -> str:
    raw = data[offset : offset + size]
    return raw.split(b"\0", 1)[0].decode("ascii", errors="replace")


def _parse(data: bytes, key: SeriesKey) -> RRDArchive:
    layout, version = _detect_layout(data, key)
    word = layout.word

    offset = layout.float_cookie_offset + 8
    ds_cnt, rra_cnt, pdp_step = struct.unpack_from(layout.words(3), data, offset)
    if ds_cnt == 0 or rra_cnt == 0 or pdp_step == 0:
        raise FormatError(
            f"invalid header (ds_cnt={ds_cnt}, rra_cnt={rra_cnt}, pdp_step={pdp_step})", key
        )
    offset = layout.stat_head_size
    definitions_end = offset + ds_cnt * layout.ds_def_size + rra_cnt * layout.rra_def_size
    if definitions_end > len(data):
        raise FormatError(
            f"truncated archive: definitions end at byte {definitions_end}, file has {len(data)}",
            key,
        )

    data_sources = []
    for _ in range(ds_cnt):
        data_sources.append(_name(data, offset))
        offset += layout.ds_def_size

    definitions = []
    for _ in range(rra_cnt):
        cf = _name(data, offset)
        row_cnt, pdp_cnt = struct.unpack_from(
            layout.words(2), data, offset + _align(NAME_SIZE, word)
        )
        if row_cnt == 0 or pdp_cnt == 0:
            raise FormatError(f"invalid {cf} archive (rows={row_cnt}, pdp_cnt={pdp_cnt})", key)
        definitions.append((cf, row_cnt, pdp_cnt))
        offset += layout.rra_def_size

    (last_update,) = struct.unpack_from(layout.signed, data, offset)
    offset += 2 * word if int(version) >= 3 else word

    offset += ds_cnt * layout.pdp_prep_size
    offset += rra_cnt * ds_cnt * CDP_PREP_SIZE

    pointers = struct.unpack_from(layout.words(rra_cnt), data, offset)
    offset += rra_cnt * word

    dtype = np.dtype(layout.byteorder + "f8")
    archives = []
    for (cf, row_cnt, pdp_cnt), cur_row in zip(definitions, pointers):
        size = row_cnt * ds_cnt * dtype.itemsize
        if offset + size > len(data):
            raise FormatError(
                f"truncated archive: {cf} rows end at byte {offset + size}, file has {len(data)}",
                key,
            )
        if cur_row >= row_cnt:
            raise FormatError(f"row pointer {cur_row} outside {cf} archive of {row_cnt} rows", key)
        rows = np.frombuffer(data, dtype=dtype, count=row_cnt * ds_cnt, offset=offset)
        archives.append(
            RoundRobinArchive(
                cf=cf,
                row_count=row_cnt,
                pdp_count=pdp_cnt,
                step=pdp_step * pdp_cnt,
                cur_row=cur_row,
                rows=rows.reshape(row_cnt, ds_cnt),
            )
        )
        offset += size

    return RRDArchive(
        version=version,
        pdp_step=pdp_step,
        last_update=last_update,
        data_sources=data_sources,
        archives=archives,
    )


def decode_series(
    key: SeriesKey,
    data: bytes,
    window: TimeWindow,
    *,
    cf: str = DEFAULT_CF,
    ds: str = DEFAULT_DS,
    archive: Optional[RRDArchive] = None,
) -> Series:
    """Decode the samples of ``key`` at every archive step inside ``window``.

    Like ``rrdtool fetch`` the whole window is covered: unknown rows and
    intervals the archive does not hold (before its first row or after the
    last update) are gap samples with ``value=None``.
    """
    archive = archive or RRDArchive.parse(data, key)
    rra = archive.select(window, cf, key)
    _, values = rra.unrolled(archive.ds_index(ds), archive.last_update)

    # first multiple of the step at or after window.start
    first = window.start + (-window.start) % rra.step
    timestamps = np.arange(first, window.end, rra.step, dtype=np.int64)
    rows = (timestamps - rra.first_row_time(archive.last_update)) // rra.step
    held = (rows >= 0) & (rows < rra.row_count)
    filled = np.full(len(timestamps), np.nan)
    filled[held] = values[rows[held]]

    samples = [
        Sample(int(timestamp), None if math.isnan(value) else float(value))
        for timestamp, value in zip(timestamps.tolist(), filled.tolist())
    ]
    LOGGER.debug(
        "Decoded %s: %d samples at %ss step from %s archive",
        key,
        len(samples),
        rra.step,
        rra.cf,
    )
    return Series(key=key, samples=samples)
