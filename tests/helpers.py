"""Test helpers: RRD archive builder and a fake ssh runner."""

from __future__ import annotations

import shlex
import struct
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

STEP = 10
LAST_UPDATE = 1_604_957_225
# timestamp of the newest row for the default step and last update
LAST_ROW = LAST_UPDATE - LAST_UPDATE % STEP


def build_rrd(
    archives: Sequence[Tuple[str, int, Sequence[float]]],
    *,
    step: int = STEP,
    last_update: int = LAST_UPDATE,
    ds_names: Sequence[str] = ("value",),
    cur_rows: Optional[Sequence[int]] = None,
    version: bytes = b"0003",
    byteorder: str = "<",
) -> bytes:
    """Build a 64-bit rrdtool file.

    ``archives`` holds ``(cf, pdp_cnt, values)`` with values oldest first and
    one data source; ``cur_rows`` rotates the storage so the newest value
    sits at that row.
    """
    bo = byteorder
    ds_cnt = len(ds_names)
    header = struct.pack(
        f"{bo}4s5s7xdQQQ80x", b"RRD\0", version + b"\0", 8.642135e130, ds_cnt, len(archives), step
    )
    out = [header]
    for name in ds_names:
        out.append(struct.pack(f"{bo}20s20s80x", name.encode(), b"GAUGE"))
    for cf, pdp_cnt, values in archives:
        out.append(struct.pack(f"{bo}20s4xQQ80x", cf.encode(), len(values), pdp_cnt))
    if int(version) >= 3:
        out.append(struct.pack(f"{bo}qq", last_update, 0))
    else:
        out.append(struct.pack(f"{bo}q", last_update))
    out.append(struct.pack(f"{bo}30s2x80x", b"U") * ds_cnt)
    out.append(b"\0" * 80 * ds_cnt * len(archives))

    rows_data = []
    pointers = []
    for position, (_, _, values) in enumerate(archives):
        count = len(values)
        cur_row = cur_rows[position] if cur_rows is not None else count - 1
        pointers.append(cur_row)
        # oldest value lands right after cur_row
        stored = [0.0] * count
        for offset, value in enumerate(values):
            stored[(cur_row + 1 + offset) % count] = value
        for value in stored:
            rows_data.append(struct.pack(f"{bo}d", value) * ds_cnt)
    out.append(struct.pack(f"{bo}{len(pointers)}Q", *pointers))
    out.extend(rows_data)
    return b"".join(out)


def simple_rrd(values: Sequence[float], **kwargs) -> bytes:
    return build_rrd([("AVERAGE", 1, values)], **kwargs)


class FakeSsh:
    """Stands in for ``subprocess.run`` of ssh, serving ``ls``/``cat`` from a local root."""

    def __init__(self, root: Path, *, fail_connect: bool = False) -> None:
        self.root = root
        self.fail_connect = fail_connect
        self.commands: List[List[str]] = []
        self.options: List[Dict[str, Any]] = []
        self.opened = 0
        self.closed = 0

    def __call__(self, command: List[str], **kwargs) -> subprocess.CompletedProcess:
        self.commands.append(list(command))
        self.options.append(kwargs)
        assert command[0] == "ssh"
        if "-N" in command:
            self.opened += 1
            if self.fail_connect:
                return self._result(command, 255, stderr=b"ssh: Could not resolve hostname")
            return self._result(command, 0)
        if "-O" in command:
            self.closed += 1
            return self._result(command, 0)
        return self._remote(command, shlex.split(command[-1]))

    def _local(self, remote_path: str) -> Path:
        return self.root / remote_path.lstrip("/")

    def _remote(self, command: List[str], argv: List[str]) -> subprocess.CompletedProcess:
        if argv[0] == "ls":
            directory = self._local(argv[-1])
            if not directory.is_dir():
                return self._result(command, 2, stderr=b"ls: cannot access")
            names = "\n".join(sorted(child.name for child in directory.iterdir()))
            return self._result(command, 0, stdout=names.encode())
        if argv[0] == "sh":
            directory = self._local(argv[-1])
            if not directory.is_dir():
                return self._result(command, 0)
            names = "\n".join(sorted(child.name for child in directory.iterdir()))
            return self._result(command, 0, stdout=names.encode())
        if argv[0] == "cat":
            path = self._local(argv[-1])
            if not path.is_file():
                return self._result(command, 1, stderr=b"cat: No such file or directory")
            return self._result(command, 0, stdout=path.read_bytes())
        return self._result(command, 127, stderr=b"command not found")

    @staticmethod
    def _result(
        command: List[str], returncode: int, *, stdout: bytes = b"", stderr: bytes = b""
    ) -> subprocess.CompletedProcess:
        return subprocess.CompletedProcess(command, returncode, stdout=stdout, stderr=stderr)


def remote_input(collectd_dir: Path, root: Path) -> str:
    return f"tester@example-host:/{collectd_dir.relative_to(root)}"

