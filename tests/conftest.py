"""Shared fixtures for the cgg test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from helpers import FakeSsh, simple_rrd

PROCESS_NAMES = ["firefox", "chrome", "dolphin", "rust language server", "vscode"]
MEMORY_NAMES = ["cached", "free", "used"]


@pytest.fixture
def collectd_dir(tmp_path: Path) -> Path:
    """collectd host directory with five processes and three memory types."""
    host = tmp_path / "myhost"
    host.mkdir()
    for index, name in enumerate(PROCESS_NAMES):
        process_dir = host / f"processes-{name}"
        process_dir.mkdir()
        (process_dir / "ps_rss.rrd").write_bytes(simple_rrd([1000.0 * (index + 1)] * 6))
    # plugin level directory of the processes plugin, not a process
    (host / "processes").mkdir()
    (host / "load").mkdir()

    memory = host / "memory"
    memory.mkdir()
    for index, metric in enumerate(MEMORY_NAMES):
        (memory / f"memory-{metric}.rrd").write_bytes(simple_rrd([float(index)] * 6))
    return host


@pytest.fixture
def fake_ssh(tmp_path: Path) -> FakeSsh:
    return FakeSsh(tmp_path)
