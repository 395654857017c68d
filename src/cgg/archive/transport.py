"""Local and remote (ssh) access to a collectd data directory.

Both transports expose the same ``list``/``read``/``close`` capability, so
the pipeline never needs to know where the archives live. The remote
transport keeps one multiplexed ssh master connection open for the whole
run and sends every ``ls``/``cat`` through it.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, Sequence, Set

from cgg.errors import TransportError
from cgg.models import (
    MEMORY_INSTANCE,
    PROCESS_METRIC,
    DataSource,
    Plugin,
    RemoteSource,
    SeriesKey,
)

LOGGER = logging.getLogger(__name__)

PROCESS_PREFIX = "processes-"
MEMORY_DIR = "memory"
MEMORY_PREFIX = "memory-"
RRD_SUFFIX = ".rrd"

Runner = Callable[..., "subprocess.CompletedProcess[bytes]"]


class Transport(Protocol):
    def list(self, plugin: Plugin) -> Set[SeriesKey]: ...

    def read(self, key: SeriesKey) -> bytes: ...

    def close(self) -> None: ...


def archive_path(key: SeriesKey) -> PurePosixPath:
    """Path of the archive for ``key`` relative to the collectd host directory."""
    if key.plugin is Plugin.PROCESSES:
        return PurePosixPath(f"{PROCESS_PREFIX}{key.instance}") / f"{key.metric}{RRD_SUFFIX}"
    return PurePosixPath(MEMORY_DIR) / f"{MEMORY_PREFIX}{key.metric}{RRD_SUFFIX}"


def catalog_from_names(plugin: Plugin, names: Iterable[str]) -> Set[SeriesKey]:
    """Build catalog keys from a directory listing.

    For processes the listing is the host directory, for memory it is the
    ``memory`` directory.
    """
    keys: Set[SeriesKey] = set()
    for name in names:
        if plugin is Plugin.PROCESSES:
            process = name[len(PROCESS_PREFIX):] if name.startswith(PROCESS_PREFIX) else ""
            if process:
                keys.add(SeriesKey(Plugin.PROCESSES, process, PROCESS_METRIC))
        elif name.startswith(MEMORY_PREFIX) and name.endswith(RRD_SUFFIX):
            metric = name[len(MEMORY_PREFIX) : -len(RRD_SUFFIX)]
            if metric:
                keys.add(SeriesKey(Plugin.MEMORY, MEMORY_INSTANCE, metric))
    return keys


class LocalTransport:
    """Reads archives straight from the local filesystem."""

    host = "localhost"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def __enter__(self) -> "LocalTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        pass

    def list(self, plugin: Plugin) -> Set[SeriesKey]:
        directory = self.path if plugin is Plugin.PROCESSES else self.path / MEMORY_DIR
        if plugin is Plugin.MEMORY and not directory.exists():
            LOGGER.debug("No memory directory in %s", self.path)
            return set()
        try:
            names = [child.name for child in directory.iterdir()]
        except OSError as exc:
            raise TransportError(f"Failed to read directory {directory}: {exc}", self.host) from exc
        keys = catalog_from_names(plugin, names)
        LOGGER.debug("Listed %d %s series in %s", len(keys), plugin.value, directory)
        return keys

    def read(self, key: SeriesKey) -> bytes:
        path = self.path / archive_path(key)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise TransportError(f"Failed to read {path}: {exc}", self.host) from exc


class RemoteTransport:
    """Reads archives from ``user@host:path`` over one ssh master connection."""

    def __init__(self, source: RemoteSource, *, runner: Optional[Runner] = None) -> None:
        self.source = source
        self._runner: Runner = runner or subprocess.run
        self._control_dir: Optional[Path] = None

    @property
    def host(self) -> str:
        return self.source.host

    @property
    def is_open(self) -> bool:
        return self._control_dir is not None

    def __enter__(self) -> "RemoteTransport":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _control_options(self) -> List[str]:
        assert self._control_dir is not None
        return ["-o", f"ControlPath={self._control_dir / 'master.sock'}"]

    def open(self) -> None:
        if self.is_open:
            return
        self._control_dir = Path(tempfile.mkdtemp(prefix="cgg-ssh-"))
        command = [
            "ssh",
            "-o",
            "BatchMode=yes",
            "-o",
            "ControlMaster=yes",
            "-o",
            "ControlPersist=yes",
            *self._control_options(),
            "-f",
            "-N",
            self.source.address,
        ]
        try:
            self._run(command, f"Failed to connect to {self.source.address}", detach=True)
        except TransportError:
            self._remove_control_dir()
            raise
        LOGGER.info("Connected to %s", self.source.address)

    def close(self) -> None:
        if not self.is_open:
            return
        command = ["ssh", *self._control_options(), "-O", "exit", self.source.address]
        try:
            result = self._runner(command, capture_output=True, check=False)
            if result.returncode != 0:
                LOGGER.debug(
                    "ssh master for %s exited with %s: %s",
                    self.source.address,
                    result.returncode,
                    _decode(result.stderr),
                )
        except OSError as exc:
            LOGGER.warning("Failed to stop ssh master for %s: %s", self.source.address, exc)
        finally:
            self._remove_control_dir()
        LOGGER.debug("Closed connection to %s", self.source.address)

    def _remove_control_dir(self) -> None:
        if self._control_dir is not None:
            shutil.rmtree(self._control_dir, ignore_errors=True)
            self._control_dir = None

    def _remote(self, remote_command: Sequence[str], error: str) -> bytes:
        if not self.is_open:
            raise TransportError(
                f"Connection to {self.source.address} is not open", self.host
            )
        line = " ".join(shlex.quote(part) for part in remote_command)
        command = ["ssh", *self._control_options(), self.source.address, line]
        return self._run(command, error)

    def _run(self, command: Sequence[str], error: str, *, detach: bool = False) -> bytes:
        LOGGER.debug("Executing: %s", " ".join(command))
        if detach:
            # the backgrounded master must not inherit our pipes or run() never returns
            streams = {
                "stdin": subprocess.DEVNULL,
                "stdout": subprocess.DEVNULL,
                "stderr": subprocess.PIPE,
            }
        else:
            streams = {"capture_output": True}
        try:
            result = self._runner(list(command), check=False, **streams)
        except OSError as exc:
            raise TransportError(f"{error}: {exc}", self.host) from exc
        if result.returncode != 0:
            stderr = _decode(result.stderr)
            LOGGER.error("status: %s", result.returncode)
            LOGGER.error("stderr: %s", stderr)
            raise TransportError(
                f"{error} (exit status {result.returncode}): {stderr}",
                self.host,
                {"returncode": result.returncode},
            )
        return result.stdout or b""

    def _remote_dir(self, plugin: Plugin) -> str:
        base = PurePosixPath(self.source.path)
        return str(base if plugin is Plugin.PROCESSES else base / MEMORY_DIR)

    def list(self, plugin: Plugin) -> Set[SeriesKey]:
        directory = self._remote_dir(plugin)
        if plugin is Plugin.MEMORY:
            # ``ls`` of a missing memory directory is an empty catalog, not an error
            output = self._remote(
                ["sh", "-c", 'test -d "$1" && ls -1 "$1" || true', "sh", directory],
                f"Failed to list remote directory {self.source.address}:{directory}",
            )
        else:
            output = self._remote(
                ["ls", "-1", directory],
                f"Failed to list remote directory {self.source.address}:{directory}",
            )
        names = output.decode("utf-8", errors="replace").splitlines()
        keys = catalog_from_names(plugin, names)
        LOGGER.debug("Listed %d %s series on %s", len(keys), plugin.value, self.source.address)
        return keys

    def read(self, key: SeriesKey) -> bytes:
        path = PurePosixPath(self.source.path) / archive_path(key)
        return self._remote(["cat", str(path)], f"Failed to read {self.source.address}:{path}")


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace").strip()


def create_transport(source: DataSource, *, runner: Optional[Runner] = None) -> Transport:
    if isinstance(source, RemoteSource):
        return RemoteTransport(source, runner=runner)
    return LocalTransport(source.path)


@contextmanager
def open_transport(source: DataSource, *, runner: Optional[Runner] = None) -> Iterator[Transport]:
    """Open the transport for ``source`` and always close it afterwards."""
    transport = create_transport(source, runner=runner)
    try:
        if isinstance(transport, RemoteTransport):
            transport.open()
        yield transport
    finally:
        transport.close()
