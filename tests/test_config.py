"""Tests for configuration parsing and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from cgg.config import (
    DEFAULT_HEIGHT,
    DEFAULT_OUTPUT,
    DEFAULT_WIDTH,
    AppConfig,
    parse_plugins,
    parse_source,
)
from cgg.errors import ConfigurationError, TimeRangeError
from cgg.models import LocalSource, Plugin, RemoteSource, TimeWindow

NOW = 1_700_000_000


class TestParseSource:
    """Test parse_source."""

    def test_local_path(self) -> None:
        """Should treat a plain path as a local source."""
        assert parse_source("/var/lib/collectd/myhost/") == LocalSource(
            Path("/var/lib/collectd/myhost/")
        )

    def test_relative_path(self) -> None:
        """Should keep relative paths as given."""
        assert parse_source("data/myhost") == LocalSource(Path("data/myhost"))

    def test_remote(self) -> None:
        """Should split user@host:path into its parts."""
        source = parse_source("user@192.168.0.163:/var/lib/collectd/myhost/")

        assert source == RemoteSource("user", "192.168.0.163", "/var/lib/collectd/myhost/")

    def test_remote_without_path(self) -> None:
        """Should reject a remote input with an empty path."""
        with pytest.raises(ConfigurationError):
            parse_source("user@host:")


class TestParsePlugins:
    """Test parse_plugins."""

    def test_single(self) -> None:
        """Should parse one plugin name."""
        assert parse_plugins("processes") == (Plugin.PROCESSES,)

    def test_both_case_insensitive(self) -> None:
        """Should parse several plugins ignoring case."""
        assert parse_plugins("Memory, processes") == (Plugin.MEMORY, Plugin.PROCESSES)

    def test_unknown(self) -> None:
        """Should name the unknown plugin in the error."""
        with pytest.raises(ConfigurationError, match="cpu"):
            parse_plugins("processes,cpu")

    def test_empty(self) -> None:
        """Should return no plugins for an empty value."""
        assert parse_plugins("") == ()


class TestAppConfig:
    """Test AppConfig defaults and validation."""

    def test_defaults(self) -> None:
        """Defaults match the command line defaults."""
        config = AppConfig(input="/data")

        assert config.output == DEFAULT_OUTPUT == "out.png"
        assert (config.width, config.height) == (DEFAULT_WIDTH, DEFAULT_HEIGHT) == (1024, 768)
        assert tuple(config.plugins) == (Plugin.PROCESSES,)
        assert config.max_processes is None

    def test_validate_returns_window(self) -> None:
        """Should resolve a timespan against the given instant."""
        config = AppConfig(input="/data", timespan="last 2 hours")

        assert config.validate(now=NOW) == TimeWindow(NOW - 7200, NOW)

    def test_validate_explicit_range(self) -> None:
        """Should use explicit bounds unchanged."""
        config = AppConfig(input="/data", start=10, end=20)

        assert config.validate() == TimeWindow(10, 20)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"input": ""},
            {"width": 0},
            {"height": -5},
            {"plugins": ()},
            {"max_processes": 0},
            {"max_processes": 21},
            {"memory": ["free", "swap"]},
            {"start": 10, "end": 20},
            {"timespan": None},
            {"input": "user@host:"},
        ],
    )
    def test_invalid(self, overrides: dict) -> None:
        """Every problem detectable before I/O is a ConfigurationError."""
        values = {"input": "/data", "timespan": "last 1 hour", **overrides}

        with pytest.raises(ConfigurationError):
            AppConfig(**values).validate(now=NOW)

    def test_bad_descriptor(self) -> None:
        """An unparseable descriptor is a time range error."""
        with pytest.raises(TimeRangeError):
            AppConfig(input="/data", timespan="yesterday").validate(now=NOW)

    def test_inverted_range(self) -> None:
        """An inverted range is a time range error."""
        with pytest.raises(TimeRangeError):
            AppConfig(input="/data", start=20, end=10).validate()

    def test_source(self) -> None:
        """Should parse the input into a data source."""
        config = AppConfig(input="me@box:/collectd")

        assert config.source() == RemoteSource("me", "box", "/collectd")
