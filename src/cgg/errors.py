"""Exception hierarchy for cgg."""

from __future__ import annotations

from typing import Any, Dict, Optional


class CggError(Exception):
    """Base class for every error cgg reports to the user."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CggError):
    """Conflicting or out-of-range options, detected before any I/O."""


class TimeRangeError(CggError):
    """Time window that cannot be parsed or is empty/inverted."""


class TransportError(CggError):
    """Failure to connect to, list or read from a data source."""

    def __init__(
        self,
        message: str,
        host: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super_details = details or {}
        if host is not None:
            super_details["host"] = host
        super().__init__(message, super_details)
        self.host = host


class FormatError(CggError):
    """Malformed or truncated archive bytes for one series."""

    def __init__(self, message: str, key: Any, details: Optional[Dict[str, Any]] = None) -> None:
        super_details = details or {}
        super_details["key"] = str(key)
        super().__init__(f"{key}: {message}", super_details)
        self.key = key


class FilterError(CggError):
    """Requested process or metric name that does not exist in the catalog."""

    def __init__(self, message: str, name: str, details: Optional[Dict[str, Any]] = None) -> None:
        super_details = details or {}
        super_details["name"] = name
        super().__init__(message, super_details)
        self.name = name
