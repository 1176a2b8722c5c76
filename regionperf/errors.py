"""Exceptions raised by regionperf."""


class RegionPerfError(Exception):
    """Base class for fatal regionperf errors."""


class ConfigurationError(RegionPerfError):
    """Raised for invalid options, unknown regions or malformed endpoints."""


class ConnectivityError(RegionPerfError):
    """Raised when no endpoint is reachable during the startup probe."""
