"""regionperf: cloud region latency measurement tool."""

__version__ = "0.1.0"
