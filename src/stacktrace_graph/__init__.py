"""Aggregate sampled stack traces into a weighted call graph."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stacktrace-graph")
except PackageNotFoundError:  # pragma: no cover - package metadata absent in dev mode
    __version__ = "0.0.0"

__all__ = ["__version__"]
