"""High-level orchestration for building a stack trace graph."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Protocol, Sequence

from stacktrace_graph.analysis.graph_builder import TraceLike, build_graph
from stacktrace_graph.analysis.graph_model import StackTraceGraph
from stacktrace_graph.config import BuildConfig
from stacktrace_graph.io.trace_loader import iter_traces


class TraceSource(Protocol):
    """Protocol expected from components that supply materialized stack traces."""

    def traces(self) -> Iterable[TraceLike]:
        ...


class FileTraceSource:
    """Trace source reading one or more JSON trace documents."""

    def __init__(self, paths: Sequence[Path]) -> None:
        self.paths = [Path(path) for path in paths]

    def traces(self) -> Iterable[TraceLike]:
        return list(iter_traces(self.paths))


def build_graph_from_config(traces: Iterable[TraceLike], config: BuildConfig) -> StackTraceGraph:
    return build_graph(
        traces,
        config.identity,
        default_weight=config.default_weight,
        workers=config.workers,
    )


def build_from_source(source: TraceSource, config: BuildConfig | None = None) -> StackTraceGraph:
    """
    Entry point for building a graph from any trace source.

    The source is drained completely before aggregation starts, so the returned
    graph is either fully built or not built at all.
    """

    config = config or BuildConfig()
    return build_graph_from_config(list(source.traces()), config)


__all__ = ["FileTraceSource", "TraceSource", "build_from_source", "build_graph_from_config"]
