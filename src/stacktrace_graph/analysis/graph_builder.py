"""Fold sampled stack traces into a :class:`StackTraceGraph`."""

from __future__ import annotations

import concurrent.futures
import logging
import math
import numbers
from typing import Iterable, Optional, Sequence, Union

from stacktrace_graph.analysis.aggregated_frame import AggregatedFrame
from stacktrace_graph.analysis.graph_model import GraphEdge, GraphNode, NodeId, StackTraceGraph
from stacktrace_graph.analysis.identity import DEFAULT_IDENTITY, FrameIdentity
from stacktrace_graph.exceptions import InvalidArgumentError
from stacktrace_graph.model.frames import StackFrame, StackTrace

LOGGER = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1.0

TraceLike = Union[StackTrace, Sequence[StackFrame]]


class _NodeStats:
    __slots__ = ("frame", "top_count", "cumulative_count", "top_weight", "cumulative_weight")

    def __init__(self, frame: AggregatedFrame) -> None:
        self.frame = frame
        self.top_count = 0
        self.cumulative_count = 0
        self.top_weight = 0.0
        self.cumulative_weight = 0.0


class _EdgeStats:
    __slots__ = ("source", "target", "count", "value")

    def __init__(self, source: NodeId, target: NodeId) -> None:
        self.source = source
        self.target = target
        self.count = 0
        self.value = 0.0


class _Registry:
    """Node and edge counters stored in id-indexed arenas, with separate lookup tables."""

    def __init__(self) -> None:
        self.node_ids: dict[AggregatedFrame, NodeId] = {}
        self.nodes: list[_NodeStats] = []
        self.edge_ids: dict[tuple[NodeId, NodeId], int] = {}
        self.edges: list[_EdgeStats] = []
        self.trace_count = 0

    def node_id(self, frame: AggregatedFrame) -> NodeId:
        node_id = self.node_ids.get(frame)
        if node_id is None:
            node_id = len(self.nodes)
            self.node_ids[frame] = node_id
            self.nodes.append(_NodeStats(frame))
        return node_id

    def edge(self, source: NodeId, target: NodeId) -> _EdgeStats:
        index = self.edge_ids.get((source, target))
        if index is None:
            index = len(self.edges)
            self.edge_ids[(source, target)] = index
            self.edges.append(_EdgeStats(source, target))
        return self.edges[index]

    def fold(self, frames: Sequence[AggregatedFrame], weight: float) -> None:
        """Accumulate one validated, collapsed, non-empty trace."""

        ids = [self.node_id(frame) for frame in frames]
        for node_id in dict.fromkeys(ids):
            stats = self.nodes[node_id]
            stats.cumulative_count += 1
            stats.cumulative_weight += weight

        leaf = self.nodes[ids[0]]
        leaf.top_count += 1
        leaf.top_weight += weight

        for callee, caller in zip(ids, ids[1:]):
            edge = self.edge(callee, caller)
            edge.count += 1
            edge.value += weight
        self.trace_count += 1

    def merge(self, other: "_Registry") -> None:
        """Add the counters of ``other`` into this registry, in ``other``'s id order."""

        remap: list[NodeId] = []
        for stats in other.nodes:
            node_id = self.node_id(stats.frame)
            remap.append(node_id)
            target = self.nodes[node_id]
            target.top_count += stats.top_count
            target.cumulative_count += stats.cumulative_count
            target.top_weight += stats.top_weight
            target.cumulative_weight += stats.cumulative_weight
        for stats in other.edges:
            edge = self.edge(remap[stats.source], remap[stats.target])
            edge.count += stats.count
            edge.value += stats.value
        self.trace_count += other.trace_count


def _collapse(frames: Iterable[AggregatedFrame]) -> list[AggregatedFrame]:
    collapsed: list[AggregatedFrame] = []
    for frame in frames:
        if not collapsed or collapsed[-1] != frame:
            collapsed.append(frame)
    return collapsed


class GraphBuilder:
    """
    Accumulates traces into node and edge registries and freezes them into a graph.

    Each trace is validated in full before any counter changes, so a rejected trace
    leaves the registries exactly as they were. Traces without frames are skipped and
    do not count towards ``total_trace_count``.
    """

    def __init__(self, identity: FrameIdentity = DEFAULT_IDENTITY, *, default_weight: float = DEFAULT_WEIGHT) -> None:
        if identity is None:
            raise InvalidArgumentError("Identity policy must not be None")
        self.identity = identity
        self.default_weight = _check_weight(default_weight)
        self._key = identity.key_function()
        self._registry = _Registry()
        self._built = False
        self.skipped_traces = 0

    def _prepare(self, trace: TraceLike) -> Optional[tuple[list[AggregatedFrame], float]]:
        if trace is None:
            raise InvalidArgumentError("Trace must not be None")
        if isinstance(trace, StackTrace):
            frames, value = trace.frames, trace.value
        else:
            frames, value = trace, None
        weight = self.default_weight if value is None else _check_weight(value)

        identity = self.identity
        key = self._key
        aggregated = []
        for frame in frames:
            if frame is None:
                raise InvalidArgumentError("Frame must not be None")
            aggregated.append(AggregatedFrame._with_key(identity, frame, key(frame)))
        if not aggregated:
            return None
        return _collapse(aggregated), weight

    def add_trace(self, trace: TraceLike) -> None:
        if self._built:
            raise RuntimeError("Graph already built; create a new GraphBuilder to rebuild.")
        prepared = self._prepare(trace)
        if prepared is None:
            self.skipped_traces += 1
            LOGGER.debug("Skipping trace without frames")
            return
        self._registry.fold(*prepared)

    def add_traces(self, traces: Iterable[TraceLike]) -> "GraphBuilder":
        for trace in traces:
            self.add_trace(trace)
        return self

    def _absorb(self, partial: _Registry, skipped: int) -> None:
        self._registry.merge(partial)
        self.skipped_traces += skipped

    def build(self) -> StackTraceGraph:
        """Freeze the accumulated counters; the builder cannot be reused afterwards."""

        if self._built:
            raise RuntimeError("Graph already built; create a new GraphBuilder to rebuild.")
        self._built = True
        registry = self._registry
        nodes = [
            GraphNode(
                node_id=node_id,
                frame=stats.frame,
                top_count=stats.top_count,
                cumulative_count=stats.cumulative_count,
                top_weight=stats.top_weight,
                cumulative_weight=stats.cumulative_weight,
            )
            for node_id, stats in enumerate(registry.nodes)
        ]
        edges = [GraphEdge(stats.source, stats.target, stats.count, stats.value) for stats in registry.edges]
        self._registry = _Registry()
        graph = StackTraceGraph(self.identity, nodes, edges, registry.trace_count)
        LOGGER.info(
            "Built %s graph from %s traces: %s nodes, %s edges (%s empty traces skipped)",
            self.identity.granularity.name,
            graph.total_trace_count,
            graph.node_count,
            graph.edge_count,
            self.skipped_traces,
        )
        return graph


def _check_weight(value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgumentError(f"Trace weight must be a number, got {value!r}")
    weight = float(value)
    if math.isnan(weight) or math.isinf(weight) or weight < 0:
        raise InvalidArgumentError(f"Trace weight must be a finite non-negative number, got {value!r}")
    return weight


def _fold_shard(identity: FrameIdentity, default_weight: float, shard: Sequence[TraceLike]) -> GraphBuilder:
    builder = GraphBuilder(identity, default_weight=default_weight)
    builder.add_traces(shard)
    return builder


def _shards(traces: Sequence[TraceLike], count: int) -> list[Sequence[TraceLike]]:
    size = max(1, math.ceil(len(traces) / count))
    return [traces[start : start + size] for start in range(0, len(traces), size)]


def build_graph(
    traces: Iterable[TraceLike],
    identity: FrameIdentity = DEFAULT_IDENTITY,
    *,
    default_weight: float = DEFAULT_WEIGHT,
    workers: int = 1,
) -> StackTraceGraph:
    """
    Build a call graph from ``traces`` using ``identity`` to merge frames.

    With ``workers > 1`` contiguous shards of traces are folded into private
    registries on a thread pool and merged in shard order by the calling thread,
    which yields the same node and edge ids as a sequential build. Folding is
    pure Python and holds the GIL, so extra workers do not make the build faster.
    """

    if workers < 1:
        raise InvalidArgumentError(f"workers must be >= 1, got {workers}")
    builder = GraphBuilder(identity, default_weight=default_weight)
    if workers == 1:
        return builder.add_traces(traces).build()

    materialized = list(traces)
    shards = _shards(materialized, workers)
    LOGGER.debug("Folding %s traces in %s shards", len(materialized), len(shards))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_fold_shard, identity, builder.default_weight, shard) for shard in shards]
        partials = [future.result() for future in futures]
    for partial in partials:
        builder._absorb(partial._registry, partial.skipped_traces)
    return builder.build()


__all__ = ["DEFAULT_WEIGHT", "GraphBuilder", "TraceLike", "build_graph"]
