"""Read-only aggregated call graph produced by :mod:`graph_builder`."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping, Sequence

from stacktrace_graph.analysis.aggregated_frame import AggregatedFrame
from stacktrace_graph.analysis.identity import FrameIdentity

NodeId = int


@dataclass(frozen=True, slots=True)
class GraphNode:
    """A unique call-site and its accumulated counters.

    ``top_*`` counts samples where the call-site was the leaf frame,
    ``cumulative_*`` counts samples where it appeared anywhere (once per trace).
    """

    node_id: NodeId
    frame: AggregatedFrame
    top_count: int = 0
    cumulative_count: int = 0
    top_weight: float = 0.0
    cumulative_weight: float = 0.0

    @property
    def label(self) -> str:
        return self.frame.label()

    def __str__(self) -> str:
        return f"{self.frame}:{self.top_count}({self.cumulative_count})"


@dataclass(frozen=True, slots=True)
class GraphEdge:
    """Directed relationship from a called node (``source``) to its caller (``target``)."""

    source: NodeId
    target: NodeId
    count: int = 0
    value: float = 0.0

    @property
    def key(self) -> tuple[NodeId, NodeId]:
        return (self.source, self.target)


def _bounds(values: Iterator[float]) -> tuple[float, float]:
    low = high = None
    for value in values:
        if low is None or value < low:
            low = value
        if high is None or value > high:
            high = value
    if low is None:
        return 0, 0
    return low, high


class StackTraceGraph:
    """
    Finished call graph: nodes indexed by id, edges keyed by ordered id pairs.

    Instances are created by :class:`GraphBuilder` and never mutated afterwards.
    Min/max aggregates return ``0`` for an empty registry so renderers can scale
    without special-casing.
    """

    def __init__(
        self,
        identity: FrameIdentity,
        nodes: Sequence[GraphNode],
        edges: Sequence[GraphEdge],
        total_trace_count: int,
    ) -> None:
        self._identity = identity
        self._nodes = tuple(nodes)
        self._edges = tuple(edges)
        self._total_trace_count = total_trace_count
        self._by_frame: Mapping[AggregatedFrame, GraphNode] = MappingProxyType(
            {node.frame: node for node in self._nodes}
        )
        self._by_pair: Mapping[tuple[NodeId, NodeId], GraphEdge] = MappingProxyType(
            {edge.key: edge for edge in self._edges}
        )

    @property
    def identity(self) -> FrameIdentity:
        return self._identity

    @property
    def nodes(self) -> tuple[GraphNode, ...]:
        return self._nodes

    @property
    def edges(self) -> tuple[GraphEdge, ...]:
        return self._edges

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    @property
    def total_trace_count(self) -> int:
        return self._total_trace_count

    @property
    def total_edge_count(self) -> int:
        """Number of distinct edges, not the sum of their counts."""

        return len(self._edges)

    def is_empty(self) -> bool:
        return not self._nodes

    def node(self, node_id: NodeId) -> GraphNode:
        return self._nodes[node_id]

    def node_for(self, frame: AggregatedFrame) -> GraphNode | None:
        return self._by_frame.get(frame)

    def edge(self, source: NodeId, target: NodeId) -> GraphEdge | None:
        return self._by_pair.get((source, target))

    def successors(self, node_id: NodeId) -> list[GraphNode]:
        """Callers of ``node_id`` (edges point from callee to caller)."""

        return [self._nodes[edge.target] for edge in self._edges if edge.source == node_id]

    def predecessors(self, node_id: NodeId) -> list[GraphNode]:
        """Callees observed below ``node_id``."""

        return [self._nodes[edge.source] for edge in self._edges if edge.target == node_id]

    def find_node_min_count(self) -> int:
        return _bounds(node.top_count for node in self._nodes)[0]

    def find_node_max_count(self) -> int:
        return _bounds(node.top_count for node in self._nodes)[1]

    def find_node_min_weight(self) -> float:
        return _bounds(node.top_weight for node in self._nodes)[0]

    def find_node_max_weight(self) -> float:
        return _bounds(node.top_weight for node in self._nodes)[1]

    def find_edge_min_count(self) -> int:
        return _bounds(edge.count for edge in self._edges)[0]

    def find_edge_max_count(self) -> int:
        return _bounds(edge.count for edge in self._edges)[1]

    def find_edge_min_value(self) -> float:
        return _bounds(edge.value for edge in self._edges)[0]

    def find_edge_max_value(self) -> float:
        return _bounds(edge.value for edge in self._edges)[1]

    def __iter__(self) -> Iterator[GraphNode]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return (
            f"StackTraceGraph(granularity={self._identity.granularity.name}, nodes={self.node_count}, "
            f"edges={self.edge_count}, traces={self._total_trace_count})"
        )


__all__ = ["GraphEdge", "GraphNode", "NodeId", "StackTraceGraph"]
