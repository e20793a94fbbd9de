"""Helpers for inspecting a built stack trace graph."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from stacktrace_graph.analysis.graph_model import GraphNode, StackTraceGraph

_RANKINGS: dict[str, Callable[[GraphNode], float]] = {
    "count": lambda node: node.top_count,
    "weight": lambda node: node.top_weight,
    "cumulative": lambda node: node.cumulative_count,
    "cumulative-weight": lambda node: node.cumulative_weight,
}


@dataclass
class NodeShare:
    node: GraphNode
    label: str
    percent_of_samples: float


def sample_percentage(graph: StackTraceGraph, node: GraphNode) -> float:
    """Share of all traces for which ``node`` was the leaf frame, in percent."""

    if graph.total_trace_count == 0:
        return 0.0
    return node.top_count * 100.0 / graph.total_trace_count


def hottest_nodes(graph: StackTraceGraph, limit: int = 10, *, by: str = "count") -> list[NodeShare]:
    """
    Return the ``limit`` highest ranked nodes.

    ``by`` selects the ranking: ``count`` / ``weight`` (leaf counters), ``cumulative``
    or ``cumulative-weight``. Ties keep node id order.
    """

    try:
        rank = _RANKINGS[by]
    except KeyError:
        raise ValueError(f"Unsupported ranking: {by} (expected one of: {', '.join(_RANKINGS)})") from None
    if limit <= 0:
        return []
    ordered = sorted(graph.nodes, key=rank, reverse=True)[:limit]
    return [NodeShare(node=node, label=node.label, percent_of_samples=sample_percentage(graph, node)) for node in ordered]


def format_graph_summary(graph: StackTraceGraph) -> str:
    lines = [
        "=== Graph Printout ===",
        f"Granularity: {graph.identity.granularity.value}",
        f"Total traces: {graph.total_trace_count}",
        f"Number of nodes: {graph.node_count}",
        f"Number of edges: {graph.edge_count}",
        f"Node count range: {graph.find_node_min_count()}..{graph.find_node_max_count()}",
        f"Edge count range: {graph.find_edge_min_count()}..{graph.find_edge_max_count()}",
    ]
    return "\n".join(lines) + "\n"


__all__ = ["NodeShare", "format_graph_summary", "hottest_nodes", "sample_percentage"]
