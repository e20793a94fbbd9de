"""Adapters exposing a :class:`StackTraceGraph` to graph libraries."""

from __future__ import annotations

import networkx as nx

from stacktrace_graph.analysis.graph_model import StackTraceGraph


def to_networkx(graph: StackTraceGraph) -> nx.DiGraph:
    """Convert the aggregated model into a NetworkX DiGraph keyed by node id.

    Edges keep the model's direction (callee -> caller).
    """

    digraph = nx.DiGraph(
        granularity=graph.identity.granularity.value,
        total_trace_count=graph.total_trace_count,
        total_edge_count=graph.total_edge_count,
    )
    for node in graph.nodes:
        digraph.add_node(
            node.node_id,
            label=node.label,
            top_count=node.top_count,
            cumulative_count=node.cumulative_count,
            top_weight=node.top_weight,
            cumulative_weight=node.cumulative_weight,
        )
    for edge in graph.edges:
        digraph.add_edge(edge.source, edge.target, count=edge.count, value=edge.value)

    digraph.graph["node_count"] = digraph.number_of_nodes()
    digraph.graph["edge_count"] = digraph.number_of_edges()
    return digraph


__all__ = ["to_networkx"]
