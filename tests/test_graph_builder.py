"""Tests for the stack trace aggregation algorithm."""

from __future__ import annotations

from fractions import Fraction

import pytest

from stacktrace_graph.analysis.graph_builder import GraphBuilder, build_graph
from stacktrace_graph.analysis.graph_model import StackTraceGraph
from stacktrace_graph.analysis.identity import FrameIdentity, Granularity
from stacktrace_graph.exceptions import InvalidArgumentError, InvalidFrameError
from stacktrace_graph.model.frames import MethodRef, PackageRef, StackFrame, StackTrace, TypeRef

A = StackFrame.of("app", "Worker", "a", line=1, bci=0)
B = StackFrame.of("app", "Worker", "b", line=2, bci=0)
C = StackFrame.of("app", "Main", "c", line=3, bci=0)
D = StackFrame.of("lib", "Util", "d", line=4, bci=0)

A_LABEL = "app.Worker#a:1(0)"
B_LABEL = "app.Worker#b:2(0)"


def _by_label(graph: StackTraceGraph) -> dict[str, tuple[int, int, float, float]]:
    return {
        node.label: (node.top_count, node.cumulative_count, node.top_weight, node.cumulative_weight)
        for node in graph.nodes
    }


def _edges_by_label(graph: StackTraceGraph) -> dict[tuple[str, str], tuple[int, float]]:
    return {
        (graph.node(edge.source).label, graph.node(edge.target).label): (edge.count, edge.value)
        for edge in graph.edges
    }


def _mixed_traces() -> list[StackTrace]:
    return [
        StackTrace([A, B, C]),
        StackTrace([B, C], value=2.0),
        StackTrace([A, A, B, C], value=0.5),
        StackTrace([D, A, D, C]),
        StackTrace([C]),
        StackTrace([], value=4.0),
        StackTrace([D, B, C], value=3.0),
    ]


def test_single_frame_traces() -> None:
    for frame in (A, B, C):
        graph = build_graph([[frame]])

        assert graph.node_count == 1
        assert graph.edge_count == 0
        node = graph.nodes[0]
        assert node.top_count == node.cumulative_count == 1
        assert node.top_weight == node.cumulative_weight == 1.0


def test_two_identical_traces() -> None:
    graph = build_graph([StackTrace([A, B]), StackTrace([A, B])])

    assert graph.node_count == 2
    assert graph.edge_count == 1
    node_a, node_b = graph.nodes
    assert (node_a.node_id, node_b.node_id) == (0, 1)
    assert (node_a.top_count, node_a.cumulative_count) == (2, 2)
    assert (node_b.top_count, node_b.cumulative_count) == (0, 2)

    edge = graph.edges[0]
    assert (edge.source, edge.target) == (node_a.node_id, node_b.node_id)
    assert edge.count == 2
    assert edge.value == 2.0
    assert graph.total_trace_count == 2
    assert graph.total_edge_count == 1


def test_direct_recursion_collapses() -> None:
    graph = build_graph([[A, A, A, B]])

    assert graph.node_count == 2
    assert graph.edge_count == 1
    assert all(edge.source != edge.target for edge in graph.edges)
    node_a = graph.nodes[0]
    assert (node_a.top_count, node_a.cumulative_count) == (1, 1)
    assert _edges_by_label(graph) == {(A_LABEL, B_LABEL): (1, 1.0)}


def test_indirect_recursion_counts_once_per_trace() -> None:
    graph = build_graph([StackTrace([A, B, A], value=2.0)])

    assert graph.node_count == 2
    stats = _by_label(graph)
    assert stats[A_LABEL] == (1, 1, 2.0, 2.0)
    assert stats[B_LABEL] == (0, 1, 0.0, 2.0)
    assert _edges_by_label(graph) == {(A_LABEL, B_LABEL): (1, 2.0), (B_LABEL, A_LABEL): (1, 2.0)}


def test_recursion_at_coarser_granularity() -> None:
    same_class = StackFrame.of("app", "Worker", "b", line=9, bci=3)
    graph = build_graph([[A, same_class, C]], FrameIdentity(Granularity.CLASS))

    assert [node.label for node in graph.nodes] == ["app.Worker", "app.Main"]
    assert graph.edge_count == 1
    assert graph.nodes[0].cumulative_count == 1


def test_top_count_invariants() -> None:
    graph = build_graph(_mixed_traces())

    assert graph.total_trace_count == 6
    assert sum(node.top_count for node in graph.nodes) == graph.total_trace_count
    for node in graph.nodes:
        assert node.top_count <= node.cumulative_count
        assert node.top_weight <= node.cumulative_weight
    assert all(edge.source != edge.target for edge in graph.edges)


def test_weights_accumulate() -> None:
    graph = build_graph([StackTrace([A, B], value=2.5), StackTrace([B], value=0.5), StackTrace([A, B])])

    stats = _by_label(graph)
    assert stats[A_LABEL] == (2, 2, 3.5, 3.5)
    assert stats[B_LABEL] == (1, 3, 0.5, 4.0)
    assert _edges_by_label(graph) == {(A_LABEL, B_LABEL): (2, 3.5)}


def test_default_weight_is_configurable() -> None:
    graph = build_graph([[A], StackTrace([A], value=1.0)], default_weight=10.0)

    assert graph.nodes[0].top_weight == 11.0


def test_coarser_granularity_never_splits_nodes() -> None:
    traces = _mixed_traces() + [
        [StackFrame.of("app", "Worker", "a", line=7, bci=5), StackFrame.of("app", "Worker", "a", line=1, bci=9), C]
    ]
    finer = build_graph(traces, FrameIdentity(Granularity.BYTECODE_INDEX))
    previous = finer
    for granularity in (Granularity.LINE, Granularity.METHOD, Granularity.CLASS, Granularity.PACKAGE):
        coarser = build_graph(traces, FrameIdentity(granularity))

        assert coarser.node_count <= previous.node_count
        assert sum(n.cumulative_count for n in coarser.nodes) <= sum(n.cumulative_count for n in previous.nodes)
        assert sum(n.top_count for n in coarser.nodes) == coarser.total_trace_count
        assert coarser.total_trace_count == finer.total_trace_count
        previous = coarser


def test_trace_order_does_not_change_counters() -> None:
    traces = _mixed_traces()

    forward = build_graph(traces)
    backward = build_graph(list(reversed(traces)))

    assert _by_label(forward) == _by_label(backward)
    assert _edges_by_label(forward) == _edges_by_label(backward)
    assert forward.total_trace_count == backward.total_trace_count


@pytest.mark.parametrize("workers", [2, 3, 16])
def test_sharded_build_matches_sequential(workers: int) -> None:
    traces = _mixed_traces() * 5

    sequential = build_graph(traces, FrameIdentity(Granularity.METHOD))
    sharded = build_graph(traces, FrameIdentity(Granularity.METHOD), workers=workers)

    assert sharded.nodes == sequential.nodes
    assert sharded.edges == sequential.edges
    assert sharded.total_trace_count == sequential.total_trace_count


def test_empty_collection() -> None:
    graph = build_graph([])

    assert graph.node_count == 0
    assert graph.edge_count == 0
    assert graph.total_trace_count == 0
    assert graph.is_empty()
    for query in (
        graph.find_node_min_count,
        graph.find_node_max_count,
        graph.find_node_min_weight,
        graph.find_node_max_weight,
        graph.find_edge_min_count,
        graph.find_edge_max_count,
        graph.find_edge_min_value,
        graph.find_edge_max_value,
    ):
        assert query() == 0


def test_empty_traces_are_skipped() -> None:
    builder = GraphBuilder()
    builder.add_traces([[], StackTrace([], value=3.0), [A]])
    graph = builder.build()

    assert builder.skipped_traces == 2
    assert graph.total_trace_count == 1
    assert graph.node_count == 1


def test_negative_weight_leaves_registries_untouched() -> None:
    builder = GraphBuilder()
    builder.add_trace(StackTrace([A, B]))

    with pytest.raises(InvalidArgumentError):
        builder.add_trace(StackTrace([C, D], value=-1.0))

    graph = builder.build()
    assert graph.node_count == 2
    assert graph.edge_count == 1
    assert graph.total_trace_count == 1


@pytest.mark.parametrize("value", [-0.5, float("nan"), float("inf"), "heavy", "2.5", True, [1.0]])
def test_invalid_weights_are_rejected(value: object) -> None:
    with pytest.raises(InvalidArgumentError):
        build_graph([StackTrace([A], value=value)])  # type: ignore[arg-type]


def test_integer_and_rational_weights_are_accepted() -> None:
    graph = build_graph([StackTrace([A], value=2), StackTrace([A], value=Fraction(1, 2))])

    assert graph.node(0).top_weight == 2.5


def test_invalid_frame_aborts_before_mutation() -> None:
    builder = GraphBuilder(FrameIdentity(Granularity.PACKAGE))
    orphan = StackFrame(MethodRef("orphan"))

    with pytest.raises(InvalidFrameError):
        builder.add_trace([A, orphan])

    assert builder.build().node_count == 0


def test_none_inputs_are_rejected() -> None:
    with pytest.raises(InvalidArgumentError):
        GraphBuilder(None)  # type: ignore[arg-type]
    with pytest.raises(InvalidArgumentError):
        build_graph([[A, None]])  # type: ignore[list-item]
    with pytest.raises(InvalidArgumentError):
        build_graph([None])  # type: ignore[list-item]
    with pytest.raises(InvalidArgumentError):
        build_graph([[A]], workers=0)


def test_errors_propagate_from_shards() -> None:
    traces = [StackTrace([A])] * 4 + [StackTrace([B], value=-2.0)]

    with pytest.raises(InvalidArgumentError):
        build_graph(traces, workers=2)


def test_builder_is_single_use() -> None:
    builder = GraphBuilder()
    builder.add_trace([A])
    builder.build()

    with pytest.raises(RuntimeError):
        builder.build()
    with pytest.raises(RuntimeError):
        builder.add_trace([B])


def test_unnamed_package_folds_with_absent_package() -> None:
    bare = StackFrame(MethodRef("run", TypeRef("X", None)), line=3, bci=0)
    unnamed = StackFrame(MethodRef("run", TypeRef("X", PackageRef(""))), line=3, bci=0)

    graph = build_graph([[bare], [unnamed]], FrameIdentity(Granularity.CLASS))

    assert graph.node_count == 1
    assert graph.node(0).label == "X"
    assert graph.node(0).top_count == 2
