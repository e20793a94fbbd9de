"""Command line entry points for the project."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import networkx as nx
import typer

from stacktrace_graph import __version__
from stacktrace_graph.analysis.adapters import to_networkx
from stacktrace_graph.analysis.graph_model import StackTraceGraph
from stacktrace_graph.analysis.graph_queries import format_graph_summary, hottest_nodes
from stacktrace_graph.config import BuildConfig
from stacktrace_graph.exceptions import StackGraphError
from stacktrace_graph.pipelines.build_graph import FileTraceSource, build_from_source


def _resolve_inputs(inputs: List[Path]) -> List[Path]:
    resolved: List[Path] = []
    for item in inputs:
        candidate = item.expanduser().resolve()
        if not candidate.exists():
            raise typer.BadParameter(f"Input not found: {candidate}")
        resolved.append(candidate)
    return resolved


def _build(inputs: List[Path], granularity: str, workers: int) -> StackTraceGraph:
    resolved = _resolve_inputs(inputs)
    if not resolved:
        raise typer.BadParameter("At least one --input trace file is required.")
    try:
        config = BuildConfig.from_names(granularity, workers=workers)
        return build_from_source(FileTraceSource(resolved), config)
    except StackGraphError as exc:
        raise typer.BadParameter(str(exc)) from exc


app = typer.Typer(help="Aggregate sampled stack traces into weighted call graphs.")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    display_version: bool = typer.Option(False, "--version", "-V", help="Show version and exit."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Print the package version when requested."""

    if display_version:
        typer.echo(__version__)
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@app.command("summary")
def summary(
    input: List[Path] = typer.Option(..., "--input", "-i", help="Trace JSON documents to aggregate."),
    granularity: str = typer.Option("bci", "--granularity", "-g", help="line, method, class, package or bci."),
    top: int = typer.Option(10, help="Show the top-N nodes for the selected ranking."),
    rank_by: str = typer.Option("count", "--rank-by", help="count, weight, cumulative or cumulative-weight."),
    workers: int = typer.Option(1, help="Worker threads used to fold traces (no speedup under the GIL)."),
) -> None:
    """Build a graph from trace files and print its summary."""

    graph = _build(input, granularity, workers)
    typer.echo(format_graph_summary(graph), nl=False)

    try:
        ranked = hottest_nodes(graph, top, by=rank_by)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if ranked:
        typer.secho(f"Top {len(ranked)} nodes by {rank_by}:", fg=typer.colors.GREEN)
        for entry in ranked:
            node = entry.node
            typer.echo(
                f"  {entry.label}  top={node.top_count} cumulative={node.cumulative_count}"
                f" weight={node.top_weight:g} ({entry.percent_of_samples:.2f} %)"
            )


@app.command("export-graphml")
def export_graphml(
    input: List[Path] = typer.Option(..., "--input", "-i", help="Trace JSON documents to aggregate."),
    output: Path = typer.Option(..., "--output", "-o", help="Destination GraphML file."),
    granularity: str = typer.Option("bci", "--granularity", "-g", help="line, method, class, package or bci."),
    workers: int = typer.Option(1, help="Worker threads used to fold traces (no speedup under the GIL)."),
) -> None:
    """Build a graph from trace files and write it as GraphML."""

    graph = _build(input, granularity, workers)
    destination = output.expanduser().resolve()
    destination.parent.mkdir(parents=True, exist_ok=True)
    nx.write_graphml(to_networkx(graph), destination)
    typer.echo(f"Nodes: {graph.node_count}  Edges: {graph.edge_count}")
    typer.secho(f"Graph written to {destination}", fg=typer.colors.GREEN)


def run() -> None:
    """Entry point used by ``python -m stacktrace_graph.cli``."""

    app()


if __name__ == "__main__":
    run()
