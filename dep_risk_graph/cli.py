"""
Command-line interface for dep-risk-graph.
"""

import asyncio
from functools import wraps
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from dep_risk_graph.config import (
    get_max_depth,
    is_verbose_enabled,
    set_fetch_timeout,
    set_max_concurrency,
    set_verbose,
    set_verify_ssl,
)
from dep_risk_graph.export import UnsupportedFormatError, detect_format, export
from dep_risk_graph.graph_builder import build_from_tree, find_cycles
from dep_risk_graph.graph_filter import GraphFilter
from dep_risk_graph.http_client import close_async_http_client
from dep_risk_graph.models import DependencyTree, GraphData
from dep_risk_graph.resolver import DependencyResolver
from dep_risk_graph.risk.aggregator import RiskAggregator

# --- Typer App ---
app = typer.Typer()
console = Console()


@app.callback()
def main():
    """Analyze risk across a PyPI package's dependency graph."""


def syncify(f):
    """Run an async Typer command on a fresh event loop."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def _score_color(score: float) -> str:
    if score > 7:
        return "red"
    if score > 4:
        return "yellow"
    return "green"


def display_graph(graph: GraphData, tree: DependencyTree):
    """Display graph nodes in a rich table."""
    table = Table(title=f"Dependency Risk: {tree.root}")
    table.add_column("Package", justify="left", style="cyan", no_wrap=True)
    table.add_column("Version", justify="left")
    table.add_column("Level", justify="center")
    table.add_column("Risk", justify="center")
    table.add_column("CVE", justify="center")
    table.add_column("Primary Concern", justify="left")

    for node in sorted(graph.nodes, key=lambda n: (n.level, n.name)):
        tree_node = tree.nodes.get(node.id)
        score = tree_node.risk_score if tree_node is not None else None
        if score is None:
            risk_text = "[dim]unknown[/dim]"
        else:
            color = _score_color(score)
            risk_text = f"[{color}]{score:.1f}[/{color}]"

        concern = "-"
        breakdown = tree_node.risk_breakdown if tree_node is not None else None
        if breakdown is not None:
            present = breakdown.present_dimensions()
            if present:
                name, signals = max(present.items(), key=lambda item: item[1].score)
                if signals.concerns:
                    concern = f"{name}: {signals.concerns[0]}"

        table.add_row(
            node.name,
            node.version,
            str(node.level),
            risk_text,
            "[red]yes[/red]" if node.has_cve else "no",
            concern,
        )

    console.print(table)


def display_summary(graph: GraphData, tree: DependencyTree):
    """Print omitted packages and dependency cycles."""
    if tree.failures:
        console.print("\n[bold yellow]Omitted packages:[/bold yellow]")
        for name, failure in sorted(tree.failures.items()):
            console.print(f"  • {name} [dim]({failure.kind})[/dim] {failure.message}")

    cycles = find_cycles(graph)
    if cycles:
        console.print("\n[bold yellow]Dependency cycles:[/bold yellow]")
        for cycle in cycles:
            console.print(f"  • {' -> '.join(cycle + cycle[:1])}")

    dangling = {edge.target for edge in tree.dangling_edges()}
    if dangling and is_verbose_enabled():
        console.print(
            f"\n[dim]{len(dangling)} dependencies not expanded "
            "(depth limit or omitted)[/dim]"
        )


@app.command()
@syncify
async def analyze(
    root: str = typer.Argument(..., help="Root package name on PyPI."),
    max_depth: int | None = typer.Option(
        None,
        "--max-depth",
        "-d",
        help="Deepest dependency level to resolve (0 = root only).",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the graph to a JSON file.",
    ),
    tree_output: bool = typer.Option(
        False,
        "--tree",
        help="Export the dependency tree instead of the graph.",
    ),
    cve_only: bool | None = typer.Option(
        None,
        "--cve-only",
        help="Keep only packages with known vulnerabilities.",
    ),
    min_risk: float | None = typer.Option(
        None,
        "--min-risk",
        help="Keep only packages with a risk score at or above this value.",
    ),
    max_level: int | None = typer.Option(
        None,
        "--max-level",
        help="Keep only packages at this level or shallower.",
    ),
    no_risk: bool = typer.Option(
        False,
        "--no-risk",
        help="Resolve the tree without scoring risk.",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        help="Number of concurrent registry fetches.",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        help="Seconds allowed per registry fetch.",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification.",
    ),
    verbose: bool | None = typer.Option(
        None,
        "--verbose",
        "-v",
        help="Show detailed progress.",
    ),
):
    """
    Resolve a package's dependency tree and report its risk.

    Example:
        dep-risk-graph analyze requests
        dep-risk-graph analyze flask --max-depth 2 --min-risk 4
        dep-risk-graph analyze django --output graph.json
    """
    if verbose is not None:
        set_verbose(verbose)
    set_verify_ssl(not insecure)

    try:
        if workers is not None:
            set_max_concurrency(workers)
        if timeout is not None:
            set_fetch_timeout(timeout)
        depth = get_max_depth() if max_depth is None else max_depth
        if depth < 0:
            raise ValueError("max depth must be non-negative")
        if output is not None:
            detect_format(output)
    except (ValueError, UnsupportedFormatError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    resolver = DependencyResolver(
        risk_aggregator=None if no_risk else RiskAggregator(),
    )

    console.print(f"[cyan]Resolving {root} (max depth {depth})...[/cyan]")
    try:
        tree = await resolver.analyze(root, max_depth=depth)
    finally:
        await close_async_http_client()

    if root not in tree.nodes:
        failure = tree.failures.get(root)
        reason = f": {failure.message}" if failure else ""
        console.print(f"[red]Error: Could not resolve {root}{reason}[/red]")
        raise typer.Exit(code=1)

    graph = build_from_tree(tree)
    graph_filter = GraphFilter(cve_only, min_risk, max_level)
    if not graph_filter.is_empty():
        graph = graph_filter.apply(graph)
        console.print(
            f"[cyan]Filtered to {len(graph.nodes)} of {len(tree.nodes)} packages[/cyan]"
        )

    display_graph(graph, tree)
    display_summary(graph, tree)

    if output is not None:
        export(tree if tree_output else graph, output)
        console.print(f"[green]Exported to: {output}[/green]")


if __name__ == "__main__":
    app()
