"""Command group: graph filtering, layout, and analysis."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import click

from graphlens.commands._base import GraphlensGroup
from graphlens.commands._options import (
    build_filters,
    build_layout,
    filter_options,
    graph_file,
    layout_options,
    parse_pin,
)
from graphlens.domain.types import CommunityAlgorithm, PathMode
from graphlens.services.graph import GraphService

if TYPE_CHECKING:
    from pathlib import Path

    from graphlens.commands._context import AppContext

_GRAPH_EXAMPLES = """\
  graphlens graph filter vault.json --type file --tag research
  graphlens graph layout vault.json --layout circular
  graphlens graph analyze vault.json
  graphlens graph communities vault.json --algorithm greedy_modularity
  graphlens graph path vault.json note-a note-c --mode hops
  graphlens --json graph path vault.json note-a note-c --all --max-depth 4"""


@click.group(cls=GraphlensGroup, examples=_GRAPH_EXAMPLES)
@click.pass_obj
def graph(app: AppContext) -> None:
    """Filter, lay out, and analyze a knowledge graph."""


@graph.command(
    "filter",
    examples="""\
  graphlens graph filter vault.json --search roadmap
  graphlens graph filter vault.json --min-connections 1 --hide-orphans
  graphlens graph filter vault.json --focus note-a --depth 1
  graphlens -q graph filter vault.json --since 2024-01-01""",
)
@graph_file
@filter_options
@click.pass_obj
def filter_cmd(app: AppContext, graph_file: Path, **flags: Any) -> None:
    """Show the nodes and links that pass the visibility filters."""
    workspace = app.load_workspace(graph_file, "filter")
    filters = build_filters(app.settings.filters, **flags)
    app.emit(GraphService(workspace).filter(filters))


@graph.command(
    examples="""\
  graphlens graph layout vault.json
  graphlens graph layout vault.json --layout hierarchical --width 1200 --height 800
  graphlens graph layout vault.json --pin note-a=100,100
  graphlens --json graph layout vault.json --layout timeline"""
)
@graph_file
@layout_options
@filter_options
@click.pass_obj
def layout(
    app: AppContext,
    graph_file: Path,
    layout_type: str | None,
    width: float | None,
    height: float | None,
    seed: int | None,
    no_physics: bool,
    pins: tuple[str, ...],
    **flags: Any,
) -> None:
    """Compute node positions with the chosen layout."""
    parsed = [parse_pin(p) for p in pins]
    workspace = app.load_workspace(graph_file, "layout")
    service = GraphService(workspace)
    for node_id, x, y in parsed:
        pinned = service.pin(node_id, x, y)
        if not pinned.ok:
            app.emit(pinned)

    settings = build_layout(
        app.settings.layout,
        layout_type=layout_type,
        width=width,
        height=height,
        seed=seed,
        no_physics=no_physics,
    )
    app.emit(service.layout(settings, build_filters(app.settings.filters, **flags)))


@graph.command(
    examples="""\
  graphlens graph analyze vault.json
  graphlens graph analyze vault.json --type file --hide-orphans
  graphlens --json graph analyze vault.json --nodes"""
)
@graph_file
@click.option("--nodes", "include_nodes", is_flag=True, help="Include annotated nodes.")
@filter_options
@click.pass_obj
def analyze(app: AppContext, graph_file: Path, include_nodes: bool, **flags: Any) -> None:
    """Compute density, clustering, centrality, and communities."""
    workspace = app.load_workspace(graph_file, "analyze")
    filters = build_filters(app.settings.filters, **flags)
    app.emit(GraphService(workspace).analyze(filters, include_nodes=include_nodes))


@graph.command(
    examples="""\
  graphlens graph communities vault.json
  graphlens graph communities vault.json --algorithm label_propagation
  graphlens -q graph communities vault.json"""
)
@graph_file
@click.option(
    "--algorithm",
    type=click.Choice([a.value for a in CommunityAlgorithm]),
    default=None,
    help="Community detection algorithm.",
)
@click.option("--resolution", type=float, default=None, help="Louvain resolution.")
@filter_options
@click.pass_obj
def communities(
    app: AppContext,
    graph_file: Path,
    algorithm: str | None,
    resolution: float | None,
    **flags: Any,
) -> None:
    """Detect communities of densely connected nodes."""
    update: dict[str, Any] = {}
    if algorithm is not None:
        update["community_algorithm"] = CommunityAlgorithm(algorithm)
    if resolution is not None:
        update["resolution"] = resolution
    if update:
        app.settings = app.settings.model_copy(
            update={"analytics": app.settings.analytics.model_copy(update=update)}
        )
    workspace = app.load_workspace(graph_file, "communities")
    filters = build_filters(app.settings.filters, **flags)
    app.emit(GraphService(workspace).communities(filters))


@graph.command(
    examples="""\
  graphlens graph path vault.json note-a note-c
  graphlens graph path vault.json note-a note-c --mode hops
  graphlens graph path vault.json note-a note-c --all --max-depth 3 --limit 5"""
)
@graph_file
@click.argument("source_id")
@click.argument("target_id")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in PathMode]),
    default=None,
    help="weighted (Dijkstra over link cost) or hops (fewest links).",
)
@click.option("--all", "all_paths", is_flag=True, help="Enumerate all simple paths.")
@click.option("--max-depth", type=int, default=None, help="Hop limit for --all.")
@click.option("--limit", type=int, default=None, help="Max paths for --all.")
@filter_options
@click.pass_obj
def path(
    app: AppContext,
    graph_file: Path,
    source_id: str,
    target_id: str,
    mode: str | None,
    all_paths: bool,
    max_depth: int | None,
    limit: int | None,
    **flags: Any,
) -> None:
    """Find the best path between two nodes."""
    workspace = app.load_workspace(graph_file, "path")
    filters = build_filters(app.settings.filters, **flags)
    service = GraphService(workspace)
    if all_paths:
        app.emit(
            service.all_paths(
                source_id, target_id, max_depth=max_depth, limit=limit, filters=filters
            )
        )
        return
    app.emit(
        service.path(
            source_id,
            target_id,
            mode=PathMode(mode) if mode else None,
            filters=filters,
        )
    )
