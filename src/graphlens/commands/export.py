"""Command group: graph export (json, csv, gexf)."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
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
from graphlens.services.result import ServiceResult

if TYPE_CHECKING:
    from graphlens.commands._context import AppContext

_EXPORT_EXAMPLES = """\
  graphlens export json vault.json --output graph.json
  graphlens export gexf vault.json --layout circular > graph.gexf
  graphlens export csv vault.json --output ./csv"""


@click.group(cls=GraphlensGroup, examples=_EXPORT_EXAMPLES)
@click.pass_obj
def export(app: AppContext) -> None:
    """Export the visible graph in portable formats."""


def _export_options[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """Apply the flags shared by every export format."""
    func = filter_options(func)
    func = layout_options(func)
    func = click.option("--no-positions", is_flag=True, help="Skip layout and omit positions.")(
        func
    )
    func = graph_file(func)
    return func


def _run_export(
    app: AppContext,
    fmt: str,
    *,
    graph_file: Path,
    output: str | None,
    no_positions: bool,
    layout_type: str | None,
    width: float | None,
    height: float | None,
    seed: int | None,
    no_physics: bool,
    pins: tuple[str, ...],
    include_metadata: bool | None = None,
    **flags: Any,
) -> None:
    from graphlens.services.export import ExportService
    from graphlens.services.graph import GraphService

    parsed = [parse_pin(p) for p in pins]
    workspace = app.load_workspace(graph_file, "export_graph")
    for node_id, x, y in parsed:
        pinned = GraphService(workspace).pin(node_id, x, y)
        if not pinned.ok:
            app.emit(pinned)

    result = ExportService(workspace).export_graph(
        fmt=fmt,
        filters=build_filters(app.settings.filters, **flags),
        include_metadata=include_metadata,
        include_positions=False if no_positions else None,
        layout=build_layout(
            app.settings.layout,
            layout_type=layout_type,
            width=width,
            height=height,
            seed=seed,
            no_physics=no_physics,
        ),
    )

    if not result.ok:
        app.emit(result)
        return

    summary: dict[str, Any] = {
        "format": fmt,
        "node_count": result.data["node_count"],
        "link_count": result.data["link_count"],
    }
    if fmt == "csv":
        assert output is not None
        out_dir = Path(output)
        out_dir.mkdir(parents=True, exist_ok=True)
        written: list[str] = []
        for name, text in result.data["files"].items():
            (out_dir / name).write_text(text, encoding="utf-8")
            written.append(str(out_dir / name))
        app.emit(
            ServiceResult(
                ok=True,
                op="export_graph",
                data={**summary, "output_dir": str(out_dir), "written": written},
            )
        )
    elif output:
        Path(output).write_text(result.data["content"], encoding="utf-8")
        app.emit(
            ServiceResult(ok=True, op="export_graph", data={**summary, "output_file": output})
        )
    else:
        # Pipe-friendly: raw content to stdout
        click.echo(result.data["content"], nl=False)


@export.command(
    "json",
    examples="""\
  graphlens export json vault.json
  graphlens export json vault.json --output graph.json --layout hierarchical
  graphlens export json vault.json --no-metadata --no-positions""",
)
@_export_options
@click.option("--output", default=None, help="Output file (default: stdout).")
@click.option("--no-metadata", is_flag=True, help="Omit node metadata.")
@click.pass_obj
def json_cmd(app: AppContext, output: str | None, no_metadata: bool, **kwargs: Any) -> None:
    """Export as a JSON document with metadata, nodes, links, and layout."""
    _run_export(
        app, "json", output=output, include_metadata=False if no_metadata else None, **kwargs
    )


@export.command(
    "csv",
    examples="""\
  graphlens export csv vault.json --output ./csv
  graphlens export csv vault.json --output ./csv --type file""",
)
@_export_options
@click.option("--output", required=True, help="Directory for nodes.csv and links.csv.")
@click.pass_obj
def csv_cmd(app: AppContext, output: str, **kwargs: Any) -> None:
    """Export as two CSV tables with every field quoted."""
    _run_export(app, "csv", output=output, **kwargs)


@export.command(
    "gexf",
    examples="""\
  graphlens export gexf vault.json --output graph.gexf
  graphlens export gexf vault.json --layout circular > graph.gexf""",
)
@_export_options
@click.option("--output", default=None, help="Output file (default: stdout).")
@click.pass_obj
def gexf_cmd(app: AppContext, output: str | None, **kwargs: Any) -> None:
    """Export as GEXF 1.3 for Gephi and similar tools."""
    _run_export(app, "gexf", output=output, **kwargs)
