"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from graphlens.output.console import create_console, get_output, style_for_type

if TYPE_CHECKING:
    from rich.console import Console

    from graphlens.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op}: {msg}"

    if result.op == "path":
        return " ".join(result.data.get("path", []))

    items = result.data.get("nodes") or result.data.get("communities")
    if items and isinstance(items, list):
        return "\n".join(_extract_id(item) for item in items if _extract_id(item))

    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_id(item: Any) -> str:
    if isinstance(item, dict):
        val = item.get("id")
        if val is not None:
            return str(val)
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="gl.ok")
    op = Text(f"  {result.op}", style="gl.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="gl.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="gl.id")
    elif isinstance(value, float):
        v = Text(f"{value:.4f}", style="gl.metric")
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += "  (" + ", ".join(f"{ak}={av}" for ak, av in annotations.items()) + ")"

    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _node_table(
    nodes: list[dict[str, Any]],
    *,
    positions: bool = False,
    verbose: bool = False,
) -> Table:
    """Build a Rich Table for a list of node records."""
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="gl.id", no_wrap=True)
    table.add_column("Title", style="gl.title")
    table.add_column("Type")
    table.add_column("Links", justify="right")
    if positions:
        table.add_column("X", justify="right")
        table.add_column("Y", justify="right")
    if verbose:
        table.add_column("Tags", style="dim")

    for node in nodes:
        node_type = str(node.get("type", ""))
        style = style_for_type(node_type)
        row: list[str | Text] = [
            str(node.get("id", "")),
            str(node.get("title", "")),
            Text(node_type, style=style),
            str(len(node.get("connections", []))),
        ]
        if positions:
            row.append(_coord(node.get("x")))
            row.append(_coord(node.get("y")))
        if verbose:
            row.append(", ".join(node.get("metadata", {}).get("tags", [])))
        table.add_row(*row)

    return table


def _coord(value: Any) -> str:
    return f"{float(value):.1f}" if isinstance(value, (int, float)) else "-"


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="gl.error")
    op = Text(f"  {result.op}", style="gl.op")
    console.print(label, op, Text(": "), msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Graph renderers ───────────────────────────────────────────────────


def _render_filter(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render the visible subgraph as a node table."""
    d = result.data
    nodes = d.get("nodes", [])
    if nodes:
        console.print(_node_table(nodes, verbose=verbose))
    console.print(
        f"{d.get('node_count', len(nodes))} nodes, {d.get('link_count', 0)} links"
        f" ({d.get('hidden_count', 0)} hidden)"
    )
    if verbose:
        _render_meta(console, result)


def _render_layout(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render node positions for a layout run."""
    d = result.data
    nodes = d.get("nodes", [])
    if nodes:
        console.print(_node_table(nodes, positions=True, verbose=verbose))
    console.print(
        f"[gl.op]{d.get('layout', '?')}[/gl.op] layout, "
        f"{d.get('node_count', len(nodes))} nodes in {d.get('width')}x{d.get('height')}"
    )
    if verbose:
        _render_meta(console, result)


def _render_analyze(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render network metrics and top nodes."""
    d = result.data
    _status_line(console, result)
    for key in (
        "node_count",
        "link_count",
        "density",
        "clustering",
        "average_degree",
        "average_path_length",
        "diameter",
        "modularity",
    ):
        if key in d:
            _field(console, key, d[key])
    _field(console, "communities", len(d.get("communities", [])))

    combined = d.get("centrality", {}).get("combined", {})
    central = d.get("central_nodes", [])
    if central:
        console.print()
        table = Table(show_header=True, pad_edge=False, title="Central nodes")
        table.add_column("ID", style="gl.id", no_wrap=True)
        table.add_column("Importance", style="gl.metric", justify="right")
        for nid in central:
            table.add_row(nid, f"{combined.get(nid, 0.0):.4f}")
        console.print(table)

    for key in ("bridge_nodes", "isolated_nodes"):
        if d.get(key):
            _field(console, key, ", ".join(d[key]))
    if verbose:
        _render_meta(console, result)


def _render_communities(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    """Render community detection results."""
    communities = result.data.get("communities", [])
    algorithm = result.data.get("algorithm", "")
    console.print(
        f"[bold]{result.data.get('count', len(communities))} communities[/bold]"
        + (f" ({algorithm})" if algorithm else "")
    )

    for community in communities:
        cid = community.get("id", "?")
        size = community.get("size", 0)
        density = community.get("density", 0.0)
        console.print(f"\n[bold]{cid}[/bold] ({size} members, density {density:.2f})")
        if community.get("main_tags"):
            console.print(f"  tags: {', '.join(community['main_tags'])}")
        titles = community.get("titles", [])
        for index, mid in enumerate(community.get("members", [])):
            title = titles[index] if index < len(titles) else ""
            console.print(f"  [gl.id]{mid}[/gl.id]  {title}")
    if verbose:
        _render_meta(console, result)


def _render_path(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render a path as a chain."""
    d = result.data
    steps = d.get("steps", [])

    if not steps:
        console.print("No path found.")
        return

    chain_parts: list[str] = []
    for step in steps:
        sid = step.get("id", "?")
        title = step.get("title", "Untitled")
        chain_parts.append(f"[gl.id]{sid}[/gl.id] ({title})")

    console.print(" → ".join(chain_parts))
    console.print(
        f"\nHops: {d.get('hops', 0)}  Distance: {d.get('distance', 0.0):.4f}  "
        f"Mode: {d.get('mode', '')}"
    )
    if verbose:
        _render_meta(console, result)


def _render_all_paths(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render enumerated simple paths ordered by hops then weight."""
    d = result.data
    paths = d.get("paths", [])
    table = Table(show_header=True, pad_edge=False)
    table.add_column("#", justify="right")
    table.add_column("Path", style="gl.id")
    table.add_column("Hops", justify="right")
    table.add_column("Weight", style="gl.metric", justify="right")
    for index, path in enumerate(paths, start=1):
        table.add_row(
            str(index),
            " → ".join(path.get("path", [])),
            str(path.get("hops", 0)),
            f"{path.get('total_weight', 0.0):.4f}",
        )
    console.print(table)
    console.print(f"{d.get('count', len(paths))} paths within {d.get('max_depth')} hops")
    if verbose:
        _render_meta(console, result)


def _render_mutation(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render pin/unpin results."""
    _status_line(console, result)
    for key in ("id", "x", "y"):
        if key in result.data:
            _field(console, key, result.data[key])
    if verbose:
        _render_meta(console, result)


def _render_export(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render export results with counts and written files."""
    _status_line(console, result)
    d = result.data
    for key in ("format", "output_file", "output_dir", "node_count", "link_count"):
        if key in d:
            _field(console, key, d[key])
    written = d.get("written", [])
    if written:
        _field(console, "files_written", len(written))
        for path in written:
            console.print(f"    {path}")
    elif verbose:
        for name in d.get("files", {}):
            console.print(f"    {name}")
    if verbose:
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "filter": _render_filter,
    "layout": _render_layout,
    "analyze": _render_analyze,
    "communities": _render_communities,
    "path": _render_path,
    "all_paths": _render_all_paths,
    "pin": _render_mutation,
    "unpin": _render_mutation,
    "export_graph": _render_export,
}
