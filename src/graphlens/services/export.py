"""ExportService — serialise the visible graph as JSON, CSV, or GEXF.

Nodes are laid out (when positions are requested) and annotated with
analytics before serialisation, so every exporter sees the same fields.
Content is returned in ``data["files"]`` keyed by suggested file name;
single-file formats also expose it as ``data["content"]``.
"""

from __future__ import annotations

import csv
import io
import json
import xml.etree.ElementTree as ET
from datetime import UTC, datetime
from typing import Any

from graphlens import __version__
from graphlens.domain.models import GraphFilters, GraphLink, GraphNode, LayoutSettings
from graphlens.engine.analytics import analyze, annotate
from graphlens.services.base import BaseService
from graphlens.services.result import ErrorCode, ServiceResult
from graphlens.services.telemetry import trace_span, traced

EXPORT_FORMATS = ("json", "csv", "gexf")

GEXF_NS = "http://gexf.net/1.3"
VIZ_NS = "http://gexf.net/1.3/viz"

NODE_CSV_HEADERS = [
    "id",
    "title",
    "type",
    "x",
    "y",
    "tags",
    "connections",
    "community",
    "centrality",
    "betweenness",
]
LINK_CSV_HEADERS = ["source", "target", "type", "strength", "bidirectional"]


class ExportService(BaseService):
    """Export the visible graph in portable formats."""

    @traced
    def export_graph(
        self,
        *,
        fmt: str = "json",
        filters: GraphFilters | None = None,
        include_metadata: bool | None = None,
        include_positions: bool | None = None,
        layout: LayoutSettings | None = None,
    ) -> ServiceResult:
        """Export the visible graph.

        Formats:
        - ``json`` — ``{metadata, nodes, links, layout?}``
        - ``csv``  — ``nodes.csv`` and ``links.csv``, every field quoted
        - ``gexf`` — GEXF 1.3 with ``viz:position`` and edge weights
        """
        if fmt not in EXPORT_FORMATS:
            return ServiceResult.failure(
                "export_graph",
                ErrorCode.INVALID_FORMAT,
                f"Unknown graph format: {fmt}",
                format=fmt,
                valid=list(EXPORT_FORMATS),
            )

        config = self._workspace.settings.export
        metadata = config.include_metadata if include_metadata is None else include_metadata
        positions = config.include_positions if include_positions is None else include_positions

        layout = layout or self._workspace.settings.layout
        nodes, links = self._prepare(filters, layout if positions else None)
        exported_at = datetime.now(UTC)

        with trace_span(f"serialize_{fmt}"):
            if fmt == "json":
                files = {
                    "graph.json": to_json(
                        nodes,
                        links,
                        include_metadata=metadata,
                        include_positions=positions,
                        layout_type=layout.type,
                        version=config.format_version,
                        exported_at=exported_at,
                    )
                }
            elif fmt == "csv":
                nodes_csv, links_csv = to_csv(nodes, links)
                files = {"nodes.csv": nodes_csv, "links.csv": links_csv}
            else:
                files = {
                    "graph.gexf": to_gexf(
                        nodes, links, include_positions=positions, exported_at=exported_at
                    )
                }

        payload: dict[str, Any] = {
            "format": fmt,
            "node_count": len(nodes),
            "link_count": len(links),
            "files": files,
        }
        if len(files) == 1:
            payload["content"] = next(iter(files.values()))
        return ServiceResult(ok=True, op="export_graph", data=payload)

    def _prepare(
        self, filters: GraphFilters | None, layout: LayoutSettings | None
    ) -> tuple[list[GraphNode], list[GraphLink]]:
        nodes, links = self._visible(filters)
        if layout is not None:
            with trace_span("layout"):
                nodes = self._workspace.layout_engine.layout(nodes, links, layout)
        with trace_span("analyze"):
            analysis = analyze(nodes, links, self._workspace.settings.analytics)
        return annotate(nodes, analysis), links


# ── Serialisers ───────────────────────────────────────────────────────


def to_json(
    nodes: list[GraphNode],
    links: list[GraphLink],
    *,
    include_metadata: bool = True,
    include_positions: bool = True,
    layout_type: str = "force",
    version: str = "1.0",
    exported_at: datetime | None = None,
) -> str:
    exclude = None if include_metadata else {"metadata"}
    document: dict[str, Any] = {
        "metadata": {
            "export_date": (exported_at or datetime.now(UTC)).isoformat(),
            "version": version,
            "generator": f"graphlens {__version__}",
            "node_count": len(nodes),
            "link_count": len(links),
        },
        "nodes": [node.model_dump(mode="json", exclude=exclude) for node in nodes],
        "links": [link.model_dump(mode="json") for link in links],
    }
    if include_positions:
        document["layout"] = {
            "type": layout_type,
            "positions": {
                node.id: {"x": node.x or 0.0, "y": node.y or 0.0} for node in nodes
            },
        }
    return json.dumps(document, indent=2) + "\n"


def to_csv(nodes: list[GraphNode], links: list[GraphLink]) -> tuple[str, str]:
    """Return ``(nodes_csv, links_csv)`` with every field double-quoted."""
    node_buf = io.StringIO()
    writer = csv.writer(node_buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(NODE_CSV_HEADERS)
    for node in nodes:
        writer.writerow(
            [
                node.id,
                node.title,
                node.type.value,
                _cell(node.x),
                _cell(node.y),
                ";".join(node.metadata.tags),
                len(node.connections),
                _cell(node.community),
                _cell(node.centrality),
                _cell(node.betweenness),
            ]
        )

    link_buf = io.StringIO()
    writer = csv.writer(link_buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(LINK_CSV_HEADERS)
    for link in links:
        writer.writerow(
            [
                link.source,
                link.target,
                link.type.value,
                link.strength,
                "true" if link.bidirectional else "false",
            ]
        )
    return node_buf.getvalue(), link_buf.getvalue()


def to_gexf(
    nodes: list[GraphNode],
    links: list[GraphLink],
    *,
    include_positions: bool = True,
    exported_at: datetime | None = None,
) -> str:
    """Render a GEXF 1.3 document (undirected, static)."""
    ET.register_namespace("", GEXF_NS)
    ET.register_namespace("viz", VIZ_NS)

    def q(tag: str, ns: str = GEXF_NS) -> str:
        return f"{{{ns}}}{tag}"

    moment = exported_at or datetime.now(UTC)
    root = ET.Element(q("gexf"), {"version": "1.3"})
    meta = ET.SubElement(root, q("meta"), {"lastmodifieddate": moment.date().isoformat()})
    ET.SubElement(meta, q("creator")).text = f"graphlens {__version__}"
    ET.SubElement(meta, q("description")).text = "Knowledge graph export"

    graph = ET.SubElement(root, q("graph"), {"defaultedgetype": "undirected", "mode": "static"})
    attributes = ET.SubElement(graph, q("attributes"), {"class": "node"})
    ET.SubElement(attributes, q("attribute"), {"id": "0", "title": "type", "type": "string"})
    ET.SubElement(
        attributes, q("attribute"), {"id": "1", "title": "connections", "type": "integer"}
    )

    node_list = ET.SubElement(graph, q("nodes"))
    for node in nodes:
        element = ET.SubElement(node_list, q("node"), {"id": node.id, "label": node.title})
        attvalues = ET.SubElement(element, q("attvalues"))
        ET.SubElement(attvalues, q("attvalue"), {"for": "0", "value": node.type.value})
        ET.SubElement(
            attvalues, q("attvalue"), {"for": "1", "value": str(len(node.connections))}
        )
        if include_positions:
            ET.SubElement(
                element,
                q("position", VIZ_NS),
                {"x": str(node.x or 0.0), "y": str(node.y or 0.0), "z": "0.0"},
            )

    edge_list = ET.SubElement(graph, q("edges"))
    for index, link in enumerate(links):
        ET.SubElement(
            edge_list,
            q("edge"),
            {
                "id": str(index),
                "source": link.source,
                "target": link.target,
                "label": link.type.value,
                "weight": str(link.strength),
            },
        )

    ET.indent(root)
    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"


def _cell(value: object) -> object:
    return "" if value is None else value
