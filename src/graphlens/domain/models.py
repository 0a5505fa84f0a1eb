"""Graph data model — nodes, links, filters, layout settings, and results.

Every record is a frozen pydantic model. Engine stages never mutate their
inputs; they return fresh records via ``model_copy(update=...)``. Computed
fields (``cluster``, ``community``, centrality scores) are annotations and
can always be regenerated from the current node/link set.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import cached_property

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from graphlens.domain.types import AccessLevel, LinkType, NodeType, PathMode

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def as_utc(moment: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC so every comparison is aware-vs-aware."""
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=UTC)


# --- Input entities ---


class FileItem(BaseModel):
    """A file, folder, database, or tag record from the knowledge base.

    Accepts both snake_case and the camelCase keys used by the editor's
    storage layer (``parentId``, ``updatedAt``...).
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    type: NodeType = NodeType.FILE
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    parent_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    collaborators: list[str] = Field(default_factory=list)
    access_level: AccessLevel = AccessLevel.PRIVATE

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalize_tz(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)


# --- Graph records ---


class Position(BaseModel):
    """A 2D viewport coordinate."""

    model_config = {"frozen": True}

    x: float
    y: float


class Connection(BaseModel):
    """One derived adjacency entry on a node."""

    model_config = {"frozen": True}

    to: str
    type: LinkType
    strength: float


class NodeMetadata(BaseModel):
    """Descriptive metadata carried by a node."""

    model_config = {"frozen": True}

    last_modified: datetime = EPOCH
    word_count: int = 0
    tags: list[str] = Field(default_factory=list)
    collaborators: list[str] = Field(default_factory=list)
    path: str = ""
    access_level: AccessLevel = AccessLevel.PRIVATE
    file_size: int = 0

    @field_validator("last_modified")
    @classmethod
    def _normalize_tz(cls, v: datetime) -> datetime:
        return as_utc(v) or EPOCH


class GraphNode(BaseModel):
    """A graph vertex.

    ``x``/``y`` are owned by the layout engine. ``fx``/``fy`` are set when
    the position is pinned, either by a static layout or by the user.
    """

    model_config = {"frozen": True}

    id: str
    title: str
    type: NodeType = NodeType.FILE
    size: float = 8.0
    x: float | None = None
    y: float | None = None
    fx: float | None = None
    fy: float | None = None
    level: int | None = None
    connections: list[Connection] = Field(default_factory=list)
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)

    # Computed annotations
    cluster: str | None = None
    community: str | None = None
    centrality: int | None = None
    betweenness: float | None = None
    closeness: float | None = None
    clustering: float | None = None
    pagerank: float | None = None
    importance: float | None = None

    @property
    def position(self) -> Position | None:
        """Current placement, or None when the node has not been laid out."""
        if self.x is None or self.y is None:
            return None
        return Position(x=self.x, y=self.y)

    @property
    def is_pinned(self) -> bool:
        return self.fx is not None and self.fy is not None


class GraphLink(BaseModel):
    """An edge between two node ids."""

    model_config = {"frozen": True}

    source: str
    target: str
    type: LinkType = LinkType.LINK
    strength: float = Field(default=1.0, ge=0.0, le=1.0)
    bidirectional: bool = False

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

    def other(self, node_id: str) -> str:
        """Return the endpoint opposite *node_id*."""
        return self.target if self.source == node_id else self.source


# --- Filters and settings ---


class DateRange(BaseModel):
    """Inclusive modification-time window. Either bound may be omitted."""

    model_config = {"frozen": True}

    start: datetime | None = None
    end: datetime | None = None

    @field_validator("start", "end")
    @classmethod
    def _normalize_tz(cls, v: datetime | None) -> datetime | None:
        return as_utc(v)

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        return not (self.end is not None and moment > self.end)


class WordCountRange(BaseModel):
    """Inclusive word-count window."""

    model_config = {"frozen": True}

    min: int = 0
    max: int | None = None

    def contains(self, count: int) -> bool:
        if count < self.min:
            return False
        return self.max is None or count <= self.max


class GraphFilters(BaseModel):
    """Visibility predicate over the full node/link set.

    An empty ``node_types`` allow-list hides everything. An empty ``tags``
    allow-list disables tag filtering.
    """

    model_config = {"frozen": True}

    search_query: str = ""
    node_types: list[NodeType] = Field(default_factory=lambda: list(NodeType))
    min_connections: int = Field(default=0, ge=0)
    show_orphans: bool = True
    tags: list[str] = Field(default_factory=list)
    date_range: DateRange | None = None
    collaborators: list[str] = Field(default_factory=list)
    access_levels: list[AccessLevel] | None = None
    word_count_range: WordCountRange | None = None
    focus_node: str | None = None
    focus_depth: int = Field(default=2, ge=0)


class LayoutSettings(BaseModel):
    """Placement parameters consumed only by the layout engine.

    ``type`` is a plain string so unknown values can fall back to
    ``force`` instead of failing validation.
    """

    model_config = {"frozen": True}

    type: str = "force"
    physics: bool = True
    force_strength: float = 400.0
    link_distance: float = 120.0
    collision_radius: float = 23.0
    centering_strength: float = 0.05
    width: float = Field(default=800.0, gt=0)
    height: float = Field(default=600.0, gt=0)
    seed: int = 42
    iterations: int = Field(default=50, ge=1)
    timeline_jitter: float = Field(default=20.0, ge=0)


# --- Output value objects ---


class Community(BaseModel):
    """A detected group of densely inter-connected nodes."""

    model_config = {"frozen": True}

    id: str
    members: list[str]
    size: int
    density: float
    main_tags: list[str] = Field(default_factory=list)


class CentralityMetrics(BaseModel):
    """Per-node centrality scores keyed by node id."""

    model_config = {"frozen": True}

    degree: dict[str, int] = Field(default_factory=dict)
    betweenness: dict[str, float] = Field(default_factory=dict)
    closeness: dict[str, float] = Field(default_factory=dict)
    pagerank: dict[str, float] = Field(default_factory=dict)
    combined: dict[str, float] = Field(default_factory=dict)
    clustering: dict[str, float] = Field(default_factory=dict)


class PathResult(BaseModel):
    """Outcome of a path query.

    ``distance`` is the summed edge cost in weighted mode and the hop
    count in hops mode. ``total_weight`` is always the summed cost.
    """

    model_config = {"frozen": True}

    found: bool
    path: list[str] = Field(default_factory=list)
    distance: float = math.inf
    intermediate_nodes: list[str] = Field(default_factory=list)
    total_weight: float = math.inf
    hops: int = 0
    mode: PathMode = PathMode.WEIGHTED

    @classmethod
    def not_found(cls, mode: PathMode) -> PathResult:
        return cls(found=False, mode=mode)

    @classmethod
    def trivial(cls, node_id: str, mode: PathMode) -> PathResult:
        return cls(found=True, path=[node_id], distance=0.0, total_weight=0.0, mode=mode)


class NetworkAnalysis(BaseModel):
    """Structural metrics for one subgraph."""

    model_config = {"frozen": True}

    node_count: int = 0
    link_count: int = 0
    density: float = 0.0
    clustering: float = 0.0
    average_degree: float = 0.0
    average_path_length: float = 0.0
    diameter: int = 0
    modularity: float = 0.0
    centrality: CentralityMetrics = Field(default_factory=CentralityMetrics)
    communities: list[Community] = Field(default_factory=list)
    central_nodes: list[str] = Field(default_factory=list)
    bridge_nodes: list[str] = Field(default_factory=list)
    isolated_nodes: list[str] = Field(default_factory=list)


# --- Snapshot ---


@dataclass(frozen=True)
class GraphSnapshot:
    """An immutable pairing of nodes and the links between them.

    ``endpoints`` resolves a link to the node instances held in ``nodes``,
    never to copies.
    """

    nodes: list[GraphNode] = field(default_factory=list)
    links: list[GraphLink] = field(default_factory=list)

    @cached_property
    def node_map(self) -> dict[str, GraphNode]:
        return {node.id: node for node in self.nodes}

    def has_node(self, node_id: str) -> bool:
        return node_id in self.node_map

    def get(self, node_id: str) -> GraphNode | None:
        return self.node_map.get(node_id)

    def endpoints(self, link: GraphLink) -> tuple[GraphNode, GraphNode] | None:
        """Resolve *link* to its node objects, or None if either is missing."""
        source = self.node_map.get(link.source)
        target = self.node_map.get(link.target)
        if source is None or target is None:
            return None
        return source, target
