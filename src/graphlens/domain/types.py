"""Node, link, and layout classification enums.

These enums define the four node types, the four link types, the five
layout strategies, and the two path-finding modes.
"""

from __future__ import annotations

from enum import StrEnum


class NodeType(StrEnum):
    """Kinds of entity a graph node can represent."""

    FILE = "file"
    FOLDER = "folder"
    DATABASE = "database"
    TAG = "tag"


class LinkType(StrEnum):
    """Kinds of relationship a graph link can carry."""

    LINK = "link"
    BACKLINK = "backlink"
    TAG = "tag"
    PARENT = "parent"


class LayoutType(StrEnum):
    """Placement strategies understood by the layout engine."""

    FORCE = "force"
    HIERARCHICAL = "hierarchical"
    CIRCULAR = "circular"
    TIMELINE = "timeline"
    CLUSTER = "cluster"


class AccessLevel(StrEnum):
    """Sharing level recorded in node metadata."""

    PRIVATE = "private"
    SHARED = "shared"
    PUBLIC = "public"


class PathMode(StrEnum):
    """Path-finding modes.

    ``weighted`` runs Dijkstra over link costs; ``hops`` runs BFS and
    counts edges.
    """

    WEIGHTED = "weighted"
    HOPS = "hops"


class CommunityAlgorithm(StrEnum):
    """Deterministic community detection strategies."""

    LOUVAIN = "louvain"
    GREEDY_MODULARITY = "greedy_modularity"
    LABEL_PROPAGATION = "label_propagation"
