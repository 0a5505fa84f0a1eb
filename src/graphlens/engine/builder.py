"""Graph builder — derive nodes and links from a flat FileItem collection.

Links are produced in a fixed order (wikilinks, mentions, parent edges,
shared tags, tag hubs) and de-duplicated per unordered pair and type.
A later pass never overwrites an earlier link; a reciprocal wikilink
flips the existing link to ``bidirectional`` instead of adding a second
one.

INVARIANT: no self-links, no links to unknown targets.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from graphlens.config.models import BuilderConfig
from graphlens.domain.content import (
    count_words,
    extract_hashtags,
    extract_mentions,
    extract_wikilinks,
    merge_tags,
)
from graphlens.domain.models import (
    EPOCH,
    FileItem,
    GraphLink,
    GraphNode,
    GraphSnapshot,
    NodeMetadata,
)
from graphlens.domain.types import LinkType, NodeType
from graphlens.engine.network import attach_connections

logger = structlog.get_logger(__name__)

TAG_NODE_PREFIX = "tag:"
TAG_HUB_STRENGTH = 0.5
BASE_NODE_SIZE = 8.0

type _PairKey = tuple[frozenset[str], LinkType]


def node_size(connections: int, content_length: int) -> float:
    """Visual weight from connection count and content length."""
    return BASE_NODE_SIZE + min(connections * 2, 20) + min(content_length / 1000, 10)


def shared_tag_strength(shared: int) -> float:
    return min(0.7, 0.2 * shared)


class _Resolver:
    """Resolve wikilink/mention targets to file ids.

    Lookup order: exact id, then case-insensitive exact name. Mentions
    additionally fall back to the first name containing the token.
    """

    def __init__(self, files: Sequence[FileItem]) -> None:
        self._files = files
        self._ids = {f.id for f in files}
        self._by_name: dict[str, str] = {}
        for f in files:
            self._by_name.setdefault(f.name.lower(), f.id)

    def wikilink(self, target: str) -> str | None:
        if target in self._ids:
            return target
        return self._by_name.get(target.lower())

    def mention(self, token: str) -> str | None:
        exact = self.wikilink(token)
        if exact is not None:
            return exact
        needle = token.lower()
        for f in self._files:
            if needle in f.name.lower():
                return f.id
        return None


class _LinkSet:
    """Ordered link collection keyed by unordered pair and type."""

    def __init__(self) -> None:
        self.links: list[GraphLink] = []
        self._index: dict[_PairKey, int] = {}
        self._pairs: set[frozenset[str]] = set()

    def has(self, a: str, b: str, link_type: LinkType) -> bool:
        return (frozenset((a, b)), link_type) in self._index

    def connected(self, a: str, b: str) -> bool:
        return frozenset((a, b)) in self._pairs

    def add(self, source: str, target: str, link_type: LinkType, strength: float) -> bool:
        """Add a link unless one of this type already joins the pair."""
        if source == target:
            return False
        key = (frozenset((source, target)), link_type)
        existing = self._index.get(key)
        if existing is not None:
            link = self.links[existing]
            if link.type == LinkType.LINK and link.source == target and not link.bidirectional:
                self.links[existing] = link.model_copy(update={"bidirectional": True})
            return False
        self._index[key] = len(self.links)
        self._pairs.add(key[0])
        self.links.append(
            GraphLink(source=source, target=target, type=link_type, strength=strength)
        )
        return True


def build_graph(
    files: Sequence[FileItem],
    config: BuilderConfig | None = None,
) -> GraphSnapshot:
    """Build a :class:`GraphSnapshot` from *files*.

    Duplicate ids keep the first record. Node order follows the input
    order, with tag hub nodes (when enabled) appended at the end.
    """
    config = config or BuilderConfig()
    unique = _dedupe(files)
    by_id = {f.id: f for f in unique}
    resolver = _Resolver(unique)
    tags_by_id = {
        f.id: merge_tags(extract_hashtags(f.content), f.tags) for f in unique
    }

    link_set = _LinkSet()
    outgoing: dict[str, set[str]] = {f.id: set() for f in unique}
    incoming: dict[str, set[str]] = {f.id: set() for f in unique}

    # 1. wikilinks
    for f in unique:
        for wikilink in extract_wikilinks(f.content):
            target = resolver.wikilink(wikilink.target)
            if target is None or target == f.id:
                continue
            outgoing[f.id].add(target)
            incoming[target].add(f.id)
            link_set.add(f.id, target, LinkType.LINK, config.wikilink_strength)

    # 2. mentions
    if config.mention_links:
        for f in unique:
            for token in extract_mentions(f.content):
                target = resolver.mention(token)
                if target is None or target == f.id or link_set.has(f.id, target, LinkType.LINK):
                    continue
                link_set.add(f.id, target, LinkType.LINK, config.mention_strength)

    # 3. folder hierarchy
    for f in unique:
        if f.parent_id is not None and f.parent_id in by_id:
            link_set.add(f.parent_id, f.id, LinkType.PARENT, config.parent_strength)

    # 4. shared tags
    if config.shared_tag_links:
        for i, a in enumerate(unique):
            tags_a = set(tags_by_id[a.id])
            if not tags_a:
                continue
            for b in unique[i + 1 :]:
                shared = len(tags_a.intersection(tags_by_id[b.id]))
                if shared and not link_set.connected(a.id, b.id):
                    link_set.add(a.id, b.id, LinkType.TAG, shared_tag_strength(shared))

    nodes = [
        _file_node(
            f,
            tags=tags_by_id[f.id],
            path=_folder_path(f, by_id),
            connections=len(outgoing[f.id]) + len(incoming[f.id]),
        )
        for f in unique
    ]

    # 5. tag hubs
    if config.tag_nodes:
        nodes.extend(_tag_hubs(unique, tags_by_id, by_id, link_set))

    links = link_set.links
    nodes = attach_connections(nodes, links)
    logger.debug("builder.done", nodes=len(nodes), links=len(links))
    return GraphSnapshot(nodes=nodes, links=links)


def _dedupe(files: Sequence[FileItem]) -> list[FileItem]:
    seen: set[str] = set()
    unique: list[FileItem] = []
    for f in files:
        if f.id in seen:
            logger.warning("builder.duplicate_id", id=f.id)
            continue
        seen.add(f.id)
        unique.append(f)
    return unique


def _folder_path(f: FileItem, by_id: dict[str, FileItem]) -> str:
    """Ancestor names joined by ``/``, ending with the file's own name."""
    parts = [f.name]
    visited = {f.id}
    parent_id = f.parent_id
    while parent_id is not None and parent_id in by_id and parent_id not in visited:
        visited.add(parent_id)
        parent = by_id[parent_id]
        parts.append(parent.name)
        parent_id = parent.parent_id
    return "/".join(reversed(parts))


def _file_node(f: FileItem, *, tags: list[str], path: str, connections: int) -> GraphNode:
    return GraphNode(
        id=f.id,
        title=f.name,
        type=f.type,
        size=node_size(connections, len(f.content)),
        metadata=NodeMetadata(
            last_modified=f.updated_at or f.created_at or EPOCH,
            word_count=count_words(f.content),
            tags=tags,
            collaborators=list(f.collaborators),
            path=path,
            access_level=f.access_level,
            file_size=len(f.content),
        ),
    )


def _tag_hubs(
    files: Sequence[FileItem],
    tags_by_id: dict[str, list[str]],
    by_id: dict[str, FileItem],
    link_set: _LinkSet,
) -> list[GraphNode]:
    members: dict[str, list[str]] = {}
    for f in files:
        for tag in tags_by_id[f.id]:
            members.setdefault(tag, []).append(f.id)

    hubs: list[GraphNode] = []
    for tag, file_ids in members.items():
        hub_id = f"{TAG_NODE_PREFIX}{tag}"
        if hub_id in by_id:
            logger.warning("builder.tag_hub_collision", id=hub_id)
            continue
        for file_id in file_ids:
            link_set.add(file_id, hub_id, LinkType.TAG, TAG_HUB_STRENGTH)
        hubs.append(
            GraphNode(
                id=hub_id,
                title=f"#{tag}",
                type=NodeType.TAG,
                size=node_size(len(file_ids), 0),
                metadata=NodeMetadata(tags=[tag], path=hub_id),
            )
        )
    return hubs

