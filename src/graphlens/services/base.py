"""BaseService — abstract foundation for all graphlens services.

Every service receives a :class:`Workspace` at construction time. The
Workspace provides the snapshot, filter view, layout engine, and settings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from graphlens.domain.models import GraphFilters, GraphLink, GraphNode
    from graphlens.infrastructure.workspace import Workspace


class BaseService:
    """Abstract base for all service-layer classes.

    Usage::

        class GraphService(BaseService):
            def analyze(self, ...) -> ServiceResult:
                nodes, links = self._visible(filters)
                ...
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    def _visible(
        self, filters: GraphFilters | None = None
    ) -> tuple[list[GraphNode], list[GraphLink]]:
        return self._workspace.visible(filters)
