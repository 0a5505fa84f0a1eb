"""Pluggy hook specifications for graphlens extensions.

One hook today: ``simulate_forces``, the physics provider consulted by
the layout engine in ``force`` mode. The first non-None result wins.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from graphlens.domain.models import GraphLink, GraphNode, LayoutSettings, Position

hookspec = pluggy.HookspecMarker("graphlens")
hookimpl = pluggy.HookimplMarker("graphlens")


class GraphlensHookSpec:
    """Hook specifications for the graphlens plugin system."""

    @hookspec(firstresult=True)
    def simulate_forces(
        self,
        nodes: list[GraphNode],
        links: list[GraphLink],
        settings: LayoutSettings,
        pinned: dict[str, Position],
    ) -> dict[str, Position] | None:
        """Return settled positions keyed by node id, or None to defer.

        *nodes* arrive with seeded ``x``/``y``. Nodes in *pinned* must not
        move; providers may omit them from the result.
        """
