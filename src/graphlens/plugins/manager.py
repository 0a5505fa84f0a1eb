"""Plugin discovery and loading.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints
from the ``graphlens.plugins`` group, plus the built-in providers.
Capabilities: physics simulation for the ``force`` layout.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING

import pluggy

from graphlens.plugins.hookspecs import GraphlensHookSpec

if TYPE_CHECKING:
    from graphlens.domain.models import GraphLink, GraphNode, LayoutSettings, Position

PROJECT_NAME = "graphlens"
ENTRY_POINT_GROUP = "graphlens.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and hook dispatch."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(GraphlensHookSpec)
        self._loaded: bool = False

    def discover_and_load(self, *, builtins: bool = True) -> list[str]:
        """Register the built-in providers, then entry-point plugins.

        Built-in hook implementations are marked ``trylast`` so any
        installed provider answers ``firstresult`` hooks before them.

        Returns a list of loaded plugin names.
        """
        if builtins:
            self.register_builtins()
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        self._loaded = True
        return self.list_plugin_names()

    def register_builtins(self) -> None:
        """Register the bundled physics provider."""
        from graphlens.plugins.builtins.spring import SpringPhysics

        if self._pm.get_plugin("spring") is None:
            self.register_plugin(SpringPhysics(), name="spring")

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly (e.g. built-in plugins)."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        """Unregister a plugin instance."""
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        """Access the hook relay for dispatching events."""
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        """Return all registered plugins."""
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        """Return names of all registered plugins."""
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    @property
    def has_physics(self) -> bool:
        """Whether any registered plugin implements ``simulate_forces``."""
        return bool(self._pm.hook.simulate_forces.get_hookimpls())

    # ------------------------------------------------------------------
    # Hook dispatch
    # ------------------------------------------------------------------

    def simulate_forces(
        self,
        nodes: list[GraphNode],
        links: list[GraphLink],
        settings: LayoutSettings,
        pinned: dict[str, Position],
    ) -> dict[str, Position] | None:
        """Ask the physics providers for settled positions.

        A provider that raises is logged and treated as having deferred;
        the caller keeps its seeded positions.
        """
        try:
            return self._pm.hook.simulate_forces(
                nodes=nodes, links=links, settings=settings, pinned=pinned
            )
        except Exception:
            logger.warning("Physics provider failed; keeping seeded positions", exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Entry-point normalisation
    # ------------------------------------------------------------------

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly. Hook dispatch
        against class objects leaves ``self`` unbound and fails at runtime.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue
            if not self._has_hook_impls(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)

            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue

            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point plugin: %s", plugin_name)

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Check whether *cls* has any methods decorated with ``@hookimpl``.

        Pluggy's ``HookimplMarker("graphlens")`` sets a ``graphlens_impl``
        attribute on decorated methods.
        """
        for name in dir(cls):
            if name.startswith("_"):
                continue
            method = getattr(cls, name, None)
            if callable(method) and getattr(method, "graphlens_impl", None):
                return True
        return False
