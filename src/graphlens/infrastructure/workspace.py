"""Workspace — the single dependency injected into every service.

Owns the FileItem collection, the lazily built :class:`GraphSnapshot`,
the :class:`LayoutEngine` (and therefore the pin cache), the plugin
manager, and the background scheduler. ``regenerate()`` is the only way
to replace the collection: it invalidates the snapshot and clears pins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError

from graphlens.config.settings import GraphlensSettings
from graphlens.domain.models import FileItem, GraphFilters, GraphLink, GraphNode, LayoutSettings
from graphlens.engine.analytics import analyze
from graphlens.engine.builder import build_graph
from graphlens.engine.filters import filter_graph
from graphlens.engine.layout import LayoutEngine
from graphlens.engine.scheduler import ComputationScheduler
from graphlens.plugins.manager import PluginManager

if TYPE_CHECKING:
    from graphlens.domain.models import GraphSnapshot
    from graphlens.engine.scheduler import Ticket

logger = logging.getLogger(__name__)

_FILES_ADAPTER: TypeAdapter[list[FileItem]] = TypeAdapter(list[FileItem])


class WorkspaceError(Exception):
    """Raised when a FileItem collection cannot be loaded."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


def load_files(path: Path) -> list[FileItem]:
    """Read a FileItem collection from a JSON file.

    Accepts either a top-level array or an object with a ``files`` array.
    """
    try:
        raw: Any = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise WorkspaceError(f"Cannot read {path}: {exc}", path=path) from exc
    except json.JSONDecodeError as exc:
        raise WorkspaceError(f"Invalid JSON in {path}: {exc}", path=path) from exc

    if isinstance(raw, dict):
        raw = raw.get("files", [])
    try:
        return _FILES_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise WorkspaceError(
            f"Invalid file records in {path}: {exc.error_count()} error(s)", path=path
        ) from exc


class Workspace:
    """In-memory knowledge base view for one CLI invocation or session."""

    def __init__(
        self,
        files: Sequence[FileItem] = (),
        settings: GraphlensSettings | None = None,
        *,
        plugins: PluginManager | None = None,
        source: Path | None = None,
    ) -> None:
        self._settings = settings or GraphlensSettings()
        self._files: list[FileItem] = list(files)
        self._source = source
        self._snapshot: GraphSnapshot | None = None
        self._plugins = plugins
        self._layout_engine: LayoutEngine | None = None
        self._scheduler: ComputationScheduler | None = None

    @classmethod
    def from_path(cls, path: Path, settings: GraphlensSettings | None = None) -> Workspace:
        """Load a workspace from a FileItem JSON file."""
        files = load_files(path)
        logger.debug("Loaded %d file records from %s", len(files), path)
        return cls(files, settings, source=path)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def settings(self) -> GraphlensSettings:
        return self._settings

    @property
    def source(self) -> Path | None:
        return self._source

    @property
    def files(self) -> list[FileItem]:
        return list(self._files)

    @property
    def snapshot(self) -> GraphSnapshot:
        """The derived graph, built on first access."""
        if self._snapshot is None:
            self._snapshot = build_graph(self._files, self._settings.builder)
        return self._snapshot

    @property
    def plugins(self) -> PluginManager:
        """Plugin manager (discovers entry points lazily on first access)."""
        if self._plugins is None:
            self._plugins = PluginManager()
        if not self._plugins.is_loaded:
            self._plugins.discover_and_load()
        return self._plugins

    @property
    def layout_engine(self) -> LayoutEngine:
        if self._layout_engine is None:
            self._layout_engine = LayoutEngine(self.plugins)
        return self._layout_engine

    @property
    def scheduler(self) -> ComputationScheduler:
        if self._scheduler is None:
            self._scheduler = ComputationScheduler(
                max_workers=self._settings.scheduler.max_workers
            )
        return self._scheduler

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def regenerate(self, files: Sequence[FileItem]) -> None:
        """Replace the collection, drop the cached snapshot, and clear pins."""
        self._files = list(files)
        self._snapshot = None
        if self._layout_engine is not None:
            self._layout_engine.clear_pins()
        logger.debug("Workspace regenerated with %d file records", len(self._files))

    def invalidate(self) -> None:
        """Force the snapshot to be rebuilt on next access (pins survive)."""
        self._snapshot = None

    def close(self) -> None:
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

    def __enter__(self) -> Workspace:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def visible(
        self, filters: GraphFilters | None = None
    ) -> tuple[list[GraphNode], list[GraphLink]]:
        """Apply *filters* (default: the ``[filters]`` section) to the snapshot."""
        snapshot = self.snapshot
        return filter_graph(snapshot.nodes, snapshot.links, filters or self._settings.filters)

    # ------------------------------------------------------------------
    # Background computation
    # ------------------------------------------------------------------

    def submit_analysis(self, filters: GraphFilters | None = None) -> Ticket:
        """Run analytics on the visible graph in the background.

        A newer submission supersedes this one (last request wins).
        """
        nodes, links = self.visible(filters)
        config = self._settings.analytics
        return self.scheduler.submit(
            "analytics", lambda token: analyze(nodes, links, config, cancel=token)
        )

    def submit_layout(
        self,
        settings: LayoutSettings | None = None,
        filters: GraphFilters | None = None,
    ) -> Ticket:
        """Run a layout on the visible graph in the background."""
        nodes, links = self.visible(filters)
        layout_settings = settings or self._settings.layout
        engine = self.layout_engine
        return self.scheduler.submit(
            "layout", lambda token: engine.layout(nodes, links, layout_settings, cancel=token)
        )
