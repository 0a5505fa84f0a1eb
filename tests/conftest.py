"""Shared pytest fixtures and test helpers for graphlens tests."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from graphlens.config.settings import GraphlensSettings
from graphlens.domain.models import FileItem, GraphLink, GraphNode, GraphSnapshot, NodeMetadata
from graphlens.domain.types import AccessLevel, NodeType
from graphlens.engine.builder import build_graph
from graphlens.infrastructure.workspace import Workspace
from graphlens.services.telemetry import _current_span, disable_telemetry


def make_node(
    node_id: str,
    *,
    title: str | None = None,
    metadata: dict[str, object] | None = None,
    **kwargs: object,
) -> GraphNode:
    """Build a GraphNode; the id doubles as title unless one is given."""
    return GraphNode(
        id=node_id,
        title=title or node_id,
        metadata=NodeMetadata(**(metadata or {})),
        **kwargs,
    )


def make_link(source: str, target: str, strength: float = 1.0, **kwargs: object) -> GraphLink:
    return GraphLink(source=source, target=target, strength=strength, **kwargs)


def _ts(month: int, year: int = 2024) -> datetime:
    return datetime(year, month, 1, tzinfo=UTC)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def sample_files() -> list[FileItem]:
    """A small knowledge base.

    Projects (folder) contains Alpha and Beta. Alpha and Beta wikilink each
    other, Beta links Gamma, Gamma mentions Delta, Alpha and Gamma share
    the ``research`` tag. Reading List is an isolated database.
    """
    return [
        FileItem(id="folder-1", name="Projects", type=NodeType.FOLDER, updated_at=_ts(1)),
        FileItem(
            id="note-a",
            name="Alpha",
            content="Intro to [[Beta]]. #research",
            parent_id="folder-1",
            updated_at=_ts(2),
            collaborators=["ana"],
            access_level=AccessLevel.SHARED,
        ),
        FileItem(
            id="note-b",
            name="Beta",
            content="Follows [[Gamma]] and back to [[Alpha]]",
            parent_id="folder-1",
            updated_at=_ts(3),
        ),
        FileItem(
            id="note-c",
            name="Gamma",
            content="Ask @Delta about it",
            tags=["research"],
            updated_at=_ts(4),
        ),
        FileItem(id="note-d", name="Delta", content="", updated_at=_ts(5)),
        FileItem(
            id="db-1",
            name="Reading List",
            type=NodeType.DATABASE,
            tags=["books"],
            created_at=_ts(12, 2023),
        ),
    ]


@pytest.fixture
def snapshot(sample_files: list[FileItem]) -> GraphSnapshot:
    return build_graph(sample_files)


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> GraphlensSettings:
    """Default settings, isolated from any graphlens.toml on the host."""
    monkeypatch.delenv("GRAPHLENS_CONFIG", raising=False)
    return GraphlensSettings.from_cli(start=tmp_path)


@pytest.fixture
def workspace(
    sample_files: list[FileItem], settings: GraphlensSettings
) -> Generator[Workspace]:
    ws = Workspace(sample_files, settings)
    try:
        yield ws
    finally:
        ws.close()


@pytest.fixture
def graph_file(sample_files: list[FileItem], tmp_path: Path) -> Path:
    """The sample collection written as camelCase JSON."""
    path = tmp_path / "vault.json"
    records = [f.model_dump(mode="json", by_alias=True) for f in sample_files]
    path.write_text(json.dumps({"files": records}), encoding="utf-8")
    return path


@pytest.fixture
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run the CLI from an empty temp directory with no config env var.

    Use via ``@pytest.mark.usefixtures("_isolated_cwd")`` on command test
    classes.
    """
    monkeypatch.delenv("GRAPHLENS_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """``--verbose`` enables telemetry for the calling thread; switch it back off."""
    yield
    disable_telemetry()
    _current_span.set(None)


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Generator[None]:
    """CLI invocations reconfigure logging; put the root logger back afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    logging.getLogger("graphlens").setLevel(logging.NOTSET)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
