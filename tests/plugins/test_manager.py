"""Tests for PluginManager: discovery, registration, and hook relay."""

from __future__ import annotations

from typing import Any

import pytest

from graphlens.domain.models import LayoutSettings, Position
from graphlens.plugins.hookspecs import hookimpl
from graphlens.plugins.manager import PluginManager
from tests.conftest import make_node


class _CornerPhysics:
    """Puts every node in the top-left corner."""

    @hookimpl
    def simulate_forces(self, nodes, links, settings, pinned) -> dict[str, Position]:
        return {n.id: Position(x=0.0, y=0.0) for n in nodes}


class _DeferringPhysics:
    @hookimpl
    def simulate_forces(self, nodes, links, settings, pinned) -> None:
        return None


class _BrokenPhysics:
    @hookimpl
    def simulate_forces(self, nodes, links, settings, pinned) -> Any:
        raise RuntimeError("solver exploded")


def _simulate(pm: PluginManager) -> dict[str, Position] | None:
    nodes = [make_node("a", x=10.0, y=10.0), make_node("b", x=20.0, y=20.0)]
    return pm.simulate_forces(nodes=nodes, links=[], settings=LayoutSettings(), pinned={})


class TestPluginManager:
    def test_hook_relay_accessible(self) -> None:
        pm = PluginManager()
        assert hasattr(pm.hook, "simulate_forces")

    def test_register_plugin(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_CornerPhysics(), name="corner")
        assert "corner" in pm.list_plugin_names()
        assert pm.has_physics

    def test_register_plugin_default_name(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_CornerPhysics())
        assert "_CornerPhysics" in pm.list_plugin_names()

    def test_unregister_plugin(self) -> None:
        pm = PluginManager()
        plugin = _CornerPhysics()
        pm.register_plugin(plugin, name="corner")
        pm.unregister(plugin)
        assert "corner" not in pm.list_plugin_names()
        assert not pm.has_physics

    def test_register_builtins_once(self) -> None:
        pm = PluginManager()
        pm.register_builtins()
        pm.register_builtins()
        assert pm.list_plugin_names() == ["spring"]

    def test_no_providers_returns_none(self) -> None:
        assert _simulate(PluginManager()) is None


class TestDiscovery:
    def test_discover_registers_builtins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pm = PluginManager()
        monkeypatch.setattr(pm._pm, "load_setuptools_entrypoints", lambda group: 0)
        assert not pm.is_loaded
        names = pm.discover_and_load()
        assert names == ["spring"]
        assert pm.is_loaded

    def test_discover_without_builtins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pm = PluginManager()
        monkeypatch.setattr(pm._pm, "load_setuptools_entrypoints", lambda group: 0)
        assert pm.discover_and_load(builtins=False) == []
        assert not pm.has_physics

    def test_entry_point_classes_are_instantiated(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        pm = PluginManager()

        def fake_load(group: str) -> int:
            pm._pm.register(_CornerPhysics, name="corner")
            return 1

        monkeypatch.setattr(pm._pm, "load_setuptools_entrypoints", fake_load)
        pm.discover_and_load(builtins=False)
        (plugin,) = pm.get_plugins()
        assert isinstance(plugin, _CornerPhysics)
        assert _simulate(pm) == {"a": Position(x=0.0, y=0.0), "b": Position(x=0.0, y=0.0)}


class TestPhysicsDispatch:
    def test_installed_provider_beats_builtin(self) -> None:
        pm = PluginManager()
        pm.register_builtins()
        pm.register_plugin(_CornerPhysics(), name="corner")
        assert _simulate(pm) == {"a": Position(x=0.0, y=0.0), "b": Position(x=0.0, y=0.0)}

    def test_deferring_provider_falls_through(self) -> None:
        pm = PluginManager()
        pm.register_builtins()
        pm.register_plugin(_DeferringPhysics(), name="deferring")
        settled = _simulate(pm)
        assert settled is not None
        assert set(settled) == {"a", "b"}

    def test_failing_provider_returns_none(self, caplog: pytest.LogCaptureFixture) -> None:
        pm = PluginManager()
        pm.register_plugin(_BrokenPhysics(), name="broken")
        with caplog.at_level("WARNING", logger="graphlens.plugins.manager"):
            assert _simulate(pm) is None
        assert "Physics provider failed" in caplog.text
