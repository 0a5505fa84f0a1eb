"""Command: list loaded layout plugins."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from graphlens.commands._base import GraphlensCommand
from graphlens.services.result import ServiceResult

if TYPE_CHECKING:
    from graphlens.commands._context import AppContext


@click.command(
    cls=GraphlensCommand,
    examples="""\
  graphlens plugins
  graphlens plugins --no-builtins
  graphlens --json plugins"""
)
@click.option("--no-builtins", is_flag=True, help="Only list entry-point plugins.")
@click.pass_obj
def plugins(app: AppContext, no_builtins: bool) -> None:
    """List registered plugins and whether a physics provider is active."""
    from graphlens.plugins.manager import PluginManager

    manager = PluginManager()
    manager.discover_and_load(builtins=not no_builtins)
    names = manager.list_plugin_names()
    app.emit(
        ServiceResult(
            ok=True,
            op="plugins",
            data={"count": len(names), "plugins": names, "physics": manager.has_physics},
        )
    )
