"""Subcommand modules for graphlens.

Provides register_commands() which uses deferred imports to keep
``graphlens --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register the command groups on the root CLI group."""
    from graphlens.commands.export import export
    from graphlens.commands.graph import graph
    from graphlens.commands.plugins import plugins

    cli.add_command(graph)
    cli.add_command(export)
    cli.add_command(plugins)
