"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides workspace loading and centralized result
emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from graphlens.output.formatters import OutputSettings, format_result
from graphlens.services.result import ErrorCode, ServiceResult

if TYPE_CHECKING:
    from pathlib import Path

    from graphlens.config.settings import GraphlensSettings
    from graphlens.infrastructure.workspace import Workspace


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``. Workspaces are loaded
    per command from a FileItem JSON file so ``--help`` and ``--version``
    never touch the filesystem.
    """

    def __init__(self, settings: GraphlensSettings) -> None:
        self.settings = settings
        self._workspace: Workspace | None = None

        from graphlens.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from graphlens.services.telemetry import enable_telemetry

            enable_telemetry()

    def load_workspace(self, path: Path, op: str) -> Workspace:
        """Load the FileItem collection at *path*.

        A load failure is emitted as an ``invalid_input`` error result,
        which exits with code 1.
        """
        from graphlens.config.logging import bind_graph_source
        from graphlens.infrastructure.workspace import Workspace, WorkspaceError

        bind_graph_source(path)
        try:
            self._workspace = Workspace.from_path(path, self.settings)
        except WorkspaceError as exc:
            self.emit(
                ServiceResult.failure(op, ErrorCode.INVALID_INPUT, str(exc), path=str(path))
            )
        assert self._workspace is not None
        return self._workspace

    def close(self) -> None:
        if self._workspace is not None:
            self._workspace.close()
            self._workspace = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
