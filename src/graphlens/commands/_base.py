"""Click base classes for graphlens commands.

``GraphlensCommand`` and ``GraphlensGroup`` take an ``examples`` string.
``--examples`` prints it and exits. On a group the listing continues with
the examples of each subcommand, so ``graphlens graph --examples`` covers
the whole group. ``--help`` stays short and ends with a pointer to
``--examples``.
"""

from __future__ import annotations

from typing import Any

import click

EXAMPLES_HINT = "Run with --examples for usage examples."


def _echo_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    command = ctx.command
    click.echo(f"Examples for '{ctx.command_path}':\n")
    click.echo(getattr(command, "examples", None) or "")

    if isinstance(command, click.Group):
        for name in command.list_commands(ctx):
            sub = command.get_command(ctx, name)
            sub_examples = getattr(sub, "examples", None)
            if sub is None or sub.hidden or not sub_examples:
                continue
            click.echo(f"\n{ctx.command_path} {name}:")
            click.echo(sub_examples)
    ctx.exit(0)


def _examples_option() -> click.Option:
    return click.Option(
        ["--examples"],
        is_flag=True,
        expose_value=False,
        is_eager=True,
        callback=_echo_examples,
        help="Show usage examples.",
    )


def _write_hint(formatter: click.HelpFormatter) -> None:
    with formatter.indentation():
        formatter.write_paragraph()
        formatter.write_text(EXAMPLES_HINT)


class GraphlensCommand(click.Command):
    """Command with an optional ``--examples`` flag."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(_examples_option())

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        super().format_epilog(ctx, formatter)
        if self.examples:
            _write_hint(formatter)


class GraphlensGroup(click.Group):
    """Group with an optional ``--examples`` flag.

    Subcommands default to :class:`GraphlensCommand` and nested groups to
    :class:`GraphlensGroup`, so ``examples=`` works without ``cls=``.
    """

    command_class = GraphlensCommand
    group_class = type

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            self.params.append(_examples_option())

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        super().format_epilog(ctx, formatter)
        if self.examples:
            _write_hint(formatter)
