"""Shared Click options for commands that read a graph file.

``filter_options`` and ``layout_options`` attach flags that override the
``[filters]`` and ``[layout]`` config sections; ``build_filters`` and
``build_layout`` fold the supplied flags over those sections.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import click
from pydantic import BaseModel, ValidationError

from graphlens.domain.models import DateRange, GraphFilters, LayoutSettings, WordCountRange
from graphlens.domain.types import AccessLevel, NodeType

graph_file = click.argument(
    "graph_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)

# Model field -> the flag that sets it, for error messages.
_FIELD_FLAGS = {
    "search_query": "--search",
    "node_types": "--type",
    "tags": "--tag",
    "min_connections": "--min-connections",
    "collaborators": "--collaborator",
    "access_levels": "--access",
    "word_count_range": "--min-words / --max-words",
    "date_range": "--since / --until",
    "focus_node": "--focus",
    "focus_depth": "--depth",
    "type": "--layout",
    "width": "--width",
    "height": "--height",
    "seed": "--seed",
}


def _validate_flags[M: BaseModel](model: type[M], values: dict[str, Any]) -> M:
    """Build *model* from merged flag values; bad values become usage errors."""
    try:
        return model.model_validate(values)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else ""
        hint = _FIELD_FLAGS.get(field, f"--{field.replace('_', '-')}")
        raise click.BadParameter(error["msg"], param_hint=hint) from None


def filter_options[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """Apply visibility filter flags to a subcommand."""
    func = click.option("--depth", "focus_depth", type=int, default=None, help="Focus radius.")(
        func
    )
    func = click.option("--focus", "focus_node", default=None, help="Only show around NODE_ID.")(
        func
    )
    func = click.option("--max-words", type=int, default=None, help="Maximum word count.")(func)
    func = click.option("--min-words", type=int, default=None, help="Minimum word count.")(func)
    func = click.option(
        "--access",
        "access_levels",
        multiple=True,
        type=click.Choice([a.value for a in AccessLevel]),
        help="Allowed access level (repeatable).",
    )(func)
    func = click.option(
        "--collaborator", "collaborators", multiple=True, help="Collaborator (repeatable)."
    )(func)
    func = click.option(
        "--until", type=click.DateTime(), default=None, help="Modified on or before."
    )(func)
    func = click.option(
        "--since", type=click.DateTime(), default=None, help="Modified on or after."
    )(func)
    func = click.option(
        "--hide-orphans", is_flag=True, default=False, help="Hide nodes without links."
    )(func)
    func = click.option(
        "--min-connections", type=int, default=None, help="Minimum visible degree."
    )(func)
    func = click.option("--tag", "tags", multiple=True, help="Required tag (repeatable).")(func)
    func = click.option(
        "--type",
        "node_types",
        multiple=True,
        type=click.Choice([t.value for t in NodeType]),
        help="Allowed node type (repeatable).",
    )(func)
    func = click.option("--search", "search_query", default=None, help="Text search.")(func)
    return func


def build_filters(base: GraphFilters, **flags: Any) -> GraphFilters:
    """Fold supplied filter flags over *base*; unset flags keep base values."""
    update: dict[str, Any] = {}
    for key in ("search_query", "min_connections", "focus_node", "focus_depth"):
        if flags.get(key) is not None:
            update[key] = flags[key]
    if flags.get("hide_orphans"):
        update["show_orphans"] = False
    if flags.get("node_types"):
        update["node_types"] = [NodeType(t) for t in flags["node_types"]]
    if flags.get("tags"):
        update["tags"] = list(flags["tags"])
    if flags.get("collaborators"):
        update["collaborators"] = list(flags["collaborators"])
    if flags.get("access_levels"):
        update["access_levels"] = [AccessLevel(a) for a in flags["access_levels"]]

    since: datetime | None = flags.get("since")
    until: datetime | None = flags.get("until")
    if since is not None or until is not None:
        update["date_range"] = DateRange(start=since, end=until)

    min_words: int | None = flags.get("min_words")
    max_words: int | None = flags.get("max_words")
    if min_words is not None or max_words is not None:
        update["word_count_range"] = WordCountRange(min=min_words or 0, max=max_words)

    if not update:
        return base
    return _validate_flags(GraphFilters, {**base.model_dump(), **update})


def layout_options[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """Apply layout flags to a subcommand."""
    func = click.option(
        "--pin",
        "pins",
        multiple=True,
        metavar="ID=X,Y",
        help="Pin a node at a fixed position (repeatable).",
    )(func)
    func = click.option("--no-physics", is_flag=True, default=False, help="Skip simulation.")(
        func
    )
    func = click.option("--seed", type=int, default=None, help="Random seed.")(func)
    func = click.option("--height", type=float, default=None, help="Viewport height.")(func)
    func = click.option("--width", type=float, default=None, help="Viewport width.")(func)
    func = click.option(
        "--layout",
        "layout_type",
        default=None,
        help="force, hierarchical, circular, timeline, or cluster.",
    )(func)
    return func


def build_layout(base: LayoutSettings, **flags: Any) -> LayoutSettings:
    """Fold supplied layout flags over *base*."""
    update: dict[str, Any] = {}
    if flags.get("layout_type") is not None:
        update["type"] = flags["layout_type"]
    for key in ("width", "height", "seed"):
        if flags.get(key) is not None:
            update[key] = flags[key]
    if flags.get("no_physics"):
        update["physics"] = False
    if not update:
        return base
    return _validate_flags(LayoutSettings, {**base.model_dump(), **update})


def parse_pin(value: str) -> tuple[str, float, float]:
    """Parse ``ID=X,Y`` into ``(id, x, y)``."""
    node_id, sep, coords = value.rpartition("=")
    try:
        if not sep or not node_id:
            raise ValueError(value)
        x_text, y_text = coords.split(",")
        return node_id, float(x_text), float(y_text)
    except ValueError:
        msg = f"Invalid pin '{value}', expected ID=X,Y"
        raise click.BadParameter(msg, param_hint="--pin") from None
