"""Rich Console factory and theme for graphlens output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract. In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

GRAPHLENS_THEME = Theme(
    {
        "gl.ok": "bold green",
        "gl.error": "bold red",
        "gl.warning": "bold yellow",
        "gl.op": "bold cyan",
        "gl.key": "dim",
        "gl.id": "bold blue",
        "gl.title": "bold",
        "gl.metric": "magenta",
        "gl.type.file": "blue",
        "gl.type.folder": "yellow",
        "gl.type.database": "green",
        "gl.type.tag": "magenta",
    }
)

_TYPE_STYLES: dict[str, str] = {
    "file": "gl.type.file",
    "folder": "gl.type.folder",
    "database": "gl.type.database",
    "tag": "gl.type.tag",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=GRAPHLENS_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_type(node_type: str) -> str:
    """Return the Rich style name for a node type."""
    return _TYPE_STYLES.get(node_type, "")
