"""Tests for Rich Console factory and theme."""

from io import StringIO

from graphlens.output.console import (
    GRAPHLENS_THEME,
    create_console,
    get_output,
    style_for_type,
)


class TestCreateConsole:
    def test_returns_console_with_stringio(self) -> None:
        assert isinstance(create_console().file, StringIO)

    def test_no_color_disables_ansi(self) -> None:
        console = create_console(no_color=True)
        console.print("[bold red]hello[/bold red]")
        output = get_output(console)
        assert "\x1b" not in output
        assert "hello" in output

    def test_custom_width(self) -> None:
        assert create_console(width=80).width == 80

    def test_default_width(self) -> None:
        assert create_console().width == 120

    def test_theme_styles_resolve(self) -> None:
        console = create_console()
        console.print("[gl.ok]OK[/gl.ok] [gl.metric]0.4000[/gl.metric]")
        assert get_output(console).strip() == "OK 0.4000"


class TestTheme:
    def test_core_styles_present(self) -> None:
        for name in ("gl.ok", "gl.error", "gl.warning", "gl.op", "gl.id", "gl.metric"):
            assert name in GRAPHLENS_THEME.styles

    def test_style_for_type(self) -> None:
        assert style_for_type("file") == "gl.type.file"
        assert style_for_type("database") == "gl.type.database"
        assert style_for_type("unknown") == ""
