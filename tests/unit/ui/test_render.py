"""Unit tests for the CLI renderer."""

from __future__ import annotations

import io

import pytest

from arena_orchestrator.ui.render import CLIRenderer, create_renderer


class _FakeTerminal(io.StringIO):
    def isatty(self) -> bool:
        return True


def test_plain_output_has_no_escape_codes_and_no_markup() -> None:
    stream = io.StringIO()
    renderer = create_renderer(no_color=True, stream=stream)

    renderer.heading("Match abc")
    renderer.text("[bold]bots/a.py[/bold]")
    renderer.kv("Rounds played", 3)
    renderer.warning("client #1 (b.py) is still initializing")

    output = stream.getvalue()
    assert "\x1b[" not in output
    assert output.splitlines() == [
        "Match abc",
        "[bold]bots/a.py[/bold]",
        "Rounds played: 3",
        "  Warning: client #1 (b.py) is still initializing",
    ]


def test_table_lists_every_row() -> None:
    stream = io.StringIO()
    renderer = CLIRenderer(no_color=True, stream=stream)

    renderer.table(("#", "Competitor", "Points"), [(0, "a.py", 2), (1, "[b].py", 0)], title="Scores")

    output = stream.getvalue()
    assert "Scores" in output
    assert "Competitor" in output
    assert "a.py" in output
    assert "[b].py" in output
    assert "\x1b[" not in output


def test_empty_table_prints_nothing() -> None:
    stream = io.StringIO()
    CLIRenderer(no_color=True, stream=stream).table(("#",), [], title="Scores")
    assert stream.getvalue() == ""


def test_color_follows_terminal_and_no_color_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("NO_COLOR", raising=False)
    assert CLIRenderer(stream=_FakeTerminal()).color
    assert not CLIRenderer(stream=io.StringIO()).color
    assert not CLIRenderer(no_color=True, stream=_FakeTerminal()).color

    monkeypatch.setenv("NO_COLOR", "1")
    assert not CLIRenderer(stream=_FakeTerminal()).color
