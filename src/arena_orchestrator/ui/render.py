"""Output rendering for the ``arena`` CLI.

Purpose
- Provide a thin rendering layer for match progress and the final score table.
- Respect the NO_COLOR environment variable and the --no-color CLI flag.

Functional requirements
- Output never contains escape codes when color is disabled or stdout is not a
  terminal.
- User-supplied text (script paths) is printed verbatim, never parsed as markup.
"""

from __future__ import annotations

import os
import sys
from typing import IO, TYPE_CHECKING

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from collections.abc import Sequence


def _color_allowed(no_color_flag: bool, stream: IO[str] | None) -> bool:
    """Check whether color output should be attempted."""

    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    target = stream if stream is not None else sys.stdout
    return hasattr(target, "isatty") and target.isatty()


class CLIRenderer:
    """Thin CLI output renderer over a ``rich`` console.

    Produces plain, deterministic text unless color is allowed.
    """

    def __init__(
        self,
        *,
        no_color: bool = False,
        verbose: bool = False,
        stream: IO[str] | None = None,
    ) -> None:
        self.verbose = verbose
        self._color = _color_allowed(no_color, stream)
        self._console = Console(
            file=stream,
            color_system="auto" if self._color else None,
            highlight=False,
            emoji=False,
            soft_wrap=True,
        )

    @property
    def color(self) -> bool:
        return self._color

    def heading(self, text: str) -> None:
        """Print a heading line."""

        self._print(text, style="bold")

    def kv(self, key: str, value: object) -> None:
        """Print a key: value pair."""

        self._print(f"{key}: {value}")

    def text(self, line: str) -> None:
        """Print a plain text line."""

        self._print(line)

    def blank(self) -> None:
        """Print a blank line."""

        self._console.print()

    def section(self, title: str) -> None:
        """Print a section header with a preceding blank line."""

        self.blank()
        self._print(title, style="bold")

    def warning(self, text: str) -> None:
        """Print a warning message."""

        self._print(f"  Warning: {text}", style="yellow")

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[object]],
        *,
        title: str | None = None,
    ) -> None:
        """Print a table; nothing is printed when ``rows`` is empty."""

        if not rows:
            return
        if title:
            self.section(title)
        table = Table(
            box=box.SIMPLE_HEAD if self._color else box.ASCII2,
            show_edge=False,
            header_style="bold" if self._color else "",
        )
        for header in headers:
            table.add_column(Text(header))
        for row in rows:
            table.add_row(*(Text(str(cell)) for cell in row))
        self._console.print(table)

    def _print(self, text: str, *, style: str | None = None) -> None:
        self._console.print(text, style=style if self._color else None, markup=False)


def create_renderer(
    *,
    no_color: bool = False,
    verbose: bool = False,
    stream: IO[str] | None = None,
) -> CLIRenderer:
    """Create a CLI renderer with the given settings."""

    return CLIRenderer(no_color=no_color, verbose=verbose, stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]
