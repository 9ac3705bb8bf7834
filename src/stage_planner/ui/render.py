"""
stage-planner — human-readable CLI summaries.

File: src/stage_planner/ui/render.py
Last updated: 2026-10-17

Purpose
- Print run summaries (key/value facts, warnings, level and stage tables) with ``rich``.

Functional requirements
- Pipeline outputs never go through the renderer; they are written verbatim.
- Color is off when ``--no-color`` is given, ``NO_COLOR`` is set, or the
  target stream is not a terminal.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

from rich.console import Console
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from collections.abc import Sequence


class CLIRenderer:
    """Summary printer bound to one output stream."""

    def __init__(
        self,
        *,
        no_color: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        target = stream if stream is not None else sys.stdout
        plain = no_color or bool(os.environ.get("NO_COLOR")) or not _is_terminal(target)
        self._console = Console(file=target, no_color=plain, highlight=False, soft_wrap=True)

    def kv(self, key: str, value: object) -> None:
        line = Text(f"{key}: ", style="bold")
        line.append(str(value))
        self._console.print(line)

    def warning(self, message: str) -> None:
        self._console.print(Text(f"warning: {message}", style="yellow"))

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[object]],
        *,
        title: str | None = None,
    ) -> None:
        """Print ``rows`` under ``headers``; nothing at all when there are no rows."""
        if not rows:
            return
        if title:
            self._console.print()
            self._console.print(Text(title, style="bold"))
        grid = Table(box=None, show_edge=False, pad_edge=False, header_style="bold")
        for header in headers:
            grid.add_column(header, overflow="fold")
        for row in rows:
            grid.add_row(*(Text(str(cell)) for cell in row))
        self._console.print(grid)


def _is_terminal(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty is not None and isatty())


__all__ = ["CLIRenderer"]
