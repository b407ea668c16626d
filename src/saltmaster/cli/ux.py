"""
Console output helpers.

- Respects NO_COLOR and FORCE_COLOR environment variables
- Falls back to plain text when stdout is not a TTY
"""

from __future__ import annotations

import os

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

SALTMASTER_THEME = Theme(
    {
        "info": "#88C0D0",
        "success": "#A3BE8C",
        "warning": "#EBCB8B",
        "error": "#BF616A bold",
        "muted": "#D8DEE9",
    }
)

console = Console(
    theme=SALTMASTER_THEME,
    force_terminal=os.environ.get("FORCE_COLOR") is not None,
    no_color=os.environ.get("NO_COLOR") is not None,
)


def success(message: str) -> None:
    console.print(f"[success]✓[/success] {message}")


def warning(message: str) -> None:
    console.print(f"[warning]⚠[/warning] {message}")


def outputs_table(outputs: dict[str, str]) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Output")
    table.add_column("Value")
    for name in sorted(outputs):
        table.add_row(name, outputs[name])
    return table
