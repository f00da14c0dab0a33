"""
histui.py - Shared console, theme and help rendering for histctl.

Every module prints through the consoles defined here. Components that print
take the console as an argument so tests can pass their own.
"""

from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

# ============================================================================
# CONFIGURATION & CONSTANTS
# ============================================================================

CUSTOM_THEME = Theme({
    "title": "bold #C678DD",
    "verb": "bold #98C379",
    "dim": "#5C6370",
    "info": "#61AFEF",
    "success": "#98C379",
    "warning": "#E5C07B",
    "error": "#E06C75",
})

console = Console(theme=CUSTOM_THEME, highlight=False, soft_wrap=True, emoji=False)
err_console = Console(stderr=True, theme=CUSTOM_THEME, highlight=False, soft_wrap=True, emoji=False)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

HelpPairs = Sequence[tuple[str, str]]


# ============================================================================
# HELP RENDERING
# ============================================================================


def print_help_pairs(out: Console, pairs: HelpPairs, other_pairs: HelpPairs = ()) -> None:
    """→ Prints an indented two-column table; widths are shared with `other_pairs`
    so consecutive tables line up."""
    width = max((len(name) for name, _ in [*pairs, *other_pairs]), default=0)

    table = Table.grid(padding=(0, 2), pad_edge=True)
    table.add_column(style="verb", min_width=width)
    table.add_column()
    for name, description in pairs:
        table.add_row(Text(name), Text(description))

    out.print(table)
    out.print()


def print_header(out: Console, version: str) -> None:
    out.print(f"[title]histctl[/title] v{version}")
    out.print("[dim]Inspect and edit the saved command history[/dim]")
    out.print()
