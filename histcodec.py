"""
histcodec.py - Terminal-safe rendering of raw history lines.

History lines are bytes. When stdout is an interactive terminal each line is
decoded, control characters are shown in caret notation (0x01 -> ^A) and the
console writes it in its own encoding. When stdout is redirected the bytes are
passed through untouched so pipes and files get exactly what was stored.
"""

from __future__ import annotations

import re
import sys
from typing import BinaryIO

from rich.console import Console

CONTROL_RE = re.compile(r"[\x00-\x08\x0a-\x1f]")
ORDINAL_WIDTH = 5


def escape_control(text: str) -> str:
    """→ Replaces every control character except tab with its ^X form"""
    return CONTROL_RE.sub(lambda m: "^" + chr(ord(m.group()) + 0x40), text)


def display_text(text: str) -> str:
    """→ `text` with undecodable argv bytes (lone surrogates) shown as U+FFFD"""
    return text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")


def format_item(data: bytes, index: int | None = None) -> bytes:
    """→ Prefixes a right-aligned ordinal unless `index` is None (bare mode)"""
    if index is None:
        return data
    return f"{index:>{ORDINAL_WIDTH}}  ".encode("ascii") + data


class HistoryPrinter:
    """Writes history lines either through a rich console or as raw bytes."""

    def __init__(self, console: Console, raw_out: BinaryIO | None = None):
        self.console = console
        self._raw_out = raw_out

    @property
    def translate(self) -> bool:
        return self.console.is_terminal

    @property
    def raw_out(self) -> BinaryIO:
        return self._raw_out if self._raw_out is not None else sys.stdout.buffer

    def print_line(self, data: bytes) -> None:
        if self.translate:
            text = escape_control(data.decode("utf-8", errors="replace"))
            self.console.out(text, highlight=False)
        else:
            self.raw_out.write(data + b"\n")

    def flush(self) -> None:
        if not self.translate:
            self.raw_out.flush()
