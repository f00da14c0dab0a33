"""
histstore.py - The history store that histctl operates on.

`HistoryStore` is the boundary the verbs are written against. It only offers a
forward iterator over lines, so anything positional (tail windows, "delete the
Nth item") has to be done by walking it.

`FileHistoryStore` is the file-backed implementation used by the CLI:

- One file per bank: `history` for the saved (master) bank and
  `history_<session>` for the in-session bank. One entry per line.
- Deleting a line overwrites its first byte with `|` in place. Readers skip
  such lines; `compact()` drops them for good.
- Expansion supports the plain Bash event designators `!!`, `!N`, `!-N` and
  `!prefix`. Anything that does not resolve is left as typed.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Iterator, NamedTuple, Protocol

from rich.console import Console
from rich.markup import escape

DELETED_MARKER = b"|"
EVENT_RE = re.compile(r"!(?:(?P<last>!)|(?P<number>-?[0-9]+)|(?P<prefix>[^\s!=(\"'0-9-]\S*))")


class Bank(IntEnum):
    MASTER = 0
    SESSION = 1


@dataclass(frozen=True)
class LineId:
    """Opaque address of a line, only meaningful to the store that issued it."""

    bank: Bank
    offset: int


class HistoryLine(NamedTuple):
    data: bytes
    line_id: LineId
    bank: Bank


class HistoryStore(Protocol):
    def initialise(self) -> None: ...

    def close(self) -> None: ...

    def enable_diagnostic_output(self, console: Console) -> None: ...

    def read_lines(self) -> Iterator[HistoryLine]:
        """Returns a fresh forward iterator over the active lines."""
        ...

    def add(self, line: str) -> bool: ...

    def remove(self, line_id: LineId | None) -> bool: ...

    def clear(self) -> None: ...

    def compact(self, force: bool = False, uniq: bool = False) -> None: ...

    def load_expansion(self, can_clean: bool = False) -> None: ...

    def expand(self, text: str) -> str: ...

    def has_bank(self, bank: Bank) -> bool: ...


# ============================================================================
# EVENT DESIGNATORS
# ============================================================================


def expand_events(text: str, lines: list[str]) -> str:
    """→ Expands `!!`, `!N`, `!-N` and `!prefix` against `lines` (oldest first)"""

    def resolve(match: re.Match) -> str:
        found: str | None = None
        if match.group("last"):
            found = lines[-1] if lines else None
        elif match.group("number"):
            number = int(match.group("number"))
            if 0 < number <= len(lines):
                found = lines[number - 1]
            elif number < 0 and -number <= len(lines):
                found = lines[number]
        else:
            prefix = match.group("prefix")
            found = next((line for line in reversed(lines) if line.startswith(prefix)), None)
        return match.group() if found is None else found

    return EVENT_RE.sub(resolve, text)


# ============================================================================
# FILE STORE
# ============================================================================


class FileHistoryStore:
    """Line-per-entry history files, one per bank."""

    def __init__(
        self,
        master_path: Path | None,
        session_path: Path,
        max_lines: int = 0,
        erase_prev_dupes: bool = False,
    ):
        self.paths: dict[Bank, Path] = {Bank.SESSION: session_path}
        if master_path is not None:
            self.paths[Bank.MASTER] = master_path
        self.max_lines = max_lines
        self.erase_prev_dupes = erase_prev_dupes
        self._diag: Console | None = None
        self._expansion_lines: list[str] = []

    def _diag_print(self, message: str) -> None:
        if self._diag is not None:
            self._diag.print(f"[dim]... {escape(message)}[/dim]")

    def enable_diagnostic_output(self, console: Console) -> None:
        self._diag = console

    def initialise(self) -> None:
        for bank, path in self.paths.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch(exist_ok=True)
            self._diag_print(f"{bank.name.lower()} bank: {path}")

    def close(self) -> None:
        self._expansion_lines = []

    def has_bank(self, bank: Bank) -> bool:
        return bank in self.paths

    def _banks(self) -> list[tuple[Bank, Path]]:
        return sorted(self.paths.items())

    def _read_raw(self, bank: Bank) -> Iterator[tuple[int, bytes]]:
        """→ Yields (offset, line) for every line of a bank, tombstones included"""
        path = self.paths[bank]
        if not path.exists():
            return
        offset = 0
        with path.open("rb") as f:
            for raw in f:
                line = raw.rstrip(b"\r\n")
                if line:
                    yield offset, line
                offset += len(raw)

    def read_lines(self) -> Iterator[HistoryLine]:
        for bank, _ in self._banks():
            for offset, line in self._read_raw(bank):
                if not line.startswith(DELETED_MARKER):
                    yield HistoryLine(line, LineId(bank, offset), bank)

    def add(self, line: str) -> bool:
        data = line.encode("utf-8", errors="surrogateescape")
        if not data or b"\n" in data or b"\0" in data or data.startswith(DELETED_MARKER):
            return False

        bank = Bank.MASTER if self.has_bank(Bank.MASTER) else Bank.SESSION
        if self.erase_prev_dupes:
            dupes = [existing.line_id for existing in self.read_lines() if existing.data == data]
            for line_id in dupes:
                self.remove(line_id)

        with self.paths[bank].open("ab") as f:
            f.write(data + b"\n")
        return True

    def remove(self, line_id: LineId | None) -> bool:
        if line_id is None or line_id.bank not in self.paths:
            return False
        path = self.paths[line_id.bank]
        try:
            with path.open("r+b") as f:
                f.seek(line_id.offset)
                first = f.read(1)
                if not first or first in (DELETED_MARKER, b"\n"):
                    return False
                f.seek(line_id.offset)
                f.write(DELETED_MARKER)
        except FileNotFoundError:
            return False
        return True

    def clear(self) -> None:
        for bank, path in self._banks():
            path.write_bytes(b"")
            self._diag_print(f"cleared {bank.name.lower()} bank")

    def compact(self, force: bool = False, uniq: bool = False) -> None:
        if not self.has_bank(Bank.MASTER):
            return

        raw = list(self._read_raw(Bank.MASTER))
        active = [line for _, line in raw if not line.startswith(DELETED_MARKER)]
        deleted = len(raw) - len(active)
        over_limit = self.max_lines > 0 and len(active) > self.max_lines
        if not force and not deleted and not over_limit:
            return

        if uniq:
            # Keep the newest occurrence of each line.
            seen: set[bytes] = set()
            kept_reversed = []
            for line in reversed(active):
                if line not in seen:
                    seen.add(line)
                    kept_reversed.append(line)
            active = kept_reversed[::-1]
        if self.max_lines > 0:
            active = active[-self.max_lines:]

        path = self.paths[Bank.MASTER]
        temp_path = path.with_suffix(f".tmp.{os.getpid()}")
        try:
            temp_path.write_bytes(b"".join(line + b"\n" for line in active))
            os.replace(temp_path, path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
        self._diag_print(f"compacted master bank: {len(raw)} -> {len(active)} lines")

    def load_expansion(self, can_clean: bool = False) -> None:
        lines: list[str] = []
        needs_clean = False
        for bank, _ in self._banks():
            active = deleted = 0
            for _, line in self._read_raw(bank):
                if line.startswith(DELETED_MARKER):
                    deleted += 1
                    continue
                active += 1
                lines.append(line.decode("utf-8", errors="replace"))
            self._diag_print(f"{bank.name.lower()} bank: {active} active, {deleted} deleted lines")
            needs_clean = needs_clean or (bank == Bank.MASTER and deleted > 0)

        if can_clean and needs_clean:
            self.compact()
        self._expansion_lines = lines

    def expand(self, text: str) -> str:
        return expand_events(text, self._expansion_lines)
