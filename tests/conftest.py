import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

import pytest
from rich.console import Console

from histcodec import HistoryPrinter
from histcontext import AppContext
from histstore import Bank, HistoryLine, LineId
from histui import CUSTOM_THEME
from histverbs import history


@dataclass
class FakeHistory:
    """State shared by every FakeStore opened on it, standing in for the files."""

    entries: list[tuple[int, bytes, Bank]] = field(default_factory=list)
    banks: set[Bank] = field(default_factory=lambda: {Bank.MASTER, Bank.SESSION})
    next_uid: int = 0
    opened: int = 0
    closed: int = 0
    iterators: int = 0
    removals: list[LineId] = field(default_factory=list)
    compactions: list[tuple[bool, bool]] = field(default_factory=list)
    expansion_loads: list[bool] = field(default_factory=list)
    diag_enabled: bool = False
    open_error: Exception | None = None

    def extend(self, lines, bank=Bank.MASTER):
        for line in lines:
            self.entries.append((self.next_uid, line.encode(errors="surrogateescape") if isinstance(line, str) else line, bank))
            self.next_uid += 1

    @property
    def texts(self) -> list[str]:
        return [data.decode(errors="surrogateescape") for _, data, _ in self.entries]


class FakeStore:
    def __init__(self, state: FakeHistory):
        self.state = state
        self._expansion: list[str] = []

    def initialise(self):
        if self.state.open_error is not None:
            raise self.state.open_error
        self.state.opened += 1

    def close(self):
        self.state.closed += 1

    def enable_diagnostic_output(self, console):
        self.state.diag_enabled = True

    def read_lines(self) -> Iterator[HistoryLine]:
        self.state.iterators += 1
        for uid, data, bank in list(self.state.entries):
            yield HistoryLine(data, LineId(bank, uid), bank)

    def add(self, line):
        if not line:
            return False
        bank = Bank.MASTER if Bank.MASTER in self.state.banks else Bank.SESSION
        self.state.extend([line], bank)
        return True

    def remove(self, line_id):
        self.state.removals.append(line_id)
        for i, (uid, _, bank) in enumerate(self.state.entries):
            if LineId(bank, uid) == line_id:
                del self.state.entries[i]
                return True
        return False

    def clear(self):
        self.state.entries.clear()

    def compact(self, force=False, uniq=False):
        self.state.compactions.append((force, uniq))

    def load_expansion(self, can_clean=False):
        self.state.expansion_loads.append(can_clean)
        self._expansion = self.state.texts

    def expand(self, text):
        if self._expansion:
            return text.replace("!!", self._expansion[-1])
        return text

    def has_bank(self, bank):
        return bank in self.state.banks


@pytest.fixture()
def fake_history() -> FakeHistory:
    return FakeHistory()


@pytest.fixture()
def store_factory(fake_history: FakeHistory):
    return lambda ctx, settings: FakeStore(fake_history)


@pytest.fixture()
def context(tmp_path: Path) -> AppContext:
    return AppContext(state_dir=tmp_path / "profile", session_id=4242)


def make_console(terminal: bool = False) -> Console:
    return Console(
        file=io.StringIO(), force_terminal=terminal, color_system=None, width=200, theme=CUSTOM_THEME, emoji=False
    )


@pytest.fixture()
def console_factory():
    return make_console


@dataclass
class HistoryRun:
    code: int
    raw: bytes
    out: str
    err: str

    @property
    def lines(self) -> list[str]:
        return self.raw.decode().splitlines()


@pytest.fixture()
def run_history(context: AppContext, store_factory):
    """Runs `history` against the fake store, capturing every output stream."""

    def run(*args: str, terminal: bool = False) -> HistoryRun:
        out = make_console(terminal)
        err = make_console()
        raw = io.BytesIO()
        code = history(
            list(args),
            context,
            store_factory=store_factory,
            console=out,
            err_console=err,
            printer=HistoryPrinter(out, raw),
        )
        return HistoryRun(code, raw.getvalue(), out.file.getvalue(), err.file.getvalue())

    return run
