"""
histverbs.py - The `history` verb: list, add, delete, clear, compact, expand.

Every operation opens one `HistoryScope`, does its work and closes it again;
nothing is kept between invocations. The store can only be walked forwards,
so the tail window and "delete item N" are computed by walking it:

- `select_tail` counts all lines, then starts a fresh walk and skips
  `total - n` of them.
- `resolve_ordinal` walks `n - 1` lines and takes the id of the next one.
"""

from __future__ import annotations

from collections import Counter, deque
from itertools import islice
from typing import Callable, Iterator, Sequence

from rich.console import Console
from rich.markup import escape

from histargs import GlobalFlags, Invocation, Verb, interpret
from histcodec import HistoryPrinter, display_text, format_item
from histcontext import VERSION, AppContext, Settings, load_settings, open_file_store
from histstore import Bank, HistoryLine, HistoryStore, LineId
from histui import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    EXIT_USAGE,
    console as default_console,
    err_console as default_err_console,
    print_header,
    print_help_pairs,
)

LineSource = Callable[[], Iterator[HistoryLine]]
StoreFactory = Callable[[AppContext, Settings], HistoryStore]

HELP_VERBS = [
    ("[n]", "Print history items (only the last N items if specified)."),
    ("clear", "Completely clears the command history."),
    ("compact", "Compacts the history file."),
    ("delete <n>", "Delete Nth item."),
    ("add <...>", "Join remaining arguments and appends to the history."),
    ("expand <...>", "Print substitution result."),
]

HELP_OPTIONS = [
    ("--bare", "Omit item numbers when printing history."),
    ("--diag", "Print diagnostic info to stderr."),
    ("--unique", "Remove duplicates when compacting history."),
]

BANK_NAMES = {Bank.MASTER: "master", Bank.SESSION: "session"}


# ============================================================================
# LINE SELECTION
# ============================================================================


def select_tail(read_lines: LineSource, tail_count: int | None = None) -> Iterator[tuple[int, HistoryLine]]:
    """→ Yields (ordinal, line) for the last `tail_count` lines, or all lines if None.

    Ordinals are 1-based positions in the full history, so the first line of a
    tail window is numbered `total - tail_count + 1`.
    """
    skip = 0
    if tail_count is not None:
        total = sum(1 for _ in read_lines())
        skip = max(0, total - tail_count)

    lines = read_lines()
    deque(islice(lines, skip), maxlen=0)
    yield from enumerate(lines, start=skip + 1)


def resolve_ordinal(read_lines: LineSource, index: int) -> LineId | None:
    """→ The id of the `index`-th line (1-based), or None if there is no such line"""
    if index <= 0:
        return None
    line = next(islice(read_lines(), index - 1, None), None)
    return line.line_id if line is not None else None


# ============================================================================
# SCOPE
# ============================================================================


class HistoryScope:
    """Owns one open history store for the duration of a `with` block."""

    def __init__(
        self,
        context: AppContext,
        store_factory: StoreFactory = open_file_store,
        diag_console: Console | None = None,
    ):
        self.context = context
        self.store_factory = store_factory
        self.diag_console = diag_console
        self._store: HistoryStore | None = None

    def __enter__(self) -> HistoryStore:
        settings = load_settings(self.context.settings_path)
        store = self.store_factory(self.context, settings)
        if self.diag_console is not None:
            store.enable_diagnostic_output(self.diag_console)
        try:
            store.initialise()
        except BaseException:
            store.close()
            raise
        self._store = store
        return store

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._store is not None:
            self._store.close()
            self._store = None


# ============================================================================
# VERBS
# ============================================================================


class HistoryVerbs:
    """The operations behind `histctl history`, one scope each."""

    def __init__(
        self,
        context: AppContext,
        *,
        diag: bool = False,
        store_factory: StoreFactory = open_file_store,
        console: Console | None = None,
        err_console: Console | None = None,
        printer: HistoryPrinter | None = None,
    ):
        self.context = context
        self.diag = diag
        self.store_factory = store_factory
        self.console = console or default_console
        self.err_console = err_console or default_err_console
        self.printer = printer or HistoryPrinter(self.console)

    def scope(self) -> HistoryScope:
        return HistoryScope(
            self.context,
            self.store_factory,
            diag_console=self.err_console if self.diag else None,
        )

    def print_history(self, tail_count: int | None = None, bare: bool = False) -> int:
        with self.scope() as store:
            printed_from: Counter[Bank] = Counter()
            for index, line in select_tail(store.read_lines, tail_count):
                if self.diag:
                    printed_from[line.bank] += 1
                self.printer.print_line(format_item(line.data, None if bare else index))
            self.printer.flush()

            if self.diag:
                for bank in (Bank.MASTER, Bank.SESSION):
                    if store.has_bank(bank):
                        self.err_console.print(
                            f"[dim]... printed {printed_from[bank]} lines from {BANK_NAMES[bank]} bank[/dim]"
                        )
                # Loading reports the active/deleted line counts.
                store.load_expansion(can_clean=False)
        return EXIT_SUCCESS

    def add(self, line: str) -> int:
        with self.scope() as store:
            added = store.add(line)

        if not added:
            self.console.print(f"[error]Unable to add '{escape(display_text(line))}' to history.[/error]")
            return EXIT_FAILURE
        self.console.print(f"Added '{escape(display_text(line))}' to history.")
        return EXIT_SUCCESS

    def remove(self, index: int) -> int:
        if index <= 0:
            self.console.print(f"[error]History item {index} is out of range.[/error]")
            return EXIT_FAILURE

        with self.scope() as store:
            line_id = resolve_ordinal(store.read_lines, index)
            if line_id is None:
                self.console.print(f"[error]History item {index} is out of range.[/error]")
                return EXIT_FAILURE
            ok = store.remove(line_id)

        if not ok:
            self.console.print(f"[error]Unable to delete history item {index}.[/error]")
            return EXIT_FAILURE
        self.console.print(f"Deleted item {index}.")
        return EXIT_SUCCESS

    def clear(self) -> int:
        with self.scope() as store:
            store.clear()

        self.console.print("History cleared.")
        return EXIT_SUCCESS

    def compact(self, unique: bool = False) -> int:
        with self.scope() as store:
            if not store.has_bank(Bank.MASTER):
                self.console.print("[warning]History is not saved, so compact has nothing to do.[/warning]")
                return EXIT_SUCCESS
            store.compact(force=True, uniq=unique)

        self.console.print("History compacted.")
        return EXIT_SUCCESS

    def print_expansion(self, line: str) -> int:
        with self.scope() as store:
            store.load_expansion(can_clean=False)
            expanded = store.expand(line)

        # Printed verbatim, control bytes included.
        self.console.file.write(expanded + "\n")
        self.console.file.flush()
        return EXIT_SUCCESS

    def print_help(self, reason: str | None = None) -> int:
        if reason:
            self.err_console.print(f"[error]history: {escape(reason)}[/error]")

        out = self.console
        print_header(out, VERSION)
        out.print("Usage: histctl history <verb> [option]", markup=False)
        out.print()
        out.print("Verbs:")
        print_help_pairs(out, HELP_VERBS, HELP_OPTIONS)
        out.print("Options:")
        print_help_pairs(out, HELP_OPTIONS, HELP_VERBS)
        out.print(
            "The 'history' command can also emulate Bash's builtin history command. The\n"
            "arguments -c, -d <n>, -p <...> and -s <...> are supported.",
            markup=False,
        )
        return EXIT_USAGE

    def run(self, invocation: Invocation, flags: GlobalFlags) -> int:
        verb = invocation.verb
        if verb == Verb.LIST:
            return self.print_history(invocation.tail_count, bare=flags.bare)
        if verb == Verb.ADD:
            return self.add(invocation.text)
        if verb == Verb.REMOVE:
            return self.remove(invocation.index)
        if verb == Verb.CLEAR:
            return self.clear()
        if verb == Verb.COMPACT:
            return self.compact(unique=flags.unique)
        if verb == Verb.EXPAND:
            return self.print_expansion(invocation.text)
        return self.print_help(invocation.reason)


def history(args: Sequence[str], context: AppContext, **kwargs) -> int:
    """→ Entry point for `histctl history ...`"""
    flags, invocation = interpret(args)
    verbs = HistoryVerbs(context, diag=flags.diag, **kwargs)
    try:
        return verbs.run(invocation, flags)
    except OSError as e:
        if flags.diag:
            verbs.err_console.print_exception()
        else:
            verbs.err_console.print(f"[error]history: {escape(str(e))}[/error]")
        return EXIT_FAILURE
