#!/usr/bin/env uv run
# /// script
# requires-python = ">=3.10"
# dependencies = ["rich"]
# ///
"""
histctl.py - Command-line front end for the saved shell history.

Usage
-----
    histctl [options] <verb> [verb_options]

    histctl history              # print every item, numbered
    histctl history 20           # only the last 20
    histctl history delete 42    # delete item 42
    histctl history -s make test # Bash style: add "make test"
    histctl info                 # where things are kept

Verbs are looked up in `VERBS`; each handler receives the arguments after the
verb plus the `AppContext` built from the global options.
"""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Sequence

from rich.markup import escape

from histargs import atoi
from histcontext import VERSION, AppContext, load_settings
from histstore import Bank
from histui import EXIT_SUCCESS, console, print_header, print_help_pairs
from histverbs import history

VerbHandler = Callable[[Sequence[str], AppContext], int]

HELP_VERBS = [
    ("history", "List and operate on the command history"),
    ("info", "Prints information about histctl"),
    ("", "('<verb> --help' for more details)"),
]

HELP_OPTIONS = [
    ("--profile <dir>", "Use <dir> as histctl's profile directory"),
    ("--session <id>", "Override the session id (for history and info)"),
    ("--version", "Print histctl's version and exit"),
]


def info(args: Sequence[str], context: AppContext) -> int:
    """→ Prints where histctl keeps its settings and history"""
    settings = load_settings(context.settings_path)

    rows = [
        ("version", VERSION),
        ("session", str(context.session_id)),
        ("profile", str(context.state_dir)),
        ("settings", str(context.settings_path)),
    ]
    if settings.save_history:
        rows.append(("history", str(context.bank_path(Bank.MASTER))))
    rows.append(("session history", str(context.bank_path(Bank.SESSION))))

    width = max(len(name) for name, _ in rows)
    for name, value in rows:
        console.print(f"[verb]{name:<{width}}[/verb]  {escape(value)}")
    return EXIT_SUCCESS


VERBS: dict[str, VerbHandler] = {
    "history": history,
    "info": info,
}


def show_usage() -> None:
    print_header(console, VERSION)
    console.print("Usage: histctl [options] <verb> [verb_options]", markup=False)
    console.print()
    console.print("Verbs:")
    print_help_pairs(console, HELP_VERBS, HELP_OPTIONS)
    console.print("Options:")
    print_help_pairs(console, HELP_OPTIONS, HELP_VERBS)


def dispatch_verb(verb: str, args: Sequence[str], context: AppContext) -> int:
    handler = VERBS.get(verb)
    if handler is None:
        console.print(f"[error]*** ERROR: Unknown verb -- '{escape(verb)}'[/error]")
        show_usage()
        return EXIT_SUCCESS
    return handler(list(args), context)


def main(argv: Sequence[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    # Without arguments, show help.
    if not argv:
        show_usage()
        return EXIT_SUCCESS

    ap = argparse.ArgumentParser(prog="histctl", add_help=False)
    ap.add_argument("-h", "--help", action="store_true")
    ap.add_argument("-p", "--profile", metavar="DIR")
    ap.add_argument("--session", metavar="ID")
    ap.add_argument("--version", action="store_true")
    ap.add_argument("verb", nargs="?")
    ap.add_argument("args", nargs=argparse.REMAINDER)
    args = ap.parse_args(argv)

    if args.version:
        console.print(VERSION, markup=False)
        return EXIT_SUCCESS

    if args.help or args.verb is None:
        show_usage()
        return EXIT_SUCCESS

    session = atoi(args.session) if args.session is not None else None
    context = AppContext.from_env(profile=args.profile, session=session)
    return dispatch_verb(args.verb, args.args, context)


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
