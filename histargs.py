"""
histargs.py - Command-line grammar for `histctl history`.

Two grammars are accepted:

1.  Bash's builtin `history`: `-c`, `-d <n>`, `-p <words...>`, `-s <words...>`.
2.  Verbs: `clear`, `compact`, `delete <n>`, `add <words...>`,
    `expand <words...>`, or an optional tail count `[n]`.

The global flags `--bare`, `--diag`, `--unique` and `--help` may appear
anywhere and are stripped before either grammar sees the arguments. Long flags
may be abbreviated to any unambiguous prefix of at least three characters
(`--b`, `--dia`, ...).

Each grammar is a pure function from an argument list to an `Invocation`.
Usage errors are `Verb.HELP` invocations carrying a reason, not exceptions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

FLAG_MIN_LEN = 3
ATOI_RE = re.compile(r"\s*([+-]?\d+)")
TAIL_COUNT_RE = re.compile(r"[0-9]*")


class Verb(Enum):
    LIST = "list"
    ADD = "add"
    REMOVE = "remove"
    CLEAR = "clear"
    COMPACT = "compact"
    EXPAND = "expand"
    HELP = "help"


@dataclass(frozen=True)
class GlobalFlags:
    help: bool = False
    bare: bool = False
    diag: bool = False
    unique: bool = False


@dataclass(frozen=True)
class Invocation:
    verb: Verb
    text: str = ""
    index: int = 0
    tail_count: int | None = None
    reason: str | None = None


def usage_error(reason: str | None = None) -> Invocation:
    return Invocation(Verb.HELP, reason=reason)


# ============================================================================
# PARSING & UTILITIES
# ============================================================================


def atoi(text: str) -> int:
    """→ C `atoi`: the leading integer of `text`, or 0"""
    match = ATOI_RE.match(text)
    return int(match.group(1)) if match else 0


def join_words(words: Sequence[str]) -> str:
    """→ Joins words with single spaces, never leading with a separator"""
    line = ""
    for word in words:
        if line:
            line += " "
        line += word
    return line


def is_flag(arg: str, flag: str, min_len: int | None = None) -> bool:
    """→ True if `arg` is `flag`, or a prefix of it at least `min_len` long"""
    if not flag.startswith(arg):
        return False
    if arg == flag:
        return True
    return min_len is not None and len(arg) >= min_len


def strip_global_flags(args: Sequence[str]) -> tuple[GlobalFlags, list[str]]:
    """→ Removes the global flags from `args`, recording which were present.

    `--help`/`-h` stops the scan immediately; whatever else was on the command
    line is irrelevant once help was asked for.
    """
    bare = diag = unique = False
    remaining: list[str] = []
    for arg in args:
        if is_flag(arg, "--help", FLAG_MIN_LEN) or is_flag(arg, "-h"):
            return GlobalFlags(help=True, bare=bare, diag=diag, unique=unique), remaining
        if is_flag(arg, "--bare", FLAG_MIN_LEN):
            bare = True
        elif is_flag(arg, "--diag", FLAG_MIN_LEN):
            diag = True
        elif is_flag(arg, "--unique", FLAG_MIN_LEN):
            unique = True
        else:
            remaining.append(arg)
    return GlobalFlags(bare=bare, diag=diag, unique=unique), remaining


# ============================================================================
# BASH GRAMMAR
# ============================================================================


def parse_bash(args: Sequence[str]) -> Invocation | None:
    """→ Bash-compatible options, or None when no option was matched.

    Only the first option matters: every option Bash's `history` accepts here
    either takes the rest of the command line or ends the command. Scanning
    stops at the first word that is not an option; a lone `-` and `--` are
    not options either.
    """
    if not args:
        return None
    arg = args[0]
    if not arg.startswith("-") or arg in ("-", "--"):
        return None

    option = arg[1]
    if option == "c":
        return Invocation(Verb.CLEAR)
    if option == "d":
        value = arg[2:] if len(arg) > 2 else (args[1] if len(args) > 1 else None)
        if value is None:
            return usage_error("option requires an argument -- 'd'")
        return Invocation(Verb.REMOVE, index=atoi(value))
    if option in ("p", "s"):
        line = join_words(args[1:])
        if not line:
            return usage_error(f"option requires text -- '{option}'")
        return Invocation(Verb.ADD if option == "s" else Verb.EXPAND, text=line)
    if option == "?":
        return usage_error()
    return usage_error(f"invalid option -- '{option}'")


# ============================================================================
# VERB GRAMMAR
# ============================================================================


def parse_native(args: Sequence[str]) -> Invocation:
    if args:
        verb = args[0].lower()
        if verb == "clear":
            return Invocation(Verb.CLEAR)
        if verb == "compact":
            return Invocation(Verb.COMPACT)
        if verb == "delete":
            if len(args) < 2:
                return usage_error("argument required for verb 'delete'")
            return Invocation(Verb.REMOVE, index=atoi(args[1]))
        if verb in ("add", "expand"):
            line = join_words(args[1:])
            if not line:
                return usage_error(f"argument required for verb '{verb}'")
            return Invocation(Verb.ADD if verb == "add" else Verb.EXPAND, text=line)

    # Failing all else, list the history.
    if len(args) > 1:
        return usage_error("too many arguments")
    if not args:
        return Invocation(Verb.LIST)
    if not TAIL_COUNT_RE.fullmatch(args[0]):
        return usage_error(f"invalid history count '{args[0]}'")
    return Invocation(Verb.LIST, tail_count=int(args[0] or 0))


def interpret(argv: Sequence[str]) -> tuple[GlobalFlags, Invocation]:
    """→ Resolves a `history` command line to one invocation"""
    flags, args = strip_global_flags(argv)
    if flags.help:
        return flags, Invocation(Verb.HELP)

    invocation = parse_bash(args)
    if invocation is not None:
        return flags, invocation

    # getopt would stop at "--"; here it only marks where the verb words start.
    if args[:1] == ["--"]:
        args = args[1:]
    return flags, parse_native(args)
