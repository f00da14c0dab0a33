import pytest

from histargs import (
    GlobalFlags,
    Invocation,
    Verb,
    atoi,
    interpret,
    is_flag,
    join_words,
    parse_bash,
    parse_native,
    strip_global_flags,
)


@pytest.mark.parametrize(
    "arg, flag, min_len, expected",
    [
        ("--bare", "--bare", 3, True),
        ("--ba", "--bare", 3, True),
        ("--b", "--bare", 3, True),
        ("--", "--bare", 3, False),
        ("", "--bare", 3, False),
        ("--barex", "--bare", 3, False),
        ("--Bare", "--bare", 3, False),
        ("-h", "-h", None, True),
        ("-", "-h", None, False),
        ("-hx", "-h", None, False),
    ],
)
def test_is_flag(arg, flag, min_len, expected):
    assert is_flag(arg, flag, min_len) is expected


def test_strip_global_flags_removes_flags_anywhere():
    flags, args = strip_global_flags(["--bare", "5", "--dia", "--uniq"])
    assert flags == GlobalFlags(bare=True, diag=True, unique=True)
    assert args == ["5"]


def test_strip_global_flags_keeps_unknown_long_options():
    flags, args = strip_global_flags(["--verbose", "add", "x"])
    assert flags == GlobalFlags()
    assert args == ["--verbose", "add", "x"]


@pytest.mark.parametrize("arg", ["--help", "--hel", "--he", "-h"])
def test_help_flag_short_circuits(arg):
    flags, _ = strip_global_flags(["add", arg, "--bare"])
    assert flags.help


def test_help_prefix_needs_three_characters():
    flags, _ = strip_global_flags(["--h"])
    assert flags.help
    flags, args = strip_global_flags(["--"])
    assert not flags.help
    assert args == ["--"]


def test_input_is_not_mutated():
    argv = ["--bare", "3"]
    strip_global_flags(argv)
    assert argv == ["--bare", "3"]


@pytest.mark.parametrize(
    "text, expected",
    [("12", 12), ("  7", 7), ("-3", -3), ("+4", 4), ("5abc", 5), ("abc", 0), ("", 0)],
)
def test_atoi(text, expected):
    assert atoi(text) == expected


def test_join_words_never_leads_with_separator():
    assert join_words(["echo", "hi"]) == "echo hi"
    assert join_words(["", "x"]) == "x"
    assert join_words([]) == ""


class TestBashGrammar:
    def test_no_options_is_not_a_match(self):
        assert parse_bash([]) is None
        assert parse_bash(["clear"]) is None
        assert parse_bash(["10"]) is None
        assert parse_bash(["-"]) is None
        assert parse_bash(["--"]) is None

    def test_clear(self):
        assert parse_bash(["-c"]) == Invocation(Verb.CLEAR)

    def test_delete_separate_and_attached_argument(self):
        assert parse_bash(["-d", "4"]) == Invocation(Verb.REMOVE, index=4)
        assert parse_bash(["-d4"]) == Invocation(Verb.REMOVE, index=4)

    def test_delete_missing_argument_is_usage_error(self):
        result = parse_bash(["-d"])
        assert result.verb is Verb.HELP
        assert "requires an argument" in result.reason

    def test_add_and_expand_join_remaining_words(self):
        assert parse_bash(["-s", "git", "status"]) == Invocation(Verb.ADD, text="git status")
        assert parse_bash(["-p", "echo", "!!"]) == Invocation(Verb.EXPAND, text="echo !!")

    def test_add_takes_option_looking_words_verbatim(self):
        assert parse_bash(["-s", "ls", "-la"]) == Invocation(Verb.ADD, text="ls -la")

    @pytest.mark.parametrize("option", ["-s", "-p"])
    def test_add_and_expand_without_text_show_help(self, option):
        assert parse_bash([option]).verb is Verb.HELP

    def test_unknown_option_is_usage_error(self):
        result = parse_bash(["-x"])
        assert result.verb is Verb.HELP
        assert result.reason == "invalid option -- 'x'"

    def test_question_mark_asks_for_help(self):
        assert parse_bash(["-?"]) == Invocation(Verb.HELP)

    def test_negative_number_is_an_unknown_option(self):
        assert parse_bash(["-5"]).verb is Verb.HELP


class TestNativeGrammar:
    def test_no_arguments_lists_everything(self):
        assert parse_native([]) == Invocation(Verb.LIST)

    def test_tail_count(self):
        assert parse_native(["25"]) == Invocation(Verb.LIST, tail_count=25)
        assert parse_native(["0"]) == Invocation(Verb.LIST, tail_count=0)

    def test_empty_count_is_zero(self):
        assert parse_native([""]) == Invocation(Verb.LIST, tail_count=0)

    @pytest.mark.parametrize("arg", ["abc", "1x", "²"])
    def test_non_digit_count_is_usage_error(self, arg):
        assert parse_native([arg]).verb is Verb.HELP

    def test_stray_arguments_are_usage_error(self):
        assert parse_native(["1", "2"]).verb is Verb.HELP

    @pytest.mark.parametrize("verb", ["clear", "CLEAR", "Clear"])
    def test_verbs_are_case_insensitive(self, verb):
        assert parse_native([verb]) == Invocation(Verb.CLEAR)

    def test_compact(self):
        assert parse_native(["compact"]) == Invocation(Verb.COMPACT)

    def test_delete(self):
        assert parse_native(["delete", "2"]) == Invocation(Verb.REMOVE, index=2)
        assert parse_native(["delete", "zero"]) == Invocation(Verb.REMOVE, index=0)

    def test_delete_requires_argument(self):
        result = parse_native(["delete"])
        assert result.verb is Verb.HELP
        assert result.reason == "argument required for verb 'delete'"

    def test_add_and_expand(self):
        assert parse_native(["add", "make", "test"]) == Invocation(Verb.ADD, text="make test")
        assert parse_native(["expand", "!!"]) == Invocation(Verb.EXPAND, text="!!")

    @pytest.mark.parametrize("verb", ["add", "expand"])
    def test_add_and_expand_require_text(self, verb):
        assert parse_native([verb]).verb is Verb.HELP


class TestInterpret:
    def test_bash_grammar_wins_when_an_option_matched(self):
        _, invocation = interpret(["-c"])
        assert invocation.verb is Verb.CLEAR

    def test_falls_back_to_verbs(self):
        _, invocation = interpret(["delete", "3"])
        assert invocation == Invocation(Verb.REMOVE, index=3)

    def test_flags_are_stripped_before_either_grammar(self):
        flags, invocation = interpret(["--bare", "10"])
        assert flags.bare
        assert invocation == Invocation(Verb.LIST, tail_count=10)

    def test_double_dash_ends_options(self):
        _, invocation = interpret(["--", "7"])
        assert invocation == Invocation(Verb.LIST, tail_count=7)

    def test_help(self):
        flags, invocation = interpret(["clear", "--help"])
        assert flags.help
        assert invocation == Invocation(Verb.HELP)

    def test_malformed_option_does_not_fall_back(self):
        _, invocation = interpret(["-z", "clear"])
        assert invocation.verb is Verb.HELP
