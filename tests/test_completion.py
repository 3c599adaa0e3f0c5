import pytest

from rsshkit.terminal.command import REMOTE_ID, Command
from rsshkit.terminal.completion import build_display_line, collapse, default_auto_complete
from rsshkit.terminal.parsing import Argument, Flag, Node
from rsshkit.trie import Trie

TAB = ord("\t")


class _Kill(Command):
    def expect(self, line):
        return [REMOTE_ID]

    def run(self, output, line):
        output.write(b"killed")

    def help(self, explain):
        return "kill"


class _FakeTerm:
    def __init__(self, functions, values=None):
        self.functions = functions
        self.functions_auto_complete = Trie(*functions)
        self.auto_complete_values = values or {}
        self.auto_complete_index = 0
        self.auto_complete_pending = ""
        self.auto_completing = False
        self.auto_complete_pos = 0


def _term():
    cmd = _Kill()
    return _FakeTerm(
        {"help": cmd, "exit": cmd, "kill": cmd},
        {REMOTE_ID: Trie("abc", "abd")},
    )


def test_collapse_runs():
    assert collapse("a  b   c", " ") == "a b c"
    assert collapse("--x--", "-") == "-x-"


def test_collapse_without_runs_is_identity():
    assert collapse("abc", " ") == "abc"


def test_build_display_line_no_focus():
    output, pos = build_display_line(None, "ab", "XY", 1)
    assert output == "aXYb"
    assert pos == len("aXY")


def test_build_display_line_argument():
    focus = Argument(value="a", start=5, end=6)
    output, pos = build_display_line(focus, "kill a", "abc", 6)
    assert output == "kill abc"
    assert pos == len(output)


def test_build_display_line_flag():
    line = "cmd --x"
    focus = Flag(value="x", start=4, end=len(line))
    output, pos = build_display_line(focus, line, "val", len(line))
    assert output == line + " " + "val"
    assert pos == len(output)


def test_build_display_line_unknown_type():
    with pytest.raises(ValueError):
        build_display_line(Node(value="x"), "x", "y", 0)


def test_single_command_match_adds_space():
    term = _term()
    output, pos, ok = default_auto_complete(term, "he", 2, TAB)
    assert ok
    assert output == "help" + " "
    assert pos == len(output)
    assert term.auto_completing is False


def test_empty_line_cycles_through_commands():
    term = _term()
    first = default_auto_complete(term, "", 0, TAB)
    second = default_auto_complete(term, "", 0, TAB)
    third = default_auto_complete(term, "", 0, TAB)
    fourth = default_auto_complete(term, "", 0, TAB)
    assert [first[0], second[0], third[0]] == sorted(["help", "exit", "kill"])
    assert fourth == first
    assert first[1] == len(first[0])


def test_tagged_values_completion_cycles():
    term = _term()
    line = "kill a"
    first = default_auto_complete(term, line, len(line), TAB)
    second = default_auto_complete(term, line, len(line), TAB)
    assert first == ("kill abc", len("kill abc"), True)
    assert second == ("kill abd", len("kill abd"), True)


def test_other_key_resets_state():
    term = _term()
    default_auto_complete(term, "", 0, TAB)
    assert term.auto_completing
    assert default_auto_complete(term, "", 0, ord("a")) == ("", 0, False)
    assert term.auto_completing is False
    assert term.auto_complete_index == 0


def test_no_matches_is_not_handled():
    term = _term()
    assert default_auto_complete(term, "zz", 2, TAB) == ("", 0, False)