import pytest

from rsshkit.terminal.parsing import (
    FlagNotSetError,
    make_help_text,
    parse_line,
    parse_line_valid_flags,
)


def test_basic_valid():
    line = parse_line("toaster --long_arg test -t a", 0)
    assert line.command is not None
    assert line.command.value == "toaster"
    assert len(line.arguments) == 2
    assert line.get_arg_string("long_arg") == "test"
    assert line.get_arg_string("t") == "a"
    assert line.focus.type == line.command.type
    assert line.focus.value == line.command.value


def test_no_flags():
    line = parse_line("kill 127.0.0.1:49962", 0)
    assert len(line.arguments) == 1
    assert line.arguments[0].value == "127.0.0.1:49962"


def test_no_command():
    line = parse_line("--long_arg test -t a", 0)
    assert line.command is None


def test_mixed_args():
    line = parse_line("toaster --long_arg 1 2 3 4 -t a -t abcd --noot", 0)
    assert len(line.get_args("long_arg")) == 4
    assert line.is_set("noot")
    assert len(line.get_args("t")) == 2


def test_helper_function_errors():
    line = parse_line("lala --long_arg test -t a --zero -m", 0)
    assert line.get_arg_string("long_arg") == "test"
    assert line.get_arg_string("t") == "a"
    with pytest.raises(ValueError):
        line.get_arg_string("zero")
    with pytest.raises(ValueError):
        line.get_arg_string("m")
    expected = line.expect_args("long_arg", 1)
    assert [a.value for a in expected] == ["test"]
    with pytest.raises(ValueError):
        line.expect_args("long_arg", 2)
    with pytest.raises(FlagNotSetError):
        line.get_arg("bleep")


def test_strings():
    line = parse_line("lala --long_arg \"test ''``-t a\" --zero -m", 0)
    assert line.get_arg_string("long_arg") == "test ''``-t a"
    with pytest.raises(ValueError):
        line.get_arg_string("zero")
    with pytest.raises(ValueError):
        line.get_arg_string("m")
    expected = line.expect_args("long_arg", 1)
    assert len(expected) == 1 and expected[0].value == "test ''``-t a"
    assert line.chunks[0] == "lala" == line.command.value
    assert line.chunks[1] == "--long_arg"
    assert line.chunks[2] == "test ''``-t a"


def test_flag_not_set_message():
    line = parse_line("cmd", 0)
    with pytest.raises(FlagNotSetError, match="Flag not set"):
        line.get_args_string("missing")


def test_get_args_string_values():
    line = parse_line("cmd --name one two", 0)
    assert line.get_args_string("name") == ["one", "two"]
    assert line.flags["name"].arg_values() == ["one", "two"]


def test_combined_short_flags_are_split():
    line = parse_line("ls -la target", 0)
    assert line.is_set("l") and line.is_set("a")
    assert line.get_args("l") == []
    assert line.arguments_as_strings() == ["target"]
    assert [f.value for f in line.flags_ordered] == ["l", "a"]


def test_escaped_space_joins_argument():
    line = parse_line("echo a\\ b", 0)
    assert line.arguments_as_strings() == ["a b"]


def test_cursor_on_flag_sets_focus_and_section():
    line = parse_line("cmd --flag x", 7)
    assert line.focus.type == "flag"
    assert line.focus.value == "flag"
    assert line.section.value == "flag"


def test_cursor_on_flag_argument_uses_flag_as_section():
    line = parse_line("cmd --flag x", 11)
    assert line.focus.type == "argument"
    assert line.focus.value == "x"
    assert line.section.value == "flag"


def test_empty_line():
    line = parse_line("", 0)
    assert line.empty()
    assert line.command is None
    assert line.chunks == []
    assert not parse_line("x", 0).empty()


def test_valid_flags_accepts_known():
    line = parse_line_valid_flags("cmd --a 1 -b", 0, {"a", "b"})
    assert line.get_arg_string("a") == "1"


def test_valid_flags_rejects_unknown():
    with pytest.raises(ValueError, match="flag provided but not defined: 'c'"):
        parse_line_valid_flags("cmd -c", 0, {"a"})


def test_make_help_text():
    assert make_help_text("one", "two") == "one\ntwo\n"
    assert make_help_text() == ""