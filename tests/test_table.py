import io

import pytest

from rsshkit.table import Table


def test_worked_example():
    t = Table("Users", "ID", "Name")
    t.add_values("1", "alice")
    sep = "+----+-------+"
    assert t.output_strings() == [
        "  Users",
        sep,
        "| ID | Name  |",
        sep,
        "| 1  | alice |",
        sep,
    ]


def test_wrong_number_of_values():
    t = Table("T", "a", "b")
    with pytest.raises(ValueError):
        t.add_values("only one")


def test_multiline_cell_adds_rows_and_keeps_width():
    t = Table("T", "a", "b")
    t.add_values("x\nyy", "z")
    lines = t.output_strings()
    body = lines[1:]
    assert len({len(line) for line in body}) == 1
    assert any("x" in line and "z" in line for line in body)
    assert any("yy" in line and "z" not in line for line in body)


def test_fprint_matches_output_strings():
    t = Table("T", "col")
    t.add_values("value")
    buf = io.StringIO()
    t.fprint(buf)
    assert buf.getvalue() == "".join(line + "\n" for line in t.output_strings())


def test_fprint_width_truncates():
    t = Table("T", "column one", "column two")
    buf = io.StringIO()
    t.fprint_width(buf, 6)
    lines = buf.getvalue().split("\n")[:-1]
    assert len(lines) == len(t.output_strings())
    assert all(len(line) <= 5 for line in lines)
    assert lines[2] == t.output_strings()[2][:5]


def test_print_writes_stdout(capsys):
    t = Table("T", "c")
    t.print()
    assert capsys.readouterr().out.splitlines() == t.output_strings()