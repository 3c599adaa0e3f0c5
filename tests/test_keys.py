import io

import pytest

from rsshkit.terminal import keys
from rsshkit.terminal.keys import (
    HistoryRing,
    VT100_ESCAPE_CODES,
    bytes_to_key,
    is_printable,
    read_password_line,
    visual_length,
    write_with_crlf,
)


def test_empty_input_is_rune_error():
    assert bytes_to_key(b"", False) == (keys.RUNE_ERROR, b"")


def test_plain_character_and_remainder():
    assert bytes_to_key(b"a rest", False) == (ord("a"), b" rest")


@pytest.mark.parametrize(
    "data,key",
    [
        (b"\x1b[A", keys.KEY_UP),
        (b"\x1b[B", keys.KEY_DOWN),
        (b"\x1b[C", keys.KEY_RIGHT),
        (b"\x1b[D", keys.KEY_LEFT),
        (b"\x1b[H", keys.KEY_HOME),
        (b"\x1b[F", keys.KEY_END),
        (b"\x1b[1;3C", keys.KEY_ALT_RIGHT),
        (b"\x1b[1;3D", keys.KEY_ALT_LEFT),
        (b"\x01", keys.KEY_HOME),
        (b"\x17", keys.KEY_DELETE_WORD),
        (b"\x10", keys.KEY_UP),
        (b"\x08", keys.KEY_BACKSPACE),
    ],
)
def test_escape_and_control_keys(data, key):
    assert bytes_to_key(data + b"z", False) == (key, b"z")


def test_delete_consumes_four_bytes():
    assert bytes_to_key(b"\x1b[3~x", False) == (keys.KEY_DEL, b"x")


def test_control_keys_pass_through_in_paste():
    assert bytes_to_key(b"\x01", True) == (1, b"")


def test_paste_markers():
    assert bytes_to_key(keys.PASTE_START + b"q", False) == (keys.KEY_PASTE_START, b"q")
    assert bytes_to_key(keys.PASTE_END + b"q", True) == (keys.KEY_PASTE_END, b"q")


def test_unknown_sequence_consumed_to_terminator():
    assert bytes_to_key(b"\x1b[5~x", False) == (keys.KEY_UNKNOWN, b"x")


def test_partial_escape_waits():
    assert bytes_to_key(b"\x1b[", False) == (keys.RUNE_ERROR, b"\x1b[")


def test_multibyte_rune():
    encoded = "\u20ac".encode()
    assert bytes_to_key(encoded + b"!", False) == (0x20AC, b"!")
    assert bytes_to_key(encoded[:2], False) == (keys.RUNE_ERROR, encoded[:2])


def test_invalid_byte_is_consumed():
    assert bytes_to_key(b"\xffa", False) == (keys.RUNE_ERROR, b"a")


def test_is_printable():
    assert is_printable(ord("a"))
    assert not is_printable(keys.KEY_UP)
    assert not is_printable(keys.KEY_ESCAPE)


def test_visual_length_skips_escapes():
    assert visual_length("\x1b[31mred\x1b[0m") == len("red")
    assert visual_length("> ") == len("> ")


def test_write_with_crlf():
    out = io.BytesIO()
    data = b"a\nb\n"
    assert write_with_crlf(out, data) == len(data)
    assert out.getvalue() == b"a\r\nb\r\n"


def test_read_password_line_backspace_and_line_end():
    assert read_password_line(io.BytesIO(b"abx\bc\r\nrest")) == b"abc"


def test_read_password_line_eof_with_content():
    assert read_password_line(io.BytesIO(b"xy")) == b"xy"


def test_read_password_line_empty_eof():
    with pytest.raises(EOFError):
        read_password_line(io.BytesIO(b""))


def test_history_ring_wraps():
    ring = HistoryRing()
    for n in range(150):
        ring.add(f"e{n}")
    assert len(ring) == 100
    assert ring.nth_previous_entry(0) == "e149"
    assert ring.nth_previous_entry(100) is None
    assert [ring.nth_previous_entry(n) for n in range(100)] == [f"e{n}" for n in range(149, 49, -1)]


def test_history_ring_empty():
    assert HistoryRing().nth_previous_entry(0) is None