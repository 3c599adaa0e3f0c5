"""Key decoding, history and low-level output helpers for the line terminal."""

from __future__ import annotations

import sys
from collections import deque
from dataclasses import dataclass
from typing import BinaryIO, Deque, Iterable, Optional, Tuple, Union

RUNE_ERROR = 0xFFFD

KEY_CTRL_C = 3
KEY_CTRL_D = 4
KEY_CTRL_U = 21
KEY_ENTER = ord("\r")
KEY_ESCAPE = 27
KEY_BACKSPACE = 127

# Special keys live in the UTF-16 surrogate area, which no decoded rune can occupy.
KEY_UNKNOWN = 0xD800 + 6
KEY_UP = KEY_UNKNOWN + 1
KEY_DOWN = KEY_UNKNOWN + 2
KEY_LEFT = KEY_UNKNOWN + 3
KEY_RIGHT = KEY_UNKNOWN + 4
KEY_ALT_LEFT = KEY_UNKNOWN + 5
KEY_ALT_RIGHT = KEY_UNKNOWN + 6
KEY_HOME = KEY_UNKNOWN + 7
KEY_DEL = KEY_UNKNOWN + 8
KEY_END = KEY_UNKNOWN + 9
KEY_DELETE_WORD = KEY_UNKNOWN + 10
KEY_DELETE_LINE = KEY_UNKNOWN + 11
KEY_CLEAR_SCREEN = KEY_UNKNOWN + 12
KEY_PASTE_START = KEY_UNKNOWN + 13
KEY_PASTE_END = KEY_UNKNOWN + 14

CRLF = b"\r\n"
PASTE_START = b"\x1b[200~"
PASTE_END = b"\x1b[201~"

_CONTROL_KEYS = {
    1: KEY_HOME,  # ^A
    2: KEY_LEFT,  # ^B
    5: KEY_END,  # ^E
    6: KEY_RIGHT,  # ^F
    8: KEY_BACKSPACE,  # ^H
    11: KEY_DELETE_LINE,  # ^K
    12: KEY_CLEAR_SCREEN,  # ^L
    23: KEY_DELETE_WORD,  # ^W
    14: KEY_DOWN,  # ^N
    16: KEY_UP,  # ^P
}

_CSI_KEYS = {
    ord("A"): (KEY_UP, 3),
    ord("B"): (KEY_DOWN, 3),
    ord("C"): (KEY_RIGHT, 3),
    ord("D"): (KEY_LEFT, 3),
    ord("H"): (KEY_HOME, 3),
    ord("F"): (KEY_END, 3),
    ord("3"): (KEY_DEL, 4),
}


@dataclass(frozen=True)
class EscapeCodes:
    """Escape sequences for coloured text."""

    black: bytes = b""
    red: bytes = b""
    green: bytes = b""
    yellow: bytes = b""
    blue: bytes = b""
    magenta: bytes = b""
    cyan: bytes = b""
    white: bytes = b""
    reset: bytes = b""


VT100_ESCAPE_CODES = EscapeCodes(
    black=b"\x1b[30m",
    red=b"\x1b[31m",
    green=b"\x1b[32m",
    yellow=b"\x1b[33m",
    blue=b"\x1b[34m",
    magenta=b"\x1b[35m",
    cyan=b"\x1b[36m",
    white=b"\x1b[37m",
    reset=b"\x1b[0m",
)


def _sequence_length(lead: int) -> int:
    if lead < 0x80:
        return 1
    if 0xC2 <= lead <= 0xDF:
        return 2
    if 0xE0 <= lead <= 0xEF:
        return 3
    if 0xF0 <= lead <= 0xF4:
        return 4
    return 0


def _second_byte_range(lead: int) -> Tuple[int, int]:
    return {0xE0: (0xA0, 0xBF), 0xED: (0x80, 0x9F), 0xF0: (0x90, 0xBF), 0xF4: (0x80, 0x8F)}.get(
        lead, (0x80, 0xBF)
    )


def _decode_rune(data: bytes) -> Optional[Tuple[int, int]]:
    """Decode one UTF-8 rune; None when the input stops inside a valid sequence."""
    lead = data[0]
    size = _sequence_length(lead)
    if size == 0:
        return RUNE_ERROR, 1
    if size == 1:
        return lead, 1
    for k in range(1, size):
        if k >= len(data):
            return None
        low, high = _second_byte_range(lead) if k == 1 else (0x80, 0xBF)
        if not low <= data[k] <= high:
            return RUNE_ERROR, 1
    return ord(data[:size].decode("utf-8")), size


def bytes_to_key(data: bytes, paste_active: bool) -> Tuple[int, bytes]:
    """Parse one key from ``data``; returns the key and the unconsumed bytes.

    RUNE_ERROR is returned when no complete key is available yet.
    """
    data = bytes(data)
    if not data:
        return RUNE_ERROR, b""

    first = data[0]
    if not paste_active and first in _CONTROL_KEYS:
        return _CONTROL_KEYS[first], data[1:]

    if first != KEY_ESCAPE:
        decoded = _decode_rune(data)
        if decoded is None:
            return RUNE_ERROR, data
        rune, size = decoded
        return rune, data[size:]

    if not paste_active:
        if len(data) >= 3 and data[1] == ord("[") and data[2] in _CSI_KEYS:
            key, consumed = _CSI_KEYS[data[2]]
            return key, data[consumed:]
        if len(data) >= 6 and data[1:5] == b"[1;3":
            if data[5] == ord("C"):
                return KEY_ALT_RIGHT, data[6:]
            if data[5] == ord("D"):
                return KEY_ALT_LEFT, data[6:]
        if data[:6] == PASTE_START:
            return KEY_PASTE_START, data[6:]
    elif data[:6] == PASTE_END:
        return KEY_PASTE_END, data[6:]

    # Unknown or partial sequence: letters and '~' appear only at the end of one.
    for i, byte in enumerate(data):
        ch = chr(byte)
        if ch.isascii() and (ch.isalpha() or ch == "~"):
            return KEY_UNKNOWN, data[i + 1:]
    return RUNE_ERROR, data


def is_printable(key: int) -> bool:
    """True for keys that may be inserted into the line."""
    return key >= 32 and not 0xD800 <= key <= 0xDBFF


def visual_length(runes: Union[str, Iterable[str]]) -> int:
    """Count the visible characters, skipping escape sequences."""
    in_escape = False
    length = 0
    for ch in runes:
        if in_escape:
            if ch.isascii() and ch.isalpha():
                in_escape = False
        elif ch == "\x1b":
            in_escape = True
        else:
            length += 1
    return length


def write_with_crlf(writer: BinaryIO, buf: bytes) -> int:
    """Write ``buf`` with every LF turned into CRLF; returns the input bytes written."""
    written = 0
    for i, piece in enumerate(bytes(buf).split(b"\n")):
        if i:
            writer.write(CRLF)
            written += 1
        if piece:
            count = writer.write(piece)
            written += len(piece) if count is None else count
    return written


def read_password_line(reader: BinaryIO) -> bytes:
    """Read bytes up to the end of line, honouring backspace.

    Raises EOFError when the input ends before anything was read.
    """
    windows = sys.platform == "win32"
    line_end = b"\r" if windows else b"\n"
    ignored = b"\n" if windows else b"\r"
    result = bytearray()
    while True:
        byte = reader.read(1)
        if not byte:
            if result:
                return bytes(result)
            raise EOFError("end of input")
        if byte == b"\b":
            if result:
                result.pop()
        elif byte == line_end:
            return bytes(result)
        elif byte != ignored:
            result += byte


class HistoryRing:
    """Bounded history of entered lines, newest last."""

    def __init__(self, size: int = 100) -> None:
        self._entries: Deque[str] = deque(maxlen=size)

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entry: str) -> None:
        self._entries.append(entry)

    def nth_previous_entry(self, n: int) -> Optional[str]:
        """Return the entry added ``n`` calls ago (0 is the latest), or None."""
        if n < 0 or n >= len(self._entries):
            return None
        return self._entries[-1 - n]