"""A VT100 line-editing terminal with history, bracketed paste and tab completion."""

from __future__ import annotations

import logging
import queue
import struct
import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from rsshkit.terminal.command import FUNCTIONS, Command
from rsshkit.terminal.completion import default_auto_complete
from rsshkit.terminal.keys import (
    KEY_ALT_LEFT,
    KEY_ALT_RIGHT,
    KEY_BACKSPACE,
    KEY_CLEAR_SCREEN,
    KEY_CTRL_C,
    KEY_CTRL_D,
    KEY_CTRL_U,
    KEY_DEL,
    KEY_DELETE_LINE,
    KEY_DELETE_WORD,
    KEY_DOWN,
    KEY_END,
    KEY_ENTER,
    KEY_ESCAPE,
    KEY_HOME,
    KEY_LEFT,
    KEY_PASTE_END,
    KEY_PASTE_START,
    KEY_RIGHT,
    KEY_UP,
    RUNE_ERROR,
    VT100_ESCAPE_CODES,
    HistoryRing,
    bytes_to_key,
    is_printable,
    visual_length,
    write_with_crlf,
)
from rsshkit.trie import Trie

_LOG = logging.getLogger(__name__)

MAX_LINE_LENGTH = 4096
_READ_BUFFER_SIZE = 256
_ESC = chr(KEY_ESCAPE)

_RESET_KEYS = frozenset(
    {
        KEY_BACKSPACE, KEY_ALT_LEFT, KEY_ALT_RIGHT, KEY_LEFT, KEY_RIGHT, KEY_HOME,
        KEY_END, KEY_DEL, KEY_UP, KEY_DOWN, KEY_ENTER, KEY_DELETE_WORD,
        KEY_DELETE_LINE, KEY_CTRL_D, KEY_CTRL_U, KEY_CLEAR_SCREEN,
    }
)

AutoCompleteCallback = Callable[["Terminal", str, int, int], Tuple[str, int, bool]]


class CtrlCError(Exception):
    """Raised by read_line when the user presses Ctrl + C."""

    def __init__(self, message: str = "Ctrl + C") -> None:
        super().__init__(message)


class CtrlDError(EOFError):
    """Raised by read_line when the user presses Ctrl + D on an empty line."""

    def __init__(self, message: str = "Ctrl + D") -> None:
        super().__init__(message)


class PasteIndicator(Exception):
    """Raised by read_line when the entered line consists only of pasted data.

    The line itself is available as ``line``.
    """

    def __init__(self, line: str) -> None:
        super().__init__("terminal: ErrPasteIndicator not correctly handled")
        self.line = line


def _encode(chars: Iterable[str]) -> bytes:
    return "".join("\ufffd" if 0xD800 <= ord(c) <= 0xDFFF else c for c in chars).encode("utf-8")


def _parse_dims(payload: bytes) -> Tuple[int, int]:
    if len(payload) < 8:
        return 0, 0
    return struct.unpack(">II", bytes(payload[:8]))


class Terminal:
    """Reads edited lines from ``conn`` and writes around the displayed prompt.

    ``conn`` needs ``read(size) -> bytes`` and ``write(bytes)``. A ``user``,
    when given, supplies ``shell_requests`` (a queue of requests with ``type``,
    ``payload``, ``want_reply`` and ``reply(ok, payload)``; ``None`` ends it)
    and optionally ``pty`` with ``columns`` and ``rows``.
    """

    def __init__(self, conn, prompt: str, user=None) -> None:
        self.conn = conn
        self.user = user
        self.prompt = prompt
        self.escape = VT100_ESCAPE_CODES
        self.auto_complete_callback: Optional[AutoCompleteCallback] = None

        self.line: List[str] = []
        self.pos = 0
        self.echo = True
        self.paste_active = False
        self.cursor_x = 0
        self.cursor_y = 0
        self.max_line = 0
        self.term_width = 80
        self.term_height = 24
        self.raw = False

        self.history = HistoryRing()
        self.history_index = -1
        self.history_pending = ""

        self.auto_complete_index = 0
        self.auto_complete_pos = 0
        self.auto_complete_pending = ""
        self.auto_completing = False

        self.functions: Dict[str, Command] = {}
        self.functions_auto_complete = Trie()
        self.auto_complete_values: Dict[str, Trie] = {}

        self._lock = threading.Lock()
        self._out_buf = bytearray()
        self._remainder = b""
        self._cancel: Optional[threading.Event] = None

    @classmethod
    def advanced(cls, conn, user, prompt: str) -> "Terminal":
        """A terminal with command completion and window-size handling."""
        term = cls(conn, prompt, user)
        term.auto_complete_callback = default_auto_complete
        term.add_value_auto_complete(FUNCTIONS, term.functions_auto_complete)
        term._handle_window_size()
        return term

    # -- raw mode and window requests -------------------------------------

    def enable_raw(self) -> None:
        """Pass reads and writes straight through to the connection."""
        with self._lock:
            if not self.raw:
                if self._cancel is not None:
                    self._cancel.set()
                    self._cancel = None
                self.raw = True

    def disable_raw(self) -> None:
        with self._lock:
            if self.raw:
                self.raw = False
                self._handle_window_size()

    def _handle_window_size(self) -> None:
        requests = getattr(self.user, "shell_requests", None)
        if requests is None:
            return
        cancel = threading.Event()
        self._cancel = cancel
        threading.Thread(
            target=self._serve_requests, args=(requests, cancel), daemon=True
        ).start()

    def _serve_requests(self, requests, cancel: threading.Event) -> None:
        while not cancel.is_set():
            try:
                request = requests.get(timeout=0.05)
            except queue.Empty:
                continue
            if request is None:
                return
            if request.type == "window-change":
                width, height = _parse_dims(request.payload)
                self.set_size(width, height)
                pty = getattr(self.user, "pty", None)
                if pty is not None:
                    pty.columns = width
                    pty.rows = height
            else:
                _LOG.info("Handled unknown request type in default handler: %s", request.type)
                if request.want_reply:
                    request.reply(False, None)

    # -- configuration ------------------------------------------------------

    def add_value_auto_complete(self, placement: str, trie: Trie) -> None:
        """Register the completion values for a tag such as ``<functions>``."""
        with self._lock:
            if placement in self.auto_complete_values:
                raise ValueError("Trampling function value, ignoring")
            self.auto_complete_values[placement] = trie

    def add_commands(self, commands: Dict[str, Command]) -> None:
        with self._lock:
            self.functions = dict(commands)
            for name in self.functions:
                self.functions_auto_complete.add(name)

    def set_prompt(self, prompt: str) -> None:
        with self._lock:
            self.prompt = prompt

    def set_bracketed_paste_mode(self, on: bool) -> None:
        """Ask the terminal to bracket pasted text with markers."""
        self.conn.write(b"\x1b[?2004h" if on else b"\x1b[?2004l")

    # -- main loop ------------------------------------------------------------

    def run(self) -> None:
        """Read and dispatch commands until input ends or a command raises EOFError."""
        from rsshkit.terminal.parsing import parse_line

        while True:
            try:
                line = self.read_line()
            except CtrlCError:
                continue
            parsed = parse_line(line, self.pos)
            if parsed.command is None:
                continue
            command = self.functions.get(parsed.command.value)
            if command is None:
                self.write(f"Unknown command: {parsed.command.value}\n")
                continue
            try:
                command.run(self, parsed)
            except EOFError:
                raise
            except Exception as exc:  # commands report failures to the user
                self.write(f"{exc}\n")

    # -- I/O --------------------------------------------------------------------

    def read(self, size: int) -> bytes:
        """In raw mode read from the connection; otherwise report end of input."""
        if self.raw:
            data = self.conn.read(size)
            if not self.raw and data:
                self._add_character_to_input(data)
            return data
        return b""

    def write(self, data: Union[bytes, str]) -> int:
        """Write output, moving the prompt and the line being edited out of the way."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self.raw:
            count = self.conn.write(data)
            return len(data) if count is None else count

        with self._lock:
            if self.cursor_x == 0 and self.cursor_y == 0:
                return write_with_crlf(self.conn, data)

            self._move(0, 0, self.cursor_x, 0)
            self.cursor_x = 0
            self._clear_line_to_right()
            while self.cursor_y > 0:
                self._move(1, 0, 0, 0)
                self.cursor_y -= 1
                self._clear_line_to_right()
            self._flush()

            written = write_with_crlf(self.conn, data)

            self._write_line(list(self.prompt))
            if self.echo:
                self._write_line(self.line)
            self._move_cursor_to_pos(self.pos)
            self._flush()
            return written

    def read_password(self, prompt: str) -> str:
        """Read a line without echo, showing ``prompt`` meanwhile."""
        with self._lock:
            old_prompt = self.prompt
            self.prompt = prompt
            self.echo = False
            try:
                return self._read_line()
            finally:
                self.prompt = old_prompt
                self.echo = True

    def read_line(self) -> str:
        """Return the next line entered, without its line ending.

        Raises CtrlCError, CtrlDError, PasteIndicator, or EOFError at end of input.
        """
        with self._lock:
            return self._read_line()

    def set_size(self, width: int, height: int) -> None:
        """Record a new window size, repainting the line if the width changed."""
        with self._lock:
            if width == 0:
                width = 1
            old_width = self.term_width
            self.term_width, self.term_height = width, height

            if width == old_width:
                return
            if not self.line and self.cursor_x == 0 and self.cursor_y == 0:
                return
            if width < old_width:
                # Assume the terminal rewraps, doubling every wrapped line.
                if self.cursor_x >= self.term_width:
                    self.cursor_x = self.term_width - 1
                self.cursor_y *= 2
                self._clear_and_repaint_line_plus_n_previous(self.max_line * 2)
            else:
                self._clear_and_repaint_line_plus_n_previous(self.max_line)
            self._flush()

    # -- internals (lock held) ----------------------------------------------

    def _flush(self) -> None:
        if self._out_buf:
            self.conn.write(bytes(self._out_buf))
            self._out_buf.clear()

    def _queue(self, chars: Iterable[str]) -> None:
        self._out_buf += _encode(chars)

    def _read_line(self) -> str:
        if self.cursor_x == 0 and self.cursor_y == 0:
            self._write_line(list(self.prompt))
            self._flush()

        line_is_pasted = self.paste_active

        while True:
            rest = self._remainder
            line, line_ok = "", False
            while not line_ok:
                key, rest = bytes_to_key(rest, self.paste_active)
                if key == RUNE_ERROR:
                    break
                if not self.paste_active:
                    if key == KEY_CTRL_D and not self.line:
                        self._remainder = rest
                        raise CtrlDError()
                    if key == KEY_CTRL_C:
                        self._remainder = b""
                        raise CtrlCError()
                    if key == KEY_PASTE_START:
                        self.paste_active = True
                        if not self.line:
                            line_is_pasted = True
                        continue
                elif key == KEY_PASTE_END:
                    self.paste_active = False
                    continue
                if not self.paste_active:
                    line_is_pasted = False
                line, line_ok = self._handle_key(key)

            self._remainder = bytes(rest[:_READ_BUFFER_SIZE])
            self._flush()

            if line_ok:
                if self.echo:
                    self.history_index = -1
                    stripped = line.strip()
                    if stripped:
                        self.history.add(stripped)
                if line_is_pasted:
                    raise PasteIndicator(line)
                return line

            self._lock.release()
            try:
                data = self.conn.read(_READ_BUFFER_SIZE - len(self._remainder))
            finally:
                self._lock.acquire()
            if not data:
                raise EOFError("end of input")
            self._remainder += data

    def _add_character_to_input(self, data: bytes) -> None:
        with self._lock:
            key, _ = bytes_to_key(data, False)
            self._handle_key(key)
            self._flush()

    def _handle_key(self, key: int) -> Tuple[str, bool]:
        if self.paste_active and key != KEY_ENTER:
            self._reset_auto_complete()
            self._add_key_to_line(key)
            return "", False

        if key in _RESET_KEYS:
            self._reset_auto_complete()

        if key == KEY_DEL:
            if self.pos >= len(self.line):
                return "", False
            self.pos += 1
            self._erase_n_previous_chars(1)
        elif key == KEY_BACKSPACE:
            if self.pos == 0:
                return "", False
            self._erase_n_previous_chars(1)
        elif key == KEY_ALT_LEFT:
            self.pos -= self._count_to_left_word()
            self._move_cursor_to_pos(self.pos)
        elif key == KEY_ALT_RIGHT:
            self.pos += self._count_to_right_word()
            self._move_cursor_to_pos(self.pos)
        elif key == KEY_LEFT:
            if self.pos == 0:
                return "", False
            self.pos -= 1
            self._move_cursor_to_pos(self.pos)
        elif key == KEY_RIGHT:
            if self.pos == len(self.line):
                return "", False
            self.pos += 1
            self._move_cursor_to_pos(self.pos)
        elif key == KEY_HOME:
            if self.pos == 0:
                return "", False
            self.pos = 0
            self._move_cursor_to_pos(self.pos)
        elif key == KEY_END:
            if self.pos == len(self.line):
                return "", False
            self.pos = len(self.line)
            self._move_cursor_to_pos(self.pos)
        elif key == KEY_UP:
            entry = self.history.nth_previous_entry(self.history_index + 1)
            if entry is None:
                return "", False
            if self.history_index == -1:
                self.history_pending = "".join(self.line)
            self.history_index += 1
            self._set_line(list(entry), len(entry))
        elif key == KEY_DOWN:
            if self.history_index == -1:
                return "", False
            if self.history_index == 0:
                self._set_line(list(self.history_pending), len(self.history_pending))
                self.history_index -= 1
            else:
                entry = self.history.nth_previous_entry(self.history_index - 1)
                if entry is not None:
                    self.history_index -= 1
                    self._set_line(list(entry), len(entry))
        elif key == KEY_ENTER:
            self._move_cursor_to_pos(len(self.line))
            self._queue("\r\n")
            line = "".join(self.line)
            self.line = []
            self.pos = 0
            self.cursor_x = 0
            self.cursor_y = 0
            self.max_line = 0
            return line, True
        elif key == KEY_DELETE_WORD:
            self._erase_n_previous_chars(self._count_to_left_word())
        elif key == KEY_DELETE_LINE:
            for _ in range(self.pos, len(self.line)):
                self._queue(" ")
                self._advance_cursor(1)
            self.line = self.line[:self.pos]
            self._move_cursor_to_pos(self.pos)
        elif key == KEY_CTRL_D:
            if self.pos < len(self.line):
                self.pos += 1
                self._erase_n_previous_chars(1)
        elif key == KEY_CTRL_U:
            self._erase_n_previous_chars(self.pos)
        elif key == KEY_CLEAR_SCREEN:
            self._queue("\x1b[2J\x1b[H")
            self._queue(self.prompt)
            self.cursor_x, self.cursor_y = 0, 0
            self._advance_cursor(visual_length(self.prompt))
            self._set_line(self.line, self.pos)
        else:
            if self.auto_complete_callback is not None:
                prefix = "".join(self.line[:self.pos])
                suffix = "".join(self.line[self.pos:])
                self._lock.release()
                try:
                    new_line, new_pos, handled = self.auto_complete_callback(
                        self, prefix + suffix, len(prefix), key
                    )
                finally:
                    self._lock.acquire()
                if handled:
                    self._set_line(list(new_line), new_pos)
                    return "", False
            if not is_printable(key) or len(self.line) == MAX_LINE_LENGTH:
                return "", False
            self._add_key_to_line(key)
        return "", False

    def _add_key_to_line(self, key: int) -> None:
        self.line.insert(self.pos, chr(key))
        if self.echo:
            self._write_line(self.line[self.pos:])
        self.pos += 1
        self._move_cursor_to_pos(self.pos)

    def _write_line(self, chars: List[str]) -> None:
        while chars:
            todo = min(len(chars), self.term_width - self.cursor_x)
            chunk = chars[:todo]
            self._queue(chunk)
            self._advance_cursor(visual_length(chunk))
            chars = chars[todo:]

    def _set_line(self, new_line: List[str], new_pos: int) -> None:
        if self.echo:
            self._move_cursor_to_pos(0)
            self._write_line(new_line)
            for _ in range(len(new_line), len(self.line)):
                self._write_line([" "])
            self._move_cursor_to_pos(new_pos)
        self.line = list(new_line)
        self.pos = new_pos

    def _move_cursor_to_pos(self, pos: int) -> None:
        if not self.echo:
            return
        x = visual_length(self.prompt) + pos
        y, x = divmod(x, self.term_width)
        up = max(self.cursor_y - y, 0)
        down = max(y - self.cursor_y, 0)
        left = max(self.cursor_x - x, 0)
        right = max(x - self.cursor_x, 0)
        self.cursor_x = x
        self.cursor_y = y
        self._move(up, down, left, right)

    def _move(self, up: int, down: int, left: int, right: int) -> None:
        sequence = []
        for count, letter in ((up, "A"), (down, "B"), (right, "C"), (left, "D")):
            if count == 1:
                sequence.append(f"{_ESC}[{letter}")
            elif count > 1:
                sequence.append(f"{_ESC}[{count}{letter}")
        self._queue("".join(sequence))

    def _clear_line_to_right(self) -> None:
        self._queue(f"{_ESC}[K")

    def _advance_cursor(self, places: int) -> None:
        self.cursor_x += places
        self.cursor_y += self.cursor_x // self.term_width
        self.max_line = max(self.max_line, self.cursor_y)
        self.cursor_x %= self.term_width
        if places > 0 and self.cursor_x == 0:
            # Terminals do not advance past the last column on their own.
            self._out_buf += b"\r\n"

    def _erase_n_previous_chars(self, n: int) -> None:
        if n == 0:
            return
        n = min(n, self.pos)
        self.pos -= n
        self._move_cursor_to_pos(self.pos)
        del self.line[self.pos:self.pos + n]
        if self.echo:
            self._write_line(self.line[self.pos:])
            self._queue(" " * n)
            self._advance_cursor(n)
            self._move_cursor_to_pos(self.pos)

    def _count_to_left_word(self) -> int:
        if self.pos == 0:
            return 0
        pos = self.pos - 1
        while pos > 0 and self.line[pos] == " ":
            pos -= 1
        while pos > 0:
            if self.line[pos] == " ":
                pos += 1
                break
            pos -= 1
        return self.pos - pos

    def _count_to_right_word(self) -> int:
        pos = self.pos
        while pos < len(self.line) and self.line[pos] != " ":
            pos += 1
        while pos < len(self.line) and self.line[pos] == " ":
            pos += 1
        return pos - self.pos

    def _clear_and_repaint_line_plus_n_previous(self, num_prev_lines: int) -> None:
        self._move(self.cursor_y, 0, self.cursor_x, 0)
        self.cursor_x, self.cursor_y = 0, 0
        self._clear_line_to_right()
        while self.cursor_y < num_prev_lines:
            self._move(0, 1, 0, 0)
            self.cursor_y += 1
            self._clear_line_to_right()
        self._move(self.cursor_y, 0, 0, 0)
        self.cursor_x, self.cursor_y = 0, 0

        self._queue(self.prompt)
        self._advance_cursor(visual_length(self.prompt))
        self._write_line(self.line)
        self._move_cursor_to_pos(self.pos)

    def _reset_auto_complete(self) -> None:
        self.auto_complete_index = 0
        self.auto_complete_pending = ""
        self.auto_completing = False
        self.auto_complete_pos = 0