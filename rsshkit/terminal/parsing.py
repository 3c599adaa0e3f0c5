"""Parsing of command lines into a command, flags and arguments."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import ClassVar, Dict, Iterable, List, Optional, Tuple

_QUOTES = "\"'`"


class FlagNotSetError(LookupError):
    """Raised when a flag that was asked for is not present on the line."""

    def __init__(self, message: str = "Flag not set") -> None:
        super().__init__(message)

    def __str__(self) -> str:
        return str(self.args[0])


@dataclass
class Node:
    """A span of the input line with its parsed value."""

    value: str = ""
    start: int = 0
    end: int = 0

    type: ClassVar[str] = "node"

    def _covers(self, position: int) -> bool:
        return self.start <= position <= self.end


@dataclass
class Argument(Node):
    type: ClassVar[str] = "argument"


@dataclass
class Cmd(Node):
    type: ClassVar[str] = "command"


@dataclass
class Flag(Node):
    args: List[Argument] = field(default_factory=list)
    long: bool = False

    type: ClassVar[str] = "flag"

    def arg_values(self) -> List[str]:
        """Return the values of the flag's arguments."""
        return [arg.value for arg in self.args]

    def _copy(self) -> "Flag":
        return dataclasses.replace(self, args=list(self.args))


@dataclass
class ParsedLine:
    """The result of parsing one input line."""

    chunks: List[str] = field(default_factory=list)
    flags_ordered: List[Flag] = field(default_factory=list)
    flags: Dict[str, Flag] = field(default_factory=dict)
    arguments: List[Argument] = field(default_factory=list)
    focus: Optional[Node] = None
    section: Optional[Flag] = None
    command: Optional[Cmd] = None
    raw_line: str = ""

    def empty(self) -> bool:
        return self.raw_line == ""

    def arguments_as_strings(self) -> List[str]:
        return [arg.value for arg in self.arguments]

    def is_set(self, flag: str) -> bool:
        return flag in self.flags

    def _flag(self, flag: str) -> Flag:
        try:
            return self.flags[flag]
        except KeyError:
            raise FlagNotSetError() from None

    def expect_args(self, flag: str, needs: int) -> List[Argument]:
        """Return the flag's arguments, requiring exactly ``needs`` of them."""
        found = self._flag(flag)
        if len(found.args) != needs:
            raise ValueError(f"flag: {flag} expects {needs} arguments")
        return found.args

    def get_args(self, flag: str) -> List[Argument]:
        return self._flag(flag).args

    def get_args_string(self, flag: str) -> List[str]:
        return self._flag(flag).arg_values()

    def get_arg(self, flag: str) -> Argument:
        return self.expect_args(flag, 1)[0]

    def get_arg_string(self, flag: str) -> str:
        """Return the first argument of a flag that must have at least one."""
        found = self._flag(flag)
        if not found.args:
            raise ValueError(f"flag: {flag} expects at least 1 argument")
        return found.args[0].value


def _parse_flag(line: str, start: int) -> Tuple[Flag, int]:
    flag = Flag(start=start)
    linked = True
    end_pos = 0
    pos = start
    chars: List[str] = []
    while pos < len(line):
        end_pos = pos
        ch = line[pos]
        if ch == " ":
            break
        if ch == "-" and linked:
            pos += 1
            continue
        if pos - start > 1 and linked:
            flag.long = True
        linked = False
        chars.append(ch)
        pos += 1
    flag.end = pos
    flag.value = "".join(chars)
    return flag, end_pos


def _parse_single_arg(line: str, start: int) -> Tuple[Argument, int]:
    in_string = False
    delimiter = ""
    literal_next = False
    chars: List[str] = []
    end_pos = 0
    pos = start
    while pos < len(line):
        end_pos = pos
        ch = line[pos]
        if not in_string and ch in _QUOTES:
            in_string = True
            delimiter = ch
            pos += 1
            continue
        if not literal_next:
            if ch == "\\":
                literal_next = True
                pos += 1
                continue
            if in_string and ch == delimiter:
                delimiter = ""
                in_string = False
                pos += 1
                continue
            if ch == " " and not in_string:
                break
        chars.append(ch)
        literal_next = False
        pos += 1
    return Argument(value="".join(chars), start=start, end=pos), end_pos


def _parse_args(line: str, start: int) -> Tuple[List[Argument], int]:
    args: List[Argument] = []
    end_pos = start
    while end_pos < len(line):
        arg, end_pos = _parse_single_arg(line, end_pos)
        if arg.value:
            args.append(arg)
        if end_pos != len(line) - 1 and line[end_pos + 1] == "-":
            return args, end_pos
        end_pos += 1
    return args, end_pos


def _store_capture(parsed: ParsedLine, capture: Flag) -> None:
    previous = parsed.flags.get(capture.value)
    if previous is not None:
        capture.args = capture.args + previous.args
    parsed.flags[capture.value] = capture._copy()
    parsed.flags_ordered.append(capture._copy())


def parse_line(line: str, cursor_position: int) -> ParsedLine:
    """Split ``line`` into command, flags and arguments, noting what the cursor is on."""
    parsed = ParsedLine(raw_line=line)
    capture: Optional[Flag] = None

    i = 0
    while i < len(line):
        if line[i] == "-":
            if capture is not None:
                _store_capture(parsed, capture)

            new_flag, i = _parse_flag(line, i)
            if new_flag._covers(cursor_position):
                parsed.focus = new_flag
                parsed.section = new_flag

            parsed.chunks.append(line[new_flag.start:new_flag.end])

            if new_flag.long or len(new_flag.value) == 1:
                capture = new_flag
                i += 1
                continue

            # Combined short options such as -abc are each set without arguments.
            capture = None
            for ch in new_flag.value:
                single = Flag(value=ch, start=new_flag.start, end=i)
                parsed.flags[ch] = single
                parsed.flags_ordered.append(single._copy())
            i += 1
            continue

        args, i = _parse_args(line, i)

        for arg in args:
            parsed.chunks.append(arg.value)
            if arg._covers(cursor_position):
                parsed.focus = arg
                parsed.section = capture

        if parsed.command is None and args and capture is None:
            first = args[0]
            parsed.command = Cmd(value=first.value, start=first.start, end=first.end)
            if parsed.command._covers(cursor_position):
                parsed.focus = parsed.command
            args = args[1:]

        parsed.arguments.extend(args)

        if capture is not None:
            capture.args = args
        i += 1

    if capture is not None:
        _store_capture(parsed, capture)

    closest_left: Optional[Flag] = None
    for flag in reversed(parsed.flags_ordered):
        if flag._covers(cursor_position):
            parsed.section = flag
            break
        if flag.end > cursor_position:
            continue
        closest_left = flag
        break

    if parsed.section is None and closest_left is not None:
        parsed.section = closest_left

    return parsed


def parse_line_valid_flags(
    line: str, cursor_position: int, valid_flags: Iterable[str]
) -> ParsedLine:
    """Parse ``line``, raising ValueError if it uses a flag not in ``valid_flags``."""
    parsed = parse_line(line, cursor_position)
    allowed = set(valid_flags)
    for flag in parsed.flags:
        if flag not in allowed:
            raise ValueError(f"flag provided but not defined: '{flag}'")
    return parsed


def make_help_text(*args: str) -> str:
    """Join lines, each ended with a newline."""
    return "".join(line + "\n" for line in args)