"""Tab completion of commands and their arguments."""

from __future__ import annotations

from typing import List, Optional, Tuple

from rsshkit.terminal.parsing import Argument, Cmd, Flag, Node, parse_line


def collapse(s: str, char: str) -> str:
    """Replace every run of ``char`` in ``s`` with a single ``char``."""
    out: List[str] = []
    run = False
    for ch in s:
        if ch == char:
            run = True
            continue
        if run:
            out.append(char)
            run = False
        out.append(ch)
    if run:
        out.append(char)
    return "".join(out)


def build_display_line(
    focus: Optional[Node], line: str, match: str, current_pos: int
) -> Tuple[str, int]:
    """Place ``match`` into ``line`` where the focused node is; returns line and cursor."""
    if focus is None:
        output = line[:current_pos] + match
        return output + line[current_pos:], len(output)

    if focus.type == Cmd.type:
        output = ""
    elif focus.type == Argument.type:
        output = line[:focus.start]
    elif focus.type == Flag.type:
        output = line[:focus.end] + " "
    else:
        raise ValueError(f"Unknown type: {focus.type}")

    output += match
    return output + line[focus.end:], len(output)


def _reset(term) -> None:
    term.auto_complete_index = 0
    term.auto_complete_pending = ""
    term.auto_completing = False
    term.auto_complete_pos = 0


def _start(term, line: str, pos: int) -> None:
    term.auto_complete_index = 0
    term.auto_complete_pending = line
    term.auto_completing = True
    term.auto_complete_pos = pos


def _candidates(term) -> List[str]:
    parsed = parse_line(term.auto_complete_pending, term.auto_complete_pos)
    if parsed.command is None:
        return term.functions_auto_complete.prefix_match("")
    if parsed.focus is not None and parsed.focus.start == 0:
        return term.functions_auto_complete.prefix_match(parsed.focus.value)

    command = term.functions.get(parsed.command.value)
    if command is None:
        return []
    expected = command.expect(parsed)
    if expected is None:
        return []

    matches = list(expected)
    if len(expected) == 1 and len(expected[0]) > 1:
        tag = expected[0]
        if tag.startswith("<") and tag.endswith(">") and tag in term.auto_complete_values:
            search = ""
            if parsed.focus is not None and (
                parsed.section is None or parsed.focus.start != parsed.section.start
            ):
                search = parsed.focus.value
            matches = term.auto_complete_values[tag].prefix_match(search)
    return matches


def default_auto_complete(term, line: str, pos: int, key: int) -> Tuple[str, int, bool]:
    """Complete on Tab, cycling through candidates on repeated presses.

    Returns the new line, cursor position and whether the key was handled.
    """
    if key != ord("\t"):
        _reset(term)
        return "", 0, False

    if not term.auto_completing:
        _start(term, line, pos)

    matches = sorted(_candidates(term))
    focus = parse_line(line, pos).focus

    if len(matches) == 1:
        _reset(term)
        output, new_pos = build_display_line(focus, line, matches[0], pos)
        if focus is not None and focus.type == Cmd.type:
            output += " "
            new_pos += 1
        return output, new_pos, True

    if matches:
        current = matches[term.auto_complete_index % len(matches)]
        term.auto_complete_index = (term.auto_complete_index + 1) % len(matches)
        output, new_pos = build_display_line(focus, line, current, pos)
        return output, new_pos, True

    return "", 0, False