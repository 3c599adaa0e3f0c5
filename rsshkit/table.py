"""Plain-text tables with boxed cells."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import List, TextIO


@dataclass
class _Cell:
    parts: List[str] = field(default_factory=list)
    longest: int = 0

    @classmethod
    def from_text(cls, text: str) -> "_Cell":
        parts = text.strip().split("\n")
        return cls(parts, max((len(p) for p in parts), default=0))


class Table:
    """A titled table whose first row holds the column names."""

    def __init__(self, name: str, *args: str) -> None:
        self.name = name
        self.cols = len(args)
        self._rows: List[List[_Cell]] = []
        self._widths: List[int] = [0] * self.cols
        self._heights: List[int] = []
        self.add_values(*args)

    def add_values(self, *args: str) -> None:
        """Append a row; the number of values must match the columns."""
        if len(args) != self.cols:
            raise ValueError("Error more values exist than number of columns")
        row = [_Cell.from_text(v) for v in args]
        for i, cell in enumerate(row):
            self._widths[i] = max(self._widths[i], cell.longest)
        self._heights.append(max((len(c.parts) for c in row), default=0))
        self._rows.append(row)

    def _separator(self) -> str:
        return "+" + "".join("-" * (w + 2) + "+" for w in self._widths)

    def output_strings(self) -> List[str]:
        """Render the table as a list of lines, title first."""
        separator = self._separator()
        output: List[str] = []
        for row, height in zip(self._rows, self._heights):
            for y in range(height):
                line = "|"
                for cell, width in zip(row, self._widths):
                    value = cell.parts[y] if y < len(cell.parts) else ""
                    line += f" {value.ljust(width)} |"
                output.append(line)
            output.append(separator)
        title = self.name.rjust(len(output[0]) // 2)
        return [title, separator, *output]

    def fprint(self, stream: TextIO) -> None:
        for line in self.output_strings():
            stream.write(line + "\n")

    def fprint_width(self, stream: TextIO, width: int) -> None:
        """Write the table, cutting each line to fewer than ``width`` characters."""
        limit = max(width - 1, 0)
        for line in self.output_strings():
            stream.write(line[:limit] + "\n")

    def print(self) -> None:
        self.fprint(sys.stdout)