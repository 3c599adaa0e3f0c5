"""The interface that terminal commands implement, and autocomplete tags."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from rsshkit.terminal.parsing import ParsedLine

# Tags that a command's expect() may return; each names a set of completion values.
REMOTE_ID = "<remote_id>"
FUNCTIONS = "<functions>"
WEB_SERVER_FILE_IDS = "<file_ids>"


class Command(ABC):
    """A command that the terminal can run and autocomplete."""

    @abstractmethod
    def expect(self, line: ParsedLine) -> Optional[List[str]]:
        """Return the completions expected at the cursor, or a tag such as FUNCTIONS."""

    @abstractmethod
    def run(self, output, line: ParsedLine) -> None:
        """Run the command, writing to ``output``; raise on failure."""

    @abstractmethod
    def help(self, explain: bool) -> str:
        """Return the help text, detailed when ``explain`` is true."""