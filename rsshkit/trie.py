"""A character trie used for prefix completion."""

from __future__ import annotations

import threading
from typing import Dict, List


class _Node:
    __slots__ = ("char", "children")

    def __init__(self, char: str = "") -> None:
        self.char = char
        self.children: Dict[str, _Node] = {}

    def add(self, s: str) -> None:
        node = self
        for ch in s:
            child = node.children.get(ch)
            if child is None:
                child = _Node(ch)
                node.children[ch] = child
            node = child

    def all_below(self, is_root: bool = False) -> List[str]:
        if not self.children:
            return [self.char]
        prefix = "" if is_root else self.char
        return [prefix + tail for child in self.children.values() for tail in child.all_below()]

    def prefix_match(self, prefix: str) -> List[str]:
        if not prefix:
            if not self.children:
                return [""]
            return [value for child in self.children.values() for value in child.all_below()]
        child = self.children.get(prefix[0])
        if child is None:
            return []
        return [prefix[0] + rest for rest in child.prefix_match(prefix[1:])]

    def remove(self, s: str) -> bool:
        if not s:
            return not self.children
        if not self.children:
            return True
        child = self.children.get(s[0])
        if child is not None and child.remove(s[1:]):
            del self.children[s[0]]
            return not self.children
        return False


class Trie:
    """Thread-safe trie of strings.

    Only leaves are recorded as values, so a string that is a strict prefix
    of another stored string is not reported on its own.
    """

    def __init__(self, *args: str) -> None:
        self._root = _Node()
        self._lock = threading.RLock()
        for value in args:
            self.add(value)

    def add(self, s: str) -> None:
        """Insert a string."""
        with self._lock:
            self._root.add(s)

    def prefix_match(self, prefix: str) -> List[str]:
        """Return every stored value that starts with ``prefix``."""
        with self._lock:
            return self._root.prefix_match(prefix)

    def remove(self, s: str) -> bool:
        """Remove a string; returns True when the trie became empty below the root."""
        with self._lock:
            return self._root.remove(s)

    def values(self) -> List[str]:
        """Return every stored value."""
        return self.prefix_match("")