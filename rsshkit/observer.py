"""Fan-out of messages to registered callbacks."""

from __future__ import annotations

import secrets
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict


class Message(ABC):
    """A message that observers can receive."""

    @abstractmethod
    def json(self) -> bytes:
        """Serialise the message."""

    @abstractmethod
    def summary(self) -> str:
        """Describe the message in one line."""


Target = Callable[[Message], None]


class Observer:
    """Registry of callbacks that each receive every notified message."""

    def __init__(self, message_type: object) -> None:
        self.type_name = type(message_type).__qualname__
        self._clients: Dict[str, Target] = {}
        self._lock = threading.RLock()

    def register(self, target: Target) -> str:
        """Add a callback and return its id."""
        with self._lock:
            client_id = secrets.token_hex(10)
            self._clients[client_id] = target
            return client_id

    def deregister(self, id: str) -> None:
        with self._lock:
            self._clients.pop(id, None)

    def notify(self, message: Message) -> None:
        """Call every callback with ``message``, each on its own thread."""
        with self._lock:
            targets = list(self._clients.values())
        for target in targets:
            threading.Thread(target=target, args=(message,), daemon=True).start()