"""Registry of users connected to the server."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set


class NilServerConnectionError(ValueError):
    """Raised when a user is created without a server connection."""

    def __init__(self, message: str = "The server connection was nil for the client") -> None:
        super().__init__(message)


_lock = threading.RLock()
_users: Dict[str, bool] = {}


def _format_address(address: Any) -> str:
    if isinstance(address, tuple) and len(address) >= 2:
        host, port = address[0], address[1]
        if ":" in str(host):
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return str(address)


@dataclass
class User:
    """A connected user and the state kept for their session.

    ``server_connection`` must provide ``user``, ``remote_addr`` and ``close()``.
    """

    server_connection: Any
    connection_details: str = ""
    pty: Optional[Any] = None
    shell_requests: Optional[Any] = None
    supported_remote_forwards: Set[Any] = field(default_factory=set)


def create_user(server_connection: Any) -> User:
    """Create and register a user for ``server_connection``."""
    if server_connection is None:
        raise NilServerConnectionError()
    details = (
        f"{server_connection.user}@{_format_address(server_connection.remote_addr)}"
    )
    user = User(server_connection=server_connection, connection_details=details)
    with _lock:
        _users[details] = True
    return user


def list_users() -> List[str]:
    """Connection details of every registered user, sorted."""
    with _lock:
        return sorted(_users)


def delete_user(user: Optional[User]) -> None:
    """Unregister ``user`` and close its server connection."""
    if user is None:
        return
    with _lock:
        _users.pop(user.connection_details, None)
    if user.server_connection is not None:
        user.server_connection.close()