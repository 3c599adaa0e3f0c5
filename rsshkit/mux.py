"""Serve SSH and HTTP from one listening port by sniffing the first bytes."""

from __future__ import annotations

import logging
import queue
import socket
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

_LOG = logging.getLogger(__name__)

_HANDOFF_TIMEOUT = 2.0
_SNIFF_TIMEOUT = 2.0
_MAX_WAITING = 1000
_POLL_INTERVAL = 0.2
_PREFIX_LENGTH = 3

_HTTP_METHODS = (
    b"GET", b"HEAD", b"POST",
    b"PUT", b"DELETE", b"CONNECT",
    b"OPTIONS", b"TRACE", b"PATCH",
)

_CLOSED = object()


def is_http(data: bytes) -> bool:
    """True when ``data`` starts with an HTTP method name."""
    return bytes(data).startswith(_HTTP_METHODS)


@dataclass(frozen=True)
class MultiplexerConfig:
    """Which protocols to serve and the TCP keep-alive period in seconds (0 disables)."""

    ssh: bool = True
    http: bool = True
    tcp_keep_alive: int = 7200


class BufferedConnection:
    """A socket whose first reads return bytes already consumed while sniffing."""

    def __init__(self, conn: socket.socket, prefix: bytes = b"") -> None:
        self.conn = conn
        self._prefix = bytes(prefix)

    def recv(self, size: int) -> bytes:
        if self._prefix:
            data, self._prefix = self._prefix[:size], self._prefix[size:]
            return data
        return self.conn.recv(size)

    def sendall(self, data: bytes) -> None:
        self.conn.sendall(data)

    def close(self) -> None:
        self.conn.close()

    def fileno(self) -> int:
        return self.conn.fileno()

    def getpeername(self):
        return self.conn.getpeername()

    def getsockname(self):
        return self.conn.getsockname()

    def settimeout(self, value: Optional[float]) -> None:
        self.conn.settimeout(value)

    def __enter__(self) -> "BufferedConnection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class MultiplexerListener:
    """Hands out the connections identified as one protocol."""

    def __init__(self, address: Optional[Tuple[str, int]], protocol: str) -> None:
        self._address = address
        self.protocol = protocol
        self.closed = False
        self._connections: "queue.Queue[object]" = queue.Queue(maxsize=1)

    def accept(self) -> BufferedConnection:
        """Block until a connection arrives; raises OSError once closed."""
        if self.closed:
            raise OSError("Accept on closed listener")
        item = self._connections.get()
        if item is _CLOSED:
            try:
                self._connections.put_nowait(_CLOSED)
            except queue.Full:
                pass
            raise OSError("Accept on closed listener")
        return item  # type: ignore[return-value]

    def close(self) -> None:
        """Close the listener, waking any blocked accept."""
        if self.closed:
            return
        self.closed = True
        while True:
            try:
                pending = self._connections.get_nowait()
            except queue.Empty:
                break
            if pending is not _CLOSED:
                pending.close()  # type: ignore[union-attr]
        try:
            self._connections.put_nowait(_CLOSED)
        except queue.Full:
            pass

    def address(self) -> Optional[Tuple[str, int]]:
        """The listening address, or None once closed."""
        if self.closed:
            return None
        return self._address

    def _offer(self, conn: BufferedConnection, timeout: float) -> bool:
        if self.closed:
            return False
        try:
            self._connections.put(conn, timeout=timeout)
        except queue.Full:
            return False
        return True


@dataclass
class _Listening:
    sock: socket.socket
    stop: threading.Event


def _split_address(address: str) -> Tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


class Multiplexer:
    """Accepts TCP connections and routes each to the SSH or HTTP listener."""

    def __init__(self, config: Optional[MultiplexerConfig] = None) -> None:
        self.config = config if config is not None else MultiplexerConfig()
        self.done = False
        self._lock = threading.RLock()
        self._listeners: Dict[str, _Listening] = {}
        self._protocols: Dict[str, MultiplexerListener] = {}
        if self.config.ssh:
            self._protocols["ssh"] = MultiplexerListener(None, "ssh")
        if self.config.http:
            self._protocols["http"] = MultiplexerListener(None, "http")
        self._waiting = 0
        self._waiting_lock = threading.Lock()

    def __enter__(self) -> "Multiplexer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def start_listener(self, address: str) -> None:
        """Listen on ``host:port``; raises ValueError if already listening there."""
        with self._lock:
            if address in self._listeners:
                raise ValueError(f"Address {address} already listening")
            host, port = _split_address(address)
            family = socket.AF_INET6 if ":" in host else socket.AF_INET
            sock = socket.create_server((host, port), family=family)
            sock.settimeout(_POLL_INTERVAL)
            stop = threading.Event()
            self._listeners[address] = _Listening(sock, stop)
        threading.Thread(
            target=self._accept_loop, args=(address, sock, stop), daemon=True
        ).start()

    def stop_listener(self, address: str) -> None:
        """Stop listening on ``address``; raises ValueError if it is not listening."""
        with self._lock:
            entry = self._listeners.pop(address, None)
        if entry is None:
            raise ValueError(f"Address {address} not listening")
        entry.stop.set()
        entry.sock.close()

    def get_listeners(self) -> List[str]:
        """Addresses currently listened on, sorted."""
        with self._lock:
            return sorted(self._listeners)

    def close(self) -> None:
        """Stop every listener and close the protocol listeners."""
        self.done = True
        for address in self.get_listeners():
            try:
                self.stop_listener(address)
            except ValueError:
                pass
        for listener in self._protocols.values():
            listener.close()

    def ssh(self) -> MultiplexerListener:
        return self._protocol("ssh")

    def http(self) -> MultiplexerListener:
        return self._protocol("http")

    def _protocol(self, name: str) -> MultiplexerListener:
        try:
            return self._protocols[name]
        except KeyError:
            raise LookupError(f"Unknown protocol passed: {name}") from None

    def _accept_loop(self, address: str, sock: socket.socket, stop: threading.Event) -> None:
        try:
            while not stop.is_set():
                try:
                    conn, _ = sock.accept()
                except socket.timeout:
                    continue
                except OSError:
                    if stop.is_set():
                        break
                    continue
                self._dispatch(conn)
        finally:
            with self._lock:
                entry = self._listeners.get(address)
                if entry is not None and entry.sock is sock:
                    del self._listeners[address]

    def _apply_keepalive(self, conn: socket.socket) -> None:
        seconds = self.config.tcp_keep_alive
        try:
            if seconds <= 0:
                conn.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 0)
                return
            conn.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            for option in ("TCP_KEEPIDLE", "TCP_KEEPINTVL"):
                value = getattr(socket, option, None)
                if value is not None:
                    conn.setsockopt(socket.IPPROTO_TCP, value, seconds)
        except OSError:
            pass

    def _dispatch(self, conn: socket.socket) -> None:
        conn.settimeout(None)
        self._apply_keepalive(conn)
        with self._waiting_lock:
            if self._waiting > _MAX_WAITING:
                conn.close()
                return
            self._waiting += 1
        threading.Thread(target=self._route, args=(conn,), daemon=True).start()

    def _route(self, conn: socket.socket) -> None:
        try:
            try:
                conn.settimeout(_SNIFF_TIMEOUT)
                listener, prefix = self._determine_protocol(conn)
                conn.settimeout(None)
            except (OSError, ValueError) as exc:
                conn.close()
                _LOG.info("Multiplexing failed: %s", exc)
                return
            if not listener._offer(BufferedConnection(conn, prefix), _HANDOFF_TIMEOUT):
                _LOG.info(
                    "%s Failed to accept new connection within 2 seconds, closing "
                    "connection (may indicate high resource usage)",
                    listener.protocol,
                )
                conn.close()
        finally:
            with self._waiting_lock:
                self._waiting -= 1

    def _determine_protocol(self, conn: socket.socket) -> Tuple[MultiplexerListener, bytes]:
        prefix = b""
        while len(prefix) < _PREFIX_LENGTH:
            chunk = conn.recv(_PREFIX_LENGTH - len(prefix))
            if not chunk:
                break
            prefix += chunk
        if not prefix:
            raise ConnectionError("connection closed before any data")

        if prefix.startswith(b"SSH"):
            proto = "ssh"
        elif is_http(prefix):
            proto = "http"
        else:
            proto = ""

        listener = self._protocols.get(proto)
        if listener is None:
            raise ValueError("Unknown protocol")
        return listener, prefix


def listen_with_config(address: str, config: MultiplexerConfig) -> Multiplexer:
    """Start a multiplexer on ``address`` with the given configuration."""
    mux = Multiplexer(config)
    mux.start_listener(address)
    bound = mux._listeners[address].sock.getsockname()[:2]
    for listener in mux._protocols.values():
        listener._address = bound
    return mux


def listen(address: str) -> Multiplexer:
    """Start a multiplexer serving SSH and HTTP with a two-hour keep-alive."""
    return listen_with_config(address, MultiplexerConfig())