"""Local listener that forwards each accepted connection over a remote pod stream."""

from __future__ import annotations

import logging
import socket
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)

LOCAL_BIND_ADDRESS = "127.0.0.1"
_CHUNK_SIZE = 64 * 1024


class RemoteStream(Protocol):
    """Multiplexed stream to one pod, as returned by `kubernetes.stream.portforward`."""

    def socket(self, port_number: int) -> socket.socket: ...

    def error(self, port_number: int) -> str | None: ...

    def close(self) -> None: ...


RemoteStreamFactory = Callable[[], RemoteStream]


class PodPortForwarder:
    """Binds a local port and pipes every connection to `remote_port` on the pod.

    The first remote stream is opened before readiness is signalled so a pod
    that cannot be reached fails the tunnel instead of the first probe.
    """

    def __init__(
        self,
        open_remote_stream: RemoteStreamFactory,
        *,
        local_port: int,
        remote_port: int,
        bind_address: str = LOCAL_BIND_ADDRESS,
    ) -> None:
        self._open_remote_stream = open_remote_stream
        self._local_port = local_port
        self._remote_port = remote_port
        self._bind_address = bind_address
        self._closing = threading.Event()
        self._lock = threading.Lock()
        self._listener: socket.socket | None = None
        self._connections: list[socket.socket] = []
        self._handlers: list[threading.Thread] = []

    @property
    def bound_port(self) -> int | None:
        """Actual listening port, useful when constructed with port 0."""
        with self._lock:
            if self._listener is None:
                return None
            return self._listener.getsockname()[1]

    def forward_ports(self, on_ready: Callable[[], None]) -> None:
        listener = socket.create_server((self._bind_address, self._local_port))
        with self._lock:
            self._listener = listener
        pending: RemoteStream | None = None
        try:
            if self._closing.is_set():
                return
            pending = self._open_remote_stream()
            logger.debug(
                "Forwarding from %s:%d -> %d",
                self._bind_address,
                listener.getsockname()[1],
                self._remote_port,
            )
            on_ready()
            while not self._closing.is_set():
                try:
                    client, address = listener.accept()
                except OSError:
                    if self._closing.is_set():
                        break
                    raise
                if self._closing.is_set():
                    client.close()
                    break
                logger.debug("Handling connection from %s:%d", *address[:2])
                stream = pending
                pending = None
                self._start_handler(client, stream)
        finally:
            if pending is not None:
                pending.close()
            listener.close()
            self._drain_connections()

    def close(self) -> None:
        self._closing.set()
        with self._lock:
            listener = self._listener
        if listener is not None and not _shutdown(listener):
            # Some platforms do not wake accept() on shutdown of a listening socket.
            _wake_listener(listener)

    def _start_handler(self, client: socket.socket, stream: RemoteStream | None) -> None:
        with self._lock:
            self._connections.append(client)
            handler = threading.Thread(
                target=self._serve_connection,
                args=(client, stream),
                name=f"tunnel-connection-{len(self._handlers)}",
                daemon=True,
            )
            self._handlers.append(handler)
        handler.start()

    def _serve_connection(self, client: socket.socket, stream: RemoteStream | None) -> None:
        try:
            if stream is None:
                stream = self._open_remote_stream()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Failed to open remote stream for port %d: %s", self._remote_port, exc)
            client.close()
            return

        remote = stream.socket(self._remote_port)
        upstream = threading.Thread(target=_pump, args=(client, remote), daemon=True)
        upstream.start()
        _pump(remote, client)
        upstream.join()
        client.close()
        stream.close()
        error = stream.error(self._remote_port)
        if error:
            logger.error("Remote port %d reported: %s", self._remote_port, error)

    def _drain_connections(self) -> None:
        with self._lock:
            connections = list(self._connections)
            handlers = list(self._handlers)
        for connection in connections:
            _shutdown(connection)
        for handler in handlers:
            handler.join()


def _pump(source: socket.socket, destination: socket.socket) -> None:
    try:
        while True:
            chunk = source.recv(_CHUNK_SIZE)
            if not chunk:
                break
            destination.sendall(chunk)
    except OSError as exc:
        logger.debug("Tunnel connection closed: %s", exc)
    finally:
        _shutdown(source)
        _shutdown(destination)


def _shutdown(sock: socket.socket) -> bool:
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        return False
    return True


def _wake_listener(listener: socket.socket) -> None:
    try:
        address = listener.getsockname()
        with socket.create_connection(address[:2], timeout=1):
            pass
    except OSError as exc:
        logger.debug("Listener already closed: %s", exc)
