"""Non-blocking TCP server that hands complete HTTP requests to a callback."""

from __future__ import annotations

import functools
import logging
import selectors
import socket
import threading
from collections import deque
from typing import Callable, Optional

from .pool import ThreadPool, default_pool_size
from .state import ClientState

BUFFER_SIZE = 1024
DEFAULT_ADDRESS = "0.0.0.0"
_ACCEPT_POLL_SECONDS = 0.1

Callback = Callable[[int], None]
RecvCallback = Callable[[ClientState], None]

log = logging.getLogger(__name__)


@functools.lru_cache(maxsize=None)
def _shared_pool() -> ThreadPool:
    """The worker pool shared by servers that are not given their own."""
    return ThreadPool(default_pool_size())


class _Connection:
    """One accepted client socket together with its request state."""

    __slots__ = ("sock", "fd", "state", "lock", "busy", "closed")

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self.fd = sock.fileno()
        self.state = ClientState(client_socket=self.fd)
        self.lock = threading.RLock()
        self.busy = False
        self.closed = False

    @property
    def has_pending_send(self) -> bool:
        return self.state.bytes_sent < len(self.state.send_buffer)


class TCPServer:
    """Accept connections, read requests and write responses.

    Connections are watched by a dedicated event-loop thread; reading and
    writing run on the worker pool. ``on_recv`` receives the
    :class:`ClientState` of every complete request; the other callbacks
    receive the socket's file descriptor.
    """

    def __init__(
        self,
        on_recv: Optional[RecvCallback] = None,
        on_send: Optional[Callback] = None,
        on_accept: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        on_listen: Optional[Callback] = None,
        pool: Optional[ThreadPool] = None,
    ) -> None:
        self.on_recv = on_recv
        self.on_send = on_send
        self.on_accept = on_accept
        self.on_error = on_error
        self.on_listen = on_listen
        self._pool = pool if pool is not None else _shared_pool()

        self._listener: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._wake_r: Optional[socket.socket] = None
        self._wake_w: Optional[socket.socket] = None
        self._connections: dict[int, _Connection] = {}
        self._conn_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._ops: deque[tuple[str, _Connection]] = deque()
        self._stopped = threading.Event()
        self._running = False
        self._loop_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------ setup

    def initialize(self, port: int, ip_address: str = DEFAULT_ADDRESS) -> None:
        """Bind and listen on ``ip_address:port``; then call ``on_listen``."""
        if self._listener is not None:
            raise RuntimeError("server is already initialized")
        log.info("initialising the server...")
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, "SO_REUSEPORT"):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            sock.bind((ip_address, port))
            sock.listen(socket.SOMAXCONN)
        except (OSError, OverflowError):
            sock.close()
            raise

        self._listener = sock
        self._selector = selectors.DefaultSelector()
        self._wake_r, self._wake_w = socket.socketpair()
        self._wake_r.setblocking(False)
        self._wake_w.setblocking(False)
        self._selector.register(self._wake_r, selectors.EVENT_READ, None)
        self._stopped.clear()

        if self.on_listen is not None:
            self.on_listen(sock.fileno())
        log.info("Server initialized on %s:%s", ip_address, port)

    def address(self) -> tuple[str, int]:
        """The (host, port) the server is bound to."""
        if self._listener is None:
            raise RuntimeError("server is not initialized")
        host, port = self._listener.getsockname()[:2]
        return host, port

    # ---------------------------------------------------------------- running

    def start(self) -> None:
        """Accept connections until :meth:`stop` is called."""
        if self._listener is None:
            raise RuntimeError("server is not initialized")
        self._running = True
        listener = self._listener
        self._loop_thread = threading.Thread(
            target=self._event_loop, name="tcp-event-loop", daemon=True
        )
        self._loop_thread.start()
        listener.settimeout(_ACCEPT_POLL_SECONDS)
        log.info("Waiting for connections...")
        try:
            while not self._stopped.is_set():
                try:
                    client, _ = listener.accept()
                except TimeoutError:
                    continue
                except OSError as exc:
                    if self._stopped.is_set():
                        break
                    log.error("Accept failed! Error: %s", exc)
                    continue
                self._add_connection(client)
        finally:
            self._stopped.set()
            self._wake()
            if self._loop_thread is not None:
                self._loop_thread.join()
                self._loop_thread = None
            self._close_all()
            self._running = False

    def stop(self) -> None:
        """Stop accepting, close every connection and release the socket."""
        self._stopped.set()
        self._wake()
        if not self._running:
            self._close_all()

    def send_response(self, state: ClientState) -> None:
        """Start writing ``state.send_buffer`` to the client that owns it."""
        with self._conn_lock:
            conn = self._connections.get(state.client_socket)
        if conn is None or conn.state is not state:
            raise ConnectionError(
                f"no open connection for socket {state.client_socket}"
            )
        self._handle_send(conn)
        if not conn.closed and conn.has_pending_send:
            self._post("rearm", conn)

    # ------------------------------------------------------------- internals

    def _add_connection(self, client: socket.socket) -> None:
        client.setblocking(False)
        conn = _Connection(client)
        with self._conn_lock:
            self._connections[conn.fd] = conn
        self._post("add", conn)
        if self.on_accept is not None:
            self.on_accept(conn.fd)

    def _post(self, op: str, conn: _Connection) -> None:
        self._ops.append((op, conn))
        self._wake()

    def _wake(self) -> None:
        writer = self._wake_w
        if writer is None:
            return
        try:
            writer.send(b"\0")
        except OSError:
            pass

    def _drain_wake(self) -> None:
        reader = self._wake_r
        if reader is None:
            return
        try:
            while reader.recv(BUFFER_SIZE):
                pass
        except OSError:
            pass

    def _event_loop(self) -> None:
        selector = self._selector
        assert selector is not None
        while not self._stopped.is_set():
            self._apply_ops()
            for key, mask in selector.select():
                if key.data is None:
                    self._drain_wake()
                    continue
                conn: _Connection = key.data
                self._unregister(conn)
                if conn.closed:
                    continue
                conn.busy = True
                if mask & selectors.EVENT_READ:
                    self._pool.push(self._dispatch, conn, self._handle_recv)
                elif mask & selectors.EVENT_WRITE:
                    self._pool.push(self._dispatch, conn, self._handle_send)
                else:
                    self._pool.push(self._dispatch, conn, self._handle_error)

    def _apply_ops(self) -> None:
        while self._ops:
            op, conn = self._ops.popleft()
            if op == "close":
                self._unregister(conn)
                conn.sock.close()
                continue
            if op == "done":
                conn.busy = False
            elif op == "rearm" and conn.busy:
                continue
            if conn.closed:
                continue
            self._arm(conn)

    def _arm(self, conn: _Connection) -> None:
        selector = self._selector
        assert selector is not None
        events = selectors.EVENT_READ
        if conn.has_pending_send:
            events |= selectors.EVENT_WRITE
        try:
            selector.get_key(conn.sock)
        except KeyError:
            selector.register(conn.sock, events, conn)
        else:
            selector.modify(conn.sock, events, conn)

    def _unregister(self, conn: _Connection) -> None:
        selector = self._selector
        if selector is None:
            return
        try:
            selector.unregister(conn.sock)
        except (KeyError, ValueError):
            pass

    def _dispatch(
        self,
        thread_id: int,
        conn: _Connection,
        handler: Callable[[_Connection], None],
    ) -> None:
        try:
            handler(conn)
        except Exception:
            log.exception("Unhandled error on socket %d", conn.fd)
            self._handle_error(conn)
        finally:
            self._post("done", conn)

    def _handle_recv(self, conn: _Connection) -> None:
        with conn.lock:
            if conn.closed:
                return
            try:
                data = conn.sock.recv(BUFFER_SIZE)
            except (BlockingIOError, InterruptedError):
                return
            except OSError as exc:
                log.error("Error in recv: %s", exc)
                self._handle_error(conn)
                return
            if not data:
                log.info("Client disconnected.")
                self._drop(conn)
                return
            try:
                complete = conn.state.feed(data)
            except ValueError as exc:
                log.error("Malformed request: %s", exc)
                self._handle_error(conn)
                return
            if complete and self.on_recv is not None:
                self.on_recv(conn.state)

    def _handle_send(self, conn: _Connection) -> None:
        with conn.lock:
            if conn.closed:
                return
            state = conn.state
            if state.bytes_sent >= len(state.send_buffer):
                return
            try:
                sent = conn.sock.send(state.send_buffer[state.bytes_sent:])
            except (BlockingIOError, InterruptedError):
                state.waiting_for_send = True
                return
            except OSError as exc:
                log.error("Error in send: %s", exc)
                self._handle_error(conn)
                return
            state.bytes_sent += sent
            if state.bytes_sent < len(state.send_buffer):
                state.waiting_for_send = True
                return
            log.debug("All data sent to client.")
            state.clear()
            if self.on_send is not None:
                self.on_send(conn.fd)

    def _handle_error(self, conn: _Connection) -> None:
        if self._drop(conn):
            log.error("Socket error, closing connection.")
            if self.on_error is not None:
                self.on_error(conn.fd)

    def _drop(self, conn: _Connection) -> bool:
        with conn.lock:
            if conn.closed:
                return False
            conn.closed = True
        with self._conn_lock:
            if self._connections.get(conn.fd) is conn:
                del self._connections[conn.fd]
        if self._loop_thread is not None and not self._stopped.is_set():
            self._post("close", conn)
        else:
            conn.sock.close()
        return True

    def _close_all(self) -> None:
        with self._close_lock:
            with self._conn_lock:
                conns = list(self._connections.values())
                self._connections.clear()
            for conn in conns:
                conn.closed = True
                conn.sock.close()
            while self._ops:
                op, conn = self._ops.popleft()
                if op == "close":
                    conn.sock.close()
            if self._selector is not None:
                self._selector.close()
                self._selector = None
            if self._listener is not None:
                self._listener.close()
                self._listener = None
            for sock in (self._wake_r, self._wake_w):
                if sock is not None:
                    sock.close()
            self._wake_r = self._wake_w = None


def create_server() -> TCPServer:
    """Create a server that uses the shared worker pool."""
    return TCPServer()