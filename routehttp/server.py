"""An HTTP server that routes GET and POST requests to handlers."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from .request import HTTPRequest
from .response import HTTPResponse
from .state import ClientState
from .tcp import TCPServer, create_server

Handler = Callable[[HTTPRequest, HTTPResponse], None]

log = logging.getLogger(__name__)


class HTTPServer:
    """Route complete requests from a :class:`TCPServer` to handlers."""

    def __init__(self, tcp_server: Optional[TCPServer] = None) -> None:
        self.tcp_server = tcp_server if tcp_server is not None else create_server()
        self._routes: dict[str, dict[str, Handler]] = {"GET": {}, "POST": {}}
        self._on_start: Optional[Callable[[], None]] = None

        self.tcp_server.on_error = self._on_error
        self.tcp_server.on_accept = self._on_accept
        self.tcp_server.on_listen = self._on_listen
        self.tcp_server.on_recv = self.handle_request
        self.tcp_server.on_send = self._on_send
        log.info("http server initialization done")

    def get(self, path: str, handler: Handler) -> HTTPServer:
        """Register ``handler`` for GET requests to ``path``."""
        self._routes["GET"][path] = handler
        return self

    def post(self, path: str, handler: Handler) -> HTTPServer:
        """Register ``handler`` for POST requests to ``path``."""
        self._routes["POST"][path] = handler
        return self

    def listen(
        self, port: int, on_start: Optional[Callable[[], None]] = None
    ) -> None:
        """Bind to ``port`` and serve until :meth:`stop` is called.

        ``on_start`` runs once the server is ready to accept connections.
        """
        self._on_start = on_start
        self.tcp_server.initialize(port)
        log.info("Server initialized.")
        self.tcp_server.start()

    def stop(self) -> None:
        """Stop serving and close every connection."""
        self.tcp_server.stop()

    def send_response_data(self, state: ClientState, response: Union[str, bytes]) -> None:
        """Queue ``response`` on the connection and start writing it."""
        data = response.encode("utf-8") if isinstance(response, str) else bytes(response)
        state.bytes_sent = 0
        state.send_buffer = data
        self.tcp_server.send_response(state)

    def handle_request(self, state: ClientState) -> None:
        """Run the handler matching the request, or answer "404 Not Found"."""
        for key, value in state.headers.items():
            log.debug("header : %s value : %s", key, value)
        log.debug("path -> %s, method -> %s", state.res_path, state.http_method)

        request = HTTPRequest(state)
        response = HTTPResponse(state, self.send_response_data)
        handler = self._routes.get(request.method, {}).get(request.path)
        if handler is None:
            response.send("404 Not Found")
        else:
            handler(request, response)

    def _on_send(self, client_socket: int) -> None:
        log.debug("Sent data to client socket: %d", client_socket)

    def _on_accept(self, client_socket: int) -> None:
        log.debug("Accepted new connection on socket: %d", client_socket)

    def _on_error(self, client_socket: int) -> None:
        log.warning("Error on socket: %d", client_socket)

    def _on_listen(self, server_socket: int) -> None:
        if self._on_start is not None:
            self._on_start()