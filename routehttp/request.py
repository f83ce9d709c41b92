"""Read-only view of a received HTTP request."""

from __future__ import annotations

from .state import ClientState


class HTTPRequest:
    """The parsed request held in a connection's :class:`ClientState`."""

    def __init__(self, state: ClientState) -> None:
        self._state = state

    @property
    def method(self) -> str:
        """The request method, such as ``GET``."""
        return self._state.http_method

    @property
    def path(self) -> str:
        """The requested resource path."""
        return self._state.res_path

    def header(self, key: str) -> str:
        """The value of header ``key``, or an empty string if it is absent."""
        return self._state.headers.get(key, "")

    @property
    def body(self) -> bytes:
        """The request body; empty when the request carried none."""
        return self._state.body