"""Building and sending an HTTP response."""

from __future__ import annotations

import os
from typing import Callable, Optional, Union

from .state import ClientState

SendCallback = Callable[[ClientState, bytes], None]
Body = Union[str, bytes]

_MIME_TYPES = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".gif": "image/gif",
}
_DEFAULT_CONTENT_TYPE = "text/plain"
_FILE_NOT_FOUND = "404 Not Found: Unable to load the requested file."
_HEAD_ENCODING = "latin-1"


def content_type_for(file_path: Union[str, os.PathLike]) -> str:
    """The MIME type for a file, judged by the text after its last dot."""
    path = os.fspath(file_path)
    dot = path.rfind(".")
    if dot == -1:
        return _DEFAULT_CONTENT_TYPE
    return _MIME_TYPES.get(path[dot:], _DEFAULT_CONTENT_TYPE)


class HTTPResponse:
    """A response to one request; ``send`` hands the wire bytes to a callback."""

    def __init__(self, state: ClientState, send_callback: SendCallback) -> None:
        self._state = state
        self._send_callback = send_callback
        self._headers: dict[str, str] = {}
        self.status_code = 200
        self.status_message = "OK"

    def add_header(self, key: str, value: str) -> None:
        """Set a response header, replacing any earlier value for ``key``."""
        self._headers[key] = value

    def set_status(self, status_code: int, status_message: str) -> None:
        """Set the status code and reason phrase."""
        self.status_code = status_code
        self.status_message = status_message

    def send(self, body: Optional[Body] = None) -> None:
        """Send the status line, headers and optional body.

        A Content-Length header is added only when the body is not empty.
        """
        payload = body.encode("utf-8") if isinstance(body, str) else (body or b"")
        lines = [f"HTTP/1.1 {self.status_code} {self.status_message}"]
        lines.extend(f"{key}: {value}" for key, value in self._headers.items())
        if payload:
            lines.append(f"Content-Length: {len(payload)}")
        head = "\r\n".join(lines) + "\r\n\r\n"
        self._send_callback(self._state, head.encode(_HEAD_ENCODING) + payload)

    def send_file(self, file_path: Union[str, os.PathLike]) -> None:
        """Send a file's contents, or a plain-text notice if it cannot be read."""
        try:
            with open(file_path, "rb") as handle:
                content = handle.read()
        except OSError:
            self.add_header("Content-Type", _DEFAULT_CONTENT_TYPE)
            self.send(_FILE_NOT_FOUND)
            return
        self.add_header("Content-Type", content_type_for(file_path))
        self.send(content)