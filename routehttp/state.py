"""Per-connection state and incremental HTTP request parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

HEADER_TERMINATOR = b"\r\n\r\n"
_HEADER_ENCODING = "latin-1"


def parse_request_line(line: str) -> tuple[str, str, str]:
    """Split a request line into method, path and version.

    Missing parts come back as empty strings.
    """
    parts = line.split()
    method, path, version = (parts + ["", "", ""])[:3]
    return method, path, version


def _parse_length(value: str) -> int:
    text = value.strip()
    if not text or not (text.isascii() and text.isdigit()):
        raise ValueError(f"invalid Content-Length: {value!r}")
    return int(text)


def parse_headers(data: str) -> tuple[dict[str, str], int]:
    """Parse header lines up to the blank line.

    Returns the headers and the value of Content-Length (0 when absent).
    Lines without a ": " separator are ignored.
    """
    headers: dict[str, str] = {}
    content_length = 0
    for line in data.split("\n"):
        if line == "\r":
            break
        key, sep, value = line.removesuffix("\r").partition(": ")
        if not sep:
            continue
        headers[key] = value
        if key == "Content-Length":
            content_length = _parse_length(value)
    return headers, content_length


@dataclass
class ClientState:
    """Everything the server keeps about one client connection."""

    client_socket: int = -1
    recv_buffer: bytearray = field(default_factory=bytearray)
    send_buffer: bytes = b""
    bytes_sent: int = 0
    waiting_for_send: bool = False
    waiting_for_recv: bool = True
    is_recv_complete: bool = False
    is_headers_complete: bool = False
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    content_length: int = 0
    http_method: str = ""
    res_path: str = ""
    http_version: str = ""

    def clear(self) -> None:
        """Reset the state so the connection can carry a new request."""
        self.bytes_sent = 0
        self.waiting_for_send = False
        self.waiting_for_recv = True
        self.is_recv_complete = False
        self.is_headers_complete = False
        self.body = b""
        self.content_length = 0
        self.http_method = ""
        self.res_path = ""
        self.http_version = ""
        self.send_buffer = b""
        self.recv_buffer.clear()
        self.headers.clear()

    def feed(self, data: bytes) -> bool:
        """Append received bytes and report whether the request is complete."""
        self.recv_buffer.extend(data)
        return self.is_request_complete()

    def is_request_complete(self) -> bool:
        """Parse as much of the buffered request as possible.

        Headers are consumed from the buffer once the blank line arrives;
        the body is consumed once Content-Length bytes are available.
        """
        if not self.is_headers_complete:
            end = self.recv_buffer.find(HEADER_TERMINATOR)
            if end != -1:
                self.is_headers_complete = True
                cut = end + len(HEADER_TERMINATOR)
                head = bytes(self.recv_buffer[:cut]).decode(_HEADER_ENCODING)
                del self.recv_buffer[:cut]

                request_line, _, header_block = head.partition("\r\n")
                (
                    self.http_method,
                    self.res_path,
                    self.http_version,
                ) = parse_request_line(request_line)
                headers, self.content_length = parse_headers(header_block)
                self.headers.update(headers)

        if not self.is_headers_complete:
            return False

        if self.content_length > 0:
            if len(self.recv_buffer) < self.content_length:
                return False
            self.body = bytes(self.recv_buffer[: self.content_length])
            del self.recv_buffer[: self.content_length]

        self.is_recv_complete = True
        return True