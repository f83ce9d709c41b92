import pytest

from routehttp.response import HTTPResponse, content_type_for
from routehttp.state import ClientState


def _deliver(state, data):
    state.bytes_sent = 0
    state.send_buffer = data


@pytest.fixture
def state():
    return ClientState(client_socket=7)


@pytest.fixture
def response(state):
    return HTTPResponse(state, _deliver)


def _split(data: bytes):
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    return lines[0], lines[1:], body


def test_send_body_wire_format(response, state):
    response.send("hello")
    assert state.send_buffer == b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhello"


def test_send_without_body_has_no_content_length(response, state):
    response.send()
    assert state.send_buffer == b"HTTP/1.1 200 OK\r\n\r\n"


def test_empty_body_treated_as_no_body(response, state):
    response.send("")
    assert state.send_buffer == b"HTTP/1.1 200 OK\r\n\r\n"


def test_callback_gets_the_state(state):
    sent = []
    response = HTTPResponse(state, lambda st, data: sent.append((st, data)))
    response.send("x")
    assert sent[0][0] is state


def test_set_status(response, state):
    response.set_status(200, "ok done")
    response.send("body")
    assert state.send_buffer.startswith(b"HTTP/1.1 200 ok done\r\n")


def test_headers_in_order_and_overwritten(response, state):
    response.add_header("header1", "value1")
    response.add_header("header2", "value2")
    response.add_header("header1", "changed")
    response.send()
    assert state.send_buffer == (
        b"HTTP/1.1 200 OK\r\nheader1: changed\r\nheader2: value2\r\n\r\n"
    )


def test_content_length_counts_bytes(response, state):
    response.send("caf\u00e9")
    assert state.send_buffer == (
        b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\ncaf\xc3\xa9"
    )


def test_bytes_body(response, state):
    response.send(b"\x00\xffdata")
    assert state.send_buffer == (
        b"HTTP/1.1 200 OK\r\nContent-Length: 6\r\n\r\n\x00\xffdata"
    )


@pytest.mark.parametrize(
    "path, expected",
    [
        ("index.html", "text/html"),
        ("style.css", "text/css"),
        ("app.js", "application/javascript"),
        ("img.png", "image/png"),
        ("img.jpg", "image/jpeg"),
        ("anim.gif", "image/gif"),
        ("notes.txt", "text/plain"),
        ("README", "text/plain"),
        ("./debug/index", "text/plain"),
        ("page.HTML", "text/plain"),
    ],
)
def test_content_type_for(path, expected):
    assert content_type_for(path) == expected


def test_send_file(response, state, tmp_path):
    page = tmp_path / "index.html"
    page.write_bytes(b"<h1>hi</h1>")
    response.send_file(page)
    status, headers, body = _split(state.send_buffer)
    assert status == "HTTP/1.1 200 OK"
    assert headers == ["Content-Type: text/html", "Content-Length: 11"]
    assert body == b"<h1>hi</h1>"


def test_send_missing_file(response, state, tmp_path):
    response.send_file(tmp_path / "missing.html")
    _, headers, body = _split(state.send_buffer)
    assert "Content-Type: text/plain" in headers
    assert body == b"404 Not Found: Unable to load the requested file."


def test_send_directory_is_not_found(response, state, tmp_path):
    response.send_file(tmp_path)
    _, _, body = _split(state.send_buffer)
    assert body == b"404 Not Found: Unable to load the requested file."