import http.client
import threading
from contextlib import contextmanager

import pytest

from routehttp.demo import build_server, main


@contextmanager
def running(server):
    started = threading.Event()
    thread = threading.Thread(
        target=server.listen, args=(0, started.set), daemon=True
    )
    thread.start()
    assert started.wait(5)
    try:
        yield server.tcp_server.address()[1]
    finally:
        server.stop()
        thread.join(5)


def _fetch(port, method, path, body=None):
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request(method, path, body=body)
        reply = conn.getresponse()
        return reply.status, reply.reason, dict(reply.getheaders()), reply.read()
    finally:
        conn.close()


@pytest.fixture
def site(tmp_path):
    (tmp_path / "index.html").write_bytes(b"<html>home</html>")
    with running(build_server(tmp_path)) as port:
        yield port


def test_users_route(site):
    status, reason, headers, body = _fetch(site, "GET", "/users")
    assert (status, reason) == (200, "ok done")
    assert headers["header1"] == "value1"
    assert body == b"this is the body of http response\n"


def test_shops_route(site):
    assert _fetch(site, "GET", "/shops")[3] == b"all shops"


def test_index_file(site):
    _, _, headers, body = _fetch(site, "GET", "/index.html")
    assert headers["Content-Type"] == "text/html"
    assert body == b"<html>home</html>"


def test_missing_static_file(site):
    _, _, headers, body = _fetch(site, "GET", "/tictactoe.html")
    assert headers["Content-Type"] == "text/plain"
    assert body == b"404 Not Found: Unable to load the requested file."


def test_add_shop(site):
    assert _fetch(site, "POST", "/addshop", body=b"x")[3] == b"shop added ssuccessfully"


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as info:
        main(["--port", "not-a-number"])
    assert info.value.code == 2