"""A small example site served by :class:`HTTPServer`."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Optional, Sequence, Union

from .request import HTTPRequest
from .response import HTTPResponse
from .server import HTTPServer

PORT = 8000
DEFAULT_ROOT = "./debug"

log = logging.getLogger(__name__)


def build_server(root: Union[str, os.PathLike]) -> HTTPServer:
    """Create the example server; static pages are read from ``root``."""
    base = os.fspath(root)

    def users(req: HTTPRequest, res: HTTPResponse) -> None:
        log.info("send all users from this route")
        res.add_header("header1", "value1")
        res.set_status(200, "ok done")
        res.send("this is the body of http response\n")

    def shops(req: HTTPRequest, res: HTTPResponse) -> None:
        log.info("send all the shops from this route")
        res.send("all shops")

    def static_file(req: HTTPRequest, res: HTTPResponse) -> None:
        log.info("send the %s file", req.path)
        res.send_file(base + req.path)

    def add_shop(req: HTTPRequest, res: HTTPResponse) -> None:
        res.send("shop added ssuccessfully")

    return (
        HTTPServer()
        .get("/users", users)
        .get("/shops", shops)
        .get("/index.html", static_file)
        .get("/tictactoe.html", static_file)
        .post("/addshop", add_shop)
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the example server until interrupted."""
    parser = argparse.ArgumentParser(description="Serve the example routes.")
    parser.add_argument("--port", type=int, default=PORT, help="port to listen on")
    parser.add_argument(
        "--root", default=DEFAULT_ROOT, help="directory holding the static pages"
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    server = build_server(args.root)
    try:
        server.listen(
            args.port,
            lambda: print(f"server started listening on port : {args.port}"),
        )
    except KeyboardInterrupt:
        server.stop()
    except OSError as exc:
        print(f"Failed to start http server: {exc}")
        server.stop()
        return 1
    return 0