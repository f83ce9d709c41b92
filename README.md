# routehttp

A small HTTP/1.1 server that maps paths to handler functions. Requests
are accepted on a TCP listener and read in full (headers plus any
`Content-Length` body). Each complete request is handed to the handler
registered for its method and path. Handlers run on a thread pool.

It has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Writing a server

```python
from routehttp.server import HTTPServer


def users(req, res):
    res.add_header("header1", "value1")
    res.set_status(200, "ok done")
    res.send("this is the body of http response\n")


def add_shop(req, res):
    res.send("shop added successfully")


server = HTTPServer()
server.get("/users", users).post("/addshop", add_shop)
server.listen(8000, lambda: print("server started listening on port : 8000"))
```

`get` and `post` return the server, so routes can be chained. `listen`
binds the port on all interfaces and calls `on_start` once the socket is
listening. It then serves until `stop()` is called.

A route matches only when its method and its path, compared as exact
strings, are both the same as the request's. A request with no matching
route gets the body `404 Not Found`. Its status line stays `200 OK`.

`HTTPServer(tcp_server)` accepts a `TCPServer` to run on. Without one it
builds its own with `create_server()`.

### Requests

A handler receives an `HTTPRequest` and an `HTTPResponse`.

- `req.method` and `req.path` are strings taken from the request line.
- `req.body` holds the body as bytes. It is empty when the request had no
  body.
- `req.header(key)` returns a header's value, or `""` when the header is
  absent. Header names are matched exactly, including case.

### Responses

- `res.add_header(key, value)` adds a response header, or replaces the
  value already set for it.
- `res.set_status(code, message)` sets the status line. The default is
  `200 OK`.
- `res.send(body)` writes the response. `body` may be `str` (sent as
  UTF-8) or `bytes`. A `Content-Length` header is added when the body is
  not empty. Call `res.send()` with no body to send only the status line
  and headers.
- `res.send_file(path)` sends a file's contents. It picks `Content-Type`
  from the file's extension: `.html`, `.css`, `.js`, `.png`, `.jpg` or
  `.gif`, with `text/plain` for anything else. If the file cannot be read,
  it sends the plain-text body
  `404 Not Found: Unable to load the requested file.` and leaves the
  status unchanged.

`routehttp.response.content_type_for(path)` performs the same
content-type lookup on its own.

## The demo server

The package installs a demo command:

```
routehttp-demo
```

It serves these routes:

- `GET /users`
- `GET /shops`
- `GET /index.html`
- `GET /tictactoe.html`
- `POST /addshop`

The two HTML pages are read from a static directory.

Options:

- `--port PORT`: the port to listen on. The default is 8000.
- `--root DIR`: the directory holding the static pages. The default is
  `./debug`.

Stop it with Ctrl-C.

To build the same routes in your own code, use
`routehttp.demo.build_server(root)`.

## Lower layers

- `routehttp.tcp.TCPServer` accepts connections and gathers each request
  in a `routehttp.state.ClientState`. When a request is complete it calls
  `on_recv`. The other callbacks are `on_send`, `on_accept`, `on_error`
  and `on_listen`. The lifecycle methods are `initialize(port, ip_address)`,
  `start()`, `stop()`, `send_response(state)` and `address()`.
  `routehttp.tcp.create_server()` builds a server that uses the shared
  worker pool.
- `routehttp.state` also provides `parse_request_line(line)` and
  `parse_headers(data)`. A malformed `Content-Length` raises
  `ValueError`, and the server then closes that connection.
- `routehttp.pool.ThreadPool` is a resizable worker pool. `push(func,
  *args, **kwargs)` calls `func(thread_id, *args, **kwargs)` on a worker
  and returns a `concurrent.futures.Future`. Used as a context manager,
  the pool runs the work still queued before it exits.
  `default_pool_size()` gives the CPU count, or 4 when the count is
  unknown.

## What it does not do

- It serves plain HTTP only; there is no TLS.
- Only GET and POST routes can be registered.
- Paths are not decoded. A query string is part of the path and must
  match exactly.
- Chunked request bodies are not understood. A body is read only as far
  as `Content-Length` says.
- No error status codes are produced, since unmatched routes and missing
  files keep the default `200 OK` unless a handler sets another status.
- After a response is sent, the connection stays open for further
  requests until the client closes it.