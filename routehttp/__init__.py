"""A small routing HTTP/1.1 server on a threaded TCP layer, with a demo site."""

__version__ = "1.0.0"
__all__ = ["demo", "pool", "request", "response", "server", "state", "tcp"]