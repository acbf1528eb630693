"""A tiny static-file HTTP server: request parsing helpers and a threaded server."""

__version__ = "0.1.0"
__all__ = ["protocol", "server"]