"""A threaded HTTP server that serves files and directory listings."""

from __future__ import annotations

import argparse
import logging
import os
import selectors
import socket
import stat
import threading

from .protocol import (
    build_header,
    decode_path,
    extract_request_line,
    get_file_type,
    parse_request_line,
    render_directory,
)

log = logging.getLogger(__name__)

DEFAULT_PORT = 8087
DEFAULT_ROOT = "/root"
BACKLOG = 128
RECV_CHUNK = 1024
REQUEST_LIMIT = 4096
NOT_FOUND_PAGE = "404.html"
_POLL_INTERVAL = 0.2


def create_listen_socket(port: int, host: str = "") -> socket.socket:
    """A TCP socket with address reuse, bound to (host, port) and listening."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(BACKLOG)
    except OSError:
        sock.close()
        raise
    return sock


def send_file(file_name, sock: socket.socket) -> int:
    """Send the whole content of a file; return the number of bytes sent."""
    with open(file_name, "rb") as fh:
        sent = sock.sendfile(fh)
    log.debug("sent %d bytes of %s", sent, file_name)
    return sent


def send_dir(dir_name, sock: socket.socket) -> int:
    """Send an HTML listing of a directory; return the number of bytes sent."""
    total = 0
    for chunk in render_directory(dir_name):
        data = chunk.encode("utf-8", "surrogateescape")
        sock.sendall(data)
        total += len(data)
    return total


class HttpServer:
    """Serves GET requests for files below a root directory."""

    def __init__(self, port: int = DEFAULT_PORT, root=".", host: str = "") -> None:
        self.root = os.fspath(root)
        self._listener = create_listen_socket(port, host)
        self._stop = threading.Event()
        self._stopped = threading.Event()
        self._stopped.set()
        self._lock = threading.Lock()
        self._connections: set[socket.socket] = set()

    @property
    def server_address(self):
        """The address the listening socket is bound to."""
        return self._listener.getsockname()

    def __enter__(self) -> "HttpServer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def handle_request(self, data: bytes, sock: socket.socket) -> bool:
        """Answer one raw request on sock; return False if it was not a GET."""
        try:
            request = parse_request_line(extract_request_line(data))
        except ValueError as exc:
            log.warning("ignoring request: %s", exc)
            return False
        log.info("method: %s, path: %s", request.method, request.path)
        if not request.is_get:
            return False

        path = decode_path(request.path)
        relative = "./" if path == "/" else path[1:]
        target = os.path.join(self.root, relative)

        try:
            info = os.stat(target)
        except (OSError, ValueError):
            sock.sendall(build_header(404, "Not Found", get_file_type(".html"), -1))
            try:
                send_file(os.path.join(self.root, NOT_FOUND_PAGE), sock)
            except FileNotFoundError:
                log.warning("no %s in %s", NOT_FOUND_PAGE, self.root)
            return True

        if stat.S_ISDIR(info.st_mode):
            sock.sendall(build_header(200, "OK", get_file_type(".html"), -1))
            send_dir(target, sock)
        else:
            sock.sendall(build_header(200, "OK", get_file_type(relative), info.st_size))
            send_file(target, sock)
        return True

    def serve_forever(self) -> None:
        """Accept connections until shutdown() or close() is called."""
        self._stopped.clear()
        try:
            with selectors.DefaultSelector() as selector:
                selector.register(self._listener, selectors.EVENT_READ)
                while not self._stop.is_set():
                    if selector.select(_POLL_INTERVAL):
                        self._accept()
        finally:
            self._stopped.set()

    def shutdown(self) -> None:
        """Stop serve_forever() and wait for it to return."""
        self._stop.set()
        self._stopped.wait()

    def close(self) -> None:
        """Close the listening socket and every open connection."""
        self._stop.set()
        self._listener.close()
        with self._lock:
            connections = list(self._connections)
            self._connections.clear()
        for conn in connections:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            conn.close()

    def _accept(self) -> None:
        try:
            conn, address = self._listener.accept()
        except OSError as exc:
            log.warning("accept failed: %s", exc)
            return
        log.info("connection from %s", address)
        with self._lock:
            self._connections.add(conn)
        threading.Thread(target=self._serve_connection, args=(conn,), daemon=True).start()

    def _serve_connection(self, conn: socket.socket) -> None:
        try:
            while not self._stop.is_set():
                first = conn.recv(RECV_CHUNK)
                if not first:
                    break
                data, still_open = self._drain(conn, first)
                if not still_open:
                    break
                self.handle_request(data, conn)
        except OSError as exc:
            log.debug("connection error: %s", exc)
        finally:
            with self._lock:
                self._connections.discard(conn)
            conn.close()

    @staticmethod
    def _drain(conn: socket.socket, first: bytes) -> tuple[bytes, bool]:
        """Read whatever else is already pending; keep at most REQUEST_LIMIT bytes."""
        buffer = bytearray(first)
        total = len(first)
        conn.setblocking(False)
        try:
            while True:
                try:
                    chunk = conn.recv(RECV_CHUNK)
                except BlockingIOError:
                    return bytes(buffer), True
                if not chunk:
                    return bytes(buffer), False
                if total + len(chunk) < REQUEST_LIMIT:
                    buffer += chunk
                total += len(chunk)
        finally:
            conn.setblocking(True)


def main(argv=None) -> int:
    """Run the server from the command line."""
    parser = argparse.ArgumentParser(prog="tinystatic", description="Serve a directory over HTTP.")
    parser.add_argument("port", nargs="?", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument("path", nargs="?", default=DEFAULT_ROOT, help="directory to serve")
    args = parser.parse_args(argv)
    if not 0 <= args.port <= 65535:
        parser.error(f"port out of range: {args.port}")

    logging.basicConfig(level=logging.INFO)
    with HttpServer(args.port, args.path) as server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0