import socket
import threading
import urllib.parse

import pytest

from tinystatic.server import HttpServer, create_listen_socket, main, send_dir, send_file


def _recv_all(sock):
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def _read_response(sock):
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = sock.recv(4096)
        assert chunk, "connection closed before headers"
        data += chunk
    head, _, body = data.partition(b"\r\n\r\n")
    length = next(
        int(line.split(b":", 1)[1])
        for line in head.split(b"\r\n")
        if line.lower().startswith(b"content-length:")
    )
    while len(body) < length:
        chunk = sock.recv(4096)
        assert chunk, "connection closed before body"
        body += chunk
    return head + b"\r\n\r\n", body


@pytest.fixture
def server(tmp_path):
    with HttpServer(0, tmp_path, "127.0.0.1") as srv:
        yield srv


def _exchange(srv, request):
    left, right = socket.socketpair()
    with left, right:
        handled = srv.handle_request(request, left)
        left.shutdown(socket.SHUT_WR)
        return handled, _recv_all(right)


def test_create_listen_socket_accepts_connections():
    with create_listen_socket(0, "127.0.0.1") as listener:
        assert listener.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) > 0
        with socket.create_connection(listener.getsockname(), timeout=5):
            conn, _ = listener.accept()
            conn.close()
        assert listener.getsockname()[0] == "127.0.0.1"


def test_create_listen_socket_port_in_use():
    with create_listen_socket(0, "127.0.0.1") as listener:
        port = listener.getsockname()[1]
        with pytest.raises(OSError):
            with create_listen_socket(port, "127.0.0.1"):
                pass


def test_send_file(tmp_path):
    payload = bytes(range(256)) * 8
    target = tmp_path / "blob.bin"
    target.write_bytes(payload)
    left, right = socket.socketpair()
    with left, right:
        sent = send_file(target, left)
        left.shutdown(socket.SHUT_WR)
        received = _recv_all(right)
    assert sent == len(payload)
    assert received == payload


def test_send_file_missing(tmp_path):
    left, right = socket.socketpair()
    with left, right:
        with pytest.raises(FileNotFoundError):
            send_file(tmp_path / "nope", left)


def test_send_dir(tmp_path):
    (tmp_path / "notes.txt").write_text("hi")
    left, right = socket.socketpair()
    with left, right:
        sent = send_dir(str(tmp_path), left)
        left.shutdown(socket.SHUT_WR)
        received = _recv_all(right)
    assert sent == len(received)
    assert b'<a href="notes.txt">notes.txt</a>' in received
    assert received.endswith(b"</table></body></html>")


def test_handle_request_file(server, tmp_path):
    (tmp_path / "hello.txt").write_bytes(b"hello world")
    handled, response = _exchange(server, b"GET /hello.txt HTTP/1.1\r\nHost: localhost\r\n\r\n")
    head, _, body = response.partition(b"\r\n\r\n")
    assert handled is True
    assert head.split(b"\r\n") == [
        b"http/1.1 200 OK",
        b"content-type: text/plain; charset=utf-8",
        b"content-length: 11",
    ]
    assert body == b"hello world"


def test_handle_request_mime_type(server, tmp_path):
    (tmp_path / "page.html").write_text("<p>x</p>")
    _, response = _exchange(server, b"get /page.html HTTP/1.1\r\n\r\n")
    assert b"content-type: text/html; charset=utf-8\r\n" in response
    assert response.endswith(b"<p>x</p>")


def test_handle_request_percent_encoded(server, tmp_path):
    name = "中文 文件.txt"
    (tmp_path / name).write_bytes(b"data")
    request = f"GET /{urllib.parse.quote(name)} HTTP/1.1\r\n\r\n".encode()
    handled, response = _exchange(server, request)
    assert handled is True
    assert response.startswith(b"http/1.1 200 OK\r\n")
    assert response.endswith(b"\r\n\r\ndata")


def test_handle_request_root_directory(server, tmp_path):
    (tmp_path / "a.txt").write_text("abc")
    (tmp_path / "sub").mkdir()
    handled, response = _exchange(server, b"GET / HTTP/1.1\r\n\r\n")
    assert handled is True
    assert response.startswith(b"http/1.1 200 OK\r\ncontent-type: text/html; charset=utf-8\r\n")
    assert b"content-length: -1\r\n\r\n" in response
    assert b'<a href="a.txt">a.txt</a>' in response
    assert b'<a href="sub/">sub</a>' in response
    assert response.endswith(b"</table></body></html>")


def test_handle_request_not_found_with_page(server, tmp_path):
    (tmp_path / "404.html").write_bytes(b"<h1>gone</h1>")
    handled, response = _exchange(server, b"GET /missing.png HTTP/1.1\r\n\r\n")
    assert handled is True
    assert response.startswith(b"http/1.1 404 Not Found\r\n")
    assert b"content-length: -1\r\n\r\n" in response
    assert response.endswith(b"<h1>gone</h1>")


def test_handle_request_not_found_without_page(server):
    _, response = _exchange(server, b"GET /missing HTTP/1.1\r\n\r\n")
    assert response.startswith(b"http/1.1 404 Not Found\r\n")
    assert response.endswith(b"content-length: -1\r\n\r\n")


@pytest.mark.parametrize(
    "request_bytes",
    [b"POST /a.txt HTTP/1.1\r\n\r\n", b"GET /a.txt HTTP/1.1", b"\r\n"],
)
def test_handle_request_rejected(server, tmp_path, request_bytes):
    (tmp_path / "a.txt").write_text("abc")
    handled, response = _exchange(server, request_bytes)
    assert handled is False
    assert response == b""


def test_serve_forever_end_to_end(tmp_path):
    (tmp_path / "hello.txt").write_bytes(b"hello world")
    (tmp_path / "style.css").write_bytes(b"p{}")
    srv = HttpServer(0, tmp_path, "127.0.0.1")
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    try:
        with socket.create_connection(srv.server_address, timeout=5) as client:
            client.sendall(b"GET /hello.txt HTTP/1.1\r\nHost: localhost\r\n\r\n")
            head1, body1 = _read_response(client)
            client.sendall(b"GET /style.css HTTP/1.1\r\nHost: localhost\r\n\r\n")
            head2, body2 = _read_response(client)
    finally:
        srv.shutdown()
        srv.close()
        thread.join(5)
    assert head1.startswith(b"http/1.1 200 OK\r\n")
    assert body1 == b"hello world"
    assert b"content-type: text/css\r\n" in head2
    assert body2 == b"p{}"
    assert not thread.is_alive()


@pytest.mark.parametrize("argv", [["notaport"], ["70000"], ["-1"]])
def test_main_rejects_bad_port(argv):
    with pytest.raises(SystemExit) as info:
        main(argv)
    assert info.value.code == 2