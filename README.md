# tinystatic

A small HTTP server for static content. It answers `GET` requests by sending
the requested file or an HTML table that lists a directory's entries and their
sizes. A path that does not exist gets a `404 Not Found` response, followed by
the `404.html` page from the served directory if there is one.

## Installing

```
pip install .
```

## Running

```
tinystatic [PORT] [PATH]
```

`PORT` is the TCP port to listen on, and `PATH` is the directory to serve.
They default to port `8087` and the directory `/root`. The server listens on
all interfaces and logs each connection and request at INFO level. Stop it
with Ctrl-C.

Request `/` to get the listing of the served directory. Paths may be
percent-encoded, so `/notes%20v2.txt` serves `notes v2.txt`. Directory
listings include the `.` and `..` entries, and links to subdirectories end
in `/`.

Content types are chosen from the file extension: `.html`/`.htm`,
`.jpg`/`.jpeg`, `.gif`, `.png`, `.css`, `.au`, `.wav`, `.avi`, `.mov`/`.qt`,
`.mpeg`/`.mpe`, `.vrml`/`.wrl`, `.midi`/`.mid`, `.mp3`, `.ogg` and `.pac`.
Anything else is sent as `text/plain; charset=utf-8`.

## Using it from Python

```python
from tinystatic.server import HttpServer

with HttpServer(8087, "/srv/www", "0.0.0.0") as server:
    print(server.server_address)
    server.serve_forever()
```

`HttpServer(port, root, host)` binds its listening socket straight away. Its
`root` defaults to the current directory. `serve_forever()` accepts
connections and handles each one on its own thread. Call `shutdown()` from
another thread to make `serve_forever()` return. `close()`, which leaving the
`with` block also calls, closes the listening socket and every open
connection. `handle_request(data, sock)` answers one raw request on a socket.
It returns `False` for anything that is not a well-formed `GET`.

The helpers in `tinystatic.server` are usable on their own too:
`create_listen_socket(port, host)`, `send_file(file_name, sock)` and
`send_dir(dir_name, sock)`.

The request handling pieces live in `tinystatic.protocol`:

```python
from tinystatic.protocol import (
    build_header,
    decode_path,
    extract_request_line,
    get_file_type,
    parse_request_line,
)

decode_path("/a%20b.png")                  # "/a b.png"
get_file_type("photo.jpg")                 # "image/jpeg"
build_header(200, "OK", get_file_type("index.html"), 42)   # bytes
line = extract_request_line(b"GET /x HTTP/1.1\r\n\r\n")     # "GET /x HTTP/1.1"
parse_request_line(line)                   # RequestLine(method="GET", path="/x")
```

`render_directory(dir_name)` yields the HTML of a directory listing piece by
piece.

## What it does not do

- Only `GET` is answered. Other methods and malformed requests are ignored
  and get no response at all.
- Responses for directory listings and for missing paths carry
  `content-length: -1`, and the status line is written as `http/1.1`.
- Requested paths are not confined to the served directory. `..` segments
  and absolute paths are followed as given, so do not expose the server to
  untrusted clients.
- There is no HTTPS, no caching headers, no range requests and no
  configuration file.

## Tests

```
pip install ".[test]"
pytest
```