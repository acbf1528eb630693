"""Request-line parsing, URL decoding, MIME lookup and directory listings."""

from __future__ import annotations

import os
import re
import stat
from dataclasses import dataclass
from typing import Iterator

DEFAULT_TYPE = "text/plain; charset=utf-8"

_HEX_DIGITS = "0123456789abcdefABCDEF"
_PERCENT_ESCAPE = re.compile(rb"%([0-9A-Fa-f]{2})")
_REQUEST_LINE = re.compile(r"([^ ]+)\s+([^ ]+)")
_LISTING_FOOTER = "</table></body></html>"

_MIME_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".htm": "text/html; charset=utf-8",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".png": "image/png",
    ".css": "text/css",
    ".au": "audio/basic",
    ".wav": "audio/wav",
    ".avi": "video/x-msvideo",
    ".mov": "video/quicktime",
    ".qt": "video/quicktime",
    ".mpeg": "video/mpeg",
    ".mpe": "video/mpeg",
    ".vrml": "model/vrml",
    ".wrl": "model/vrml",
    ".midi": "audio/midi",
    ".mid": "audio/midi",
    ".mp3": "audio/mpeg",
    ".ogg": "application/ogg",
    ".pac": "application/x-ns-proxy-autoconfig",
}


@dataclass(frozen=True)
class RequestLine:
    """The method and raw (still URL-encoded) path of an HTTP request line."""

    method: str
    path: str

    @property
    def is_get(self) -> bool:
        """True when the method is GET, compared case-insensitively."""
        return self.method.lower() == "get"


def hex_to_dec(c: str) -> int:
    """Value of a single hexadecimal digit; 0 for anything else."""
    if len(c) == 1 and c in _HEX_DIGITS:
        return int(c, 16)
    return 0


def decode_path(raw: str) -> str:
    """Replace every %XX escape with the byte it names and decode as UTF-8."""
    encoded = raw.encode("utf-8", "surrogateescape")
    decoded = _PERCENT_ESCAPE.sub(
        lambda m: bytes([hex_to_dec(chr(m.group(1)[0])) * 16 + hex_to_dec(chr(m.group(1)[1]))]),
        encoded,
    )
    return decoded.decode("utf-8", "surrogateescape")


def get_file_type(name: str) -> str:
    """MIME type for the text after the last '.' in name; plain text by default."""
    dot = name.rfind(".")
    if dot == -1:
        return DEFAULT_TYPE
    return _MIME_TYPES.get(name[dot:], DEFAULT_TYPE)


def build_header(status: int, descr: str, content_type: str, length: int) -> bytes:
    """Status line and the content-type and content-length headers."""
    text = (
        f"http/1.1 {status} {descr}\r\n"
        f"content-type: {content_type}\r\n"
        f"content-length: {length}\r\n\r\n"
    )
    return text.encode("utf-8", "surrogateescape")


def parse_request_line(line: str) -> RequestLine:
    """Split a request line into its method and path."""
    match = _REQUEST_LINE.match(line)
    if match is None:
        raise ValueError(f"malformed request line: {line!r}")
    return RequestLine(method=match.group(1), path=match.group(2))


def extract_request_line(data: bytes) -> str:
    """The first CRLF-terminated line of a raw request."""
    end = data.find(b"\r\n")
    if end == -1:
        raise ValueError("request has no complete request line")
    return data[:end].decode("utf-8", "surrogateescape")


def render_directory(dir_name) -> Iterator[str]:
    """Yield an HTML table listing the entries of dir_name, sorted by name."""
    dir_name = os.fsdecode(dir_name)
    try:
        names = [".", ".."] + os.listdir(dir_name)
    except OSError:
        yield _LISTING_FOOTER
        return
    names.sort(key=os.fsencode)

    yield f"<html><head><title>{dir_name}</title></head><body><table>"
    for name in names:
        try:
            info = os.stat(f"{dir_name}/{name}")
        except OSError:
            is_dir, size = False, 0
        else:
            is_dir, size = stat.S_ISDIR(info.st_mode), info.st_size
        href = f"{name}/" if is_dir else name
        yield f'<tr><td><a href="{href}">{name}</a></td><td>{size}</td></tr>'
    yield _LISTING_FOOTER