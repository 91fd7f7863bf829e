"""Parsing and re-serialising of proxied HTTP GET requests."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

__all__ = ["ParseError", "ParsedHeader", "ParsedRequest", "parse_request"]

logger = logging.getLogger(__name__)

MIN_REQUEST_LENGTH = 4
MAX_REQUEST_LENGTH = 65535
ROOT_PATH = "/"
_ENCODING = "latin-1"


class ParseError(ValueError):
    """Raised when a request buffer is not a valid proxy GET request."""


@dataclass
class ParsedHeader:
    """A single ``key: value`` header line."""

    key: str
    value: str

    def line(self) -> str:
        return f"{self.key}: {self.value}\r\n"


@dataclass
class ParsedRequest:
    """A parsed request line together with its headers."""

    method: str
    protocol: str
    host: str
    port: str | None
    path: str
    version: str
    headers: list[ParsedHeader] = field(default_factory=list)

    def set_header(self, key: str, value: str) -> None:
        """Set a header, replacing any existing one with the same key."""
        try:
            self.remove_header(key)
        except KeyError:
            pass
        self.headers.append(ParsedHeader(key, value))

    def get_header(self, key: str) -> ParsedHeader | None:
        """Return the header with exactly this key, or None."""
        return next((h for h in self.headers if h.key == key), None)

    def remove_header(self, key: str) -> None:
        """Remove the header with this key; KeyError if there is none."""
        header = self.get_header(key)
        if header is None:
            raise KeyError(key)
        self.headers.remove(header)

    def request_line(self) -> str:
        """The request line, including its trailing CRLF."""
        port = f":{self.port}" if self.port is not None else ""
        return (
            f"{self.method} {self.protocol}://{self.host}{port}"
            f"{self.path} {self.version}\r\n"
        )

    def unparse_headers(self) -> bytes:
        """The headers followed by the terminating blank line."""
        text = "".join(h.line() for h in self.headers) + "\r\n"
        return text.encode(_ENCODING)

    def unparse(self) -> bytes:
        """The whole request: request line, headers and blank line."""
        return self.request_line().encode(_ENCODING) + self.unparse_headers()

    def headers_length(self) -> int:
        """Length in bytes of :meth:`unparse_headers`."""
        return len(self.unparse_headers())

    def total_length(self) -> int:
        """Length in bytes of :meth:`unparse`."""
        return len(self.unparse())


def _fail(message: str) -> ParseError:
    logger.debug(message)
    return ParseError(message)


def _token(text: str, pos: int, delims: str) -> tuple[re.Match[str] | None, int]:
    """Find the next run of non-delimiter characters at or after ``pos``.

    Returns the match and the position just past the delimiter that ends it.
    """
    match = re.compile(f"[^{re.escape(delims)}]+").search(text, pos)
    if match is None:
        return None, len(text)
    return match, min(match.end() + 1, len(text))


def _parse_header_line(line: str) -> ParsedHeader:
    colon = line.find(":")
    if colon < 0:
        raise _fail(f"no colon found in header line {line!r}")
    return ParsedHeader(line[:colon], line[colon + 2:])


def parse_request(data: bytes | str) -> ParsedRequest:
    """Parse a complete request header block ending in a blank line."""
    if not MIN_REQUEST_LENGTH <= len(data) <= MAX_REQUEST_LENGTH:
        raise _fail(f"invalid request length {len(data)}")

    text = data.decode(_ENCODING) if isinstance(data, bytes) else data
    text = text.split("\0", 1)[0]

    if "\r\n\r\n" not in text:
        raise _fail("invalid request line, no end of header")

    line, _, rest = text.partition("\r\n")

    method_match, pos = _token(line, 0, " ")
    if method_match is None:
        raise _fail("invalid request line, no whitespace")
    method = method_match.group()
    if method != "GET":
        raise _fail(f"invalid request line, method not 'GET': {method}")

    addr_match, _ = _token(line, pos, " ")
    if addr_match is None:
        raise _fail("invalid request line, no full address")
    full_addr = addr_match.group()

    if addr_match.end() >= len(line):
        raise _fail("invalid request line, missing version")
    version = line[addr_match.end() + 1:]
    if not version.startswith("HTTP/"):
        raise _fail(f"invalid request line, unsupported version {version}")

    proto_match, pos = _token(full_addr, 0, ":/")
    if proto_match is None:
        raise _fail("invalid request line, missing host")
    protocol = proto_match.group()
    abs_uri_length = max(0, len(full_addr) - len(protocol) - len("://"))

    host_match, pos = _token(full_addr, pos, "/")
    if host_match is None:
        raise _fail("invalid request line, missing host")
    host_port = host_match.group()
    if len(host_port) == abs_uri_length:
        raise _fail("invalid request line, missing absolute path")

    path_match, _ = _token(full_addr, pos, " ")
    if path_match is None:
        path = ROOT_PATH
    elif path_match.group().startswith(ROOT_PATH):
        raise _fail("invalid request line, path cannot begin with two slash characters")
    else:
        path = ROOT_PATH + path_match.group()

    name_match, pos = _token(host_port, 0, ":")
    if name_match is None:
        raise _fail("invalid request line, missing host")
    port_match, _ = _token(host_port, pos, "/")

    request = ParsedRequest(
        method=method,
        protocol=protocol,
        host=name_match.group(),
        port=port_match.group() if port_match else None,
        path=path,
        version=version,
    )

    header_block = rest.split("\r\n\r\n", 1)[0] if not rest.startswith("\r\n") else ""
    for header_line in filter(None, header_block.split("\r\n")):
        header = _parse_header_line(header_line)
        request.set_header(header.key, header.value)

    return request