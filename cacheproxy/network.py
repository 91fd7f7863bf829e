"""Socket helpers: error responses to clients and connections upstream."""

from __future__ import annotations

import socket
from email.utils import formatdate
from http import HTTPStatus

__all__ = ["error_response", "send_error_message", "connect_remote_server"]

_SUPPORTED_STATUS = (400, 403, 404, 500, 501, 505)
_REASONS = {code: HTTPStatus(code).phrase for code in _SUPPORTED_STATUS}


def error_response(status_code: int) -> bytes:
    """Build a complete HTML error response for a supported status code."""
    try:
        reason = _REASONS[status_code]
    except KeyError:
        raise ValueError(f"unsupported status code {status_code}") from None
    title = f"{status_code} {reason}"
    body = (
        f"<HTML><HEAD><TITLE>{title}</TITLE></HEAD>\n"
        f"<BODY><H1>{title}</H1>\n</BODY></HTML>"
    ).encode("ascii")
    head = (
        f"HTTP/1.1 {title}\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Content-Type: text/html\r\n"
        "Connection: close\r\n"
        f"Date: {formatdate(usegmt=True)}\r\n"
        "Server: cacheproxy\r\n"
        "\r\n"
    )
    return head.encode("ascii") + body


def send_error_message(sock: socket.socket, status_code: int) -> int:
    """Send an error response on ``sock`` and return the bytes sent."""
    response = error_response(status_code)
    sock.sendall(response)
    return len(response)


def connect_remote_server(host: str, port: int) -> socket.socket:
    """Open a TCP connection to ``host``:``port`` over IPv4."""
    address = socket.gethostbyname(host)
    return socket.create_connection((address, port))