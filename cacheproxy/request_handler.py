"""Forwarding of a parsed client request to the origin server."""

from __future__ import annotations

import socket
from dataclasses import replace

from .cache import MAX_BYTES, Cache
from .network import connect_remote_server
from .proxy_parse import ParsedRequest

__all__ = ["check_http_version", "build_upstream_request", "handle_request"]

DEFAULT_HTTP_PORT = 80
_SUPPORTED_VERSIONS = ("HTTP/1.1", "HTTP/1.0")


def check_http_version(version: str) -> bool:
    """True if ``version`` begins with HTTP/1.0 or HTTP/1.1."""
    return version[:8] in _SUPPORTED_VERSIONS


def _host_with_port(request: ParsedRequest) -> str:
    return f"{request.host}:{request.port}" if request.port else request.host


def _url(request: ParsedRequest) -> str:
    return f"{request.protocol}://{_host_with_port(request)}{request.path}"


def _remote_port(request: ParsedRequest) -> int:
    if request.port is None:
        return DEFAULT_HTTP_PORT
    try:
        return int(request.port)
    except ValueError:
        raise ValueError(f"bad port {request.port!r}") from None


def build_upstream_request(request: ParsedRequest) -> bytes:
    """The request to send to the origin: origin-form line plus headers."""
    upstream = replace(request, headers=list(request.headers))
    upstream.set_header("Connection", "close")
    if upstream.get_header("Host") is None:
        upstream.set_header("Host", _host_with_port(request))
    line = f"GET {request.path} {request.version}\r\n".encode("latin-1")
    return line + upstream.unparse_headers()


def handle_request(
    client_socket: socket.socket, request: ParsedRequest, cache: Cache
) -> bytes:
    """Answer ``request`` from the cache or the origin; return the response.

    Raises OSError if the origin cannot be reached and ValueError on a bad port.
    """
    url = _url(request)
    cached = cache.find(url)
    if cached is not None:
        client_socket.sendall(cached.data)
        return cached.data

    chunks = []
    with connect_remote_server(request.host, _remote_port(request)) as remote:
        remote.sendall(build_upstream_request(request))
        while chunk := remote.recv(MAX_BYTES):
            client_socket.sendall(chunk)
            chunks.append(chunk)

    response = b"".join(chunks)
    if response:
        cache.add(response, url)
    return response