"""A threaded caching HTTP proxy server and its command-line entry point."""

from __future__ import annotations

import argparse
import contextlib
import logging
import socket
import threading

from .cache import MAX_BYTES, MAX_CLIENTS, Cache
from .network import send_error_message
from .proxy_parse import MAX_REQUEST_LENGTH, ParseError, parse_request
from .request_handler import check_http_version, handle_request

__all__ = ["ProxyServer", "main"]

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
_ACCEPT_TIMEOUT = 0.2


class ProxyServer:
    """Accepts client connections and serves each one on its own thread."""

    def __init__(
        self,
        port: int = DEFAULT_PORT,
        cache: Cache | None = None,
        max_clients: int = MAX_CLIENTS,
    ) -> None:
        self.port = port
        self.cache = cache if cache is not None else Cache()
        self.max_clients = max_clients
        self.server_address: tuple[str, int] | None = None
        self.ready = threading.Event()
        self._slots = threading.BoundedSemaphore(max_clients)
        self._stop = threading.Event()

    @staticmethod
    def _read_request(client_socket: socket.socket) -> bytes:
        data = bytearray()
        while b"\r\n\r\n" not in data and len(data) <= MAX_REQUEST_LENGTH:
            chunk = client_socket.recv(MAX_BYTES)
            if not chunk:
                break
            data += chunk
        return bytes(data)

    @staticmethod
    def _reply_error(client_socket: socket.socket, status_code: int) -> None:
        with contextlib.suppress(OSError):
            send_error_message(client_socket, status_code)

    def handle_client(self, client_socket: socket.socket) -> None:
        """Serve one client connection, then close it."""
        with self._slots, client_socket:
            try:
                raw = self._read_request(client_socket)
            except OSError as exc:
                logger.debug("failed to read from client: %s", exc)
                return
            if not raw:
                return
            try:
                request = parse_request(raw)
            except ParseError:
                self._reply_error(client_socket, 400)
                return
            if not check_http_version(request.version):
                self._reply_error(client_socket, 505)
                return
            try:
                handle_request(client_socket, request, self.cache)
            except (OSError, ValueError) as exc:
                logger.info("request for %s failed: %s", request.host, exc)
                self._reply_error(client_socket, 500)

    def serve_forever(self) -> None:
        """Listen on the configured port until :meth:`shutdown` is called."""
        with socket.create_server(("", self.port), backlog=self.max_clients) as listener:
            listener.settimeout(_ACCEPT_TIMEOUT)
            self.server_address = listener.getsockname()[:2]
            self.ready.set()
            logger.info("listening on port %d", self.server_address[1])
            while not self._stop.is_set():
                try:
                    client, address = listener.accept()
                except TimeoutError:
                    continue
                client.settimeout(None)
                logger.debug("client connected from %s", address)
                threading.Thread(
                    target=self.handle_client, args=(client,), daemon=True
                ).start()

    def shutdown(self) -> None:
        """Ask :meth:`serve_forever` to stop accepting connections."""
        self._stop.set()


def main(argv: list[str] | None = None) -> int:
    """Run the proxy server from the command line."""
    parser = argparse.ArgumentParser(description="Caching HTTP proxy server.")
    parser.add_argument("port", nargs="?", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    server = ProxyServer(args.port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        server.shutdown()
    return 0