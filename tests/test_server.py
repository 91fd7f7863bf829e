import socket
import threading

import pytest

from cacheproxy.cache import Cache
from cacheproxy.server import ProxyServer, main

UPSTREAM_RESPONSE = b"HTTP/1.0 200 OK\r\nContent-Length: 2\r\n\r\nok"


def start_upstream(connections=1):
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]

    def serve():
        with listener:
            for _ in range(connections):
                conn, _ = listener.accept()
                with conn:
                    data = b""
                    while b"\r\n\r\n" not in data:
                        chunk = conn.recv(4096)
                        if not chunk:
                            break
                        data += chunk
                    conn.sendall(UPSTREAM_RESPONSE)

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    return port, thread


def read_all(sock):
    data = b""
    while chunk := sock.recv(4096):
        data += chunk
    return data


def proxy_exchange(server, request_bytes):
    """Send request_bytes to server.handle_client and return what it answered."""
    left, right = socket.socketpair()
    with right:
        right.sendall(request_bytes)
        right.shutdown(socket.SHUT_WR)
        server.handle_client(left)
        return read_all(right)


def test_handle_client_bad_request():
    cache = Cache()
    server = ProxyServer(port=0, cache=cache)
    response = proxy_exchange(server, b"POST http://example.com/ HTTP/1.0\r\n\r\n")
    assert response.startswith(b"HTTP/1.1 400 Bad Request\r\n")
    assert len(cache) == 0


def test_handle_client_unsupported_version():
    cache = Cache()
    server = ProxyServer(port=0, cache=cache)
    response = proxy_exchange(server, b"GET http://127.0.0.1:1/ HTTP/2.0\r\n\r\n")
    assert response.startswith(b"HTTP/1.1 505 HTTP Version Not Supported\r\n")
    assert len(cache) == 0


def test_handle_client_unreachable_origin():
    probe = socket.create_server(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    cache = Cache()
    server = ProxyServer(port=0, cache=cache)
    request = f"GET http://127.0.0.1:{port}/ HTTP/1.0\r\n\r\n".encode()
    response = proxy_exchange(server, request)
    assert response.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
    assert len(cache) == 0


def test_handle_client_empty_connection():
    cache = Cache()
    server = ProxyServer(port=0, cache=cache)
    response = proxy_exchange(server, b"")
    assert response == b""
    assert len(cache) == 0


def test_handle_client_relays_origin_response():
    port, thread = start_upstream()
    cache = Cache()
    server = ProxyServer(port=0, cache=cache)
    request = f"GET http://127.0.0.1:{port}/ HTTP/1.1\r\n\r\n".encode()
    response = proxy_exchange(server, request)
    thread.join(5)
    assert response == UPSTREAM_RESPONSE


def test_serve_forever_end_to_end():
    upstream_port, upstream_thread = start_upstream()
    cache = Cache()
    server = ProxyServer(port=0, cache=cache, max_clients=4)
    server_thread = threading.Thread(target=server.serve_forever, daemon=True)
    server_thread.start()
    assert server.ready.wait(5)
    try:
        with socket.create_connection(("127.0.0.1", server.server_address[1])) as client:
            client.sendall(
                f"GET http://127.0.0.1:{upstream_port}/ HTTP/1.0\r\n\r\n".encode()
            )
            response = read_all(client)
    finally:
        server.shutdown()
        server_thread.join(5)
    upstream_thread.join(5)
    assert response == UPSTREAM_RESPONSE
    assert len(cache) == 1
    assert not server_thread.is_alive()


def test_main_rejects_non_numeric_port():
    with pytest.raises(SystemExit) as excinfo:
        main(["notaport"])
    assert excinfo.value.code == 2