# cacheproxy

cacheproxy is a small HTTP forward proxy. It keeps recent responses in an
in-memory cache. It accepts `GET` requests in absolute form, such as
`GET http://host:port/path HTTP/1.1`, and sends each one on to the origin
server with `Connection: close`. It adds a `Host` header when the request has
none. The full response goes back to the client and is then stored in the
cache under the request's URL. A later request for the same URL is answered
from the cache.

## Installation

```
pip install .
```

## Running the proxy

```
cacheproxy 8080
```

The only argument is the port. If you leave it out, the proxy listens on 8080.
Point your HTTP client at the proxy:

```
curl -x http://localhost:8080 http://example.com/
```

The proxy handles each client on its own thread. At most 400 clients are
served at the same time. Other clients wait until a slot is free. The client
gets an error response in these cases:

- `400 Bad Request` when the request cannot be parsed or its method is not
  `GET`;
- `505 HTTP Version Not Supported` when the version is not `HTTP/1.0` or
  `HTTP/1.1`;
- `500 Internal Server Error` when the origin cannot be reached or the port is
  not a number.

Press Ctrl-C to stop the server.

You can also run the server from code:

```python
from cacheproxy.server import ProxyServer
from cacheproxy.cache import Cache

server = ProxyServer(port=8080, cache=Cache(), max_clients=400)
server.serve_forever()   # blocks; call server.shutdown() from another thread
```

Once the server is listening, `server.ready` is set and `server.server_address`
holds the bound address.

## Using the parser

```python
from cacheproxy.proxy_parse import parse_request, ParseError

raw = (
    b"GET http://www.example.com:80/index.html HTTP/1.0\r\n"
    b"If-Modified-Since: Sat, 29 Oct 1994 19:43:31 GMT\r\n\r\n"
)
request = parse_request(raw)
request.host            # "www.example.com"
request.port            # "80"
request.path            # "/index.html"
request.version         # "HTTP/1.0"

request.get_header("If-Modified-Since").value
request.remove_header("If-Modified-Since")   # KeyError if absent
request.set_header("Connection", "close")    # replaces an existing key
request.unparse()           # bytes: request line, headers, blank line
request.unparse_headers()   # bytes: headers and blank line only
request.total_length()      # len(request.unparse())
```

`parse_request` takes `bytes` or `str` of 4 to 65535 characters. The data
must contain the blank line that ends the headers. It raises `ParseError`, a
`ValueError`, for a malformed request, for a method other than `GET`, for a
version that does not start with `HTTP/`, or for a path that starts with two
slashes. When the URL has no path, the path becomes `/`.

## Using the cache

```python
from cacheproxy.cache import Cache

cache = Cache()
cache.add(b"HTTP/1.1 200 OK\r\n\r\nhello", "http://example.com/")  # True
element = cache.find("http://example.com/")   # CacheElement or None
"http://example.com/" in cache                # True
len(cache)                                    # 1
cache.remove_oldest()                         # evicts and returns the LRU element
```

Each entry counts its data, its URL and a fixed overhead of 40 bytes against
the limits. By default the cache holds 200 MiB in total, and one entry may be
at most 10 MiB. You can set both limits with `Cache(max_size=...,
max_element_size=...)`. `add` returns `False` for an entry that is too large.
To make room, it evicts the least recently used entries first. `find` marks
an entry as just used. The cache is safe to share between threads.

## Error responses

`cacheproxy.network.error_response(code)` builds a small HTML error response
for 400, 403, 404, 500, 501 or 505. Any other code raises `ValueError`.
`send_error_message(sock, code)` sends that response on a socket.
`connect_remote_server(host, port)` opens an IPv4 TCP connection.

## What it does not do

- It only proxies `GET` requests. It does not support `CONNECT`, so HTTPS
  cannot be tunnelled, and it does not support other methods.
- The cache lives in memory only. It is lost when the server stops.
- It ignores cache-control headers and expiry times. A response stays cached
  until it is evicted to make room.

## Tests

```
pip install .[test]
pytest
```