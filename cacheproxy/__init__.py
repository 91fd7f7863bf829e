"""A caching HTTP forward proxy for GET requests and an HTTP request parser."""

__version__ = "0.1.0"
__all__ = ["proxy_parse", "cache", "network", "request_handler", "server"]