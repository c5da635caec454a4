"""HTTP adapters."""

from .fetcher import HttpFetcher, create_http_client
from .guard import GuardedTransport, check_host, is_blocked_address

__all__ = [
    "GuardedTransport",
    "HttpFetcher",
    "check_host",
    "create_http_client",
    "is_blocked_address",
]
