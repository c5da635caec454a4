"""Egress guard: refuse outbound requests to private and loopback addresses.

Every request the acquisition pipeline makes (registry lookups, page
scraping, document downloads and each redirect hop) passes through
:class:`GuardedTransport`, which resolves the target host and refuses to
connect if the literal host or any resolved address is internal.

Known gap: the check runs before the inner transport dials, and the
transport resolves the name again on its own. A DNS server that answers
differently the second time (DNS rebinding) can slip past. Closing that
window would mean pinning the checked address into the connection, which
the wrapped transport does not allow.
"""

import ipaddress
import logging
import socket
from collections.abc import Callable

import httpx

logger = logging.getLogger(__name__)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

BLOCKED_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        "127.0.0.0/8",  # IPv4 loopback
        "10.0.0.0/8",  # RFC1918
        "172.16.0.0/12",  # RFC1918
        "192.168.0.0/16",  # RFC1918
        "169.254.0.0/16",  # RFC3927 link-local
        "::1/128",  # IPv6 loopback
        "fe80::/10",  # IPv6 link-local
        "fc00::/7",  # IPv6 unique local
    )
)

# Same text httpx uses when no address could be reached
CONNECT_FAILED = "All connection attempts failed"

Resolver = Callable[..., list]


class EgressBlockedError(Exception):
    """The target resolves to a blocked address."""


def is_blocked_address(address: IPAddress) -> bool:
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        address = address.ipv4_mapped
    if address.is_loopback or address.is_link_local:
        return True
    return any(address in network for network in BLOCKED_NETWORKS)


def _parse_ip(value: str) -> IPAddress | None:
    # getaddrinfo may append a scope id, e.g. fe80::1%eth0
    try:
        return ipaddress.ip_address(value.split("%", 1)[0])
    except ValueError:
        return None


def check_host(
    host: str, port: int | None = None, resolver: Resolver = socket.getaddrinfo
) -> None:
    """Raise EgressBlockedError unless every address of ``host`` is public."""
    host = host.strip("[]")
    literal = _parse_ip(host)
    if literal is not None:
        if is_blocked_address(literal):
            raise EgressBlockedError(f"{host} is a blocked address")
        return

    try:
        infos = resolver(host, port, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise EgressBlockedError(f"could not resolve {host}: {e}") from e

    for info in infos:
        address = _parse_ip(str(info[4][0]))
        if address is None or is_blocked_address(address):
            raise EgressBlockedError(f"{host} resolves to blocked address {info[4][0]}")


class GuardedTransport(httpx.BaseTransport):
    """httpx transport that checks each request's host before dialing."""

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        resolver: Resolver = socket.getaddrinfo,
    ) -> None:
        self._transport = transport or httpx.HTTPTransport()
        self._resolver = resolver

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        try:
            check_host(request.url.host, request.url.port, self._resolver)
        except EgressBlockedError as e:
            # Callers see an ordinary connect failure, never the reason
            logger.debug(f"Egress blocked for {request.url}: {e}")
            raise httpx.ConnectError(CONNECT_FAILED, request=request) from None
        return self._transport.handle_request(request)

    def close(self) -> None:
        self._transport.close()
