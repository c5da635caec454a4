"""Unit tests for the outbound address guard."""

import ipaddress
import socket

import httpx
import pytest

from crane.adapters.http.guard import (
    CONNECT_FAILED,
    EgressBlockedError,
    GuardedTransport,
    check_host,
    is_blocked_address,
)


def resolver_for(*addresses: str):
    def resolve(host: str, port: int | None, type: int = 0) -> list:
        return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", (a, port or 80)) for a in addresses]

    return resolve


def failing_resolver(host: str, port: int | None, type: int = 0) -> list:
    raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")


class TestIsBlockedAddress:
    """Tests for is_blocked_address."""

    @pytest.mark.parametrize(
        "address",
        [
            "127.0.0.1",
            "127.10.0.1",
            "10.1.2.3",
            "172.16.5.4",
            "192.168.1.1",
            "169.254.169.254",
            "::1",
            "fe80::1",
            "fd00::1",
            "::ffff:127.0.0.1",
            "::ffff:10.0.0.1",
        ],
    )
    def test_blocked(self, address: str) -> None:
        assert is_blocked_address(ipaddress.ip_address(address))

    @pytest.mark.parametrize(
        "address",
        ["93.184.216.34", "172.32.0.1", "8.8.8.8", "2606:4700::1111", "::ffff:93.184.216.34"],
    )
    def test_public(self, address: str) -> None:
        assert not is_blocked_address(ipaddress.ip_address(address))


class TestCheckHost:
    """Tests for check_host."""

    def test_literal_address(self) -> None:
        with pytest.raises(EgressBlockedError):
            check_host("127.0.0.1")
        check_host("93.184.216.34")

    def test_bracketed_ipv6(self) -> None:
        with pytest.raises(EgressBlockedError):
            check_host("[::1]")

    def test_name_resolving_to_private(self) -> None:
        with pytest.raises(EgressBlockedError):
            check_host("intranet.test", 80, resolver_for("10.0.0.5"))

    def test_any_private_answer_blocks(self) -> None:
        with pytest.raises(EgressBlockedError):
            check_host("mixed.test", 80, resolver_for("93.184.216.34", "192.168.0.2"))

    def test_scoped_link_local(self) -> None:
        with pytest.raises(EgressBlockedError):
            check_host("scoped.test", 80, resolver_for("fe80::1%eth0"))

    def test_public_name(self) -> None:
        check_host("example.test", 443, resolver_for("93.184.216.34"))

    def test_resolution_failure_blocks(self) -> None:
        with pytest.raises(EgressBlockedError):
            check_host("nowhere.test", 80, failing_resolver)


class TestGuardedTransport:
    """Tests for GuardedTransport."""

    @pytest.fixture
    def seen(self) -> list[str]:
        return []

    def client(self, seen: list[str], resolver=resolver_for("93.184.216.34")) -> httpx.Client:
        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            if request.url.path == "/hop":
                return httpx.Response(302, headers={"location": "http://127.0.0.1/admin"})
            return httpx.Response(200, content=b"ok")

        transport = GuardedTransport(httpx.MockTransport(handler), resolver)
        return httpx.Client(transport=transport, follow_redirects=True)

    def test_public_request_passes(self, seen: list[str]) -> None:
        with self.client(seen) as client:
            assert client.get("https://example.test/").text == "ok"
        assert seen == ["https://example.test/"]

    def test_blocked_request_looks_like_connect_failure(self, seen: list[str]) -> None:
        with self.client(seen) as client:
            with pytest.raises(httpx.ConnectError, match=CONNECT_FAILED):
                client.get("http://127.0.0.1:8080/")
        assert seen == []

    def test_blocked_by_resolution(self, seen: list[str]) -> None:
        with self.client(seen, resolver_for("10.0.0.1")) as client:
            with pytest.raises(httpx.ConnectError):
                client.get("https://intranet.test/")
        assert seen == []

    def test_redirect_hop_is_checked(self, seen: list[str]) -> None:
        with self.client(seen) as client:
            with pytest.raises(httpx.ConnectError):
                client.get("https://example.test/hop")
        assert seen == ["https://example.test/hop"]
