"""Outbound HTTP using a guarded httpx client."""

import logging
import os
import socket
import tempfile
from collections.abc import Iterator
from pathlib import Path

import httpx

from ...config import HttpConfig
from ...domain.errors import StorageError, UpstreamError
from ...domain.models import FetchResult, PDF_SUFFIX
from ...ports.fetcher import FetcherPort
from .guard import GuardedTransport, Resolver

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def create_http_client(
    config: HttpConfig,
    transport: httpx.BaseTransport | None = None,
    resolver: Resolver = socket.getaddrinfo,
) -> httpx.Client:
    """Build the client shared by the fetcher and the registry adapter.

    ``transport`` is the inner transport wrapped by the egress guard; tests
    pass an ``httpx.MockTransport`` here, and a fake ``resolver``.
    """
    return httpx.Client(
        transport=GuardedTransport(transport, resolver),
        follow_redirects=True,
        timeout=httpx.Timeout(config.timeout, connect=config.connect_timeout),
        headers={"User-Agent": config.user_agent},
    )


def media_type(content_type: str | None) -> str:
    """``application/pdf; charset=binary`` -> ``application/pdf``."""
    return (content_type or "").split(";", 1)[0].strip().lower()


def iter_limited(response: httpx.Response, max_size: int) -> Iterator[bytes]:
    """Yield body chunks, aborting once ``max_size`` bytes are exceeded."""
    declared = response.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_size:
        raise UpstreamError(
            f"{response.url}: response of {declared} bytes exceeds limit of {max_size}"
        )
    total = 0
    for chunk in response.iter_bytes(CHUNK_SIZE):
        total += len(chunk)
        if total > max_size:
            raise UpstreamError(
                f"{response.url}: response exceeds limit of {max_size} bytes"
            )
        yield chunk


class HttpFetcher(FetcherPort):
    """Fetcher implementation on top of httpx with a body size ceiling."""

    def __init__(self, client: httpx.Client, max_size: int) -> None:
        self.client = client
        self.max_size = max_size

    def fetch(
        self, url: str, workdir: Path, user_agent: str | None = None
    ) -> FetchResult:
        headers = {"User-Agent": user_agent} if user_agent else None
        logger.debug(f"GET {url}")
        try:
            with self.client.stream("GET", url, headers=headers) as response:
                if response.status_code != httpx.codes.OK:
                    raise UpstreamError(
                        f"{url!r}: status code {response.status_code}"
                    )
                result = FetchResult(
                    url=str(response.url),
                    content_type=media_type(response.headers.get("content-type")),
                    content_disposition=response.headers.get("content-disposition"),
                )
                if result.is_pdf:
                    result.path = self._spool(response, workdir)
                else:
                    result.body = b"".join(iter_limited(response, self.max_size))
                return result
        except httpx.HTTPError as e:
            raise UpstreamError(f"{url!r}: {e}") from e

    def _spool(self, response: httpx.Response, workdir: Path) -> Path:
        fd, name = tempfile.mkstemp(prefix="tmp-", suffix=PDF_SUFFIX, dir=workdir)
        path = Path(name)
        try:
            with os.fdopen(fd, "wb") as out:
                for chunk in iter_limited(response, self.max_size):
                    out.write(chunk)
        except OSError as e:
            path.unlink(missing_ok=True)
            raise StorageError(f"failed to write {path}: {e}") from e
        except Exception:
            path.unlink(missing_ok=True)
            raise
        logger.debug(f"Saved {response.url} to {path.name}")
        return path
