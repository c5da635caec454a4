"""Registry adapter resolving DOIs through doi.org content negotiation."""

import logging

import httpx

from ...domain.errors import UpstreamError
from ...domain.models import Metadata
from ...ports.registry import RegistryPort
from ..http.fetcher import iter_limited, media_type
from ..metadata.unixref import parse_unixref

logger = logging.getLogger(__name__)

UNIXREF_MEDIA_TYPE = "application/vnd.crossref.unixref+xml"
ACCEPT = f"{UNIXREF_MEDIA_TYPE};q=1,application/rdf+xml;q=0.5"


class DoiRegistryAdapter(RegistryPort):
    """Fetch Crossref unixref metadata for a DOI."""

    def __init__(
        self,
        client: httpx.Client,
        base_url: str = "https://doi.org/",
        max_size: int = 5_000_000,
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/") + "/"
        self.max_size = max_size

    def fetch_metadata(self, identifier: str) -> Metadata:
        url = self.base_url + identifier
        logger.info(f"Resolving identifier: {identifier}")

        try:
            with self.client.stream("GET", url, headers={"Accept": ACCEPT}) as response:
                if response.status_code != httpx.codes.OK:
                    raise UpstreamError(f"{url!r}: failed to get metadata")
                content_type = media_type(response.headers.get("content-type"))
                if content_type != UNIXREF_MEDIA_TYPE:
                    raise UpstreamError(
                        f"{url!r}: content-type not {UNIXREF_MEDIA_TYPE}"
                    )
                content = b"".join(iter_limited(response, self.max_size))
        except httpx.HTTPError as e:
            raise UpstreamError(f"{url!r}: {e}") from e

        try:
            return parse_unixref(content)
        except ValueError as e:
            raise UpstreamError(f"{url!r}: {e}") from e
