"""Domain services - orchestrate document acquisition."""

import logging
import tempfile
from pathlib import Path
from urllib.parse import urlparse

from ..ports.citation import CitationPort
from ..ports.fetcher import FetcherPort
from ..ports.metadata import MetadataPort
from ..ports.registry import RegistryPort
from .catalog import Catalog
from .errors import (
    DuplicateError,
    NotFoundError,
    UnresolvableError,
    UpstreamError,
    ValidationError,
)
from .models import Document, FetchResult, Metadata, SIDECAR_SUFFIX
from .strategies import Attempt, Strategy, default_strategies

logger = logging.getLogger(__name__)


def absolute_url(text: str) -> str | None:
    """Return ``text`` if it is an absolute http(s) URL."""
    parsed = urlparse(text)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return text
    return None


class AcquisitionService:
    """Turns a URL, identifier or text containing one into a cataloged PDF."""

    def __init__(
        self,
        catalog: Catalog,
        fetcher: FetcherPort,
        registry: RegistryPort,
        citations: CitationPort,
        sidecars: MetadataPort,
        mirror_url: str,
        tmp_dir: Path | None = None,
        mirror_user_agent: str | None = None,
        strategies: list[Strategy] | None = None,
    ) -> None:
        self.catalog = catalog
        self.fetcher = fetcher
        self.registry = registry
        self.citations = citations
        self.sidecars = sidecars
        self.mirror_base = mirror_url.rstrip("/") + "/"
        self.tmp_dir = tmp_dir
        self.mirror_user_agent = mirror_user_agent
        self.strategies = strategies if strategies is not None else default_strategies()

    def acquire(self, category: str, source: str) -> Document:
        """Acquire a document into an existing category.

        Strategies run in order:
            1. Direct link (URL serves a PDF)
            2. Citation tags on the page at URL
            3. Identifier via registry + mirror

        All downloads land in a private temp dir that is removed on exit,
        whatever the outcome. Raises UnresolvableError if nothing worked.
        """
        source = source.strip()
        if not self.catalog.has_category(category):
            raise NotFoundError(f"category {category!r} does not exist")

        url = absolute_url(source)
        identifier = None if url else self.citations.find_identifier(source)
        if url is None and identifier is None:
            raise ValidationError(f"{source!r} is not a valid identifier or URL")

        logger.info(f"Acquiring {source!r} into {category}")
        with tempfile.TemporaryDirectory(prefix="crane-", dir=self.tmp_dir) as tmp:
            attempt = Attempt(
                category=category,
                source=source,
                workdir=Path(tmp),
                url=url,
                identifier=identifier,
            )
            for strategy in self.strategies:
                if not strategy.applies(attempt):
                    continue
                try:
                    doc = strategy.run(self, attempt)
                except UpstreamError as e:
                    logger.warning(f"Strategy {strategy.name} failed for {source!r}: {e}")
                    attempt.errors.append(f"{strategy.name}: {e}")
                    continue
                if doc is not None:
                    logger.info(f"Acquired {doc.key(category)} via {strategy.name}")
                    return doc

        raise UnresolvableError(source, attempt.errors)

    # -- helpers used by strategies --

    def mirror_url(self, target: str) -> str:
        return self.mirror_base + target.lstrip("/")

    def fetch(self, url: str, attempt: Attempt, mirror: bool = False) -> FetchResult:
        user_agent = self.mirror_user_agent if mirror else None
        return self.fetcher.fetch(url, attempt.workdir, user_agent=user_agent)

    def fetch_pdf(self, url: str, attempt: Attempt) -> FetchResult:
        """Fetch from the mirror, insisting on a PDF body."""
        result = self.fetch(url, attempt, mirror=True)
        if not result.is_pdf:
            raise UpstreamError(f"{url!r}: content-type not application/pdf")
        return result

    def identifier_from_mirror(self, url: str, attempt: Attempt) -> str | None:
        result = self.fetch(self.mirror_url(url), attempt, mirror=True)
        if result.is_pdf:
            return None
        return self.citations.find_identifier(result.body)

    def check_duplicate(self, category: str, candidate: str, identifier: str) -> None:
        """Refuse before downloading when the identifier is already cataloged."""
        existing = self.catalog.find_duplicate(category, candidate, identifier)
        if existing is not None:
            raise DuplicateError(
                f"paper {existing.name!r} with identifier {identifier!r} "
                "already downloaded"
            )

    def commit(
        self, attempt: Attempt, result: FetchResult, metadata: Metadata, candidate: str
    ) -> Document:
        sidecar = None
        if not metadata.is_empty():
            sidecar = self.sidecars.write_sidecar(
                attempt.workdir / f"sidecar{SIDECAR_SUFFIX}", metadata
            )
        return self.catalog.commit(
            attempt.category, candidate, result.path, metadata, sidecar
        )
