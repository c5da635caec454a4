"""Acquisition strategies, tried in order until one yields a document.

Each strategy states when it applies and either returns a cataloged
Document, returns None to hand over to the next strategy, or raises
UpstreamError (recorded by the service, chain continues). Anything else
propagates and ends the acquisition.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import UpstreamError
from .models import Document, FetchResult, Metadata
from .naming import (
    candidate_from_identifier,
    candidate_from_metadata,
    candidate_from_response,
)

if TYPE_CHECKING:
    from .services import AcquisitionService

logger = logging.getLogger(__name__)


@dataclass
class Attempt:
    """State shared by the strategies during one acquisition."""

    category: str
    source: str
    workdir: Path
    url: str | None = None  # set when the input is an absolute URL
    identifier: str | None = None
    page: FetchResult | None = None  # non-PDF response to ``url``
    metadata: Metadata = field(default_factory=Metadata)  # scraped from ``page``
    errors: list[str] = field(default_factory=list)


class Strategy(ABC):
    name: str

    @abstractmethod
    def applies(self, attempt: Attempt) -> bool:
        pass

    @abstractmethod
    def run(self, service: "AcquisitionService", attempt: Attempt) -> Document | None:
        pass


class DirectLinkStrategy(Strategy):
    """The input URL serves a PDF itself."""

    name = "direct-link"

    def applies(self, attempt: Attempt) -> bool:
        return attempt.url is not None

    def run(self, service: "AcquisitionService", attempt: Attempt) -> Document | None:
        result = service.fetch(attempt.url, attempt)
        if not result.is_pdf:
            attempt.page = result
            return None

        candidate = candidate_from_response(result.content_disposition, result.url)
        return service.commit(attempt, result, Metadata(), candidate)


class CitationStrategy(Strategy):
    """The input URL is a landing page carrying citation tags."""

    name = "citation"

    def applies(self, attempt: Attempt) -> bool:
        return attempt.page is not None

    def run(self, service: "AcquisitionService", attempt: Attempt) -> Document | None:
        page = attempt.page
        metadata = service.citations.extract(page.body, page.url)
        attempt.metadata = metadata
        if not attempt.identifier:
            attempt.identifier = metadata.identifier or service.citations.find_identifier(
                page.body
            )

        if not metadata.resource:
            return None
        if not metadata.identifier and attempt.identifier:
            # DOI found in the page body rather than a citation_doi tag
            metadata = replace(metadata, identifier=attempt.identifier)
            attempt.metadata = metadata

        candidate = candidate_from_metadata(metadata)
        if candidate:
            service.check_duplicate(attempt.category, candidate, metadata.identifier)

        result = service.fetch(metadata.resource, attempt)
        if not result.is_pdf:
            logger.info(f"Citation PDF link is not a PDF: {metadata.resource}")
            return None

        if not candidate:
            candidate = candidate_from_response(result.content_disposition, result.url)
        return service.commit(attempt, result, metadata, candidate)


class IdentifierStrategy(Strategy):
    """Resolve an identifier with the registry and fetch from the mirror."""

    name = "identifier"

    def applies(self, attempt: Attempt) -> bool:
        return attempt.identifier is not None or attempt.url is not None

    def run(self, service: "AcquisitionService", attempt: Attempt) -> Document | None:
        identifier = attempt.identifier
        if not identifier and attempt.url:
            # Last resort: the mirror may know the identifier for this URL
            identifier = service.identifier_from_mirror(attempt.url, attempt)
        if not identifier:
            return None

        metadata = service.registry.fetch_metadata(identifier)
        if not metadata.identifier:
            metadata = replace(metadata, identifier=identifier)

        candidate = candidate_from_metadata(metadata) or candidate_from_identifier(
            identifier
        )
        service.check_duplicate(attempt.category, candidate, metadata.identifier)

        try:
            result = service.fetch_pdf(service.mirror_url(identifier), attempt)
        except UpstreamError as e:
            if not metadata.resource:
                raise
            logger.info(f"Mirror lookup by identifier failed ({e}), trying resource URL")
            result = service.fetch_pdf(service.mirror_url(metadata.resource), attempt)

        return service.commit(attempt, result, metadata, candidate)


def default_strategies() -> list[Strategy]:
    return [DirectLinkStrategy(), CitationStrategy(), IdentifierStrategy()]
