"""Fetcher port - interface for outbound document and page requests."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import FetchResult


class FetcherPort(ABC):
    """Interface for fetching remote resources."""

    @abstractmethod
    def fetch(
        self, url: str, workdir: Path, user_agent: str | None = None
    ) -> "FetchResult":
        """GET a URL, following redirects.

        PDF bodies are spooled to a new file inside ``workdir``; anything
        else is returned in memory. Raises UpstreamError on failure.
        """
        pass
