"""Citation port - interface for scraping bibliographic data from pages."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import Metadata


class CitationPort(ABC):
    """Interface for citation tag extraction."""

    @abstractmethod
    def extract(self, html: bytes | str, base_url: str = "") -> "Metadata":
        """Best-effort Metadata from an HTML page; never fails on missing tags."""
        pass

    @abstractmethod
    def find_identifier(self, data: bytes | str) -> str | None:
        """Return the first identifier-shaped string in ``data``."""
        pass
