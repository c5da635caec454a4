"""Registry port - interface for identifier metadata lookups."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import Metadata


class RegistryPort(ABC):
    """Interface for resolving an identifier to bibliographic metadata."""

    @abstractmethod
    def fetch_metadata(self, identifier: str) -> "Metadata":
        """Look up an identifier. Raises UpstreamError on failure."""
        pass
