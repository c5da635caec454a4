"""Metadata port - interface for sidecar files."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import Metadata


class MetadataPort(ABC):
    """Interface for reading and writing metadata sidecars."""

    @abstractmethod
    def read_sidecar(self, path: Path) -> "Metadata":
        """Parse a sidecar file.

        Raises ValueError if the file is malformed.
        """
        pass

    @abstractmethod
    def write_sidecar(self, path: Path, metadata: "Metadata") -> Path:
        """Write a sidecar file.

        Returns path to sidecar file.
        """
        pass
