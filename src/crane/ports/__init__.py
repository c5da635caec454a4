"""Ports - interfaces for external dependencies."""

from .citation import CitationPort
from .fetcher import FetcherPort
from .metadata import MetadataPort
from .registry import RegistryPort
from .storage import StoragePort

__all__ = ["CitationPort", "FetcherPort", "MetadataPort", "RegistryPort", "StoragePort"]
