"""Domain layer - core business logic."""

from .catalog import Catalog
from .models import Contributor, Document, FetchResult, Metadata
from .services import AcquisitionService

__all__ = [
    "AcquisitionService",
    "Catalog",
    "Contributor",
    "Document",
    "FetchResult",
    "Metadata",
]
