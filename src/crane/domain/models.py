"""Domain models."""

from dataclasses import dataclass, field, fields
from pathlib import Path

PDF_SUFFIX = ".pdf"
SIDECAR_SUFFIX = ".meta.xml"
PDF_MEDIA_TYPE = "application/pdf"


@dataclass(frozen=True)
class Contributor:
    """A person credited on a publication."""

    first_name: str = ""
    last_name: str = ""
    role: str = "author"
    sequence: str = "additional"  # "first" or "additional"


@dataclass(frozen=True)
class Metadata:
    """Bibliographic record attached to a document.

    Replaced as a whole, never edited field by field.
    """

    journal: str = ""
    issn: str = ""
    title: str = ""
    contributors: tuple[Contributor, ...] = ()
    pub_year: str = ""
    pub_month: str = ""
    first_page: str = ""
    last_page: str = ""
    identifier: str = ""  # registry identifier (DOI)
    resource: str = ""  # canonical PDF location

    @property
    def first_author(self) -> Contributor | None:
        for contributor in self.contributors:
            if contributor.sequence == "first":
                return contributor
        return None

    def is_empty(self) -> bool:
        return all(not getattr(self, f.name) for f in fields(self))


@dataclass
class Document:
    """A cataloged PDF and its optional sidecar."""

    name: str  # base name without extension
    path: Path  # absolute path of the PDF
    metadata: Metadata = field(default_factory=Metadata)
    sidecar_path: Path | None = None

    @property
    def filename(self) -> str:
        return self.name + PDF_SUFFIX

    def key(self, category: str) -> str:
        """Category-relative key, e.g. ``Physics/smith2021.pdf``."""
        return f"{category}/{self.filename}"

    @property
    def display_title(self) -> str:
        return self.metadata.title or self.name


@dataclass
class FetchResult:
    """Outcome of a single outbound GET."""

    url: str  # final URL after redirects
    content_type: str
    content_disposition: str | None = None
    path: Path | None = None  # PDF bodies are spooled to disk
    body: bytes = b""

    @property
    def is_pdf(self) -> bool:
        return self.content_type == PDF_MEDIA_TYPE
