"""Citation metadata scraped from HTML ``<meta>`` tags.

Publishers expose Highwire-style ``citation_*`` tags for indexers, e.g.::

    <meta name="citation_author" content="Doe, Jane">
    <meta name="citation_pdf_url" content="/content/paper.pdf">

Missing tags simply leave fields empty; extraction never fails.
"""

import logging
import re
from datetime import datetime
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ...domain.models import Contributor, Metadata
from ...ports.citation import CitationPort

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(
    rb"""(10[.][0-9]{4,}[^\s"/<>]*/[^\s"'<>,{};\[\]?&]+)"""
)
DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y")
JOURNAL_TAGS = ("citation_journal_title", "og:site_name", "DC.Publisher")


def find_identifier(data: bytes | str) -> str | None:
    """Return the first DOI-shaped string in ``data``."""
    if isinstance(data, str):
        data = data.encode("utf-8", "replace")
    match = IDENTIFIER_PATTERN.search(data)
    if match is None:
        return None
    return match.group(1).decode("utf-8", "replace")


def parse_author(value: str, first: bool) -> Contributor:
    """Split ``Doe, Jane`` or ``Jane Doe`` into first and last name."""
    value = " ".join(value.split())
    if "," in value:
        last, _, given = value.partition(",")
        first_name, last_name = given.strip(), last.strip()
    else:
        first_name, _, last_name = value.rpartition(" ")
    return Contributor(
        first_name=first_name,
        last_name=last_name,
        role="author",
        sequence="first" if first else "additional",
    )


def parse_date(value: str) -> tuple[str, str]:
    """Return (year, month) for the supported formats, else empty strings."""
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
        month = f"{parsed.month:02d}" if fmt != "%Y" else ""
        return str(parsed.year), month
    return "", ""


def extract_citation_metadata(html: bytes | str, base_url: str = "") -> Metadata:
    """Build Metadata from the citation tags in an HTML page.

    A relative ``citation_pdf_url`` is resolved against ``base_url``.
    """
    soup = BeautifulSoup(html, "html.parser")
    fields: dict[str, str] = {}
    contributors: list[Contributor] = []

    for tag in soup.find_all("meta"):
        name = tag.get("name") or tag.get("property")
        content = (tag.get("content") or "").strip()
        if not name or not content:
            continue

        if name == "citation_title":
            fields["title"] = content
        elif name == "citation_author":
            contributors.append(parse_author(content, first=not contributors))
        elif name in ("citation_date", "citation_publication_date"):
            year, month = parse_date(content)
            if year:
                fields["pub_year"], fields["pub_month"] = year, month
        elif name in JOURNAL_TAGS:
            fields["journal"] = content
        elif name == "citation_issn":
            fields.setdefault("issn", content)
        elif name == "citation_firstpage":
            fields["first_page"] = content
        elif name == "citation_lastpage":
            fields["last_page"] = content
        elif name == "citation_doi":
            fields["identifier"] = content.removeprefix("doi:")
        elif name == "citation_pdf_url":
            fields["resource"] = urljoin(base_url, content) if base_url else content

    metadata = Metadata(contributors=tuple(contributors), **fields)
    logger.debug(
        f"Citation tags: title={metadata.title!r} identifier={metadata.identifier!r} "
        f"resource={metadata.resource!r}"
    )
    return metadata


class HtmlCitationAdapter(CitationPort):
    """Citation implementation using BeautifulSoup."""

    def extract(self, html: bytes | str, base_url: str = "") -> Metadata:
        return extract_citation_metadata(html, base_url)

    def find_identifier(self, data: bytes | str) -> str | None:
        return find_identifier(data)
