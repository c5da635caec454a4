"""Crossref unixref XML: metadata sidecars and registry responses.

Sidecars use the same envelope the DOI registry returns, so a sidecar can be
the registry document itself or one written from scraped citation tags.
"""

import logging
from pathlib import Path
from xml.etree import ElementTree as ET

from ...domain.errors import StorageError
from ...domain.models import Contributor, Metadata
from ...ports.metadata import MetadataPort

logger = logging.getLogger(__name__)

ROOT_TAG = "doi_records"
JOURNAL = "doi_record/crossref/journal"
JOURNAL_METADATA = f"{JOURNAL}/journal_metadata"
ARTICLE = f"{JOURNAL}/journal_article"


def _strip_namespaces(root: ET.Element) -> None:
    for elem in root.iter():
        if isinstance(elem.tag, str) and "}" in elem.tag:
            elem.tag = elem.tag.rsplit("}", 1)[1]


def _text(root: ET.Element, path: str) -> str:
    elem = root.find(path)
    if elem is None:
        return ""
    return "".join(elem.itertext()).strip()


def parse_unixref(data: bytes | str) -> Metadata:
    """Parse a unixref document.

    Raises ValueError for malformed XML or an unexpected root element.
    First occurrence wins for repeated fields (e.g. print and online ISSN).
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise ValueError(f"malformed XML: {e}") from e

    _strip_namespaces(root)
    if root.tag != ROOT_TAG:
        raise ValueError(f"expected element <{ROOT_TAG}>, got <{root.tag}>")

    contributors = []
    for person in root.findall(f"{ARTICLE}/contributors/person_name"):
        contributors.append(
            Contributor(
                first_name=_text(person, "given_name"),
                last_name=_text(person, "surname"),
                role=person.get("contributor_role", ""),
                sequence=person.get("sequence", ""),
            )
        )

    return Metadata(
        journal=_text(root, f"{JOURNAL_METADATA}/full_title"),
        issn=_text(root, f"{JOURNAL_METADATA}/issn"),
        title=_text(root, f"{ARTICLE}/titles/title"),
        contributors=tuple(contributors),
        pub_year=_text(root, f"{ARTICLE}/publication_date/year"),
        pub_month=_text(root, f"{ARTICLE}/publication_date/month"),
        first_page=_text(root, f"{ARTICLE}/pages/first_page"),
        last_page=_text(root, f"{ARTICLE}/pages/last_page"),
        identifier=_text(root, f"{ARTICLE}/doi_data/doi"),
        resource=_text(root, f"{ARTICLE}/doi_data/resource"),
    )


def _add(parent: ET.Element, tag: str, value: str) -> None:
    if value:
        ET.SubElement(parent, tag).text = value


def build_unixref(metadata: Metadata) -> str:
    """Build a unixref XML string from Metadata."""
    root = ET.Element(ROOT_TAG)
    record = ET.SubElement(root, "doi_record")
    crossref = ET.SubElement(record, "crossref")
    journal = ET.SubElement(crossref, "journal")

    journal_metadata = ET.SubElement(journal, "journal_metadata")
    _add(journal_metadata, "full_title", metadata.journal)
    _add(journal_metadata, "issn", metadata.issn)

    article = ET.SubElement(journal, "journal_article")
    titles = ET.SubElement(article, "titles")
    _add(titles, "title", metadata.title)

    contributors = ET.SubElement(article, "contributors")
    for contributor in metadata.contributors:
        person = ET.SubElement(contributors, "person_name")
        person.set("contributor_role", contributor.role)
        person.set("sequence", contributor.sequence)
        _add(person, "given_name", contributor.first_name)
        _add(person, "surname", contributor.last_name)

    publication_date = ET.SubElement(article, "publication_date")
    _add(publication_date, "month", metadata.pub_month)
    _add(publication_date, "year", metadata.pub_year)

    pages = ET.SubElement(article, "pages")
    _add(pages, "first_page", metadata.first_page)
    _add(pages, "last_page", metadata.last_page)

    doi_data = ET.SubElement(article, "doi_data")
    _add(doi_data, "doi", metadata.identifier)
    _add(doi_data, "resource", metadata.resource)

    ET.indent(root)
    xml_str = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{xml_str}\n'


class UnixrefAdapter(MetadataPort):
    """Sidecar implementation storing unixref XML next to each PDF."""

    def read_sidecar(self, path: Path) -> Metadata:
        return parse_unixref(path.read_bytes())

    def write_sidecar(self, path: Path, metadata: Metadata) -> Path:
        logger.debug(f"Writing sidecar: {path.name}")
        try:
            path.write_text(build_unixref(metadata), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"failed to write sidecar {path}: {e}") from e
        return path
