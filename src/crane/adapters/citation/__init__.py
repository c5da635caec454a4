"""Citation tag extraction."""

from .html import HtmlCitationAdapter, extract_citation_metadata, find_identifier

__all__ = ["HtmlCitationAdapter", "extract_citation_metadata", "find_identifier"]
