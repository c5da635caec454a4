"""Derive filesystem-safe document names.

Everything here is pure: no network access and no catalog lookups.
Collision handling lives in :meth:`crane.domain.catalog.Catalog.unique_name`.
"""

import posixpath
from email.message import Message
from urllib.parse import unquote, urlparse

from .models import Metadata, PDF_SUFFIX

FALLBACK_NAME = "untitled"


def strip_unsafe(value: str) -> str:
    """Remove path traversal sequences until none are left."""
    previous = None
    while previous != value:
        previous = value
        value = value.replace("\x00", "").replace("/", "").replace("..", "")
    return value


def candidate_from_metadata(metadata: Metadata) -> str:
    """Return ``lastname + year`` of the first author, e.g. ``doe2020``.

    Empty when there is no first author or no publication year.
    """
    author = metadata.first_author
    if author is None or not metadata.pub_year:
        return ""
    last_name = strip_unsafe(author.last_name).strip().lstrip(".")
    pub_year = strip_unsafe(metadata.pub_year).strip().lstrip(".")
    if not last_name or not pub_year:
        return ""
    return last_name.lower() + pub_year


def _disposition_filename(content_disposition: str | None) -> str:
    if not content_disposition:
        return ""
    message = Message()
    message["content-disposition"] = content_disposition
    return message.get_filename() or ""


def candidate_from_response(content_disposition: str | None, url: str) -> str:
    """Return the remote file name without its ``.pdf`` suffix.

    The ``filename`` parameter of Content-Disposition wins over the last
    path segment of the (post-redirect) URL.
    """
    filename = _disposition_filename(content_disposition)
    if not filename:
        path = unquote(urlparse(url).path).rstrip("/")
        filename = posixpath.basename(path)
    if filename.lower().endswith(PDF_SUFFIX):
        filename = filename[: -len(PDF_SUFFIX)]
    name = strip_unsafe(filename).strip().lstrip(".")
    return name or FALLBACK_NAME


def candidate_from_identifier(identifier: str) -> str:
    """Last-resort name built from the raw identifier."""
    return strip_unsafe(identifier).strip().lstrip(".") or FALLBACK_NAME


def sanitize_category(raw: str) -> str:
    """Clean user-supplied category input, e.g. ``/../Physics/Optics/``."""
    cleaned = raw.replace("\x00", "").replace("..", "").strip().strip("/.")
    segments = [s.strip().lstrip(".").strip() for s in cleaned.split("/")]
    return "/".join(s for s in segments if s)


def is_safe_category(category: str) -> bool:
    if not category or "\x00" in category or "\\" in category:
        return False
    # Hidden directories are never walked, so they cannot be categories
    return all(s and not s.startswith(".") for s in category.split("/"))
