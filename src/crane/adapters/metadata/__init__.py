"""Metadata adapters."""

from .unixref import UnixrefAdapter, build_unixref, parse_unixref

__all__ = ["UnixrefAdapter", "build_unixref", "parse_unixref"]
