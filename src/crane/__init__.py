"""Catalog and acquire PDFs into filesystem-backed categories."""

__version__ = "0.1.0"
