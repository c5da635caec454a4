"""Storage adapters."""

from .filesystem import FilesystemAdapter, move_file

__all__ = ["FilesystemAdapter", "move_file"]
