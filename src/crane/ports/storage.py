"""Storage port - interface for filesystem transactions."""

from abc import ABC, abstractmethod
from pathlib import Path


class StoragePort(ABC):
    """Interface for atomic-as-possible file and directory operations."""

    @abstractmethod
    def move_file(self, src: Path, dst: Path) -> Path:
        """Move a file, falling back to copy-then-delete across devices.

        Never overwrites an existing destination. Returns the destination.
        """
        pass

    @abstractmethod
    def move_files(self, moves: list[tuple[Path, Path]]) -> None:
        """Move several files; completed moves are undone if one fails."""
        pass

    @abstractmethod
    def remove_files(self, paths: list[Path]) -> None:
        """Remove several files, all or nothing."""
        pass

    @abstractmethod
    def make_dirs(self, path: Path) -> None:
        """Create a directory and any missing parents."""
        pass

    @abstractmethod
    def remove_tree(self, path: Path) -> None:
        """Remove a directory and everything below it."""
        pass

    @abstractmethod
    def rename_tree(self, src: Path, dst: Path) -> None:
        """Rename a directory as a unit."""
        pass
