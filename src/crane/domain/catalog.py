"""The category -> document index and its mutations.

The filesystem is the source of truth; the index is a cache that
:meth:`Catalog.populate` can always rebuild. Every mutation performs its
disk operation first and touches the index only once that succeeded, so an
error leaves the index exactly as it was.
"""

import logging
import os
import uuid
from dataclasses import replace
from pathlib import Path

from ..ports.metadata import MetadataPort
from ..ports.storage import StoragePort
from .errors import (
    ConflictError,
    DuplicateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .locking import RWLock
from .models import Document, Metadata, PDF_SUFFIX, SIDECAR_SUFFIX
from .naming import is_safe_category

logger = logging.getLogger(__name__)

# Hidden, so populate never walks it and category renames never carry it
STAGING_DIR = ".staging"


def _lineage(category: str) -> list[str]:
    """``a/b/c`` -> ``["a", "a/b", "a/b/c"]``."""
    parts = category.split("/")
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]


def _walk_error(error: OSError) -> None:
    raise StorageError(f"failed to read {error.filename}: {error}") from error


class Catalog:
    """Two-level mapping of category key -> document key -> Document.

    Document keys are category-relative paths such as
    ``Physics/Optics/smith2021.pdf``. A single reader/writer lock covers
    the whole index.
    """

    def __init__(
        self, root: Path, storage: StoragePort, sidecars: MetadataPort
    ) -> None:
        self.root = root
        self.storage = storage
        self.sidecars = sidecars
        self._lock = RWLock()
        self._categories: dict[str, dict[str, Document]] = {}

    # -- helpers (callers hold the lock where the index is touched) --

    def _category_dir(self, category: str) -> Path:
        return self.root.joinpath(*category.split("/"))

    @staticmethod
    def _check_category(category: str) -> None:
        if not is_safe_category(category):
            raise ValidationError(f"unsafe category name {category!r}")

    def _lookup(self, key: str) -> tuple[str, Document]:
        category = key.rpartition("/")[0]
        docs = self._categories.get(category)
        if docs is None:
            raise NotFoundError(f"category {category!r} does not exist")
        doc = docs.get(key)
        if doc is None:
            raise NotFoundError(
                f"paper {key!r} does not exist in category {category!r}"
            )
        return category, doc

    def _unique_name(self, category: str, candidate: str) -> str:
        docs = self._categories.get(category, {})
        name, suffix = candidate, 2
        while f"{category}/{name}{PDF_SUFFIX}" in docs:
            name = f"{candidate}-{suffix}"
            suffix += 1
        return name

    def _find_duplicate(
        self, category: str, candidate: str, identifier: str
    ) -> Document | None:
        if not identifier:
            return None
        docs = self._categories.get(category, {})
        wanted = identifier.casefold()
        name, suffix = candidate, 2
        while (doc := docs.get(f"{category}/{name}{PDF_SUFFIX}")) is not None:
            if doc.metadata.identifier.casefold() == wanted:
                return doc
            name = f"{candidate}-{suffix}"
            suffix += 1
        return None

    def _load_document(self, directory: Path, filename: str) -> Document:
        name = filename[: -len(PDF_SUFFIX)]
        doc = Document(name=name, path=directory / filename)

        # Sidecars are optional; PDFs themselves are never parsed
        sidecar = directory / (name + SIDECAR_SUFFIX)
        if sidecar.is_file():
            try:
                doc.metadata = self.sidecars.read_sidecar(sidecar)
            except (ValueError, OSError) as e:
                raise ValidationError(f"malformed sidecar {sidecar}: {e}") from e
            doc.sidecar_path = sidecar
        return doc

    # -- build --

    def populate(self) -> None:
        """Rebuild the index from a walk of the root directory.

        Raises ValidationError on a malformed sidecar; the previous index is
        kept in that case.
        """
        categories: dict[str, dict[str, Document]] = {}

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_walk_error):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            directory = Path(dirpath)
            relative = directory.relative_to(self.root)
            if relative == Path("."):
                for filename in filenames:
                    if filename.endswith(PDF_SUFFIX):
                        logger.debug(f"Skipping uncategorized file: {filename}")
                continue

            category = relative.as_posix()
            docs = categories.setdefault(category, {})
            for filename in sorted(filenames):
                if filename.startswith(".") or not filename.endswith(PDF_SUFFIX):
                    continue
                doc = self._load_document(directory, filename)
                docs[doc.key(category)] = doc

        with self._lock.write():
            self._categories = categories

        total = sum(len(docs) for docs in categories.values())
        logger.info(f"Catalog loaded: {len(categories)} categories, {total} papers")

    # -- reads --

    def categories(self) -> list[str]:
        with self._lock.read():
            return sorted(self._categories)

    def has_category(self, category: str) -> bool:
        with self._lock.read():
            return category in self._categories

    def documents(self, category: str) -> dict[str, Document]:
        """Snapshot of one category's documents, keyed by document key."""
        with self._lock.read():
            docs = self._categories.get(category)
            if docs is None:
                raise NotFoundError(f"category {category!r} does not exist")
            return dict(docs)

    def get(self, key: str) -> Document:
        with self._lock.read():
            return self._lookup(key)[1]

    def resolve_path(self, key: str) -> Path:
        """Return the on-disk PDF for a document key, checking it still exists."""
        path = self.get(key).path
        if not path.exists():
            raise NotFoundError(f"paper {key!r} is missing from disk")
        if path.is_dir():
            raise ValidationError(f"{key!r} is a directory")
        return path

    def unique_name(self, category: str, candidate: str) -> str:
        """First free name among ``candidate``, ``candidate-2``, ...

        Nothing is reserved; commit promptly or ask again.
        """
        with self._lock.read():
            return self._unique_name(category, candidate)

    def find_duplicate(
        self, category: str, candidate: str, identifier: str
    ) -> Document | None:
        """Return the entry holding ``identifier`` under any numbered variant."""
        with self._lock.read():
            return self._find_duplicate(category, candidate, identifier)

    # -- mutations --

    def add_document(self, category: str, doc: Document) -> None:
        """Register a document whose file is already in place."""
        self._check_category(category)
        with self._lock.write():
            self._categories.setdefault(category, {})[doc.key(category)] = doc

    def add_category(self, category: str) -> list[str]:
        """Create a category directory, registering missing ancestors too.

        Returns the newly registered category keys, outermost first.
        """
        self._check_category(category)
        with self._lock.write():
            if category in self._categories:
                raise ConflictError(f"category {category!r} already exists")
            self.storage.make_dirs(self._category_dir(category))
            created = []
            for name in _lineage(category):
                if name not in self._categories:
                    self._categories[name] = {}
                    created.append(name)
        logger.info(f"Added category: {category}")
        return created

    def commit(
        self,
        category: str,
        candidate: str,
        pdf_path: Path,
        metadata: Metadata | None = None,
        sidecar_path: Path | None = None,
    ) -> Document:
        """Move a downloaded PDF (and sidecar) into place and catalog it.

        Files are first staged under hidden names in the catalog's staging
        directory without holding the lock; naming, the duplicate check and
        the final rename into the category happen under the write lock.
        """
        self._check_category(category)
        if not candidate or candidate.startswith(".") or "/" in candidate:
            raise ValidationError(f"unsafe document name {candidate!r}")
        metadata = metadata or Metadata()
        if not self.has_category(category):
            raise NotFoundError(f"category {category!r} does not exist")

        staging = self.root / STAGING_DIR
        self.storage.make_dirs(staging)
        token = uuid.uuid4().hex
        staged_pdf = staging / f".{token}{PDF_SUFFIX}.part"
        staged_sidecar = staging / f".{token}{SIDECAR_SUFFIX}.part"
        staged: list[Path] = []
        try:
            self.storage.move_file(pdf_path, staged_pdf)
            staged.append(staged_pdf)
            if sidecar_path is not None:
                self.storage.move_file(sidecar_path, staged_sidecar)
                staged.append(staged_sidecar)

            with self._lock.write():
                doc = self._register(
                    category,
                    candidate,
                    metadata,
                    staged_pdf,
                    staged_sidecar if sidecar_path is not None else None,
                )
            staged.clear()
            return doc
        finally:
            for path in staged:
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    logger.error(f"Failed to remove staged file {path}: {e}")

    def _register(
        self,
        category: str,
        candidate: str,
        metadata: Metadata,
        staged_pdf: Path,
        staged_sidecar: Path | None,
    ) -> Document:
        docs = self._categories.get(category)
        if docs is None:
            raise NotFoundError(f"category {category!r} does not exist")
        if self._find_duplicate(category, candidate, metadata.identifier):
            raise DuplicateError(
                f"paper {candidate!r} with identifier "
                f"{metadata.identifier!r} already downloaded"
            )

        name = self._unique_name(category, candidate)
        directory = self._category_dir(category)
        pdf = directory / (name + PDF_SUFFIX)
        sidecar = directory / (name + SIDECAR_SUFFIX) if staged_sidecar else None
        moves = [(staged_pdf, pdf)]
        if staged_sidecar and sidecar:
            moves.append((staged_sidecar, sidecar))
        for _, dst in moves:
            if dst.exists():
                raise ConflictError(f"{dst} exists on disk but is not cataloged")
        self.storage.move_files(moves)

        doc = Document(name=name, path=pdf, metadata=metadata, sidecar_path=sidecar)
        docs[doc.key(category)] = doc
        logger.info(f"Cataloged: {doc.key(category)}")
        return doc

    def delete_paper(self, key: str) -> None:
        """Delete a paper and its sidecar from disk and the index."""
        with self._lock.write():
            category, doc = self._lookup(key)
            paths = [doc.path]
            if doc.sidecar_path is not None:
                paths.append(doc.sidecar_path)
            self.storage.remove_files([p for p in paths if p.exists()])
            del self._categories[category][key]
        logger.info(f"Deleted paper: {key}")

    def delete_category(self, category: str) -> None:
        """Delete a category, its subcategories and everything in them."""
        with self._lock.write():
            if category not in self._categories:
                raise NotFoundError(f"category {category!r} does not exist")
            directory = self._category_dir(category)
            if directory.exists():
                self.storage.remove_tree(directory)

            prefix = category + "/"
            for name in [c for c in self._categories if c == category or c.startswith(prefix)]:
                del self._categories[name]
        logger.info(f"Deleted category: {category}")

    def move_paper(self, key: str, dest: str) -> Document:
        """Move a paper (and sidecar) into another existing category."""
        self._check_category(dest)
        with self._lock.write():
            category, doc = self._lookup(key)
            dest_docs = self._categories.get(dest)
            if dest_docs is None:
                raise NotFoundError(f"category {dest!r} does not exist")
            dest_key = doc.key(dest)
            if dest_key in dest_docs:
                raise ConflictError(
                    f"paper {doc.filename!r} exists in destination category {dest!r}"
                )

            directory = self._category_dir(dest)
            pdf = directory / doc.filename
            moves = [(doc.path, pdf)]
            sidecar = None
            if doc.sidecar_path is not None and doc.sidecar_path.exists():
                sidecar = directory / doc.sidecar_path.name
                moves.append((doc.sidecar_path, sidecar))
            for _, dst in moves:
                if dst.exists():
                    raise ConflictError(f"{dst} already exists on disk")
            self.storage.move_files(moves)

            moved = replace(doc, path=pdf, sidecar_path=sidecar)
            del self._categories[category][key]
            dest_docs[dest_key] = moved
        logger.info(f"Moved paper: {key} -> {dest_key}")
        return moved

    def rename_category(self, old: str, new: str) -> None:
        """Rename a category and re-key it and all of its subcategories."""
        self._check_category(old)
        self._check_category(new)
        if new == old or new.startswith(old + "/"):
            raise ValidationError(f"cannot move category {old!r} into itself")

        with self._lock.write():
            if old not in self._categories:
                raise NotFoundError(f"category {old!r} does not exist")
            if new in self._categories:
                raise ConflictError(f"category {new!r} already exists")
            new_dir = self._category_dir(new)
            if new_dir.exists():
                raise ConflictError(f"{new_dir} already exists on disk")

            created = self._missing_parents(new_dir)
            self.storage.make_dirs(new_dir.parent)
            try:
                self.storage.rename_tree(self._category_dir(old), new_dir)
            except StorageError:
                for path in created:
                    try:
                        self.storage.remove_tree(path)
                    except StorageError as e:
                        logger.error(f"Failed to remove created directory {path}: {e}")
                raise

            prefix = old + "/"
            rebuilt: dict[str, dict[str, Document]] = {}
            for category, docs in self._categories.items():
                if category == old or category.startswith(prefix):
                    renamed = new + category[len(old):]
                    rebuilt[renamed] = self._rekey(renamed, docs)
                else:
                    rebuilt[category] = docs
            for name in _lineage(new):
                rebuilt.setdefault(name, {})
            self._categories = rebuilt
        logger.info(f"Renamed category: {old} -> {new}")

    def _missing_parents(self, path: Path) -> list[Path]:
        """Ancestors of ``path`` below the root that don't exist, deepest first."""
        missing = []
        for parent in path.parents:
            if parent == self.root or parent.exists():
                break
            missing.append(parent)
        return missing

    def _rekey(self, category: str, docs: dict[str, Document]) -> dict[str, Document]:
        directory = self._category_dir(category)
        rekeyed = {}
        for doc in docs.values():
            sidecar = directory / doc.sidecar_path.name if doc.sidecar_path else None
            moved = replace(doc, path=directory / doc.filename, sidecar_path=sidecar)
            rekeyed[moved.key(category)] = moved
        return rekeyed
