"""Storage adapter using local filesystem."""

import errno
import logging
import os
import shutil
import uuid
from pathlib import Path

from ...domain.errors import StorageError
from ...ports.storage import StoragePort

logger = logging.getLogger(__name__)


def _copy_file(src: Path, dst: Path) -> None:
    """Copy bytes and mode; the destination is synced before returning."""
    with open(src, "rb") as fin, open(dst, "xb") as fout:
        shutil.copyfileobj(fin, fout)
        fout.flush()
        os.fsync(fout.fileno())
    shutil.copymode(src, dst)


def move_file(src: Path, dst: Path) -> Path:
    """Rename ``src`` to ``dst``, copying across devices when rename can't.

    The destination is fully written before the source is removed, so a
    failure in between leaves two copies rather than none.
    """
    if src == dst:
        return dst
    if dst.exists():
        raise StorageError(f"destination {dst} already exists")

    try:
        os.rename(src, dst)
        return dst
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise StorageError(f"failed to move {src} to {dst}: {e}") from e

    logger.debug(f"Cross-device move, copying: {src} -> {dst}")
    try:
        _copy_file(src, dst)
    except OSError as e:
        dst.unlink(missing_ok=True)
        raise StorageError(f"failed to copy source file {src} to {dst}: {e}") from e

    try:
        os.remove(src)
    except OSError as e:
        raise StorageError(f"failed to clean up source file {src}: {e}") from e
    return dst


def _tombstone(path: Path) -> Path:
    return path.with_name(f".{path.name}.{uuid.uuid4().hex}.deleted")


class FilesystemAdapter(StoragePort):
    """Storage implementation using local filesystem."""

    def move_file(self, src: Path, dst: Path) -> Path:
        return move_file(src, dst)

    def move_files(self, moves: list[tuple[Path, Path]]) -> None:
        done: list[tuple[Path, Path]] = []
        try:
            for src, dst in moves:
                move_file(src, dst)
                done.append((src, dst))
        except StorageError:
            for src, dst in reversed(done):
                try:
                    move_file(dst, src)
                except StorageError as e:
                    logger.error(f"Rollback failed, file left at {dst}: {e}")
            raise

    def remove_files(self, paths: list[Path]) -> None:
        """Hide every file behind a tombstone name first, then unlink.

        If any file can't be hidden, the ones already hidden are restored.
        """
        staged: list[tuple[Path, Path]] = []
        for path in paths:
            tomb = _tombstone(path)
            try:
                os.rename(path, tomb)
            except OSError as e:
                for original, hidden in reversed(staged):
                    try:
                        os.rename(hidden, original)
                    except OSError as restore_error:
                        logger.error(f"Failed to restore {original}: {restore_error}")
                raise StorageError(f"failed to remove {path}: {e}") from e
            staged.append((path, tomb))

        for path, tomb in staged:
            try:
                tomb.unlink()
            except OSError as e:
                # Already invisible to the catalog; a rebuild ignores it.
                logger.warning(f"Failed to unlink tombstone {tomb}: {e}")

    def make_dirs(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"failed to create {path}: {e}") from e

    def remove_tree(self, path: Path) -> None:
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise StorageError(f"failed to remove {path}: {e}") from e
        logger.info(f"Removed directory: {path}")

    def rename_tree(self, src: Path, dst: Path) -> None:
        if dst.exists():
            raise StorageError(f"destination {dst} already exists")
        try:
            os.rename(src, dst)
        except OSError as e:
            raise StorageError(f"failed to rename {src} to {dst}: {e}") from e
        logger.info(f"Renamed directory: {src} -> {dst}")
