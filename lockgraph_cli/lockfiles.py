"""Lock file snapshots and before/after comparison."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Mapping, Optional, Sequence

from .config import LOCK_FILE_NAME, MAX_WORKERS
from .fs import LocalFileSystem, get_sibling_file_name
from .models import FileResult

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Optional[str]]


def lock_file_path(manifest_path: str) -> str:
    """``packages.lock.json`` next to *manifest_path*."""
    return get_sibling_file_name(manifest_path, LOCK_FILE_NAME)


def has_any_lock(snapshot: Mapping[str, Optional[str]]) -> bool:
    """True if at least one manifest in *snapshot* has a lock file."""
    return any(content is not None for content in snapshot.values())


def diff(before: Mapping[str, Optional[str]], after: Mapping[str, Optional[str]]) -> List[FileResult]:
    """Lock files whose content differs between two snapshots.

    Only manifests present in *before* are compared. A lock file that appears
    is reported with its new content; one that disappears is reported with
    ``contents=None``.
    """
    changed: List[FileResult] = []
    for manifest, old in before.items():
        new = after.get(manifest)
        if old != new:
            changed.append(FileResult(name=lock_file_path(manifest), contents=new))
    return changed


class LockFileManager:
    """Read lock files for a set of manifests."""

    def __init__(self, fs: LocalFileSystem, max_workers: int = MAX_WORKERS):
        self.fs = fs
        self.max_workers = max(1, max_workers)

    def snapshot(self, manifests: Sequence[str]) -> Snapshot:
        """Map each manifest to its current lock file content (None if absent).

        The mapping preserves the order of *manifests*. Bytes that are not
        UTF-8 are kept as surrogate escapes, so comparison stays byte-exact.
        """
        paths = [lock_file_path(m) for m in manifests]
        if len(paths) <= 1 or self.max_workers == 1:
            contents = [self._read_lock(p) for p in paths]
        else:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(paths))) as pool:
                contents = list(pool.map(self._read_lock, paths))

        snapshot: Snapshot = dict(zip(manifests, contents))
        present = sum(1 for c in contents if c is not None)
        logger.debug("Snapshot of %d lock file(s), %d present", len(paths), present)
        return snapshot

    def _read_lock(self, path: str) -> Optional[str]:
        return self.fs.read_file(path, errors="surrogateescape")

    def lock_files(self, manifests: Sequence[str]) -> List[str]:
        return [lock_file_path(m) for m in manifests]
