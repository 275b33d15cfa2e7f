"""Local file system access for manifests, lock files, and the restore cache."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List, Optional

from .config import CACHE_DIR, SKIP_DIRS

logger = logging.getLogger(__name__)


def get_sibling_file_name(path: str, name: str) -> str:
    """Return *name* placed in the same directory as *path*."""
    return os.path.join(os.path.dirname(path), name)


class LocalFileSystem:
    """File operations rooted at a local working directory.

    Relative paths are resolved against *local_dir*; absolute paths are used
    as given. Reads return ``None`` for missing files instead of raising.
    """

    def __init__(self, local_dir: Path, cache_dir: Optional[Path] = None):
        self.local_dir = Path(local_dir).resolve()
        self.cache_dir = Path(cache_dir) if cache_dir else CACHE_DIR

    def _abs(self, path: str) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.local_dir / p

    def read_file(self, path: str, errors: str = "strict") -> Optional[str]:
        """Read *path* as UTF-8; *errors* is passed to the decoder."""
        try:
            return self._abs(path).read_text(encoding="utf-8", errors=errors)
        except FileNotFoundError:
            return None
        except IsADirectoryError:
            return None

    def write_file(self, path: str, content: str) -> None:
        target = self._abs(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def remove_file(self, path: str) -> None:
        target = self._abs(path)
        if target.is_dir():
            shutil.rmtree(target, ignore_errors=True)
        elif target.exists():
            target.unlink()

    def exists(self, path: str) -> bool:
        return self._abs(path).exists()

    def list_files_recursively(self, root: str, extensions: Iterable[str]) -> List[str]:
        """Find files with one of *extensions* below *root*, sorted by path.

        Build output and tooling folders listed in ``SKIP_DIRS`` are not
        descended into.
        """
        wanted = {ext.lower() for ext in extensions}
        base = self._abs(root)
        found: List[str] = []
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
            for filename in filenames:
                if Path(filename).suffix.lower() in wanted:
                    found.append(Path(dirpath, filename).as_posix())
        logger.debug("Found %d manifest(s) under %s", len(found), base)
        return sorted(found)

    def ensure_cache_dir(self, name: str) -> str:
        path = self.cache_dir / name
        path.mkdir(parents=True, exist_ok=True)
        return str(path)
