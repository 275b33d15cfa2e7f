"""Manifest reference graph and the builder that discovers it from a source tree."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, Iterator, List, Optional

from .config import MANIFEST_EXTENSIONS, MAX_WORKERS
from .errors import ManifestReadError, ParseError
from .fs import LocalFileSystem
from .models import Manifest, ReferenceEdge
from .parser import ManifestParser, ProjectReferenceParser, canonical_path

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Directed graph of manifests: ``referencing -> referenced``.

    Nodes are the manifests discovered under a root, kept in discovery order.
    Edge targets may point outside the node set (references leaving the root);
    such targets are never added as nodes.
    """

    def __init__(self) -> None:
        self._references: Dict[str, Dict[str, None]] = {}
        self._referrers: Dict[str, Dict[str, None]] = {}

    @property
    def nodes(self) -> List[str]:
        return list(self._references)

    @property
    def edges(self) -> List[ReferenceEdge]:
        return [
            ReferenceEdge(src, dst)
            for src, targets in self._references.items()
            for dst in targets
        ]

    def add_manifest(self, path: str, references: Iterable[str] = ()) -> None:
        """Add *path* as a node with the given outgoing references.

        Re-adding a node merges the new references into its edge set.
        """
        targets = self._references.setdefault(path, {})
        for ref in references:
            targets[ref] = None
            self._referrers.setdefault(ref, {})[path] = None

    def references(self, path: str) -> List[str]:
        """Manifests referenced by *path* (empty for unknown paths)."""
        return list(self._references.get(path, {}))

    def referrers(self, path: str) -> List[str]:
        """Manifests that reference *path* directly, in discovery order."""
        return list(self._referrers.get(path, {}))

    def __contains__(self, path: object) -> bool:
        return path in self._references

    def __iter__(self) -> Iterator[str]:
        return iter(self._references)

    def __len__(self) -> int:
        return len(self._references)

    def to_dict(self) -> Dict[str, List[str]]:
        return {path: list(targets) for path, targets in self._references.items()}


class GraphBuilder:
    """Discover manifests below a root and assemble their reference graph.

    Every manifest is read and parsed exactly once per :meth:`build`. Reads
    are independent, so they run on a small thread pool; graph assembly then
    happens in sorted discovery order so the result is deterministic.
    """

    def __init__(
        self,
        fs: LocalFileSystem,
        parser: Optional[ManifestParser] = None,
        extensions: Optional[Iterable[str]] = None,
        max_workers: int = MAX_WORKERS,
    ) -> None:
        self.fs = fs
        self.extensions = set(extensions or MANIFEST_EXTENSIONS)
        self.parser = parser or ProjectReferenceParser(self.extensions)
        self.max_workers = max(1, max_workers)
        self.manifests: Dict[str, Manifest] = {}

    def discover(self, root: str) -> List[str]:
        files = self.fs.list_files_recursively(root, self.extensions)
        return [canonical_path(f) for f in files]

    def _read_manifest(self, path: str) -> Optional[str]:
        try:
            return self.fs.read_file(path)
        except UnicodeDecodeError as exc:
            raise ParseError(f"not valid UTF-8 ({exc.reason})", path) from exc

    def _read_contents(self, files: List[str]) -> Dict[str, str]:
        if len(files) <= 1 or self.max_workers == 1:
            contents = [self._read_manifest(f) for f in files]
        else:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(files))) as pool:
                contents = list(pool.map(self._read_manifest, files))

        content_map: Dict[str, str] = {}
        for path, content in zip(files, contents):
            if content is None:
                raise ManifestReadError(path)
            content_map[path] = content
        return content_map

    def build(self, root: str) -> DependencyGraph:
        """Build the reference graph for every manifest under *root*.

        Raises:
            ParseError: a manifest is not well-formed; no partial graph is returned.
            ManifestReadError: a listed manifest disappeared before it was read.
        """
        files = self.discover(root)
        content_map = self._read_contents(files)

        self.manifests = {}
        graph = DependencyGraph()
        for path in files:
            manifest = self.parser.parse_manifest(path, content_map[path])
            self.manifests[manifest.path] = manifest
            graph.add_manifest(manifest.path, manifest.references)

        logger.info(
            "Built project graph for %s: %d manifest(s), %d reference(s)",
            root, len(graph), len(graph.edges),
        )
        return graph
