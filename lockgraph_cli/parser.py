"""Project file parser: extracts ``ProjectReference`` edges from MSBuild manifests.

Parsing goes through lxml with entity resolution and network access
disabled. Only reference edges are read; the rest of the project schema
(package references, properties, targets) is ignored.
"""

from __future__ import annotations

import logging
import posixpath
from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Iterable, List, Optional

from lxml import etree

from .config import MANIFEST_EXTENSIONS
from .errors import ParseError
from .models import Manifest

logger = logging.getLogger(__name__)

REFERENCE_TAG = "ProjectReference"
REFERENCE_ATTRIBUTE = "Include"

_XML_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)


def extract_references(text: str, path: Optional[str] = None) -> List[str]:
    """Return every ``ProjectReference/@Include`` in document order, as authored.

    Elements are matched on local name so namespaced (pre-SDK) project files
    work too. References without an ``Include`` attribute are skipped.

    Raises:
        ParseError: *text* is empty or not well-formed XML.
    """
    if not text or not text.strip():
        raise ParseError("empty document", path)
    try:
        root = etree.fromstring(text.encode("utf-8"), parser=_XML_PARSER)
    except etree.XMLSyntaxError as exc:
        raise ParseError(str(exc), path) from exc

    references: List[str] = []
    for element in root.iter(etree.Element):
        if etree.QName(element).localname != REFERENCE_TAG:
            continue
        include = element.get(REFERENCE_ATTRIBUTE)
        if include and include.strip():
            references.append(include.strip())
    return references


def resolve_reference(referencing_path: str, reference: str) -> str:
    """Turn *reference* into a canonical absolute path.

    Backslashes become forward slashes, then the reference is joined to the
    referencing manifest's directory (unless already absolute) and ``.``/``..``
    segments are collapsed. No file system access.
    """
    normalized = reference.replace("\\", "/")
    if not posixpath.isabs(normalized):
        base = posixpath.dirname(referencing_path.replace("\\", "/"))
        normalized = posixpath.join(base, normalized)
    return posixpath.normpath(normalized)


def canonical_path(path: str) -> str:
    """Normalise separators and dot segments of an absolute manifest path."""
    return posixpath.normpath(path.replace("\\", "/"))


def is_supported_manifest(path: str, extensions: Iterable[str] = MANIFEST_EXTENSIONS) -> bool:
    suffix = PurePosixPath(path.replace("\\", "/")).suffix.lower()
    return suffix in {ext.lower() for ext in extensions}


class ManifestParser(ABC):
    """Abstract base class for manifest parsers."""

    @abstractmethod
    def parse_manifest(self, path: str, content: str) -> Manifest:
        """Parse one manifest into its canonical path and resolved references."""
        ...

    @abstractmethod
    def supports(self, path: str) -> bool:
        """Return True if this parser can handle the file at *path*."""
        ...


class ProjectReferenceParser(ManifestParser):
    """Parser for SDK-style and legacy MSBuild project files."""

    def __init__(self, extensions: Optional[Iterable[str]] = None) -> None:
        self.extensions = set(extensions or MANIFEST_EXTENSIONS)

    def supports(self, path: str) -> bool:
        return is_supported_manifest(path, self.extensions)

    def parse_manifest(self, path: str, content: str) -> Manifest:
        path = canonical_path(path)
        raw = extract_references(content, path)
        references = tuple(dict.fromkeys(resolve_reference(path, ref) for ref in raw))
        logger.debug("%s references %d project(s)", path, len(references))
        return Manifest(path=path, content=content, references=references)
