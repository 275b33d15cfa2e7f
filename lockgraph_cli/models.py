"""Core data models shared by graph building, restore, and reporting layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Manifest:
    path: str
    content: str
    references: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ReferenceEdge:
    src: str
    dst: str


@dataclass
class ImpactReport:
    root: str
    impacted: List[str]
    ascii_graph: str


@dataclass(frozen=True)
class Registry:
    url: str
    name: Optional[str] = None


@dataclass(frozen=True)
class RegistryInfo:
    feed_url: str
    protocol_version: int


@dataclass(frozen=True)
class HostCredentials:
    username: Optional[str] = None
    password: Optional[str] = None


@dataclass
class UpdateConfig:
    is_lock_file_maintenance: bool = False


@dataclass
class UpdateArtifact:
    """Input of a single lock file update request."""
    package_file_name: str
    new_package_file_content: str
    config: UpdateConfig = field(default_factory=UpdateConfig)
    updated_deps: Sequence[str] = ()


@dataclass
class FileResult:
    """Lock file whose content changed; ``contents`` is None when it was deleted."""
    name: str
    contents: Optional[str]


@dataclass
class ArtifactError:
    lock_files: List[str]
    stderr: str


@dataclass
class UpdateArtifactsResult:
    file: Optional[FileResult] = None
    artifact_error: Optional[ArtifactError] = None


@dataclass
class ExecOptions:
    cwd: Optional[str] = None
    docker_image: str = ""
    timeout: Optional[float] = None
    mounts: Tuple[str, ...] = ()


@dataclass
class ExecResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0
