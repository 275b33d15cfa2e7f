"""Top-level lock file update for a changed project manifest."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from . import config
from .errors import (
    NoLockArtifactError,
    RestoreCancelled,
    TransientInfrastructureError,
    UnsupportedManifestError,
)
from .fs import LocalFileSystem
from .graph import GraphBuilder
from .impact import resolve_impact_set
from .lockfiles import LockFileManager, Snapshot, diff, has_any_lock
from .models import ArtifactError, UpdateArtifact, UpdateArtifactsResult
from .parser import canonical_path, is_supported_manifest
from .registries import HostRules, RegistrySource, get_random_string
from .restore import RestoreOrchestrator
from .runner import ProcessRunner, SubprocessRunner

logger = logging.getLogger(__name__)


@dataclass
class UpdateContext:
    """Everything an update needs from its environment, passed explicitly."""
    local_dir: Path
    fs: LocalFileSystem
    runner: ProcessRunner
    host_rules: HostRules = field(default_factory=HostRules)
    registry_source: RegistrySource = field(default_factory=RegistrySource)
    token_factory: Callable[[], str] = get_random_string
    extensions: Set[str] = field(default_factory=lambda: set(config.MANIFEST_EXTENSIONS))
    docker_image: str = ""
    timeout: Optional[float] = None
    max_workers: int = config.MAX_WORKERS

    @property
    def root_dir(self) -> str:
        return canonical_path(Path(self.local_dir).resolve().as_posix())

    @classmethod
    def from_config(
        cls,
        local_dir: Path,
        docker_image: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> "UpdateContext":
        config.ensure_base_dirs()
        return cls(
            local_dir=Path(local_dir).resolve(),
            fs=LocalFileSystem(local_dir, config.CACHE_DIR),
            runner=SubprocessRunner(),
            host_rules=HostRules.from_config(),
            docker_image=config.DOCKER_IMAGE if docker_image is None else docker_image,
            timeout=config.RESTORE_TIMEOUT if timeout is None else timeout,
        )

    def manifest_path(self, package_file_name: str) -> str:
        path = Path(package_file_name)
        if not path.is_absolute():
            path = Path(self.local_dir).resolve() / path
        return canonical_path(path.as_posix())


def check_manifest_supported(
    package_file_name: str, extensions: Iterable[str] = config.MANIFEST_EXTENSIONS
) -> None:
    if not is_supported_manifest(package_file_name, extensions):
        raise UnsupportedManifestError(package_file_name)


def check_lock_presence(snapshot: Snapshot) -> None:
    if not has_any_lock(snapshot):
        raise NoLockArtifactError("No lock file found beneath any impacted project file")


def update_artifacts(update: UpdateArtifact, ctx: UpdateContext) -> Optional[List[UpdateArtifactsResult]]:
    """Regenerate lock files affected by a manifest change.

    Returns None when there is nothing to do (unsupported manifest, no lock
    files, or no dependency changes without lock file maintenance), a list of
    changed lock files, or a single artifact error if the restore failed.

    Raises:
        ParseError: a project file under the root is not well-formed XML.
        TransientInfrastructureError: retryable environment failure.
        RestoreCancelled: the restore was terminated (e.g. timed out).
    """
    package_file_name = update.package_file_name
    logger.info("nuget.update_artifacts(%s)", package_file_name)

    try:
        check_manifest_supported(package_file_name, ctx.extensions)
    except UnsupportedManifestError:
        logger.info("Not updating lock file for non project files: %s", package_file_name)
        return None

    if not update.updated_deps and not update.config.is_lock_file_maintenance:
        logger.info("Not updating lock file because no deps changed and no lock file maintenance.")
        return None

    manifest = ctx.manifest_path(package_file_name)
    builder = GraphBuilder(ctx.fs, extensions=ctx.extensions, max_workers=ctx.max_workers)
    graph = builder.build(ctx.root_dir)
    impact_set = resolve_impact_set(graph, manifest)
    logger.info("Projects to restore: %s", impact_set)

    locks = LockFileManager(ctx.fs, max_workers=ctx.max_workers)
    before = locks.snapshot(impact_set)
    try:
        check_lock_presence(before)
    except NoLockArtifactError:
        logger.info("No lock file found beneath package file: %s", package_file_name)
        return None

    lock_files = locks.lock_files(impact_set)
    try:
        ctx.fs.write_file(manifest, update.new_package_file_content)
        orchestrator = RestoreOrchestrator(
            ctx.fs,
            ctx.runner,
            ctx.root_dir,
            registry_source=ctx.registry_source,
            host_rules=ctx.host_rules,
            token_factory=ctx.token_factory,
            docker_image=ctx.docker_image,
            timeout=ctx.timeout,
        )
        orchestrator.run(manifest, impact_set)

        after = locks.snapshot(impact_set)
        changed = diff(before, after)
        if not changed:
            logger.info("Lock file is unchanged")
            return None
        logger.info("Returning %d updated lock file(s)", len(changed))
        return [UpdateArtifactsResult(file=change) for change in changed]
    except (TransientInfrastructureError, RestoreCancelled):
        raise
    except Exception as err:
        logger.info("Failed to generate lock file: %s", err)
        return [
            UpdateArtifactsResult(
                artifact_error=ArtifactError(lock_files=lock_files, stderr=str(err)),
            )
        ]
