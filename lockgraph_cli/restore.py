"""Restore orchestration: registry sources plus one ``dotnet restore`` per impacted project."""

from __future__ import annotations

import logging
import posixpath
import shlex
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence

from .errors import RestoreFailure
from .fs import LocalFileSystem
from .models import ExecOptions, Registry
from .registries import HostRules, RegistrySource, credentials_for, get_random_string, parse_registry_url
from .runner import ProcessRunner

logger = logging.getLogger(__name__)

EMPTY_NUGET_CONFIG = '<?xml version="1.0" encoding="utf-8"?>\n<configuration>\n</configuration>\n'


def build_add_source_commands(
    registries: Sequence[Registry],
    nuget_config_file: str,
    host_rules: Optional[HostRules] = None,
) -> List[str]:
    """``dotnet nuget add source`` for each registry, with name and credentials when known."""
    commands: List[str] = []
    for registry in registries:
        info = parse_registry_url(registry.url)
        cmd = (
            f"dotnet nuget add source {shlex.quote(info.feed_url)}"
            f" --configfile {shlex.quote(nuget_config_file)}"
        )
        if registry.name:
            cmd += f" --name {shlex.quote(registry.name)}"
        creds = credentials_for(host_rules, registry.url)
        if creds.username and creds.password:
            cmd += (
                f" --username {shlex.quote(creds.username)}"
                f" --password {shlex.quote(creds.password)}"
                " --store-password-in-clear-text"
            )
        commands.append(cmd)
    return commands


def build_restore_commands(manifests: Sequence[str], nuget_config_file: str) -> List[str]:
    return [
        f"dotnet restore {shlex.quote(m)} --force-evaluate --configfile {shlex.quote(nuget_config_file)}"
        for m in manifests
    ]


def redact(commands: Sequence[str]) -> List[str]:
    """Commands with password arguments masked, for logging."""
    redacted = []
    for cmd in commands:
        parts = shlex.split(cmd)
        if "--password" not in parts[:-1]:
            redacted.append(cmd)
            continue
        for i in range(len(parts) - 1):
            if parts[i] == "--password":
                parts[i + 1] = "***"
        redacted.append(shlex.join(parts))
    return redacted


@contextmanager
def temporary_nuget_config(fs: LocalFileSystem, token: str) -> Iterator[str]:
    """Create an empty ``nuget.config`` in a fresh cache subdirectory.

    The directory is ``<cache>/nuget/<token>`` and is removed on exit,
    whether the body succeeded or raised.
    """
    config_dir = posixpath.join(fs.ensure_cache_dir("nuget"), token)
    config_file = posixpath.join(config_dir, "nuget.config")
    try:
        fs.write_file(config_file, EMPTY_NUGET_CONFIG)
        yield config_file
    finally:
        fs.remove_file(config_dir)


class RestoreOrchestrator:
    """Assemble and run the batched restore for an impact set."""

    def __init__(
        self,
        fs: LocalFileSystem,
        runner: ProcessRunner,
        root_dir: str,
        registry_source: Optional[RegistrySource] = None,
        host_rules: Optional[HostRules] = None,
        token_factory: Callable[[], str] = get_random_string,
        docker_image: str = "",
        timeout: Optional[float] = None,
    ):
        self.fs = fs
        self.runner = runner
        self.root_dir = root_dir
        self.registry_source = registry_source or RegistrySource()
        self.host_rules = host_rules
        self.token_factory = token_factory
        self.docker_image = docker_image
        self.timeout = timeout

    def registries(self, manifest: str) -> List[Registry]:
        configured = self.registry_source.get_configured_registries(manifest, self.root_dir)
        return configured or self.registry_source.get_default_registries()

    def build_commands(self, manifest: str, impact_set: Sequence[str], nuget_config_file: str) -> List[str]:
        return [
            *build_add_source_commands(self.registries(manifest), nuget_config_file, self.host_rules),
            *build_restore_commands(impact_set, nuget_config_file),
        ]

    def run(self, manifest: str, impact_set: Sequence[str]) -> List[str]:
        """Regenerate lock files for *impact_set*; returns the commands that ran.

        Raises:
            RestoreFailure: the process exited non-zero.
        """
        with temporary_nuget_config(self.fs, self.token_factory()) as nuget_config_file:
            commands = self.build_commands(manifest, impact_set, nuget_config_file)
            logger.info("dotnet command: %s", redact(commands))
            options = ExecOptions(
                cwd=self.root_dir,
                docker_image=self.docker_image,
                timeout=self.timeout,
                mounts=(posixpath.dirname(posixpath.dirname(nuget_config_file)),),
            )
            result = self.runner.execute(commands, options)
            if not result.ok:
                raise RestoreFailure(result.exit_code, (result.stderr or result.stdout).strip())
            return commands
