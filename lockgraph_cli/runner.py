"""External process execution for batched restore commands."""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import List, Sequence

from .errors import RestoreCancelled, TransientInfrastructureError
from .models import ExecOptions, ExecResult

logger = logging.getLogger(__name__)

DOCKER_UNAVAILABLE_MARKERS = (
    "Cannot connect to the Docker daemon",
    "error during connect",
)


class ProcessRunner(ABC):
    """Runs a command sequence as one blocking unit."""

    @abstractmethod
    def execute(self, commands: Sequence[str], options: ExecOptions) -> ExecResult:
        """Run *commands* in order, stopping at the first failure."""
        ...


def build_script(commands: Sequence[str]) -> str:
    return " && ".join(commands)


def docker_wrap(script: str, options: ExecOptions) -> List[str]:
    argv = ["docker", "run", "--rm"]
    for mount in dict.fromkeys([options.cwd, *options.mounts]):
        if mount:
            argv.extend(["-v", f"{mount}:{mount}"])
    if options.cwd:
        argv.extend(["-w", options.cwd])
    argv.extend([options.docker_image, "sh", "-c", script])
    return argv


class SubprocessRunner(ProcessRunner):
    """Run commands through ``sh -c``, optionally inside a docker container.

    The whole sequence is a single child process. On timeout the child is
    killed and :class:`RestoreCancelled` is raised.
    """

    def execute(self, commands: Sequence[str], options: ExecOptions) -> ExecResult:
        if not commands:
            return ExecResult(exit_code=0)

        script = build_script(commands)
        if options.docker_image:
            argv = docker_wrap(script, options)
        else:
            argv = ["sh", "-c", script]

        try:
            completed = subprocess.run(
                argv,
                cwd=options.cwd,
                capture_output=True,
                text=True,
                timeout=options.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            logger.warning("Restore timed out after %ss", options.timeout)
            raise RestoreCancelled(options.timeout) from exc

        result = ExecResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if options.docker_image and not result.ok:
            if any(marker in result.stderr for marker in DOCKER_UNAVAILABLE_MARKERS):
                raise TransientInfrastructureError(result.stderr.strip())
        return result
