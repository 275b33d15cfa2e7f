"""Exception types raised while resolving manifests and regenerating lock files."""

from __future__ import annotations

from typing import Optional

# Message carried by errors the host should retry instead of reporting
TEMPORARY_ERROR = "temporary-error"


class LockGraphError(Exception):
    """Base class for all LockGraph errors."""


class ParseError(LockGraphError):
    """Manifest text is not well-formed XML."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        self.reason = message
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class ManifestReadError(LockGraphError):
    """A discovered manifest could not be read during a graph build."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Could not read manifest {path}")


class UnsupportedManifestError(LockGraphError):
    """Manifest extension is not one of the recognised project types."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Not a supported project file: {path}")


class NoLockArtifactError(LockGraphError):
    """None of the impacted manifests has a lock file next to it."""


class RestoreFailure(LockGraphError):
    """The batched restore invocation exited non-zero."""

    def __init__(self, exit_code: int, stderr: str):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(stderr or f"Restore exited with code {exit_code}")


class TransientInfrastructureError(LockGraphError):
    """Retryable environment problem; always re-raised to the caller."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__(TEMPORARY_ERROR)


class RestoreCancelled(LockGraphError):
    """The restore process was terminated before completing."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        if timeout is None:
            super().__init__("Restore was cancelled")
        else:
            super().__init__(f"Restore was cancelled after {timeout:g}s")
