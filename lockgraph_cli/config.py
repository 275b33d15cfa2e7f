"""Configuration paths and restore defaults for LockGraph."""

from __future__ import annotations

from .config_manager import BASE_DIR, load_restore_config

CACHE_DIR = BASE_DIR / "cache"
MANIFEST_EXTENSIONS = {".csproj", ".vbproj", ".fsproj"}
LOCK_FILE_NAME = "packages.lock.json"
NUGET_HOST_TYPE = "nuget"

# Build output and tooling folders never hold manifests worth graphing
SKIP_DIRS = {
    ".git", ".vs", ".idea", "bin", "obj", "node_modules", "packages",
    "TestResults", ".lockgraph",
}

_restore_config = load_restore_config()

# Restore settings, loaded from ~/.lockgraph/config.toml (set via `lockgraph config set-restore`)
DOCKER_IMAGE = _restore_config.get("docker_image", "")
RESTORE_TIMEOUT = float(_restore_config.get("timeout", 900))
MAX_WORKERS = int(_restore_config.get("max_workers", 8))


def ensure_base_dirs() -> None:
    """Create base directories for local storage if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
    CACHE_DIR.mkdir(parents=True, exist_ok=True)
