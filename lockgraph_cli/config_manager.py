"""Configuration manager for LockGraph CLI using TOML files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml


BASE_DIR = Path(os.environ.get("LOCKGRAPH_HOME", str(Path.home() / ".lockgraph"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"


DEFAULT_RESTORE_CONFIG: Dict[str, Any] = {
    "docker_image": "",
    "timeout": 900,
    "max_workers": 8,
}


def load_full_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    path = config_file or CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError):
        return {}


def _save_full_config(config: Dict[str, Any], config_file: Optional[Path] = None) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    path = config_file or CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(path, "w") as f:
            toml.dump(config, f)
        return True
    except OSError:
        return False


def load_restore_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load restore settings from the ``[restore]`` section.

    Returns:
        Restore settings merged over the defaults. Falls back to the
        defaults if the file doesn't exist or can't be parsed.
    """
    merged = DEFAULT_RESTORE_CONFIG.copy()
    section = load_full_config(config_file).get("restore", {})
    if isinstance(section, dict):
        merged.update(section)
    return merged


def save_restore_config(
    docker_image: Optional[str] = None,
    timeout: Optional[float] = None,
    max_workers: Optional[int] = None,
    config_file: Optional[Path] = None,
) -> bool:
    """Save restore settings to the ``[restore]`` section.

    Only the given values are changed; ``[[host_rules]]`` and any other
    sections are preserved.

    Returns:
        True if saved successfully, False otherwise
    """
    config = load_full_config(config_file)
    section = config.get("restore", {})
    if docker_image is not None:
        section["docker_image"] = docker_image
    if timeout is not None:
        section["timeout"] = timeout
    if max_workers is not None:
        section["max_workers"] = max_workers
    config["restore"] = section
    return _save_full_config(config, config_file)


def clear_restore_config(config_file: Optional[Path] = None) -> bool:
    """Remove ``[restore]`` section from config, resetting to defaults."""
    config = load_full_config(config_file)
    config.pop("restore", None)
    return _save_full_config(config, config_file)


# ------------------------------------------------------------------
# Host rules (registry credentials)
# ------------------------------------------------------------------

def load_host_rules(config_file: Optional[Path] = None) -> List[Dict[str, Any]]:
    """Load the ``[[host_rules]]`` array.

    Each rule is a table with ``match_host`` and optional ``host_type``,
    ``username`` and ``password`` keys. Entries that aren't tables are dropped.
    """
    rules = load_full_config(config_file).get("host_rules", [])
    if not isinstance(rules, list):
        return []
    return [rule for rule in rules if isinstance(rule, dict)]


def save_host_rule(
    match_host: str,
    username: str = "",
    password: str = "",
    host_type: str = "",
    config_file: Optional[Path] = None,
) -> bool:
    """Add or replace the host rule for *match_host*."""
    config = load_full_config(config_file)
    rules = [
        rule for rule in config.get("host_rules", [])
        if isinstance(rule, dict) and rule.get("match_host") != match_host
    ]
    rule: Dict[str, Any] = {"match_host": match_host}
    if host_type:
        rule["host_type"] = host_type
    if username:
        rule["username"] = username
    if password:
        rule["password"] = password
    rules.append(rule)
    config["host_rules"] = rules
    return _save_full_config(config, config_file)
