"""Package registry discovery (``nuget.config``) and host credential lookup."""

from __future__ import annotations

import logging
import os
import posixpath
import re
import secrets
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse, urlunparse

from lxml import etree

from .config import NUGET_HOST_TYPE
from .config_manager import load_host_rules
from .models import HostCredentials, Registry, RegistryInfo

logger = logging.getLogger(__name__)

DEFAULT_REGISTRIES: List[Registry] = [
    Registry(url="https://api.nuget.org/v3/index.json", name="nuget.org"),
]

NUGET_CONFIG_NAMES = ("nuget.config", "NuGet.config", "NuGet.Config")

_PROTOCOL_VERSION_RE = re.compile(r"protocolVersion=(2|3)")
_HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


def get_default_registries() -> List[Registry]:
    return list(DEFAULT_REGISTRIES)


def get_random_string() -> str:
    """Token for uniquely named temporary directories."""
    return secrets.token_hex(16)


def parse_registry_url(registry_url: str) -> RegistryInfo:
    """Split a registry URL into feed URL and NuGet protocol version.

    An explicit ``#protocolVersion=N`` fragment wins; otherwise feeds ending
    in ``.json`` are protocol 3 and everything else protocol 2. The fragment
    is dropped from the returned feed URL.
    """
    parsed = urlparse(registry_url)
    match = _PROTOCOL_VERSION_RE.search(parsed.fragment)
    if match:
        protocol_version = int(match.group(1))
    elif parsed.path.endswith(".json"):
        protocol_version = 3
    else:
        protocol_version = 2
    feed_url = urlunparse(parsed._replace(fragment=""))
    return RegistryInfo(feed_url=feed_url, protocol_version=protocol_version)


def find_nuget_config(start_dir: str, root_dir: str) -> Optional[str]:
    """Nearest ``nuget.config`` from *start_dir* upward, stopping at *root_dir*."""
    current = posixpath.normpath(start_dir.replace("\\", "/"))
    root = posixpath.normpath(root_dir.replace("\\", "/"))
    while True:
        for name in NUGET_CONFIG_NAMES:
            candidate = posixpath.join(current, name)
            if os.path.isfile(candidate):
                return candidate
        if current == root or not current.startswith(root.rstrip("/") + "/"):
            return None
        parent = posixpath.dirname(current)
        if parent == current:
            return None
        current = parent


def read_package_sources(config_text: str) -> Optional[List[Registry]]:
    """Registries declared in a ``nuget.config`` document.

    Starts from the default nuget.org feed; ``<clear/>`` drops everything
    collected so far. Local (non-HTTP) sources are skipped. Returns None when
    the document has no ``<packageSources>`` section.

    Raises:
        etree.XMLSyntaxError: the document is not well-formed.
    """
    root = etree.fromstring(config_text.encode("utf-8"))
    sources = root.find("packageSources")
    if sources is None:
        return None

    registries = get_default_registries()
    for child in sources.iterchildren(etree.Element):
        if child.tag == "clear":
            logger.debug("Registry list cleared by nuget.config")
            registries = []
        elif child.tag == "add":
            value = child.get("value", "")
            if not _HTTP_URL_RE.match(value):
                logger.debug("Ignoring local package source %s", value)
                continue
            protocol_version = child.get("protocolVersion")
            if protocol_version:
                value = f"{value}#protocolVersion={protocol_version}"
            registries.append(Registry(url=value, name=child.get("key")))
    return registries


def get_configured_registries(manifest_path: str, root_dir: str) -> Optional[List[Registry]]:
    """Registries from the ``nuget.config`` closest to *manifest_path*, if any."""
    config_file = find_nuget_config(posixpath.dirname(manifest_path.replace("\\", "/")), root_dir)
    if not config_file:
        return None
    logger.debug("Found nuget config file %s", config_file)
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            return read_package_sources(f.read())
    except (OSError, etree.XMLSyntaxError) as exc:
        logger.warning("Ignoring unreadable nuget config %s: %s", config_file, exc)
        return None


class RegistrySource:
    """Where restore registries come from: nearest nuget.config, else defaults."""

    def get_configured_registries(self, manifest_path: str, root_dir: str) -> Optional[List[Registry]]:
        return get_configured_registries(manifest_path, root_dir)

    def get_default_registries(self) -> List[Registry]:
        return get_default_registries()

    def registries_for(self, manifest_path: str, root_dir: str) -> List[Registry]:
        return self.get_configured_registries(manifest_path, root_dir) or self.get_default_registries()


class HostRules:
    """Credentials per registry host, matched by host name or URL prefix."""

    def __init__(self, rules: Optional[Iterable[Dict[str, Any]]] = None):
        self.rules: List[Dict[str, Any]] = [dict(r) for r in rules or []]

    def add(self, match_host: str, username: str = "", password: str = "", host_type: str = "") -> None:
        self.rules.append({
            "match_host": match_host,
            "username": username,
            "password": password,
            "host_type": host_type,
        })

    @staticmethod
    def _matches(rule: Dict[str, Any], host_type: str, url: str) -> bool:
        rule_type = rule.get("host_type")
        if rule_type and rule_type != host_type:
            return False
        match_host = rule.get("match_host") or ""
        if not match_host:
            return True
        if "://" in match_host:
            return url.startswith(match_host)
        hostname = urlparse(url).hostname or ""
        return hostname == match_host or hostname.endswith("." + match_host)

    def find(self, host_type: str, url: str) -> Optional[HostCredentials]:
        """Credentials of the last matching rule, or None."""
        found: Optional[HostCredentials] = None
        for rule in self.rules:
            if self._matches(rule, host_type, url):
                found = HostCredentials(
                    username=rule.get("username") or None,
                    password=rule.get("password") or None,
                )
        return found

    @classmethod
    def from_config(cls, config_file=None) -> "HostRules":
        return cls(load_host_rules(config_file))


def credentials_for(host_rules: Optional[HostRules], url: str) -> HostCredentials:
    if host_rules is None:
        return HostCredentials()
    return host_rules.find(NUGET_HOST_TYPE, url) or HostCredentials()
