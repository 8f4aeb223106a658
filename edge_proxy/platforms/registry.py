"""
Platform registry: the immutable platform key -> upstream origin table.

The registry is built once at startup (from the built-in table or from the
JSON file named by ``PLATFORMS_FILE``) and handed explicitly to the resolver,
the transformer and the routing middleware.
"""

import json
import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Dict, List, Optional
from urllib.parse import urlsplit

logger = logging.getLogger("uvicorn.error")


DEFAULT_PLATFORMS: Dict[str, str] = {
    # Source hosting and release assets
    "gh": "https://github.com",
    "gl": "https://gitlab.com",
    "release-assets.githubusercontent.com": "https://release-assets.githubusercontent.com",
    "raw.githubusercontent.com": "https://raw.githubusercontent.com",
    # Package registries
    "npm": "https://registry.npmjs.org",
    "pypi": "https://pypi.org",
    "crates": "https://crates.io",
    "homebrew": "https://github.com",
    "homebrew-api": "https://formulae.brew.sh",
    "homebrew-bottles": "https://ghcr.io",
    "jenkins": "https://updates.jenkins.io",
    # Container registries
    "cr-docker": "https://registry-1.docker.io",
    "cr-ghcr": "https://ghcr.io",
    "cr-quay": "https://quay.io",
    # DNS over HTTPS
    "doh-cloudflare": "https://cloudflare-dns.com",
    "doh-google": "https://dns.google",
    "doh-quad9": "https://dns.quad9.net",
    "doh-nextdns": "https://dns.nextdns.io",
    "doh-adguard": "https://dns.adguard.com",
    "doh-opendns": "https://doh.opendns.com",
    "doh-alidns": "https://dns.alidns.com",
    "doh-dohpub": "https://doh.pub",
    "doh-360": "https://doh.360.cn",
    "doh-huawei": "https://dns.huawei.com",
    "doh-mullvad": "https://dns.mullvad.net",
    "doh-controld": "https://dns.controld.com",
}


class RegistryError(ValueError):
    """Raised when a platform table cannot be turned into a registry."""


def _validate_origin(key: str, origin) -> str:
    if not isinstance(origin, str) or not origin.strip():
        raise RegistryError(f"Platform '{key}' has no origin")
    origin = origin.strip().rstrip("/")
    try:
        parts = urlsplit(origin)
    except ValueError as e:
        raise RegistryError(f"Platform '{key}' has an invalid origin {origin!r}: {e}")
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise RegistryError(
            f"Platform '{key}' origin must be an http(s) scheme and host, got {origin!r}"
        )
    if parts.path or parts.query or parts.fragment:
        raise RegistryError(
            f"Platform '{key}' origin must not carry a path, query or fragment, got {origin!r}"
        )
    return origin


class PlatformRegistry(Mapping):
    """Read-only mapping of platform key to origin (scheme and host)."""

    __slots__ = ("_platforms",)

    def __init__(self, platforms: Mapping):
        if not isinstance(platforms, Mapping):
            raise RegistryError(
                f"Platform table must be an object, got {type(platforms).__name__}"
            )
        validated: Dict[str, str] = {}
        for key, origin in platforms.items():
            if not isinstance(key, str) or not key.strip("/"):
                raise RegistryError(f"Invalid platform key: {key!r}")
            validated[key] = _validate_origin(key, origin)
        self._platforms = MappingProxyType(validated)

    def __getitem__(self, key: str) -> str:
        return self._platforms[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._platforms)

    def __len__(self) -> int:
        return len(self._platforms)

    def __repr__(self) -> str:
        return f"PlatformRegistry({len(self)} platforms)"

    def shadowed_keys(self) -> List[str]:
        """
        Compound keys that can never be resolved from a path because a simple
        key equal to their first segment is registered too.

        e.g. with both ``homebrew`` and ``homebrew-api`` registered,
        ``/homebrew/api/...`` resolves to ``homebrew``.
        """
        shadowed = []
        for key in self._platforms:
            if "." in key:
                continue
            head = key.replace("/", "-").split("-", 1)[0]
            if head != key and head in self._platforms:
                shadowed.append(key)
        return shadowed

    @classmethod
    def from_file(cls, path: str) -> "PlatformRegistry":
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            raise RegistryError(f"Cannot load platforms from {path}: {e}")
        return cls(data)


def load_registry(path: Optional[str] = None) -> PlatformRegistry:
    """Build the process-wide registry from ``path`` or the built-in table."""
    if path:
        registry = PlatformRegistry.from_file(path)
        logger.info(f"[Registry] Loaded {len(registry)} platforms from {path}")
    else:
        registry = PlatformRegistry(DEFAULT_PLATFORMS)
        logger.info(f"[Registry] Using {len(registry)} built-in platforms")

    for key in registry.shadowed_keys():
        logger.warning(
            f"[Registry] Platform '{key}' is shadowed by a simple key and is unreachable by path"
        )
    return registry
