"""
Per-platform path transformation.

Every platform key belongs to exactly one ``PlatformFamily``; each family has
one handler in ``_FAMILY_HANDLERS``. Adding a family means adding a member, a
handler and (for keyed families) an entry in ``_FAMILY_BY_KEY``.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Callable, Dict

from .resolver import is_hostname_key, platform_prefix

CRATES_API_PREFIX = "/api/v1/crates"

JENKINS_UPDATE_CENTER_FILES = ("/update-center.json", "/update-center.actual.json")
JENKINS_CHANNEL_PREFIXES = ("/experimental/", "/download/", "/current/")
JENKINS_DEFAULT_CHANNEL = "/current"


class PlatformFamily(Enum):
    CRATES_API = "crates-api"
    PACKAGE_JSON_API = "package-json-api"
    BINARY_ARTIFACTS = "binary-artifacts"
    PLUGIN_UPDATE_CENTER = "plugin-update-center"
    SOURCE_REPOSITORY = "source-repository"
    HOSTNAME = "hostname"
    DEFAULT = "default"

    @classmethod
    def of(cls, platform_key: str) -> "PlatformFamily":
        if platform_key in _FAMILY_BY_KEY:
            return _FAMILY_BY_KEY[platform_key]
        if is_hostname_key(platform_key):
            return cls.HOSTNAME
        return cls.DEFAULT


_FAMILY_BY_KEY: Dict[str, PlatformFamily] = {
    "crates": PlatformFamily.CRATES_API,
    "homebrew-api": PlatformFamily.PACKAGE_JSON_API,
    "homebrew-bottles": PlatformFamily.BINARY_ARTIFACTS,
    "jenkins": PlatformFamily.PLUGIN_UPDATE_CENTER,
    "homebrew": PlatformFamily.SOURCE_REPOSITORY,
}


def strip_platform_prefix(path: str, platform_key: str) -> str:
    """Remove a leftover ``/<key as path>/`` prefix once; no-op otherwise."""
    prefix = platform_prefix(platform_key)
    if path.startswith(prefix):
        return "/" + path[len(prefix):]
    return path


def _crates_api(path: str) -> str:
    # /serde/1.0.0/download -> /api/v1/crates/serde/1.0.0/download
    # /?q=tokio             -> /api/v1/crates?q=tokio
    if path == "/" or path.startswith("/?"):
        return CRATES_API_PREFIX + path[1:]
    return CRATES_API_PREFIX + path


def _plugin_update_center(path: str) -> str:
    if path.split("?", 1)[0].split("#", 1)[0] in JENKINS_UPDATE_CENTER_FILES:
        return JENKINS_DEFAULT_CHANNEL + path
    if path.startswith(JENKINS_CHANNEL_PREFIXES):
        return path
    return JENKINS_DEFAULT_CHANNEL + path


def _passthrough(path: str) -> str:
    return path


_FAMILY_HANDLERS: Dict[PlatformFamily, Callable[[str], str]] = {
    PlatformFamily.CRATES_API: _crates_api,
    PlatformFamily.PACKAGE_JSON_API: _passthrough,
    PlatformFamily.BINARY_ARTIFACTS: _passthrough,
    PlatformFamily.PLUGIN_UPDATE_CENTER: _plugin_update_center,
    PlatformFamily.SOURCE_REPOSITORY: _passthrough,
    PlatformFamily.HOSTNAME: _passthrough,
    PlatformFamily.DEFAULT: _passthrough,
}

if set(_FAMILY_HANDLERS) != set(PlatformFamily):  # pragma: no cover
    raise RuntimeError("Every PlatformFamily needs a path handler")


def transform_path(path: str, platform_key: str, platforms: Mapping) -> str:
    """
    Turn the prefix-stripped request path into the path the upstream expects.

    Unknown keys and paths that do not start with ``/`` (including ``""``)
    come back unchanged. Query strings and fragments are carried through.
    """
    if platform_key not in platforms:
        return path

    transformed = strip_platform_prefix(path, platform_key)
    if not transformed.startswith("/"):
        return transformed

    handler = _FAMILY_HANDLERS[PlatformFamily.of(platform_key)]
    return handler(transformed)
