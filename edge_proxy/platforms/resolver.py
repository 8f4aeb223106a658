from collections.abc import Mapping
from typing import Optional

# Compound keys are built from at most this many leading path segments
MAX_HYPHEN_SEGMENTS = 3
MAX_SLASH_SEGMENTS = 2


def is_hostname_key(platform_key: str) -> bool:
    """Dotted keys are literal hostnames (e.g. ``raw.githubusercontent.com``)."""
    return "." in platform_key


def platform_prefix(platform_key: str) -> str:
    """Path prefix a key occupies: ``doh-cloudflare`` -> ``/doh/cloudflare/``."""
    return "/" + platform_key.replace("-", "/") + "/"


def resolve_platform_key(pathname: str, platforms: Mapping) -> Optional[str]:
    """
    Find the platform key a request path addresses, or None.

    Strategies in order, first hit wins:
    exact first segment, then 2 and 3 segments joined with ``-``,
    then 1 and 2 segments joined with ``/``.
    """
    segments = [s for s in pathname.split("/") if s]
    if not segments:
        return None

    if segments[0] in platforms:
        return segments[0]

    for count in range(2, min(MAX_HYPHEN_SEGMENTS, len(segments)) + 1):
        candidate = "-".join(segments[:count])
        if candidate in platforms:
            return candidate

    for count in range(1, min(MAX_SLASH_SEGMENTS, len(segments)) + 1):
        candidate = "/".join(segments[:count])
        if candidate in platforms:
            return candidate

    return None


def extract_original_path(pathname: str, platform_key: str) -> str:
    """Strip the resolved platform prefix from ``pathname``."""
    if is_hostname_key(platform_key):
        prefix = f"/{platform_key}/"
        if pathname.startswith(prefix):
            original_path = pathname[len(prefix):]
        else:
            original_path = pathname
        if not original_path.startswith("/"):
            original_path = "/" + original_path
        return original_path

    prefix = platform_prefix(platform_key)
    if pathname.startswith(prefix):
        return "/" + pathname[len(prefix):]
    return pathname or "/"
