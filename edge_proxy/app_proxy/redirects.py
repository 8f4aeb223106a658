import logging
from typing import Mapping, Union
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger("uvicorn.error")

# Asset hosts whose redirects are folded back into the proxy. Each one is also
# registered as a dotted platform key so the follow-up request resolves again.
TRUSTED_ASSET_DOMAINS = frozenset(
    {
        "release-assets.githubusercontent.com",
        "raw.githubusercontent.com",
    }
)


def rewrite_location(location: str, request_origin: str) -> str:
    """
    Point a redirect to a trusted asset domain back at this proxy.

    ``https://raw.githubusercontent.com/o/r/main/f`` seen by a request to
    ``https://proxy.example`` becomes
    ``https://proxy.example/raw.githubusercontent.com/o/r/main/f``.
    Any other target (relative, unparseable, foreign host) is returned as-is.
    """
    try:
        parsed = urlsplit(location)
        hostname = parsed.hostname
    except ValueError:
        return location

    if not parsed.scheme or hostname not in TRUSTED_ASSET_DOMAINS:
        return location

    query = f"?{parsed.query}" if parsed.query else ""
    fragment = f"#{parsed.fragment}" if parsed.fragment else ""
    return f"{request_origin.rstrip('/')}/{hostname}{parsed.path}{query}{fragment}"


def rewrite_redirect_headers(
    headers: Union[httpx.Headers, Mapping[str, str]],
    status_code: int,
    request_origin: str,
) -> httpx.Headers:
    """Copy response headers, rewriting ``Location`` on 3xx responses."""
    rewritten = httpx.Headers(headers)
    if not 300 <= status_code < 400:
        return rewritten

    location = rewritten.get("location")
    if not location:
        return rewritten

    new_location = rewrite_location(location, request_origin)
    if new_location != location:
        logger.debug(f"[Redirect] Rewrote Location {location} -> {new_location}")
        rewritten["location"] = new_location
    return rewritten
