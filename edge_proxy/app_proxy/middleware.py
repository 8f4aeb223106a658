"""
Platform routing middleware.

For every inbound request: resolve the platform key from the path, strip the
platform prefix, transform the remaining path for the upstream, forward, and
rewrite redirects to trusted asset domains so they come back through here.
Requests that address no platform continue down the normal FastAPI stack.
"""

import json
import logging
from collections.abc import Mapping
from typing import Awaitable, Callable
from urllib.parse import quote

import httpx
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from edge_proxy.platforms import (
    extract_original_path,
    resolve_platform_key,
    transform_path,
)
from edge_proxy.utils.traced_requests import traced_routing
from edge_proxy.vars import LOG_REQUEST_HEADERS

from .redirects import rewrite_redirect_headers
from .route import Body, HeaderList, prepare_headers, stream_response

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

Forward = Callable[[str, HeaderList, Body, str], Awaitable[httpx.Response]]
Fallback = Callable[[], Awaitable[Response]]

# RFC 3986 reserved and unreserved characters plus existing escapes
PATH_SAFE = "/%:@!$&'()*+,;=-._~"


def request_pathname(request: Request) -> str:
    """Undecoded request path, so percent-escapes reach the upstream unchanged."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        return quote(raw_path.split(b"?", 1)[0], safe=PATH_SAFE)
    return request.url.path


def request_body(request: Request) -> Body:
    """Stream the request body upstream; bodiless requests send none."""
    if "content-length" in request.headers or "transfer-encoding" in request.headers:
        return request.stream()
    return b""


def request_origin(request: Request, public_url: str = "") -> str:
    if public_url:
        return public_url.rstrip("/")
    return f"{request.url.scheme}://{request.url.netloc}"


def build_target_url(origin: str, transformed_path: str, query: str) -> str:
    """
    ``origin + transformed_path`` with the incoming query string.

    The incoming query replaces a query already folded into the transformed
    path; with no incoming query, the transformed path is used as is.
    """
    if query:
        path = transformed_path.split("?", 1)[0]
        return f"{origin}{path}?{query}"
    return f"{origin}{transformed_path}"


def _describe_request(request: Request) -> str:
    described = {"method": request.method, "url": str(request.url)}
    if LOG_REQUEST_HEADERS:
        described["headers"] = dict(request.headers)
    return json.dumps({"request": described})


async def route(
    request: Request,
    platforms: Mapping,
    forward: Forward,
    fallback: Fallback,
    public_url: str = "",
) -> Response:
    """Route one request to its platform's upstream, or hand it to ``fallback``."""
    pathname = request_pathname(request)
    platform_key = resolve_platform_key(pathname, platforms)
    if platform_key is None:
        logger.debug(f"[Proxy] No platform for {pathname}, falling through")
        return await fallback()

    original_path = extract_original_path(pathname, platform_key)
    origin = platforms.get(platform_key)
    if not origin:
        logger.warning(f"[Proxy] Platform '{platform_key}' has no origin, falling through")
        return await fallback()

    with traced_routing(
        tracer,
        operation="route_request",
        platform_key=platform_key,
        origin=origin,
        start_message=f"[Proxy] {_describe_request(request)}",
        extra_attrs={"proxy.method": request.method},
    ) as span:
        transformed_path = transform_path(original_path, platform_key, platforms)
        target_url = build_target_url(origin, transformed_path, request.url.query)

        span.set_attribute("proxy.original_path", original_path)
        span.set_attribute("proxy.transformed_path", transformed_path)
        span.set_attribute("proxy.target_url", target_url)
        logger.debug(
            f"[Proxy] {request.method} platform={platform_key} origin={origin} "
            f"original_path={original_path} transformed_path={transformed_path} -> {target_url}"
        )

        upstream = await forward(
            request.method,
            prepare_headers(request.headers),
            request_body(request),
            target_url,
        )

        headers = rewrite_redirect_headers(
            upstream.headers,
            upstream.status_code,
            request_origin(request, public_url),
        )
        if headers.get("location") != upstream.headers.get("location"):
            span.set_attribute("proxy.rewritten_location", headers["location"])

        return stream_response(upstream, headers)


class PlatformRoutingMiddleware(BaseHTTPMiddleware):
    """
    Starlette middleware wrapping ``route``; ``call_next`` is the fallback.

    Usage::

        app.add_middleware(
            PlatformRoutingMiddleware,
            platforms=load_registry(PLATFORMS_FILE),
            forward=UpstreamForwarder(),
        )
    """

    def __init__(
        self,
        app: ASGIApp,
        platforms: Mapping,
        forward: Forward,
        public_url: str = "",
    ) -> None:
        super().__init__(app)
        self.platforms = platforms
        self.forward = forward
        self.public_url = public_url

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        async def fallback() -> Response:
            return await call_next(request)

        return await route(
            request,
            self.platforms,
            self.forward,
            fallback,
            public_url=self.public_url,
        )
