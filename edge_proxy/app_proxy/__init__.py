from .middleware import PlatformRoutingMiddleware, build_target_url, route
from .redirects import TRUSTED_ASSET_DOMAINS, rewrite_location, rewrite_redirect_headers
from .route import UpstreamForwarder, prepare_headers, stream_response

__all__ = [
    "PlatformRoutingMiddleware",
    "build_target_url",
    "route",
    "TRUSTED_ASSET_DOMAINS",
    "rewrite_location",
    "rewrite_redirect_headers",
    "UpstreamForwarder",
    "prepare_headers",
    "stream_response",
]
