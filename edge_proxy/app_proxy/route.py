import logging
from typing import AsyncIterable, AsyncIterator, List, Mapping, Optional, Tuple, Union

import httpx
from opentelemetry import trace
from starlette.responses import StreamingResponse

from edge_proxy.vars import PROXY_TIMEOUT, PROXY_USER_AGENT

logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

HeaderList = List[Tuple[str, str]]
Body = Union[bytes, AsyncIterable[bytes]]


def prepare_headers(incoming: Mapping[str, str]) -> HeaderList:
    """
    Prepare headers for forwarding upstream.
    Drops hop-by-hop headers and Host (httpx sets it from the target URL).
    """
    headers: HeaderList = []
    for name, value in incoming.items():
        name_lower = name.lower()
        if name_lower in HOP_BY_HOP_HEADERS or name_lower == "host":
            continue
        headers.append((name, value))
    return headers


def _gateway_error(status_code: int, detail: str, request: httpx.Request) -> httpx.Response:
    return httpx.Response(status_code, json={"detail": detail}, request=request)


class UpstreamForwarder:
    """
    Sends proxied requests upstream over one pooled ``httpx.AsyncClient``.

    Redirects are never followed so the caller can rewrite ``Location``.
    Transport failures come back as 502/504 responses instead of exceptions.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = PROXY_TIMEOUT,
        user_agent: str = PROXY_USER_AGENT,
    ):
        self._client = client
        self._timeout = timeout
        self.user_agent = user_agent or None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=False,  # Handle redirects manually for rewriting
            )
        return self._client

    async def __call__(
        self, method: str, headers: HeaderList, body: Body, target_url: str
    ) -> httpx.Response:
        span = trace.get_current_span()
        request = self.client.build_request(
            method, target_url, headers=headers, content=body or None
        )
        # Client defaults (Accept-Encoding, User-Agent, ...) are not the caller's
        sent = {name.lower() for name, _ in headers}
        for name in self.client.headers:
            if name not in sent:
                del request.headers[name]
        if self.user_agent:
            request.headers["user-agent"] = self.user_agent

        try:
            response = await self.client.send(request, stream=True)
        except httpx.TimeoutException as e:
            logger.error(f"Proxy timeout for {target_url}: {e}")
            span.set_attribute("proxy.error", "timeout")
            return _gateway_error(504, "Gateway timeout", request)
        except httpx.ConnectError as e:
            logger.error(f"Failed to connect to upstream {target_url}: {e}")
            span.set_attribute("proxy.error", "connection_failed")
            return _gateway_error(
                502, "Bad gateway - cannot connect to upstream", request
            )
        except httpx.HTTPError as e:
            logger.error(f"Proxy error for {target_url}: {e}", exc_info=True)
            span.set_attribute("proxy.error", str(e))
            return _gateway_error(502, f"Bad gateway: {e}", request)

        span.set_attribute("proxy.status_code", response.status_code)
        return response

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


async def stream_body(upstream: httpx.Response) -> AsyncIterator[bytes]:
    """Relay the upstream body untouched and close the upstream response."""
    try:
        if upstream.is_stream_consumed:
            # Already buffered (synthetic gateway errors)
            if upstream.content:
                yield upstream.content
        else:
            async for chunk in upstream.aiter_raw():
                yield chunk
    except httpx.ReadError as e:
        logger.warning(f"Upstream read error while streaming {upstream.request.url}: {e}")
    finally:
        await upstream.aclose()


def stream_response(upstream: httpx.Response, headers: httpx.Headers) -> StreamingResponse:
    """Build the client response; every non hop-by-hop header is copied verbatim."""
    response = StreamingResponse(stream_body(upstream), status_code=upstream.status_code)
    response.raw_headers = [
        (name.lower(), value)
        for name, value in headers.raw
        if name.decode("latin-1").lower() not in HOP_BY_HOP_HEADERS
    ]
    return response
