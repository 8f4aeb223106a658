from contextlib import asynccontextmanager
import logging
from typing import Sequence

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider, ReadableSpan
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_fastapi_instrumentator import Instrumentator
from prometheus_client import Info

from edge_proxy.app_proxy import PlatformRoutingMiddleware, UpstreamForwarder
from edge_proxy.platforms import load_registry
from edge_proxy.vars import (
    SERVICE_NAME,
    OTLP_ENDPOINT,
    OTLP_HEADERS,
    PLATFORMS_FILE,
    PUBLIC_URL,
)
from .routes import router

logger = logging.getLogger("uvicorn.error")


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that filters out noisy ASGI body spans from streamed downloads.
    A large artifact would otherwise produce one span per relayed chunk.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type") == "http.response.body"
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


platforms = load_registry(PLATFORMS_FILE or None)
forwarder = UpstreamForwarder()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"[Server] {SERVICE_NAME} routing {len(platforms)} platforms")
    yield
    await forwarder.aclose()


app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
app.state.platforms = platforms
app.add_middleware(
    PlatformRoutingMiddleware,
    platforms=platforms,
    forward=forwarder,
    public_url=PUBLIC_URL,
)

instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app)

trace.set_tracer_provider(
    TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
)
tracer_provider = trace.get_tracer_provider()
if OTLP_ENDPOINT:
    otlp_exporter = OTLPSpanExporter(
        endpoint=OTLP_ENDPOINT,
        headers=OTLP_HEADERS or None,  # "key1=value1,key2=value2"
    )

    # Wrap exporter with filtering to remove noisy ASGI body spans
    filtering_exporter = FilteringSpanExporter(otlp_exporter)
    span_processor = BatchSpanProcessor(filtering_exporter)
    tracer_provider.add_span_processor(span_processor)

FastAPIInstrumentor.instrument_app(app)

# Add app_name to the metrics
app_info = Info("fastapi_app_info", "Application Info")
app_info.info({"app_name": SERVICE_NAME})

app.include_router(router)
