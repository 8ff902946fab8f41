"""
Observability setup:
  - OpenTelemetry distributed tracing → Jaeger (via OTLP gRPC)
  - Prometheus metrics: request latency, content writes, toggles, auth failures

Both are initialised once at startup and injected into FastAPI via middleware.
"""
import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter, Histogram

from app.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────── Prometheus Metrics ───────────────────────────
REQUEST_LATENCY = Histogram(
    "request_latency_seconds",
    "End-to-end latency of API requests",
    ["method", "route"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

POSTS_CREATED_TOTAL = Counter(
    "posts_created_total",
    "Total number of posts published",
)

COMMENTS_CREATED_TOTAL = Counter(
    "comments_created_total",
    "Total number of comments written",
)

TOGGLE_TOTAL = Counter(
    "toggle_total",
    "Upvote / bookmark / follow toggles",
    ["kind", "state"],  # kind: upvote|bookmark|follow, state: on|off
)

AUTH_FAILURES_TOTAL = Counter(
    "auth_failures_total",
    "Requests to protected routes rejected as unauthenticated",
    ["reason"],
)


def record_toggle(kind: str, enabled: bool) -> None:
    TOGGLE_TOTAL.labels(kind=kind, state="on" if enabled else "off").inc()


# ─────────────────────────── OpenTelemetry Setup ──────────────────────────
def setup_tracing() -> None:
    """Configure the global OTel TracerProvider with OTLP/Jaeger export."""
    if not settings.otel_enabled:
        logger.info("OTel tracing disabled")
        return

    resource = Resource.create(
        {
            "service.name": settings.service_name,
            "deployment.environment": settings.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    try:
        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        logger.info(
            "OTel tracing configured → %s", settings.otel_exporter_otlp_endpoint
        )
    except Exception as exc:
        logger.warning("Could not connect to OTLP exporter: %s — traces disabled", exc)

    trace.set_tracer_provider(provider)

    # Auth provider calls (httpx) and store calls (redis) show up as child spans
    HTTPXClientInstrumentor().instrument()
    RedisInstrumentor().instrument()


def instrument_app(app) -> None:  # noqa: ANN001
    """Call after app is created to add FastAPI request spans."""
    if settings.otel_enabled:
        FastAPIInstrumentor.instrument_app(app)
