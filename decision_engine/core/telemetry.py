"""
Telemetry configuration (Metrics & Tracing).
Sets up Prometheus instrumentation, decision counters and OpenTelemetry.
"""
from typing import Iterable

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

from decision_engine.config import get_settings
from decision_engine.models.schemas import EventType, SessionEvent

TURN_ACTIONS = Counter(
    "decision_turn_actions_total",
    "Turn actions applied to elimination sessions",
    ["action"],
)
SESSIONS_FINISHED = Counter(
    "decision_sessions_finished_total",
    "Elimination sessions that reached a terminal state",
    ["status"],
)

_TURN_ACTION_EVENTS = {
    EventType.ELIMINATED,
    EventType.QUICK_SKIPPED,
    EventType.TIMEOUT_SKIPPED,
    EventType.FORFEITED,
}


def record_session_events(events: Iterable[SessionEvent]) -> None:
    """Count turn actions and terminal transitions."""
    for event in events:
        if event.type in _TURN_ACTION_EVENTS:
            TURN_ACTIONS.labels(action=event.type.value).inc()
        elif event.type == EventType.COMPLETED:
            SESSIONS_FINISHED.labels(status="completed").inc()
        elif event.type == EventType.CANCELLED:
            SESSIONS_FINISHED.labels(status="cancelled").inc()


def setup_telemetry(app: FastAPI) -> None:
    """
    Setup Observability (Metrics & Tracing).

    1. Prometheus Metrics via /metrics
    2. OpenTelemetry Tracing via OTLP
    """
    settings = get_settings()

    if settings.ENABLE_PROMETHEUS:
        instrumentator = Instrumentator(
            should_group_status_codes=False,
            should_ignore_untemplated=True,
            should_respect_env_var=True,
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics", "/health", "/health/ready"],
            env_var_name="ENABLE_METRICS",
            inprogress_name="inprogress",
            inprogress_labels=True,
        )
        instrumentator.instrument(app).expose(app, include_in_schema=False)

    if settings.ENABLE_OTEL:
        resource = Resource.create(attributes={
            "service.name": settings.APP_NAME,
            "service.version": settings.APP_VERSION,
            "deployment.environment": "production" if not settings.DEBUG else "development",
        })

        provider = TracerProvider(resource=resource)

        # Default endpoint is localhost:4317
        otlp_exporter = OTLPSpanExporter()
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

        trace.set_tracer_provider(provider)
        FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)
