"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry
import structlog

from .config import settings

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Remote store metrics
REMOTE_REQUEST_COUNT = Counter(
    'remote_api_requests_total',
    'Total requests sent to the remote store',
    ['method', 'outcome'],
    registry=REGISTRY
)

REMOTE_REQUEST_DURATION = Histogram(
    'remote_api_request_duration_seconds',
    'Remote store request duration in seconds',
    ['method'],
    registry=REGISTRY
)

# Business metrics
REVIEW_OPERATIONS = Counter(
    'review_operations_total',
    'Review operations handled by the coordinator',
    ['operation', 'outcome'],
    registry=REGISTRY
)

BOOKING_STATUS_SYNCS = Counter(
    'booking_status_sync_total',
    'Best-effort booking status syncs triggered by review changes',
    ['target_status', 'outcome'],
    registry=REGISTRY
)

BOOKING_SYNCS_IN_FLIGHT = Gauge(
    'booking_status_sync_in_flight',
    'Booking status syncs that have been spawned and not finished',
    registry=REGISTRY
)

ACTIVE_SESSIONS = Gauge(
    'coordination_sessions_active',
    'Number of user coordination sessions held in memory',
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_tracing(app_name: str = "tourbook-coordination"):
    """Setup OpenTelemetry tracing."""

    # Create resource
    resource = Resource.create({
        "service.name": app_name,
        "service.version": "1.0.0",
        "environment": settings.environment,
    })

    # Setup tracer provider
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)

    # Setup OTLP exporter (if OTLP endpoint is configured)
    if settings.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    return trace.get_tracer(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


class MetricsCollector:
    """Collector for coordination metrics."""

    @staticmethod
    def record_remote_request(method: str, outcome: str, duration_seconds: float):
        """Record one round trip to the remote store."""
        REMOTE_REQUEST_COUNT.labels(method=method, outcome=outcome).inc()
        REMOTE_REQUEST_DURATION.labels(method=method).observe(duration_seconds)

    @staticmethod
    def record_review_operation(operation: str, success: bool):
        """Record the outcome of a primary review operation."""
        REVIEW_OPERATIONS.labels(
            operation=operation,
            outcome="success" if success else "failure"
        ).inc()

    @staticmethod
    def record_booking_sync(target_status: str, outcome: str):
        """Record the outcome of a secondary booking status sync."""
        BOOKING_STATUS_SYNCS.labels(target_status=target_status, outcome=outcome).inc()

    @staticmethod
    def sync_started():
        BOOKING_SYNCS_IN_FLIGHT.inc()

    @staticmethod
    def sync_finished():
        BOOKING_SYNCS_IN_FLIGHT.dec()

    @staticmethod
    def set_active_sessions(count: int):
        """Set the number of live user sessions."""
        ACTIVE_SESSIONS.set(count)


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


class StructuredLogger:
    """Structured logger with business context."""

    def __init__(self, name_or_logger):
        if isinstance(name_or_logger, str):
            self.logger = structlog.get_logger(name_or_logger)
        else:
            self.logger = name_or_logger

    def info(self, message: str, **kwargs):
        """Log info message with context."""
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with context."""
        self.logger.warning(message, **kwargs)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name)
