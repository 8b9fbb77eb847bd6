"""Process-wide logging and tracing setup for the ticket desk API."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ticketdesk.core.config import Settings

APP_LOGGER = "ticketdesk"
SQL_LOGGER = "sqlalchemy.engine"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def logging_config(settings: Settings) -> dict[str, Any]:
    """Build the ``dictConfig`` payload for ``settings``.

    SQL statements are logged through the ``sqlalchemy.engine`` logger, which
    is raised to INFO only when ``database_echo`` is set.
    """

    level = _level(settings.log_level)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": settings.log_format}},
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "plain", "level": level},
        },
        "loggers": {
            APP_LOGGER: {"level": level},
            SQL_LOGGER: {"level": logging.INFO if settings.database_echo else logging.WARNING},
        },
        "root": {"handlers": ["console"], "level": level},
    }


def configure_logging(settings: Settings) -> logging.Logger:
    """Apply :func:`logging_config` and return the application logger."""

    dictConfig(logging_config(settings))
    return logging.getLogger(APP_LOGGER)


def parse_otlp_headers(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key2=value2`` as used by ``OTEL_EXPORTER_OTLP_HEADERS``."""

    pairs = (item.split("=", 1) for item in (raw or "").split(",") if "=" in item)
    return {key.strip(): value.strip() for key, value in pairs if key.strip()}


def build_tracer_provider(settings: Settings) -> TracerProvider:
    provider = TracerProvider(resource=Resource(attributes={"service.name": settings.otel_service_name}))
    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint,
        headers=parse_otlp_headers(settings.otel_exporter_otlp_headers) or None,
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP tracer provider when tracing is enabled.

    The caller owns the returned provider and hands it back to
    :func:`shutdown_tracer` on exit. ``None`` means tracing is off and spans
    go to the no-op provider.
    """

    if not settings.otel_enabled:
        return None
    provider = build_tracer_provider(settings)
    trace.set_tracer_provider(provider)
    logging.getLogger(APP_LOGGER).info("Tracing enabled for service %s", settings.otel_service_name)
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    if provider is not None:
        provider.shutdown()
