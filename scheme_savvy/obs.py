"""Observability utilities: logging setup and OpenTelemetry spans.

This module centralizes lightweight observability features:
- configure_logging: process-wide logging format shared by the API and CLI entrypoints.
- span: context manager wrapping an OpenTelemetry span around a pipeline stage
  (retrieve, auto_ingest, generate). A console exporter is attached only when
  settings.OTEL_CONSOLE_EXPORT is enabled, so users can plug in a different
  exporter externally.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from scheme_savvy.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_otel_inited: bool = False


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging with the shared format.

    Args:
        level: Level name; defaults to settings.LOG_LEVEL.
    """
    name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)


def _init_otel() -> None:
    """Install a tracer provider once, with console export when enabled."""
    global _otel_inited
    if _otel_inited:
        return
    tp = TracerProvider()
    if settings.OTEL_CONSOLE_EXPORT:
        tp.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(tp)
    _otel_inited = True


@contextmanager
def span(name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[trace.Span]:
    """Run the enclosed block inside an OpenTelemetry span.

    Exceptions raised in the block are recorded on the span and re-raised.
    """
    _init_otel()
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(name, attributes=attributes or {}) as otel_span:
        yield otel_span
