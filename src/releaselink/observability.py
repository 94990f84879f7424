"""Tracing for the lifecycle stages.

Stages are wrapped in spans from the ``opentelemetry-api`` package, which
are no-ops until a tracer provider is installed. A host pipeline can
install its own provider; the CLI installs one through
:func:`configure_telemetry` when the optional SDK packages are present.
"""

from __future__ import annotations

import importlib
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache
from types import ModuleType
from typing import Any, NamedTuple

from opentelemetry import trace

TRACER_NAME = "releaselink"
SPAN_PREFIX = "releaselink."

_OTLP_HTTP_EXPORTER = "opentelemetry.exporter.otlp.proto.http.trace_exporter"

_install_lock = threading.Lock()
_installed_provider: list[Any] = []


class TelemetrySdk(NamedTuple):
    """The SDK entry points needed to export spans."""

    sdk_trace: ModuleType
    sdk_export: ModuleType
    sdk_resources: ModuleType
    otlp_exporter: ModuleType | None


@lru_cache(maxsize=1)
def _load_sdk() -> TelemetrySdk | None:
    try:
        sdk_trace = importlib.import_module("opentelemetry.sdk.trace")
        sdk_export = importlib.import_module("opentelemetry.sdk.trace.export")
        sdk_resources = importlib.import_module("opentelemetry.sdk.resources")
    except ImportError:
        return None
    try:
        otlp: ModuleType | None = importlib.import_module(_OTLP_HTTP_EXPORTER)
    except ImportError:
        otlp = None
    return TelemetrySdk(sdk_trace, sdk_export, sdk_resources, otlp)


def _span_exporter(sdk: TelemetrySdk, exporter: str, endpoint: str | None) -> Any:
    if exporter.lower() == "otlp" and sdk.otlp_exporter is not None:
        otlp_cls = sdk.otlp_exporter.OTLPSpanExporter
        return otlp_cls(endpoint=endpoint) if endpoint else otlp_cls()
    if exporter.lower() == "otlp":
        logging.getLogger(__name__).warning(
            "OTLP exporter package not installed; exporting spans to the console"
        )
    return sdk.sdk_export.ConsoleSpanExporter()


def configure_telemetry(
    *,
    service_name: str,
    exporter: str = "console",
    endpoint: str | None = None,
) -> bool:
    """Install an SDK tracer provider, once per process.

    Returns False when the SDK is not installed.
    """
    with _install_lock:
        if _installed_provider:
            return True
        sdk = _load_sdk()
        if sdk is None:
            logging.getLogger(__name__).debug(
                "OpenTelemetry SDK not installed; stage spans are not exported"
            )
            return False
        resource = sdk.sdk_resources.Resource.create({"service.name": service_name})
        provider = sdk.sdk_trace.TracerProvider(resource=resource)
        provider.add_span_processor(
            sdk.sdk_export.BatchSpanProcessor(_span_exporter(sdk, exporter, endpoint))
        )
        trace.set_tracer_provider(provider)
        _installed_provider.append(provider)
    return True


@contextmanager
def stage_span(name: str, **attributes: Any) -> Iterator[Any]:
    """Run one lifecycle stage inside a span.

    Only scalar attributes are recorded. Exceptions are recorded on the span
    and re-raised.
    """
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(SPAN_PREFIX + name) as span:
        for key, value in attributes.items():
            if isinstance(value, (str, bool, int, float)):
                span.set_attribute(SPAN_PREFIX + key, value)
        yield span


__all__ = ["SPAN_PREFIX", "TRACER_NAME", "TelemetrySdk", "configure_telemetry", "stage_span"]
