"""
OpenTelemetry metrics for the symbol sync job

The entry point builds one MeterProvider per process, wraps a meter from it
in SyncMetrics and hands that object to every component. Nothing in the
sync pipeline reads the global meter provider.
"""

from typing import Any, Optional

from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import Meter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes

from ..config.settings import Settings
from ..enums.sync_status import SyncErrorType
from .logger import get_logger

logger = get_logger(__name__)

METER_NAME = "symbol_sync"


def _build_resource(service_name: str) -> Resource:
    attributes: dict[str, Any] = {
        ResourceAttributes.SERVICE_NAME: service_name,
        ResourceAttributes.SERVICE_NAMESPACE: "symbol-master",
    }
    return Resource.create(attributes)


def build_meter_provider(settings: Settings) -> MeterProvider:
    """
    Create the process MeterProvider

    Metrics are exported over OTLP/gRPC when an endpoint is configured;
    otherwise instruments are still created but nothing is exported.
    """
    resource = _build_resource(settings.otel_service_name)

    if not settings.metrics_enabled:
        logger.info("metrics_export_disabled", reason="no OTLP metrics endpoint configured")
        return MeterProvider(resource=resource)

    exporter = OTLPMetricExporter(
        endpoint=settings.otel_exporter_otlp_metrics_endpoint,
        insecure=True,
    )
    reader = PeriodicExportingMetricReader(
        exporter,
        export_interval_millis=settings.otel_metric_export_interval_ms,
    )
    logger.info(
        "metrics_export_enabled",
        endpoint=settings.otel_exporter_otlp_metrics_endpoint,
    )
    return MeterProvider(resource=resource, metric_readers=[reader])


def shutdown_meter_provider(provider: Optional[MeterProvider]) -> None:
    """Flush pending metrics and release the exporter"""
    if provider is None:
        return
    try:
        provider.force_flush()
    finally:
        provider.shutdown()


class SyncMetrics:
    """
    Metric instruments emitted by the sync pipeline
    """

    def __init__(self, meter: Meter):
        self._total_symbols = meter.create_gauge(
            "symbol_sync_total_symbols",
            description="Symbols in the fetched provider universe",
        )
        self._new_symbols = meter.create_gauge(
            "symbol_sync_new_symbols",
            description="Symbols missing from the active set",
        )
        self._delisted_symbols = meter.create_gauge(
            "symbol_sync_delisted_symbols",
            description="Active symbols missing from the universe",
        )
        self._active_symbols = meter.create_gauge(
            "symbol_sync_active_symbols",
            description="Active rows after the sync",
        )
        self._api_calls = meter.create_counter(
            "symbol_sync_api_calls",
            description="Successful provider API calls by endpoint",
        )
        self._errors = meter.create_counter(
            "symbol_sync_errors",
            description="Errors by type",
        )
        self._completed = meter.create_counter(
            "symbol_sync_completed",
            description="Completed sync runs",
        )

    @classmethod
    def from_provider(cls, provider: MeterProvider) -> "SyncMetrics":
        return cls(provider.get_meter(METER_NAME))

    def set_total_symbols(self, count: int) -> None:
        self._total_symbols.set(count)

    def set_new_symbols(self, count: int) -> None:
        self._new_symbols.set(count)

    def set_delisted_symbols(self, count: int) -> None:
        self._delisted_symbols.set(count)

    def set_active_symbols(self, count: int) -> None:
        self._active_symbols.set(count)

    def api_call(self, endpoint: str) -> None:
        self._api_calls.add(1, {"endpoint": endpoint})

    def error(self, error_type: SyncErrorType) -> None:
        self._errors.add(1, {"type": str(error_type)})

    def job_completed(self) -> None:
        self._completed.add(1)
