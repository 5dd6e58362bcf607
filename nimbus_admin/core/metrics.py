import logging

from opentelemetry import metrics
from opentelemetry.metrics import set_meter_provider
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader

logger = logging.getLogger(__name__)

_initialized = False
_meters = {}


def init_metrics(enabled: bool = False, otlp_endpoint: str = ""):
    global _initialized
    if _initialized:
        return
    if enabled and otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
        exporter = OTLPMetricExporter(endpoint=otlp_endpoint, insecure=True)
        provider = MeterProvider(metric_readers=[PeriodicExportingMetricReader(exporter)])
        logger.info("Metrics export enabled: %s", otlp_endpoint)
    else:
        provider = MeterProvider()
    set_meter_provider(provider)
    _initialized = True


def get_meter(name: str):
    if name in _meters:
        return _meters[name]
    m = metrics.get_meter(name)
    _meters[name] = m
    return m


class GatewayMetrics:
    def __init__(self):
        meter = get_meter("nimbus_admin.gateway")
        self.exec_counter = meter.create_counter("gateway_exec_count")
        self.error_counter = meter.create_counter("gateway_error_count")
        self.rows_hist = meter.create_histogram("gateway_rows")
        self.duration_hist = meter.create_histogram("gateway_duration_ms")

    def record(self, profile_id: str, rows: int, duration_ms: float):
        attrs = {"profile_id": profile_id or ""}
        self.exec_counter.add(1, attrs)
        self.rows_hist.record(rows, attrs)
        self.duration_hist.record(duration_ms, attrs)

    def record_error(self, profile_id: str, code):
        self.error_counter.add(1, {"profile_id": profile_id or "", "code": str(code)})
