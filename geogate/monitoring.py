import logging
from typing import Optional

from fastapi import Request
from fastapi import Response
from opentelemetry import metrics
from opentelemetry import trace


logger = logging.getLogger(__name__)


class MetricsCollector:
    def __init__(self) -> None:
        self.meter = metrics.get_meter(__name__)
        self._setup_metrics()

    def _setup_metrics(self) -> None:
        self.http_requests_total = self.meter.create_counter(
            name="http_requests_total", description="Total number of HTTP requests", unit="1"
        )

        self.http_request_duration = self.meter.create_histogram(
            name="http_request_duration_seconds", description="HTTP request duration in seconds", unit="s"
        )

        self.geoip_decisions_total = self.meter.create_counter(
            name="geoip_decisions_total", description="Gate decisions by outcome", unit="1"
        )

        self.geoip_lookup_duration = self.meter.create_histogram(
            name="geoip_lookup_duration_seconds", description="Location lookup duration in seconds", unit="s"
        )

    def record_http_request(
        self,
        request: Request,
        response: Response,
        duration: float,
        handler: Optional[str] = None,
    ) -> None:
        attributes = {
            "method": request.method,
            "handler": handler or request.url.path,
            "status_code": str(response.status_code),
        }
        self.http_requests_total.add(1, attributes=attributes)
        self.http_request_duration.record(duration, attributes=attributes)

    def record_decision(self, outcome: str, status_code: int, country: Optional[str] = None) -> None:
        attributes = {"outcome": outcome, "status_code": str(status_code)}
        if country:
            attributes["country"] = country
        self.geoip_decisions_total.add(1, attributes=attributes)

    def record_lookup(self, duration: float, result: str) -> None:
        self.geoip_lookup_duration.record(duration, attributes={"result": result})


class NullMetricsCollector:
    def record_http_request(self, *args: object, **kwargs: object) -> None:
        pass

    def record_decision(self, *args: object, **kwargs: object) -> None:
        pass

    def record_lookup(self, *args: object, **kwargs: object) -> None:
        pass


_metrics_collector: MetricsCollector | NullMetricsCollector = NullMetricsCollector()


def get_metrics_collector() -> MetricsCollector | NullMetricsCollector:
    return _metrics_collector


def set_metrics_collector(collector: MetricsCollector | NullMetricsCollector) -> None:
    global _metrics_collector
    _metrics_collector = collector


def enrich_span_with_location(
    client_ip: Optional[str] = None,
    country: Optional[str] = None,
    city: Optional[str] = None,
) -> None:
    span = trace.get_current_span()
    if span.is_recording():
        if client_ip:
            span.set_attribute("client.address", client_ip)
        if country:
            span.set_attribute("geogate.country", country)
        if city:
            span.set_attribute("geogate.city", city)
