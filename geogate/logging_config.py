import logging
import os
import sys
from typing import Protocol

from loki_logger_handler.loki_logger_handler import LokiLoggerHandler

from geogate.services.ray_id_service import NO_RAY_ID
from geogate.services.ray_id_service import ray_id_context


# Request context the gate binds onto its records, in display order
GEO_FIELDS = ("client_ip", "country", "city")

LOG_FORMAT = "%(asctime)s - [%(ray_id)s] - %(name)s - %(levelname)s - %(message)s%(geo_context)s"


class LoggingConfig(Protocol):
    log_level: str
    loki_enabled: bool
    loki_url: str
    environment: str


class RequestContextFilter(logging.Filter):
    """Fill the per-request fields ``LOG_FORMAT`` expects on every record.

    ``ray_id`` falls back to the context var set by the ray id middleware.
    ``geo_context`` renders whichever of ``GEO_FIELDS`` the gate bound, e.g.
    `` {client_ip=1.2.3.4 country=India}``, and is empty for unrelated records.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "ray_id"):
            record.ray_id = ray_id_context.get() or NO_RAY_ID

        pairs = [f"{field}={getattr(record, field)}" for field in GEO_FIELDS if getattr(record, field, None)]
        record.geo_context = f" {{{' '.join(pairs)}}}" if pairs else ""
        return True


def setup_loki_logging(config: LoggingConfig, service_name: str) -> logging.Logger:
    """
    Configure root logging: stdout always, Loki when enabled.

    Both handlers share one ``RequestContextFilter`` so gate decisions keep
    their ray id and caller location wherever they are shipped.

    Args:
        config: Application configuration
        service_name: Name of the service, used as the Loki ``service`` label

    Returns:
        Logger named after the service
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if config.loki_enabled and config.loki_url:
        handlers.append(
            LokiLoggerHandler(
                url=config.loki_url,
                labels={
                    "service": service_name,
                    "environment": config.environment,
                    "host": os.getenv("HOSTNAME", "unknown"),
                },
                timeout=10,
                compressed=True,
            )
        )

    context_filter = RequestContextFilter()
    for handler in handlers:
        handler.addFilter(context_filter)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    return logging.getLogger(service_name)
