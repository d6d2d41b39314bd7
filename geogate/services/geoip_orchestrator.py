from typing import Iterable
from typing import Mapping

from starlette import status

from geogate.models.decision import Allow
from geogate.models.decision import Decision
from geogate.models.decision import Deny
from geogate.models.decision import Error
from geogate.models.location import LocationRecord
from geogate.models.policy import Policy
from geogate.monitoring import enrich_span_with_location
from geogate.monitoring import get_metrics_collector
from geogate.services.allowlist import matched_categories
from geogate.services.geoip_client import GeoIPClient
from geogate.services.geoip_client import LookupFailure
from geogate.services.ip_extractor import DEFAULT_IP_SOURCES
from geogate.services.ip_extractor import AddressError
from geogate.services.ip_extractor import extract_client_ip
from geogate.services.ray_id_service import RayIDLoggerAdapter
from geogate.services.ray_id_service import get_logger_with_ray_id


UNEXPECTED_ERROR_MESSAGE = "Error occurred while processing the request"


class GeoIPGate:
    """
    Decide, per request, whether the caller's location is allowed.

    Flow (one pass, no retries):
    1. Extract and validate the client IP -> 400 on missing or malformed address
    2. Resolve the IP through the lookup service -> 500 on any lookup failure
    3. Evaluate the allow-list -> Allow, or Deny with the policy's status/message

    Every failure ends as a terminal ``Error`` decision; nothing but
    cancellation escapes ``decide``.
    """

    def __init__(self, policy: Policy, client: GeoIPClient, sources: Iterable[str] = DEFAULT_IP_SOURCES):
        self.policy = policy
        self.client = client
        self.sources = tuple(sources)

    async def decide(self, headers: Mapping[str, str], peer_host: str | None = None) -> Decision:
        logger = get_logger_with_ray_id(__name__)

        try:
            decision = await self._decide(headers, peer_host, logger)
        except Exception:
            logger.exception("Unexpected error while evaluating geoip gate")
            decision = Error(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, message=UNEXPECTED_ERROR_MESSAGE)

        get_metrics_collector().record_decision(
            outcome=type(decision).__name__.lower(),
            status_code=getattr(decision, "status_code", status.HTTP_200_OK),
            country=decision.location.country if decision.location else None,
        )
        return decision

    async def _decide(
        self, headers: Mapping[str, str], peer_host: str | None, logger: RayIDLoggerAdapter
    ) -> Decision:
        try:
            client_ip = extract_client_ip(headers, peer_host, self.sources)
        except AddressError as e:
            logger.error(f"Rejecting request: {e.message} (sources={list(self.sources)}, value={str(e)!r})")
            return Error(status_code=e.status_code, message=e.message)

        logger = logger.bind(client_ip=client_ip)
        logger.debug(f"Using IP address for geolocation: {client_ip}")
        enrich_span_with_location(client_ip=client_ip)

        try:
            location = await self.client.lookup(client_ip)
        except LookupFailure as e:
            logger.error(f"Location lookup failed for IP: {client_ip}: {e}")
            return Error(status_code=e.status_code, message=e.message, ip=client_ip)

        enrich_span_with_location(country=location.country, city=location.city)
        return self._evaluate(client_ip, location, logger.bind(country=location.country, city=location.city))

    def _evaluate(self, client_ip: str, location: LocationRecord, logger: RayIDLoggerAdapter) -> Decision:
        matched = matched_categories(location, self.policy)
        if matched:
            logger.info(
                f"Allowed request from IP: {client_ip}, Country: {location.country}, City: {location.city} "
                f"(matched: {', '.join(matched)})"
            )
            return Allow(ip=client_ip, location=location)

        logger.warning(f"Denying request from IP: {client_ip}, Country: {location.country}, City: {location.city}")
        return Deny(
            status_code=self.policy.access_denied_status_code,
            message=self.policy.access_denied_message,
            ip=client_ip,
            location=location,
        )
