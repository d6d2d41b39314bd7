"""HTTP client for the external IP geolocation lookup service.

The service is consumed as a black box: ``GET {base_url}/city/{ip}`` must
answer with a JSON object carrying ``country``, ``city`` and the coordinates
as ``lat``/``lon`` (or ``latitude``/``longitude``). Anything else is a
``LookupFailure``.
"""

import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError
from starlette import status

from geogate.models.location import LocationRecord
from geogate.monitoring import get_metrics_collector


logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_PATH = "/city/{ip}"


class LookupFailure(Exception):
    """Raised when an IP could not be resolved to a complete location record.

    ``str(exc)`` holds the internal reason for logs; ``message`` is the only
    text that may be shown to callers.
    """

    message = "Error occurred while reading the geoip database"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class GeoIPClient:
    """
    Long-lived lookup client shared by every request.

    Exactly one attempt is made per lookup. Timeouts come from the
    ``httpx.Timeout`` built here, so a slow service cannot hold a request
    forever.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 5.0,
        connect_timeout_seconds: float = 2.0,
        path_template: str = DEFAULT_LOOKUP_PATH,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.path_template = path_template
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds),
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            follow_redirects=True,
        )
        logger.info(f"GeoIPClient initialized with lookup service: {self.base_url}")

    async def __aenter__(self) -> "GeoIPClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("GeoIPClient closed")

    async def lookup(self, ip: str) -> LocationRecord:
        """Resolve ``ip`` to a location record.

        Raises:
            LookupFailure: transport error, timeout, non-2xx answer or a body
                that does not carry every required field.
        """
        path = self.path_template.format(ip=ip)
        start_time = time.time()
        try:
            record = await self._fetch(path)
        except LookupFailure:
            get_metrics_collector().record_lookup(duration=time.time() - start_time, result="failure")
            raise

        get_metrics_collector().record_lookup(duration=time.time() - start_time, result="success")
        return record

    async def _fetch(self, path: str) -> LocationRecord:
        try:
            response = await self._client.get(path, headers={"Accept": "application/json"})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"GeoIP lookup {path} returned HTTP {e.response.status_code}: {e.response.text[:200]}")
            raise LookupFailure(f"lookup service returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Error occurred while reading the geoip database: {type(e).__name__}: {e}")
            raise LookupFailure(f"lookup transport error: {type(e).__name__}") from e

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"GeoIP lookup {path} returned a non-JSON body")
            raise LookupFailure("lookup service returned a non-JSON body") from e

        if not isinstance(payload, dict):
            logger.error(f"GeoIP lookup {path} returned {type(payload).__name__}, expected an object")
            raise LookupFailure("lookup service returned an unexpected body")

        try:
            return LocationRecord.model_validate(payload)
        except ValidationError as e:
            missing = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            logger.error(f"GeoIP lookup {path} returned an incomplete record (fields: {missing})")
            raise LookupFailure("lookup service returned an incomplete record") from e
