import dataclasses
import logging
from typing import Any

import dotenv

from geogate.models.policy import Policy
from geogate.utils import as_bool
from geogate.utils import as_json_list
from geogate.utils import as_list
from geogate.utils import env


dotenv.load_dotenv()

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Config:
    """Application configuration settings."""

    # Lookup service
    geoip_lookup_url: str = env("GEOIP_LOOKUP_URL:http://geoip.samagra.io")
    geoip_lookup_path: str = env("GEOIP_LOOKUP_PATH:/city/{ip}")
    geoip_timeout_seconds: float = env("GEOIP_TIMEOUT_SECONDS:5.0", convert=float)
    geoip_connect_timeout_seconds: float = env("GEOIP_CONNECT_TIMEOUT_SECONDS:2.0", convert=float)

    # Client address trust order, first match wins ("peer" = transport address)
    ip_sources: list[str] = env("GEOIP_IP_SOURCES:ip", convert=as_list)

    # Allow-list policy
    allowed_countries: list[str] = env("GEOIP_ALLOWED_COUNTRIES:India", convert=as_list)
    allowed_cities: list[str] = env("GEOIP_ALLOWED_CITIES:", convert=as_list)
    allowed_coordinates: list[dict[str, Any]] = env("GEOIP_ALLOWED_COORDINATES:[]", convert=as_json_list)
    allowed_geofences: list[dict[str, Any]] = env("GEOIP_ALLOWED_GEOFENCES:[]", convert=as_json_list)
    access_denied_message: str = env("GEOIP_ACCESS_DENIED_MESSAGE:Access Denied")
    access_denied_status_code: int = env("GEOIP_ACCESS_DENIED_STATUS_CODE:403", convert=int)
    exempt_paths: list[str] = env("GEOIP_EXEMPT_PATHS:/health", convert=as_list)

    # Gateway
    backend_url: str = env("GATEWAY_BACKEND_URL:")
    port: int = env("GATEWAY_PORT:8080", convert=int)

    # Logging
    log_level: str = env("LOG_LEVEL:INFO")
    loki_url: str = env("LOKI_URL:http://localhost:3100/loki/api/v1/push")
    loki_enabled: bool = env("LOKI_ENABLED:false", convert=as_bool)
    environment: str = env("ENVIRONMENT:development")

    def build_policy(self) -> Policy:
        return Policy.from_options(
            countries=self.allowed_countries,
            cities=self.allowed_cities,
            coordinates=self.allowed_coordinates,
            geofences=self.allowed_geofences,
            access_denied_message=self.access_denied_message,
            access_denied_status_code=self.access_denied_status_code,
        )


_config: Config | None = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
        logger.info(
            f"Config loaded: lookup_url={_config.geoip_lookup_url}, ip_sources={_config.ip_sources}, "
            f"backend_url={_config.backend_url or '-'}"
        )
    return _config
