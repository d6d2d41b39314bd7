from typing import Any
from typing import Dict

from fastapi import FastAPI
from fastapi import Request
from fastapi import Response
from starlette import status

from gateway.middlewares.geoip import geoip_wrapper
from gateway.middlewares.metrics import metrics_middleware
from gateway.middlewares.ray_id import ray_id_middleware
from gateway.services.forward_service import ForwardService
from gateway.utils.errors import json_error_response
from geogate.config import Config
from geogate.config import get_config
from geogate.logging_config import setup_loki_logging
from geogate.monitoring import MetricsCollector
from geogate.monitoring import set_metrics_collector
from geogate.services.geoip_client import GeoIPClient
from geogate.services.geoip_orchestrator import GeoIPGate


config = get_config()
logger = setup_loki_logging(config, "geogate")


def factory(
    app_config: Config | None = None,
    geoip_client: GeoIPClient | None = None,
    forward_service: ForwardService | None = None,
) -> FastAPI:
    cfg = app_config or config

    app = FastAPI(
        title="Geogate",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # Policy parsing errors must fail here, at startup, not per request
    policy = cfg.build_policy()
    logger.info(
        f"GeoIP policy loaded: countries={sorted(policy.allowed_countries)}, cities={sorted(policy.allowed_cities)}, "
        f"coordinates={len(policy.allowed_coordinates)}, geofences={len(policy.allowed_geofences)}"
    )

    app.state.geoip_client = geoip_client or GeoIPClient(
        cfg.geoip_lookup_url,
        timeout_seconds=cfg.geoip_timeout_seconds,
        connect_timeout_seconds=cfg.geoip_connect_timeout_seconds,
        path_template=cfg.geoip_lookup_path,
    )
    app.state.geoip_gate = GeoIPGate(policy, app.state.geoip_client, sources=cfg.ip_sources)
    app.state.geoip_exempt_paths = tuple(cfg.exempt_paths)
    logger.info(f"GeoIPGate initialized, trusting IP sources in order: {cfg.ip_sources}")

    if forward_service is None and cfg.backend_url:
        forward_service = ForwardService(cfg.backend_url)
    app.state.forward_service = forward_service

    @app.on_event("startup")
    async def startup() -> None:
        logger.info("Starting Geogate...")
        set_metrics_collector(MetricsCollector())
        logger.info("Metrics collector initialized")
        logger.info("Geogate startup complete")

    @app.on_event("shutdown")
    async def shutdown() -> None:
        logger.info("Shutting down Geogate...")

        if app.state.forward_service is not None:
            await app.state.forward_service.close()

        await app.state.geoip_client.close()

        logger.info("Geogate shutdown complete")

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "healthy", "service": "geogate"}

    @app.get("/")
    async def root(request: Request) -> Dict[str, Any]:
        location = getattr(request.state, "geo_location", None)
        if location is None:
            return {"statusCode": status.HTTP_200_OK, "message": "OK"}
        return {
            "statusCode": status.HTTP_200_OK,
            "message": (
                f"Allowed request from IP: {request.state.geo_ip}, "
                f"Country: {location.country}, City: {location.city}"
            ),
        }

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "HEAD", "PATCH", "OPTIONS"])
    async def forward_all(request: Request, path: str) -> Response:
        forward = request.app.state.forward_service
        if forward is None:
            return json_error_response(status_code=status.HTTP_404_NOT_FOUND, message="Not Found")
        return await forward.forward_request(request)  # type: ignore[no-any-return]

    # Middleware registered last runs first
    # IMPORTANT: ray_id must execute FIRST (so register LAST) to make ray_id available to the gate's logs
    app.middleware("http")(geoip_wrapper)
    app.middleware("http")(metrics_middleware)
    app.middleware("http")(ray_id_middleware)

    return app


app = factory()

if __name__ == "__main__":
    import os

    import uvicorn

    debug_mode = os.getenv("DEBUG", "false").lower() == "true"
    uvicorn.run("gateway.main:app", host="0.0.0.0", port=config.port, reload=debug_mode, access_log=True)
