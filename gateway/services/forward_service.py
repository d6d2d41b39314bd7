import logging
import typing

import httpx
from fastapi import Request
from fastapi.responses import StreamingResponse


logger = logging.getLogger(__name__)

GEOGATE_HEADER_PREFIX = "x-geogate-"
HOP_HEADERS = ["host", "content-length", "x-forwarded-for", "x-forwarded-host"]


class ForwardService:
    """Reverse proxy for requests the geoip gate allowed."""

    def __init__(self, backend_url: str, client: httpx.AsyncClient | None = None):
        self.backend_url = backend_url.rstrip("/")
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(300.0, connect=10.0),
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            follow_redirects=False,
        )
        logger.info(f"ForwardService initialized with backend: {self.backend_url}")

    def build_headers(self, request: Request) -> dict[str, str]:
        headers = dict(request.headers)

        # SECURITY: clients must not be able to forge the location headers the backend trusts
        for key in list(headers.keys()):
            if key.lower().startswith(GEOGATE_HEADER_PREFIX):
                del headers[key]
                logger.warning(f"Stripped client-provided header: {key}")

        for key in list(headers.keys()):
            if key.lower() in HOP_HEADERS:
                del headers[key]

        geo_ip = getattr(request.state, "geo_ip", None)
        if geo_ip:
            headers["X-Geogate-Client-IP"] = geo_ip

        location = getattr(request.state, "geo_location", None)
        if location is not None:
            headers["X-Geogate-Country"] = location.country
            headers["X-Geogate-City"] = location.city

        ray_id = getattr(request.state, "ray_id", None)
        if ray_id:
            headers["X-Geogate-Ray-ID"] = ray_id

        return headers

    async def forward_request(self, request: Request) -> StreamingResponse:
        headers = self.build_headers(request)

        target_url = f"{self.backend_url}{request.url.path}"
        if request.url.query:
            target_url += f"?{request.url.query}"

        logger.debug(f"Forwarding {request.method} {target_url}")

        if request.method in ["GET", "HEAD", "DELETE", "OPTIONS"]:
            upstream_request = self.client.build_request(method=request.method, url=target_url, headers=headers)
        else:

            async def generate() -> typing.AsyncGenerator[bytes, None]:
                async for chunk in request.stream():
                    yield chunk

            upstream_request = self.client.build_request(
                method=request.method,
                url=target_url,
                headers=headers,
                content=generate(),
            )

        response = await self.client.send(upstream_request, stream=True)

        response_headers = dict(response.headers)
        for key in ("transfer-encoding", "content-length"):
            response_headers.pop(key, None)

        async def body() -> typing.AsyncGenerator[bytes, None]:
            try:
                async for chunk in response.aiter_raw():
                    yield chunk
            finally:
                await response.aclose()

        return StreamingResponse(
            content=body(),
            status_code=response.status_code,
            headers=response_headers,
            media_type=response.headers.get("content-type"),
        )

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("ForwardService client closed")
