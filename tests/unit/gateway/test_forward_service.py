from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi import Request
from fastapi import Response
from httpx import ASGITransport
from httpx import AsyncClient

from gateway.services.forward_service import ForwardService
from geogate.models.location import LocationRecord


@pytest.fixture
def backend_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def forward_app(backend_requests: list[httpx.Request]) -> Any:
    def backend(request: httpx.Request) -> httpx.Response:
        backend_requests.append(request)
        return httpx.Response(201, json={"path": request.url.path, "query": request.url.query.decode()})

    service = ForwardService("http://backend.test/", client=httpx.AsyncClient(transport=httpx.MockTransport(backend)))

    app = FastAPI()

    @app.api_route("/{path:path}", methods=["GET", "POST"])
    async def forward_all(request: Request, path: str) -> Response:
        request.state.geo_ip = "115.240.90.163"
        request.state.geo_location = LocationRecord(country="India", city="Mumbai", latitude=19.076, longitude=72.8777)
        request.state.ray_id = "a1b2c3d4e5f67890"
        return await service.forward_request(request)

    return app


@pytest.mark.asyncio
async def test_forwards_path_query_and_status(forward_app: Any, backend_requests: list[httpx.Request]) -> None:
    async with AsyncClient(transport=ASGITransport(app=forward_app), base_url="http://test") as client:
        response = await client.get("/orders/42?expand=items")

    assert response.status_code == 201
    assert response.json() == {"path": "/orders/42", "query": "expand=items"}
    assert str(backend_requests[0].url) == "http://backend.test/orders/42?expand=items"


@pytest.mark.asyncio
async def test_adds_location_headers(forward_app: Any, backend_requests: list[httpx.Request]) -> None:
    async with AsyncClient(transport=ASGITransport(app=forward_app), base_url="http://test") as client:
        await client.get("/orders")

    headers = backend_requests[0].headers
    assert headers["X-Geogate-Client-IP"] == "115.240.90.163"
    assert headers["X-Geogate-Country"] == "India"
    assert headers["X-Geogate-City"] == "Mumbai"
    assert headers["X-Geogate-Ray-ID"] == "a1b2c3d4e5f67890"


@pytest.mark.asyncio
async def test_strips_forged_geogate_headers(forward_app: Any, backend_requests: list[httpx.Request]) -> None:
    async with AsyncClient(transport=ASGITransport(app=forward_app), base_url="http://test") as client:
        await client.get("/orders", headers={"X-Geogate-Country": "Narnia", "X-Geogate-Admin": "1"})

    headers = backend_requests[0].headers
    assert headers["X-Geogate-Country"] == "India"
    assert "X-Geogate-Admin" not in headers


@pytest.mark.asyncio
async def test_streams_request_body(forward_app: Any, backend_requests: list[httpx.Request]) -> None:
    async with AsyncClient(transport=ASGITransport(app=forward_app), base_url="http://test") as client:
        response = await client.post("/orders", content=b'{"sku": "abc"}')

    assert response.status_code == 201
    assert backend_requests[0].method == "POST"
    assert await backend_requests[0].aread() == b'{"sku": "abc"}'
