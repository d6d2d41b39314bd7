import time
from typing import Awaitable
from typing import Callable

from fastapi import Request
from fastapi import Response

from geogate.monitoring import get_metrics_collector


async def metrics_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    endpoint_name = "gateway_forward"
    route = request.scope.get("route")
    if route is not None and hasattr(route, "endpoint") and hasattr(route.endpoint, "__name__"):
        endpoint_name = f"gateway_{route.endpoint.__name__}"

    get_metrics_collector().record_http_request(
        request=request,
        response=response,
        duration=duration,
        handler=endpoint_name,
    )
    return response
