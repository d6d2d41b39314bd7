from typing import Awaitable
from typing import Callable

from fastapi import Request
from fastapi import Response

from geogate.services.ray_id_service import generate_ray_id
from geogate.services.ray_id_service import ray_id_context


RAY_ID_HEADER = "X-Geogate-Ray-ID"


async def ray_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Assign a 16-hex ray id to the request.

    Sets the context var read by the logging filter, ``request.state.ray_id``
    and the ``X-Geogate-Ray-ID`` response header. Registered LAST in
    gateway/main.py so it runs FIRST.
    """
    ray_id = generate_ray_id()
    token = ray_id_context.set(ray_id)
    request.state.ray_id = ray_id

    try:
        response = await call_next(request)
    finally:
        ray_id_context.reset(token)

    response.headers[RAY_ID_HEADER] = ray_id
    return response
