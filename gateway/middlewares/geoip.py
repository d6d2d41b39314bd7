from typing import Awaitable
from typing import Callable

from fastapi import Request
from fastapi import Response

from gateway.utils.errors import decision_response
from geogate.models.decision import Allow
from geogate.services.geoip_orchestrator import GeoIPGate


async def geoip_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
    gate: GeoIPGate,
    exempt_paths: tuple[str, ...] = ("/health",),
) -> Response:
    """
    Gate every request on the caller's geographic origin.

    Allowed requests continue with ``request.state.geo_ip`` and
    ``request.state.geo_location`` set for downstream handlers. Denied or
    failed ones get exactly one JSON response and never reach ``call_next``.

    A cancelled request (client gone) propagates ``CancelledError`` out of
    ``gate.decide``, abandoning the lookup before any response is written.
    """
    if request.url.path in exempt_paths:
        return await call_next(request)

    peer_host = request.client.host if request.client else None
    decision = await gate.decide(request.headers, peer_host)

    if isinstance(decision, Allow):
        request.state.geo_ip = decision.ip
        request.state.geo_location = decision.location
        return await call_next(request)

    return decision_response(decision)


async def geoip_wrapper(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    return await geoip_middleware(
        request,
        call_next,
        request.app.state.geoip_gate,
        exempt_paths=request.app.state.geoip_exempt_paths,
    )
