"""JSON error responses for the gateway."""

from typing import Union

from fastapi.responses import JSONResponse

from geogate.models.decision import Deny
from geogate.models.decision import Error


def json_error_response(status_code: int, message: str) -> JSONResponse:
    """
    Build the ``{"statusCode": ..., "message": ...}`` body every short-circuit uses.

    Args:
        status_code: HTTP status code, repeated in the body
        message: Human-readable message; never carries internal error text

    Returns:
        JSONResponse with the given status
    """
    return JSONResponse(
        content={"statusCode": status_code, "message": message},
        status_code=status_code,
    )


def decision_response(decision: Union[Deny, Error]) -> JSONResponse:
    """Render a terminal gate decision as its JSON response."""
    return JSONResponse(content=decision.body(), status_code=decision.status_code)
