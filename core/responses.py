"""Locally synthesized responses."""

from fastapi.responses import JSONResponse

from core.exceptions import InvalidToken, ProxyError, Unauthorized


def error_response(error: ProxyError) -> JSONResponse:
    headers = {}
    if isinstance(error, (Unauthorized, InvalidToken)):
        headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse(
        {"error": error.title, "detail": error.detail},
        status_code=error.status_code,
        headers=headers,
    )
