"""Shared JSON error responses for route handlers."""

from fastapi.responses import JSONResponse

from core.errors import RelayError


def error_response(exc: RelayError, *, status_code: int | None = None, prefix: str = "") -> JSONResponse:
    """JSON body {"error", "kind"} with the error's own status unless overridden."""
    body = exc.to_body()
    if prefix:
        body["error"] = f"{prefix}{exc.message}"
    return JSONResponse(body, status_code=status_code or exc.status_code)
