"""Maps AuthError subclasses to JSON error responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from imac.services.errors import AuthError, TokenExpired, TokenInvalid

logger = logging.getLogger(__name__)

# Failures that must carry a WWW-Authenticate challenge.
_BEARER_ERRORS = (TokenInvalid, TokenExpired)


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the AuthError handler on the app."""

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(
            "Auth request failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": exc.status_code,
                "error_code": exc.error_code,
            },
        )
        response = error_response(exc.status_code, exc.error_code, exc.message)
        if isinstance(exc, _BEARER_ERRORS):
            response.headers["WWW-Authenticate"] = "Bearer"
        return response
