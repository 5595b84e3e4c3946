"""
Exception handlers producing the ``{status_code, message, data}`` envelope.

Domain errors map to their own status code; FastAPI / Starlette HTTP
errors and request validation errors are wrapped the same way so clients
parse a single shape.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.domain.exceptions import DomainError

logger = logging.getLogger(__name__)


def _envelope(status_code: int, message: str, **extra) -> JSONResponse:
    body = {"status_code": status_code, "message": message, "data": None}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _envelope(exc.status_code, exc.message, code=exc.code, details=exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _envelope(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _envelope(422, "Invalid request", details=exc.errors())
