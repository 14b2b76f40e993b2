"""Factory for constructing the FastAPI application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from riskr_backend.api.models import ErrorResponse
from riskr_backend.api.routers import games_router, users_router
from riskr_backend.settings import get_settings
from riskr_backend.settlement import CooldownActiveError, SettlementError

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int, error: ErrorResponse, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(error.model_dump(by_alias=True, exclude_none=True)),
        headers=headers,
    )


async def _settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
    """Turn an expected domain failure into the structured error envelope."""
    logger.info(f"{request.url.path} failed with {exc.kind}: {exc.message}")
    headers = None
    retry_after = None
    if isinstance(exc, CooldownActiveError):
        retry_after = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}
    error = ErrorResponse(error=exc.message, kind=exc.kind, retry_after=retry_after)
    return _error_response(exc.status_code, error, headers)


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid request')}".lstrip(": ")
    error = ErrorResponse(error=message, kind="invalid_request")
    return _error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, error)


def create_api() -> FastAPI:
    """Instantiate and configure the FastAPI application."""
    config = get_settings()
    app = FastAPI(title="Riskr API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SettlementError, _settlement_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.include_router(games_router)
    app.include_router(users_router)

    @app.get("/")
    def root() -> dict[str, str]:
        return {"message": "Riskr Backend is Running!", "status": "ok"}

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    return app
