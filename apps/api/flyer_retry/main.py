"""FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from flyer_retry.core.config import get_settings
from flyer_retry.errors import ApiError
from flyer_retry.routes import flyer_requests_router, internal_router
from flyer_retry.schemas.error import ErrorResponse
from flyer_retry.services.session import RetrySession

logger = logging.getLogger(__name__)

_CHANGE_FEED_VALIDATION_PATHS: set[tuple[str, str]] = {
    ("POST", "/api/v1/internal/change-feed"),
}


def create_app(session: RetrySession | None = None) -> FastAPI:
    """Build the console API; without an explicit session one is built from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.session is None:
            app.state.session = RetrySession.from_settings(get_settings())
        await app.state.session.start()
        try:
            yield
        finally:
            await app.state.session.close()

    app = FastAPI(title="Flyer Retry Console API", version="1.0.0", lifespan=lifespan)
    app.state.session = session

    @app.exception_handler(ApiError)
    async def handle_api_error(_, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.payload.model_dump(mode="json", exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        route = request.scope.get("route")
        route_path = getattr(route, "path", request.url.path)
        route_key = (request.method.upper(), route_path)
        if route_key in _CHANGE_FEED_VALIDATION_PATHS:
            logger.warning("feed.webhook_rejected path=%s reason=invalid_payload", route_path)
            payload = ErrorResponse(code="VALIDATION_ERROR", message="Invalid change event payload")
            return JSONResponse(status_code=409, content=payload.model_dump(exclude_none=True))

        return await request_validation_exception_handler(request, exc)

    api_prefix = "/api/v1"
    app.include_router(flyer_requests_router, prefix=api_prefix)
    app.include_router(internal_router, prefix=api_prefix)

    return app


app = create_app()
