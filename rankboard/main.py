"""FastAPI application wiring for routes, error handlers, CORS, and lifespan."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rankboard.api.errors import APIError
from rankboard.api.routes import router
from rankboard.core.config import Settings, configure_logging, get_settings
from rankboard.models.schemas import ErrorBody, ErrorResponse
from rankboard.services.leaderboard import LeaderboardService
from rankboard.services.mutator import RatingMutator, RatingWalker
from rankboard.storage.database import StoreError, create_rating_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    settings: Settings = app.state.settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    store = create_rating_store(settings)
    try:
        store.ping()
    except StoreError:
        logger.critical("Store unreachable at startup; refusing to serve")
        store.close()
        raise
    logger.info("Database connected successfully")

    mutator = RatingMutator(store)
    app.state.store = store
    app.state.leaderboard_service = LeaderboardService(store, mutator)

    walker = None
    if settings.RATING_WALK_ENABLED:
        walker = RatingWalker(mutator, interval=settings.RATING_WALK_INTERVAL_SECONDS)
        walker.start()
    app.state.rating_walker = walker

    try:
        yield
    finally:
        if walker is not None:
            walker.stop(timeout=settings.RATING_WALK_INTERVAL_SECONDS + settings.DB_POOL_TIMEOUT_SECONDS)
        store.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    app = FastAPI(title="Rankboard", version="1.0.0", lifespan=app_lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(APIError)
    async def api_error_handler(_: Request, exc: APIError) -> JSONResponse:
        payload = ErrorResponse(
            error=ErrorBody(code=exc.code, message=exc.message, details=exc.details),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=payload.model_dump(exclude_none=True),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        payload = ErrorResponse(
            error=ErrorBody(
                code="VALIDATION_ERROR",
                message="Request validation failed",
                details={"errors": exc.errors()},
            ),
        )
        return JSONResponse(status_code=400, content=payload.model_dump(exclude_none=True))

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
