"""Main FastAPI application."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send
import structlog

from .. import __version__
from ..config import ConfigManager
from ..engine import Engine
from ..errors import CoverVoteError, StoreError
from ..logging_config import setup_logging
from ..models import Config
from .models import APIError, HealthResponse
from .routes import router as api_router


logger = structlog.get_logger()

# Failure wording per route, kept as the frontend expects it
INTERNAL_ERROR_MESSAGES = {
    "/api/sync": "Internal server error during sync",
    "/api/final-list": "Error generating list",
}
DEFAULT_INTERNAL_ERROR = "Internal server error"
PAYLOAD_TOO_LARGE = "Payload too large"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=APIError(error=message).model_dump())


def _internal_error_message(request: Request) -> str:
    return INTERNAL_ERROR_MESSAGES.get(request.url.path, DEFAULT_INTERNAL_ERROR)


class BodySizeLimitMiddleware:
    """Answer 413 once a request body passes ``max_bytes``.

    A declared Content-Length is checked before the app runs. Bodies sent
    without one (chunked) are counted as they are read.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > self.max_bytes:
            await _error(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, PAYLOAD_TOO_LARGE)(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise HTTPException(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, PAYLOAD_TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)


def create_app(
    config: Optional[Config] = None,
    engine: Optional[Engine] = None,
    title: str = "Cover Vote API",
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Loaded configuration. Read from the environment when omitted.
        engine: Prebuilt engine (tests). Built from ``config`` when omitted.
        title: OpenAPI title
    """
    if config is None:
        config = engine.config if engine else ConfigManager().load()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Own the engine only if it was built here."""
        owned = app.state.engine is None
        if owned:
            app.state.engine = Engine.from_config(config)
            logger.info("engine_started", backend=config.store.backend)

        yield

        if owned:
            app.state.engine.close()
            app.state.engine = None

    app = FastAPI(
        title=title,
        version=__version__,
        description="Majority-vote validation of scraped cover candidates",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.engine = engine
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=config.api.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=config.api.max_body_mb * 1024 * 1024)

    # Exception handlers
    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("store_error", path=request.url.path, **exc.to_dict())
        return _error(exc.status_code, _internal_error_message(request))

    @app.exception_handler(CoverVoteError)
    async def engine_error_handler(request: Request, exc: CoverVoteError):
        if exc.status_code >= 500:
            logger.error("engine_error", path=request.url.path, **exc.to_dict())
            return _error(exc.status_code, _internal_error_message(request))
        logger.info("request_rejected", path=request.url.path, error=exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        logger.info("request_rejected", path=request.url.path, error=exc.detail)
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        logger.info("request_rejected", path=request.url.path, error=details)
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid request: {details}")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, _internal_error_message(request))

    # Health check
    @app.get("/health", response_model=HealthResponse, tags=["System"], summary="Health check")
    def health_check(request: Request):
        """Check that the stores answer."""
        current = request.app.state.engine
        checks = {"api": {"status": "healthy"}}

        if current is None:
            checks["store"] = {"status": "unhealthy", "error": "engine not started"}
        else:
            try:
                reviewers = current.repositories.reviewers.names()
                checks["store"] = {
                    "status": "healthy",
                    "backend": current.config.store.backend,
                    "reviewers": len(reviewers),
                }
            except StoreError as e:
                checks["store"] = {"status": "unhealthy", "error": e.message}

        overall_status = (
            "healthy"
            if all(check["status"] == "healthy" for check in checks.values())
            else "unhealthy"
        )
        return HealthResponse(status=overall_status, version=__version__, checks=checks)

    app.include_router(api_router)

    return app


def build_app() -> FastAPI:
    """Application factory for uvicorn: load config and set up logging."""
    manager = ConfigManager()
    manager.validate()
    config = manager.config
    setup_logging(
        format=config.logging.format,
        level=config.logging.level,
        log_file=config.logging.file,
    )
    return create_app(config)
