"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from recipekeeper.api.routes import health, recipes
from recipekeeper.config import settings
from recipekeeper.core.request_id import get_request_id
from recipekeeper.middleware.logging import RequestLoggingMiddleware
from recipekeeper.middleware.performance import PerformanceMiddleware
from recipekeeper.middleware.rate_limit import get_rate_limit_exceeded_handler, limiter
from recipekeeper.middleware.security import SecurityHeadersMiddleware, setup_compression, setup_cors
from recipekeeper.services.recipe_store import InMemoryRecipeStore, RecipeStore
from recipekeeper.utils.exceptions import (
    LLMConfigurationError,
    LLMError,
    LLMUnavailableError,
    NoApplicableChangesError,
    PatchRejectedError,
    RecipeKeeperException,
    RecipeNotFoundError,
    ScrapingError,
    ValidationError,
)
from recipekeeper.utils.logging_config import setup_logging

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Most specific first
ERROR_RESPONSES = [
    (ValidationError, status.HTTP_400_BAD_REQUEST, "Validation error"),
    (RecipeNotFoundError, status.HTTP_404_NOT_FOUND, "Recipe not found"),
    (ScrapingError, status.HTTP_502_BAD_GATEWAY, "Failed to fetch recipe page"),
    (LLMUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE, "LLM service not running"),
    (LLMConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR, "LLM not configured"),
    (LLMError, status.HTTP_502_BAD_GATEWAY, "LLM request failed"),
    (PatchRejectedError, status.HTTP_422_UNPROCESSABLE_ENTITY, "Patch rejected"),
    (NoApplicableChangesError, status.HTTP_400_BAD_REQUEST, "No applicable changes"),
]


def error_response_for(exc: RecipeKeeperException):
    for exc_type, status_code, message in ERROR_RESPONSES:
        if isinstance(exc, exc_type):
            return status_code, message
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"


def create_app(store: Optional[RecipeStore] = None) -> FastAPI:
    """
    Build the application around an explicitly provided recipe store.

    Without one, an in-memory store is used.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Recipe Keeper API starting up...")
        logger.info(f"Log level: {settings.log_level}")
        logger.info(f"Rate limit: {settings.rate_limit_per_hour} requests/hour")
        yield
        logger.info("Recipe Keeper API shutting down...")

    app = FastAPI(
        title="Recipe Keeper API",
        description="Recipe extraction from web pages and AI-assisted recipe editing",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.recipe_store = store if store is not None else InMemoryRecipeStore()
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, get_rate_limit_exceeded_handler())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        request_id = get_request_id()
        logger.warning(
            f"Validation error: {str(exc)}",
            extra={"request_id": request_id, "path": request.url.path, "errors": exc.errors()},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "Validation error",
                "detail": jsonable_errors(exc),
                "request_id": request_id,
            },
        )

    @app.exception_handler(RecipeKeeperException)
    async def recipekeeper_exception_handler(request: Request, exc: RecipeKeeperException) -> JSONResponse:
        request_id = get_request_id()
        status_code, error_message = error_response_for(exc)

        log = logger.error if status_code >= 500 else logger.warning
        log(
            f"Exception: {error_message}",
            extra={"request_id": request_id, "exception": str(exc), "path": request.url.path},
            exc_info=status_code >= 500,
        )
        return JSONResponse(
            status_code=status_code,
            content={"error": error_message, "detail": str(exc), "request_id": request_id},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = get_request_id()
        logger.error(f"Unexpected exception: {str(exc)}", extra={"request_id": request_id}, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "detail": "An unexpected error occurred",
                "request_id": request_id,
            },
        )

    # Add middleware (order matters!)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(PerformanceMiddleware, slow_request_threshold=5.0, very_slow_request_threshold=30.0)
    app.add_middleware(RequestLoggingMiddleware)
    setup_compression(app)
    setup_cors(app)

    app.include_router(health.router)
    app.include_router(recipes.router)

    @app.get("/")
    async def root():
        return {"name": "Recipe Keeper API", "version": "1.0.0", "docs": "/docs"}

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without non-serializable ``ctx`` payloads."""
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
