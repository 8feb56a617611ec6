"""
FastAPI application serving the storefront GraphQL API
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import settings
from ..database import get_async_engine, init_database
from ..database.connection import test_database_connection
from ..logging import configure_logging, get_logger
from ..middleware import REQUEST_ID_HEADER, LoggingContextMiddleware

configure_logging(debug=settings.debug, log_level=settings.log_level)
logger = get_logger(__name__)

DEFAULT_APP_SECRET = "change-me"


def is_production() -> bool:
    return settings.environment.lower() in ("production", "prod")


def check_startup_configuration() -> list[str]:
    """Configuration problems worth reporting at startup."""
    problems = []
    if settings.app_secret == DEFAULT_APP_SECRET:
        problems.append("SICKFITS_APP_SECRET is not set; session tokens use the default secret")
    if not settings.stripe_secret_key:
        problems.append("SICKFITS_STRIPE_SECRET_KEY is not set; checkout will fail")
    if is_production() and not settings.cookie_secure:
        problems.append("SICKFITS_COOKIE_SECURE is off; session cookies travel over plain HTTP")
    return problems


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Sick Fits API", version=__version__, environment=settings.environment)
    init_database()

    ok, error = await test_database_connection()
    if not ok:
        logger.error("Database connection check failed", error=error)
        if is_production():
            raise RuntimeError(error)

    problems = check_startup_configuration()
    for problem in problems:
        logger.warning("Configuration problem", detail=problem)
    if is_production() and settings.app_secret == DEFAULT_APP_SECRET:
        raise RuntimeError("Refusing to start in production with the default app secret")

    yield

    await get_async_engine().dispose()
    logger.info("Sick Fits API stopped")


def create_app() -> FastAPI:
    """Build the API: request logging, credentialed CORS, /health and /graphql."""
    app = FastAPI(
        title="Sick Fits API",
        description="GraphQL API for the Sick Fits storefront",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(LoggingContextMiddleware)
    # The storefront sends the session cookie cross-origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.get("/health")
    async def health_check():  # pyright: ignore [reportUnusedFunction]
        return {"status": "healthy", "version": __version__}

    # Tests of plain HTTP concerns can skip building the schema
    if not os.getenv("SICKFITS_DISABLE_GRAPHQL"):
        from ..graphql.schema import create_graphql_router, validate_schema

        validate_schema()
        app.include_router(create_graphql_router())
        logger.info("GraphQL endpoint mounted", endpoint="/graphql")

    return app


app = create_app()
