"""
Refrr API application
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from refrr.api.v1.api import api_router
from refrr.api.v1.endpoints import monitoring
from refrr.core.config import settings
from refrr.core.database import close_database
from refrr.core.exceptions import register_exception_handlers
from refrr.core.logging_config import setup_logging
from refrr.middleware.request_logging_middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("Application starting", environment=settings.ENVIRONMENT, version=settings.VERSION)
    yield
    await close_database()
    logger.info("Application shut down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    setup_logging()

    is_production = settings.ENVIRONMENT == "production"
    app = FastAPI(
        title=f"{settings.PROJECT_NAME} API",
        description="Referral campaigns, codes and tracking",
        version=settings.VERSION,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
    )
    # outermost, so the request id is bound before anything else logs
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(monitoring.router, tags=["monitoring"])
    app.include_router(api_router, prefix=settings.API_V1_STR)

    return app


app = create_app()
