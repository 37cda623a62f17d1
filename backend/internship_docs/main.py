"""Internship Documents - FastAPI Application Entry Point.

Run with ``uvicorn --factory internship_docs.main:create_app``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from internship_docs.core.config import Settings, get_settings
from internship_docs.core.database import dispose_engine
from internship_docs.core.env_validation import validate_environment
from internship_docs.core.exceptions import IssuanceError, RenderFailure, Timeout, ValidationError
from internship_docs.core.logging import setup_logging
from internship_docs.routers import documents_router, verify_router
from internship_docs.services.engine import DocumentEngine, build_engine

logger = logging.getLogger(__name__)


def status_for(error: IssuanceError) -> int:
    if isinstance(error, ValidationError):
        return 422
    if isinstance(error, Timeout):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(error, RenderFailure):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_502_BAD_GATEWAY


async def issuance_error_handler(request: Request, exc: IssuanceError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    return JSONResponse(status_code=code, content=exc.to_dict())


def create_app(
    engine: Optional[DocumentEngine] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the application.

    Without an explicit engine the environment is validated first (hard
    fail on bad configuration) and production collaborators are wired.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    if engine is None:
        settings = validate_environment(settings)
        engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        yield
        await dispose_engine()

    app = FastAPI(
        title=settings.app_name,
        description="Issues internship offer letters and completion certificates and verifies them by code.",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.engine = engine

    allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",")]
    logger.info(f"[API] CORS configured with origins: {allowed_origins}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials="*" not in allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(IssuanceError, issuance_error_handler)

    app.include_router(documents_router, prefix=settings.api_v1_prefix)
    app.include_router(verify_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": settings.app_name}

    return app
