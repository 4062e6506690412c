"""
HS Code Classification API - FastAPI application entry point
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from apps.api.routers import classify, reference
from apps.api.tasks import ClassificationDispatcher
from packages.common.config import Settings, get_settings
from packages.domain.classification.classifier import Classifier, create_classifier
from packages.domain.classification.enrichment import MatchEnricher
from packages.domain.classification.job_store import ClassificationJobStore
from packages.domain.classification.reference_index import ReferenceIndex

VERSION = "0.1.0"


def configure_logging(log_level: str) -> None:
    """Configure structured logging"""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    classifier: Optional[Classifier] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Application settings (defaults to environment)
        classifier: External classifier (defaults to CLASSIFIER_PROVIDER)
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan context manager"""
        logger.info("starting_hscode_api",
                    environment=settings.environment,
                    version=VERSION,
                    classifier_provider=settings.classifier_provider)

        # Process-scoped services, torn down with the process
        index = ReferenceIndex(settings.reference_path)
        store = ClassificationJobStore(job_ttl=timedelta(minutes=settings.job_ttl_minutes))
        active_classifier = classifier or create_classifier(settings)
        dispatcher = ClassificationDispatcher(
            classifier=active_classifier,
            enricher=MatchEnricher(index),
            store=store,
            timeout_seconds=settings.classifier_timeout_seconds,
        )

        app.state.settings = settings
        app.state.reference_index = index
        app.state.job_store = store
        app.state.dispatcher = dispatcher

        # Warm the index; a missing file is reported, not fatal
        load_result = await asyncio.to_thread(index.ensure_loaded)
        logger.info("reference_index_ready",
                    loaded=load_result.loaded,
                    rows=load_result.row_count,
                    message=load_result.message)

        yield

        # Cleanup
        logger.info("shutting_down_hscode_api")
        await dispatcher.shutdown()
        await active_classifier.aclose()

    app = FastAPI(
        title="HS Code Classification API",
        description="HS code suggestions for declared goods, validated against the reference tariff table",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors with structured logging"""
        logger.warning("validation_error",
                       path=request.url.path,
                       errors=exc.errors())
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": jsonable_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors"""
        logger.error("unhandled_exception",
                     path=request.url.path,
                     error=str(exc),
                     exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "request_id": request.headers.get("x-request-id"),
            },
        )

    # Include routers
    app.include_router(classify.router, prefix="/api/v1/classify", tags=["Classification"])
    app.include_router(reference.router, prefix="/api/v1/reference", tags=["Reference"])

    # Health check endpoint
    @app.get("/health", tags=["System"])
    async def health_check(request: Request):
        """Health check endpoint for Docker and monitoring"""
        index_status = request.app.state.reference_index.status()
        return {
            "status": "healthy",
            "environment": settings.environment,
            "version": VERSION,
            "services": {
                "classifier": settings.classifier_provider,
                "reference": index_status.model_dump(mode="json", by_alias=True),
                "jobs_in_flight": request.app.state.dispatcher.pending,
            },
        }

    # Metrics endpoint (Prometheus)
    @app.get("/metrics", tags=["System"])
    async def metrics():
        """Prometheus metrics endpoint"""
        if not settings.metrics_enabled:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"detail": "Metrics disabled"}
            )

        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST,
        )

    # Root endpoint
    @app.get("/", tags=["System"])
    async def root():
        """API root endpoint"""
        return {
            "name": "HS Code Classification API",
            "version": VERSION,
            "environment": settings.environment,
            "docs": "/docs" if settings.environment != "production" else None,
        }

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the raw exception objects pydantic may attach"""
    return [
        {key: value for key, value in error.items() if key in ("type", "loc", "msg")}
        for error in exc.errors()
    ]


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "apps.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
