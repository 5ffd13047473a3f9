from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from feedlens.config import settings
from feedlens.routers import feedback, health
from feedlens.core.database import init_db, close_db, get_engine
from feedlens.core.structured_logging import APP_VERSION, setup_logging
from feedlens.core.errors import FeedLensError
from feedlens.core.errors.registry import error_registry
from feedlens.core.errors.middleware import (
    database_error_handler,
    feedlens_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_error_handler,
)
from feedlens.core.log_middleware import CorrelationMiddleware
from feedlens.services.feedback_store import FeedbackStore
from feedlens.services.llm_service import LLMService

# Initialize structured logging before any logger calls
setup_logging(settings.log_directory, log_level=settings.log_level)

logger = logging.getLogger(__name__)

# API metadata
API_TITLE = "FeedLens API"
API_VERSION = APP_VERSION

API_DESCRIPTION = """
## FeedLens - Feedback Classification & Analytics

Ingest free-text customer feedback, classify each item with an LLM
(sentiment, 0-10 score, themes), and query the accumulated collection.

### Quick Start
1. `POST /api/ingest` with `{"feedback": [{"source", "content", "timestamp"}]}`
2. `GET /api/dashboard` for the aggregate snapshot
3. `POST /api/ask` or `GET /api/summary` for model-written insights
"""

TAGS_METADATA = [
    {"name": "health", "description": "Liveness and component checks."},
    {"name": "feedback", "description": "Ingestion, analytics and insights."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting FeedLens API v%s...", API_VERSION)
    settings.log_config_summary()

    error_registry.load()

    init_db()  # Run Alembic migrations (or create_all)
    logger.info("Database initialized")

    app.state.feedback_store = FeedbackStore(get_engine())
    app.state.llm_service = LLMService()

    yield

    # Shutdown
    logger.info("Shutting down FeedLens API...")
    close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        openapi_tags=TAGS_METADATA,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (request_id + correlation_id in every log)
    app.add_middleware(CorrelationMiddleware)

    # Structured error responses
    app.add_exception_handler(FeedLensError, feedlens_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(feedback.router, prefix="/api", tags=["feedback"])

    # Root endpoint
    @app.get("/", tags=["health"], summary="API Root", description="Returns basic API information and links to documentation.")
    async def root():
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "status": "running",
            "docs": {
                "swagger": "/docs",
                "redoc": "/redoc",
                "openapi": "/openapi.json",
            },
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("feedlens.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
