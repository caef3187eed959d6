"""FastAPI Application Entry Point.

Document sharing service built with FastAPI, featuring:
- File upload into object storage (Google Cloud Storage or Supabase Storage)
- Access-checked document downloads through signed or presigned URLs
- Team management
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import settings
from app.core.logging import configure_logging, setup_request_logging, get_logger
from app.core.exceptions import setup_exception_handlers
from app.core.db_client import db
from app.core.middleware import setup_all_middleware
from app.core.ratelimit import close_rate_limiter, get_rate_limiter
from app.core.storage_client import get_storage_backend

# Configure logging first
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info(
        "Starting application",
        project_name=settings.PROJECT_NAME,
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
    )

    startup_tasks = []

    # Initialize database connection
    try:
        await db.get_engine_async()

        # Create tables in development mode
        if settings.is_development:
            await db.create_tables()
            startup_tasks.append("Database tables created/verified")

        if await db.test_connection():
            startup_tasks.append("Database connected")
        else:
            logger.warning("Database connection test failed")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        if settings.is_production:
            raise

    # Storage backend (falls back to a disabled backend without credentials)
    storage = get_storage_backend()
    startup_tasks.append(
        f"Storage backend: {storage.name}"
        + ("" if storage.is_available else " (disabled)")
    )

    limiter = get_rate_limiter()
    startup_tasks.append(f"Rate limiter: {type(limiter).__name__}")

    logger.info("Application startup completed", tasks=startup_tasks)

    yield

    # Shutdown
    logger.info("Shutting down application")

    shutdown_tasks = []

    try:
        await close_rate_limiter()
        shutdown_tasks.append("Rate limiter closed")
    except Exception as e:
        logger.error("Error closing rate limiter", error=str(e))

    # Close database connections
    try:
        await db.close()
        shutdown_tasks.append("Database connections closed")
    except Exception as e:
        logger.error("Error closing database", error=str(e))

    logger.info("Application shutdown completed", tasks=shutdown_tasks)


# API Description
API_DESCRIPTION = """# Document Share API

## Overview
Upload documents into object storage and share them with team members or
through share links.

## Authentication
Sessions are issued by the authentication provider. Send the session token
either as `Authorization: Bearer <session_token>` or in the `session_token`
cookie.

## Key Endpoints
- `POST /api/files/upload?teamId=` - Upload a file (max 100MB)
- `GET /api/documents/{documentId}/download?linkId=` - Download a document
- `GET|POST /api/teams` - List or create teams
- `GET /health` - Service health
"""

# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=API_DESCRIPTION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json" if settings.DEBUG else None,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Setup middleware (size limit, timing, trusted hosts, CORS)
setup_all_middleware(app)

# Setup exception handlers
setup_exception_handlers(app)

# Setup request logging
setup_request_logging(app)


# Include health router (root level endpoints)
from app.api.health import router as health_router

app.include_router(health_router, tags=["Health"])

# Include API routers
from app.api.v1.documents_main import router as documents_router
from app.api.v1.files import router as files_router
from app.api.v1.teams import router as teams_router

app.include_router(
    documents_router, prefix=f"{settings.API_PREFIX}/documents", tags=["Documents"]
)
app.include_router(files_router, prefix=settings.API_PREFIX, tags=["Files"])
app.include_router(teams_router, prefix=settings.API_PREFIX, tags=["Teams"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True,
    )
