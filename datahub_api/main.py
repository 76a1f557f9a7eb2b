import logging
from datetime import datetime, timezone

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from datahub_api.api.v1.routes import router as api_v1_router
from datahub_api.core.cache import get_client
from datahub_api.core.config import settings
from datahub_api.core.errors import register_exception_handlers
from datahub_api.core.logging import configure_logging
from datahub_api.db.base import init_db
from datahub_api.db.dwh import get_dwh
from datahub_api.db.session import SessionLocal

# Configure logging
configure_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Runtime-defined datasets backed by dynamic tables, with file import and search",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

register_exception_handlers(app)


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    logger.info("Initializing database...")
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    max_age=3600,
)

# GZip middleware for large datatable pages
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "Datahub Backend API",
        "version": "1.0.0",
        "docs": "/docs",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
def health_check():
    """
    Health check endpoint with metadata database, warehouse and Redis status.
    """
    health_status = {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "unknown",
        "warehouse": "unknown",
        "redis": "not_configured"
    }

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
    finally:
        db.close()

    try:
        get_dwh().ping()
        health_status["warehouse"] = "connected"
    except Exception as e:
        logger.error(f"Warehouse health check failed: {e}")
        health_status["warehouse"] = "disconnected"
        health_status["status"] = "unhealthy"

    client = get_client()
    if client is not None:
        try:
            client.ping()
            health_status["redis"] = "connected"
        except Exception as e:
            logger.warning(f"Redis health check failed: {str(e)}")
            health_status["redis"] = "disconnected"

    status_code = status.HTTP_200_OK if health_status["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(
        content=health_status,
        status_code=status_code
    )
