"""
FastAPI application for the patent portfolio tracker.

This module creates and configures the FastAPI application, registering
all routers and middleware.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

import redis
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from api.config import settings, ensure_temp_dir
from api.dependencies import engine, SessionLocal
from api.routers import import_router, patents, export
from api.schemas.common import ErrorResponse, HealthCheckResponse
from backend.database import describe_url
from backend.models import Base
from services.bootstrap_service import initialize_database
from services.patent_import_service import PatentImportService

# Configure logging
handlers = [logging.StreamHandler()]
if settings.LOG_FILE:
    handlers.append(logging.FileHandler(settings.LOG_FILE))

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT,
    handlers=handlers
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Creates missing tables, prepares the upload directory and optionally
    seeds an empty database from the bundled register.
    """
    logger.info(f"Starting {settings.API_TITLE} v{settings.API_VERSION}")
    logger.info(f"Database: {describe_url(settings.DATABASE_URL)}")
    logger.info(f"Redis: {describe_url(settings.REDIS_URL)}")

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables verified")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")

    ensure_temp_dir()
    logger.info(f"Temp upload directory: {settings.TEMP_UPLOAD_DIR}")

    if settings.AUTO_IMPORT_DEFAULT:
        with SessionLocal() as session:
            service = PatentImportService(
                db_session=session,
                default_workbook_path=settings.DEFAULT_WORKBOOK_PATH,
                portal_url=settings.IPINDIA_PORTAL_URL
            )
            initialize_database(session, service)

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS
)


# Exception handlers

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            detail={"message": str(exc)} if settings.DEBUG else None,
            path=str(request.url)
        ).model_dump(mode='json')
    )


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    """Handle 404 Not Found errors."""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(
            error=str(getattr(exc, 'detail', None) or "Resource not found"),
            detail={"path": request.url.path},
            path=str(request.url)
        ).model_dump(mode='json')
    )


app.include_router(import_router.router, prefix=settings.API_PREFIX)
app.include_router(patents.router, prefix=settings.API_PREFIX)
app.include_router(export.router, prefix=settings.API_PREFIX)


@app.get('/', include_in_schema=False)
async def root():
    return {
        'message': f'Welcome to {settings.API_TITLE}',
        'version': settings.API_VERSION,
        'docs': '/docs',
        'redoc': '/redoc',
        'openapi': '/openapi.json'
    }


@app.get('/health', response_model=HealthCheckResponse, tags=['health'])
async def health_check():
    """
    Health check endpoint.

    The database is required; Redis and Celery only back background
    imports, so losing them degrades rather than fails the service.

    **Example:**
    ```bash
    curl http://localhost:8000/health
    ```
    """
    health_status = {
        'status': 'healthy',
        'timestamp': datetime.utcnow(),
        'version': settings.API_VERSION,
        'database': 'unknown',
        'redis': 'unknown',
        'celery': 'unknown'
    }

    try:
        with SessionLocal() as session:
            session.execute(text('SELECT 1'))
        health_status['database'] = 'connected'
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status['database'] = 'disconnected'
        health_status['status'] = 'unhealthy'

    try:
        redis_client = redis.Redis.from_url(settings.REDIS_URL)
        redis_client.ping()
        health_status['redis'] = 'connected'
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        health_status['redis'] = 'disconnected'
        if health_status['status'] == 'healthy':
            health_status['status'] = 'degraded'

    try:
        from tasks.celery_app import celery_app

        active_workers = celery_app.control.inspect(timeout=1.0).active()

        if active_workers:
            health_status['celery'] = f'active ({len(active_workers)} workers)'
        else:
            health_status['celery'] = 'no workers'
            if health_status['status'] == 'healthy':
                health_status['status'] = 'degraded'
    except Exception as e:
        logger.error(f"Celery health check failed: {e}")
        health_status['celery'] = 'unknown'

    return HealthCheckResponse(**health_status)


@app.get('/api/ping', tags=['health'])
async def ping():
    """Simple ping endpoint for load balancers."""
    return {'ping': 'pong'}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.info(f"{request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"{request.method} {request.url.path} - {response.status_code}")
    return response


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'api.main:app',
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
