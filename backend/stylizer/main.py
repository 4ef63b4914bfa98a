"""
FastAPI application entry point.
Sets up the API with lifespan events for database and Firebase initialization.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from stylizer.config import settings
from stylizer.database import init_db
from stylizer.api.router import api_router
from stylizer.auth.firebase import initialize_firebase
from stylizer.errors import AuthError, StylizerError
from stylizer.middleware.metrics_middleware import MetricsMiddleware
from stylizer.utils.logging import configure_logging

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: Initialize database and Firebase Admin SDK
    """
    configure_logging('stylizer-api', settings.log_level)

    await init_db()

    # Skip if Firebase config not provided (for local dev without Firebase)
    if settings.firebase_project_id:
        try:
            initialize_firebase()
        except Exception as e:
            if settings.environment == "production":
                raise
            logger.warning(f"Firebase initialization failed: {e}")
    else:
        logger.warning("FIREBASE_PROJECT_ID not set, every authenticated route will reject tokens")

    logger.info(
        f"Usage tracking active ({settings.max_transformations} transformations per user)",
        extra={"event": "startup"},
    )
    yield


app = FastAPI(
    title="Portrait Stylizer API",
    description="Turns uploaded portraits into stylized images, with a per-user quota",
    version=VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Usage-Stats"],
)

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)


@app.exception_handler(StylizerError)
async def stylizer_error_handler(request: Request, exc: StylizerError):
    """Turn domain errors into {success, message, code} responses."""
    headers = {"WWW-Authenticate": "Bearer"} if type(exc) is AuthError else None
    if exc.status_code >= 500:
        logger.error(
            f"{exc.code}: {exc.message}",
            extra={"event": "request_failed", "code": exc.code, "path": request.url.path},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error on {request.url.path}: {exc}",
        extra={"event": "unhandled_error", "path": request.url.path},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error", "code": "INTERNAL_ERROR"},
    )


app.include_router(api_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Portrait Stylizer API",
        "version": VERSION,
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
