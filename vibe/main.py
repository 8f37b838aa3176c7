"""
Vibe API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import get_settings
from .database import engine, Base
from .errors import DomainError
from .limiter import limiter
from .logging_config import db_logger, get_logger
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware
from .responses import api_exception_handler
from .routes import (
    auth_router,
    users_router,
    posts_router,
    comments_router,
    audio_router,
    notifications_router,
    health_router,
)
from .services.notifications import notification_hub

settings = get_settings()
logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - startup and shutdown"""
    # Create tables (in production, use Alembic migrations instead)
    Base.metadata.create_all(bind=engine)
    db_logger.info("Database tables ensured", url=engine.url.render_as_string(hide_password=True))
    logger.info("Vibe API started", environment=settings.environment)

    yield

    logger.info(
        "Vibe API stopping",
        online_users=notification_hub.online_count,
        open_streams=notification_hub.channel_count,
    )


app = FastAPI(
    title=settings.app_name,
    description="Backend API for the Vibe social media platform",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Domain and HTTP errors share one response envelope
app.add_exception_handler(DomainError, api_exception_handler)
app.add_exception_handler(HTTPException, api_exception_handler)
app.add_exception_handler(Exception, api_exception_handler)

# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

# Request logging middleware (only in debug mode)
if settings.debug:
    app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=3600,  # Cache preflight requests for 1 hour
)

# Routes
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(posts_router)
app.include_router(comments_router)
app.include_router(audio_router)
app.include_router(notifications_router)
app.include_router(health_router)

# Uploaded media, addressed by the references stored on posts, users and audio
Path(settings.media_root).mkdir(parents=True, exist_ok=True)
app.mount(settings.media_url_prefix, StaticFiles(directory=settings.media_root), name="media")


@app.get("/")
def root():
    """Root endpoint points at the API docs."""
    return {
        "message": settings.app_name,
        "docs": "/api/docs" if settings.debug else "Disabled in production",
    }
