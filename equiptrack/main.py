"""FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .config import settings
from .database import init_db
from .error_envelope import register_exception_handlers
from .middleware import SecurityHeadersMiddleware
from .rate_limit import api_rate_limit
from .routers import auth, equipments

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Production safety checks (fail closed on insecure config).
if settings.is_production and not settings.JWT_SECRET:
    raise RuntimeError("JWT_SECRET must be set in production.")
if settings.is_production and not settings.cors_origins:
    raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
if settings.is_production and any(origin == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")
if not settings.JWT_SECRET:
    logger.error("JWT_SECRET is not set: token issuance and verification will fail")


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    logger.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)
    yield


# Create app
app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Backend API for NFC equipment tracking",
    lifespan=lifespan,
)

register_exception_handlers(app)

# CORS
cors_methods = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
cors_headers = ["Authorization", "Content-Type"]
if not settings.is_production:
    cors_headers = ["*"]

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=cors_methods,
    allow_headers=cors_headers,
    expose_headers=["Content-Disposition", "Retry-After"],
)

# Include routers
app.include_router(auth.router, prefix="/api", dependencies=[Depends(api_rate_limit)])
app.include_router(equipments.router, prefix="/api", dependencies=[Depends(api_rate_limit)])


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": "1.0.0", "env": settings.ENV}


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "message": "NFC Equipment Tracker API",
        "version": "1.0.0",
        "docs": "/docs",
    }
