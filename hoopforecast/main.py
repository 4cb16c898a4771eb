"""
Main FastAPI application for the HoopForecast API.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from prometheus_fastapi_instrumentator import Instrumentator

from hoopforecast.core.config import settings
from hoopforecast.core.logging import configure_logging, get_logger
from hoopforecast.core.middleware import CorrelationIdMiddleware
from hoopforecast.core.rate_limit import limiter
from hoopforecast.api.routes import injuries, odds
from hoopforecast.services.injuries.service import close_injury_service
from hoopforecast.services.odds.errors import ProviderError
from hoopforecast.services.odds.service import close_odds_service

# Load environment variables from .env file
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Configure structured logging (JSON in deployed environments)
configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    configured = [name for name, ok in settings.configured_providers().items() if ok]
    logger.info(f"Configured providers: {', '.join(configured) or 'none'}")

    yield

    # Shutdown: release provider HTTP clients
    await close_odds_service()
    await close_injury_service()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Basketball player prop lines across odds providers, with injury-aware adjustments",
    lifespan=lifespan
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add correlation ID middleware (must be added before CORS for proper header handling)
app.add_middleware(CorrelationIdMiddleware)

# Initialize Prometheus metrics BEFORE including routes
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API v1
app.include_router(odds.router, prefix="/api/v1")
app.include_router(injuries.router, prefix="/api/v1")


@app.get("/")
@limiter.limit("60/minute")
async def root(request: Request):
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "api_version": "v1",
            "odds": {
                "player_line": "/api/v1/odds/player-line",
                "quota": "/api/v1/odds/quota",
                "trending": "/api/v1/odds/trending"
            },
            "injuries": {
                "team": "/api/v1/injuries/team/{team}",
                "matchup": "/api/v1/injuries/matchup",
                "adjustment": "/api/v1/injuries/adjustment"
            },
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics"
        }
    }


@app.get("/health")
@limiter.limit("120/minute")  # Higher limit for health checks
async def health_check(request: Request):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


@app.get("/api/health")
@limiter.limit("60/minute")
async def api_health(request: Request):
    """
    Detailed health check: which upstream providers have credentials.

    Status is "degraded" when no odds provider is configured.
    """
    providers = settings.configured_providers()
    odds_ready = any(providers[name] for name in settings.provider_order if name in providers)

    return {
        "status": "healthy" if odds_ready else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "components": {
            "providers": {
                name: "configured" if ok else "missing_api_key"
                for name, ok in providers.items()
            },
            "provider_order": list(settings.provider_order),
        }
    }


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    """Upstream provider failures are transient service errors, not 500s."""
    logger.warning(f"Provider error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={
            "error": "Upstream provider error",
            "provider": exc.provider,
            "status_code": exc.status_code,
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hoopforecast.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
