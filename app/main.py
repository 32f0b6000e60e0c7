"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import create_engine_from_url, create_session_factory
from app.errors import ApplicationError, ErrorCode
from app.logging_config import setup_logging
from app.models.preview import CoordinateLookup, PlacePreview, PlaceSearchResult
from app.routers import cities, enrich
from app.services.identity import IdentityResolver
from app.services.rate_limiter import RateLimiter
from app.services.redis_client import ContextCache, ModelCache, create_redis_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create process-wide clients once and hand them to requests via app.state."""
    setup_logging(settings.log_level)

    engine = create_engine_from_url(settings.database_url)
    app.state.session_factory = create_session_factory(engine)
    app.state.http_client = httpx.AsyncClient(timeout=30.0)
    app.state.identity_resolver = IdentityResolver.from_settings(settings)

    redis_client = create_redis_client(settings) if settings.redis_enabled else None
    if redis_client is not None:
        app.state.context_cache = ContextCache(redis_client, settings.context_cache_ttl_seconds)
        app.state.preview_cache = ModelCache(
            redis_client, settings.preview_cache_ttl_seconds, "place_preview", PlacePreview
        )
        app.state.search_cache = ModelCache(
            redis_client, settings.preview_cache_ttl_seconds, "place_search", PlaceSearchResult
        )
        app.state.coordinate_cache = ModelCache(
            redis_client, settings.coordinate_cache_ttl_seconds, "place_coordinates", CoordinateLookup
        )
    else:
        app.state.context_cache = None
        app.state.preview_cache = None
        app.state.search_cache = None
        app.state.coordinate_cache = None
    app.state.rate_limiter = RateLimiter.from_settings(settings, redis_client)

    if not settings.service_role_key:
        logger.warning("SERVICE_ROLE_KEY not set. Profile reads may be blocked by row policies.")

    try:
        yield
    finally:
        await app.state.http_client.aclose()
        if redis_client is not None:
            await redis_client.aclose()
        await engine.dispose()


# Create FastAPI app
app = FastAPI(
    title="Maporia API",
    description="Backend API for Maporia - place import and AI descriptions",
    version="1.0.0",
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApplicationError)
async def application_error_handler(request: Request, exc: ApplicationError):
    """Render errors as {error, code, status} so clients can branch on `code`."""
    if exc.http_status >= 500:
        logger.error(f"{request.url.path} failed: {exc.code.value} {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    error = ApplicationError(
        ErrorCode.INVALID_REQUEST,
        "Invalid request",
        details={"details": [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()
        ]},
    )
    return JSONResponse(status_code=400, content=error.model_dump())


# Include routers
app.include_router(enrich.router, prefix="/api/v1")
app.include_router(cities.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Welcome to Maporia API",
        "version": "1.0.0",
        "docs": "/docs" if settings.environment == "development" else "disabled",
    }


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    cache = getattr(request.app.state, "context_cache", None)
    if cache is None:
        return {"status": "healthy", "redis": "disabled"}
    return {"status": "healthy", "redis": "connected" if await cache.ping() else "unavailable"}


@app.get("/debug/config")
async def debug_config():
    """Debug endpoint to check configuration (development only)."""
    if settings.environment != "development":
        return {"error": "Not available in production"}

    def mask_key(key: str) -> str:
        """Mask API key showing only first/last 4 chars."""
        if not key:
            return "NOT_SET"
        if len(key) < 12:
            return f"{key[:4]}...{key[-4:]}"
        return f"{key[:8]}...{key[-8:]}"

    return {
        "status": "ok",
        "openai_api_key": mask_key(settings.openai_api_key),
        "openai_model": settings.openai_model,
        "google_maps_api_key": mask_key(settings.google_maps_api_key),
        "service_role_configured": bool(settings.service_role_key),
        "jwt_secret_configured": bool(settings.auth_jwt_secret),
        "redis_enabled": settings.redis_enabled,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
