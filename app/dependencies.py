"""Dependencies for FastAPI routes."""
from typing import Optional

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import get_db
from app.enrichment.pipeline import DescriptionPipeline
from app.services.description_service import DescriptionService
from app.services.google_places import GooglePlacesClient
from app.services.identity import IdentityResolver
from app.services.place_import import PlaceImportService
from app.services.place_preview import PlacePreviewService
from app.services.place_store import PlaceRepository
from app.services.rate_limiter import RateLimiter

# Bearer header is optional: the credential may also travel in the JSON body
optional_bearer = HTTPBearer(auto_error=False)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Process-wide HTTP client created in the app lifespan."""
    return request.app.state.http_client


def get_place_store(db: AsyncSession = Depends(get_db)) -> PlaceRepository:
    return PlaceRepository(db)


def get_identity_resolver(request: Request) -> IdentityResolver:
    """Process-wide resolver created in the app lifespan."""
    return request.app.state.identity_resolver


def get_description_pipeline(
    request: Request,
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> DescriptionPipeline:
    cache = getattr(request.app.state, "context_cache", None)
    return DescriptionPipeline.from_settings(settings, http_client, cache)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer),
) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_place_import_service(
    settings: Settings = Depends(get_settings),
    store: PlaceRepository = Depends(get_place_store),
    identity_resolver: IdentityResolver = Depends(get_identity_resolver),
    pipeline: DescriptionPipeline = Depends(get_description_pipeline),
) -> PlaceImportService:
    return PlaceImportService(
        store,
        identity_resolver,
        pipeline,
        service_role_configured=bool(settings.service_role_key),
    )


def get_description_service(
    settings: Settings = Depends(get_settings),
    store: PlaceRepository = Depends(get_place_store),
    identity_resolver: IdentityResolver = Depends(get_identity_resolver),
    pipeline: DescriptionPipeline = Depends(get_description_pipeline),
) -> DescriptionService:
    return DescriptionService(
        store,
        identity_resolver,
        pipeline,
        service_role_configured=bool(settings.service_role_key),
    )


def get_google_places_client(
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> Optional[GooglePlacesClient]:
    return GooglePlacesClient.from_settings(settings, http_client)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_place_preview_service(
    request: Request,
    client: Optional[GooglePlacesClient] = Depends(get_google_places_client),
    identity_resolver: IdentityResolver = Depends(get_identity_resolver),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
) -> PlacePreviewService:
    state = request.app.state
    photo_route = request.url_for("place_photo")
    return PlacePreviewService(
        client,
        identity_resolver,
        rate_limiter,
        preview_cache=getattr(state, "preview_cache", None),
        search_cache=getattr(state, "search_cache", None),
        coordinate_cache=getattr(state, "coordinate_cache", None),
        photo_url=lambda name: str(photo_route.include_query_params(reference=name, maxwidth=800)),
    )
