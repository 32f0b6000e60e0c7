"""Enrichment routes: preview, search and import Google places, and generate descriptions."""
import logging
import re
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from app.dependencies import (
    get_bearer_token,
    get_description_service,
    get_google_places_client,
    get_place_import_service,
    get_place_preview_service,
)
from app.errors import ApplicationError, ErrorCode, InvalidRequest, MissingConfiguration
from app.models.places import (
    GenerateDescriptionRequest,
    GenerateDescriptionResponse,
    ImportRequest,
    ImportResponse,
)
from app.models.preview import PlacePreview, PlacePreviewRequest, PlaceSearchResult
from app.services.description_service import DescriptionService
from app.services.google_places import GooglePlacesClient
from app.services.place_import import PlaceImportService
from app.services.place_preview import PlacePreviewService

router = APIRouter(prefix="/enrich", tags=["enrichment"])
logger = logging.getLogger(__name__)

PHOTO_REFERENCE = re.compile(r"places/[A-Za-z0-9_-]+/photos/[A-Za-z0-9_-]+|[A-Za-z0-9_-]+")


@router.post("/import", response_model=ImportResponse)
async def import_place(
    payload: ImportRequest,
    bearer_token: Optional[str] = Depends(get_bearer_token),
    service: PlaceImportService = Depends(get_place_import_service),
):
    """
    Import Google place data into a new place, or into `target_place_id`.

    Only the selected title/address/description are copied. Coordinates,
    the maps link and the city are always applied. When no description was
    imported an AI description is generated best-effort.
    """
    if not payload.access_token:
        payload.access_token = bearer_token

    result = await service.import_place(payload)
    return ImportResponse(
        place_id=result.place_id,
        created=result.created,
        updated=result.updated,
    )


@router.post("/generate-description", response_model=GenerateDescriptionResponse)
async def generate_description(
    payload: GenerateDescriptionRequest,
    bearer_token: Optional[str] = Depends(get_bearer_token),
    service: DescriptionService = Depends(get_description_service),
):
    """
    Generate a description for a place and save it unless `save` is false.

    Requires premium access, and ownership (or admin) when `place_id` is given.
    """
    if not payload.access_token:
        payload.access_token = bearer_token

    result = await service.generate_on_demand(payload)
    return GenerateDescriptionResponse(
        place_id=result.place_id,
        google_place_id=result.google_place_id,
        description=result.description,
        saved=result.saved,
    )


@router.post("/preview", response_model=PlacePreview)
async def preview_place(
    payload: PlacePreviewRequest,
    bearer_token: Optional[str] = Depends(get_bearer_token),
    service: PlacePreviewService = Depends(get_place_preview_service),
):
    """
    Look up a Google place for the import form.

    `query` (or `google_url`) may be a Google Maps link, `place_id:<id>`, a
    place name or an address. Returns a coordinate-only preview when a
    location is known but no Google place matches it. Limited to 10
    requests per minute per user.
    """
    if not payload.access_token:
        payload.access_token = bearer_token

    return await service.preview(payload)


@router.post("/search", response_model=PlaceSearchResult)
async def search_place(
    payload: PlacePreviewRequest,
    bearer_token: Optional[str] = Depends(get_bearer_token),
    service: PlacePreviewService = Depends(get_place_preview_service),
):
    """Find a single place card (title, address, type summary, photos) for a query."""
    if not payload.access_token:
        payload.access_token = bearer_token

    return await service.search(payload)


@router.get("/photo", name="place_photo")
async def place_photo(
    reference: str = Query(..., description="Photo name or legacy photo reference"),
    maxwidth: int = Query(800, ge=1, le=4800, description="Maximum width in pixels"),
    client: Optional[GooglePlacesClient] = Depends(get_google_places_client),
):
    """
    Proxy a Google place photo so the API key stays on the server.

    Returns the image bytes with a one-day cache header.
    """
    if client is None:
        raise MissingConfiguration(ErrorCode.MISSING_GOOGLE_KEY, "Google Maps API key is not configured")
    if not PHOTO_REFERENCE.fullmatch(reference):
        raise InvalidRequest("Invalid photo reference")

    try:
        response = await client.fetch_photo(reference, maxwidth)
    except httpx.HTTPError as e:
        logger.error(f"Google photo request failed: {e}")
        raise ApplicationError(ErrorCode.PLACES_LOOKUP_ERROR, "Failed to fetch photo")

    return Response(
        content=response.content,
        media_type=response.headers.get("content-type", "image/jpeg"),
        headers={"Cache-Control": "public, max-age=86400"},
    )
