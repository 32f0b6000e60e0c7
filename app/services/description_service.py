"""On-demand description generation for a place."""
import logging
from dataclasses import dataclass
from typing import Optional

from app.enrichment.errors import EnrichmentError, EnrichmentErrorKind, PlaceContextError
from app.enrichment.pipeline import DescriptionPipeline
from app.errors import (
    ApplicationError,
    ErrorCode,
    Forbidden,
    InvalidRequest,
    MissingConfiguration,
    PlaceNotFound,
    StoreWriteError,
    Unauthorized,
)
from app.models.places import GenerateDescriptionRequest
from app.services.entitlement import EntitlementGuard, can_mutate
from app.services.identity import IdentityResolver
from app.services.place_store import StoreError

logger = logging.getLogger(__name__)


@dataclass
class GeneratedDescription:
    place_id: Optional[str]
    google_place_id: str
    description: str
    saved: bool


def surface_enrichment_error(error: EnrichmentError) -> ApplicationError:
    """Translate a generation failure into client-facing guidance."""
    if error.kind == EnrichmentErrorKind.QUOTA_EXCEEDED:
        return ApplicationError(
            ErrorCode.AI_QUOTA_EXCEEDED,
            "OpenAI quota/billing is not available for this API key. "
            "Please check OpenAI Billing for the project that issued this key.",
            hint="OpenAI Platform → Billing/Usage: add payment method or top up credits, then retry.",
        )
    if error.kind == EnrichmentErrorKind.RATE_LIMITED:
        return ApplicationError(
            ErrorCode.AI_RATE_LIMITED,
            "OpenAI rate limit exceeded. Please wait a bit and try again.",
        )
    if error.kind == EnrichmentErrorKind.INVALID_CREDENTIAL:
        return ApplicationError(
            ErrorCode.AI_INVALID_KEY,
            "OpenAI API key is invalid. Please update OPENAI_API_KEY.",
        )
    return ApplicationError(
        ErrorCode.AI_UPSTREAM_ERROR,
        f"OpenAI error: {error.message}",
        details={"kind": error.kind.value},
    )


class DescriptionService:
    """Generate (and optionally save) a description for one place."""

    def __init__(
        self,
        store,
        identity_resolver: IdentityResolver,
        pipeline: DescriptionPipeline,
        service_role_configured: bool,
    ):
        self.store = store
        self.identity_resolver = identity_resolver
        self.pipeline = pipeline
        self.guard = EntitlementGuard(store, service_role_configured)

    async def generate_on_demand(self, request: GenerateDescriptionRequest) -> GeneratedDescription:
        place_id = request.place_id or None
        google_place_id = request.google_place_id or None

        if not place_id and not google_place_id:
            raise InvalidRequest("place_id or google_place_id is required")
        if not request.access_token:
            raise Unauthorized()
        if not self.pipeline.has_openai_key:
            raise MissingConfiguration(ErrorCode.MISSING_OPENAI_KEY, "OPENAI_API_KEY is not configured")
        if not self.pipeline.has_places_key:
            raise MissingConfiguration(ErrorCode.MISSING_GOOGLE_KEY, "GOOGLE_MAPS_API_KEY is not configured")

        identity = await self.identity_resolver.resolve_caller(request.access_token)
        profile = await self.guard.require_entitlement(identity, "generate descriptions")

        if place_id:
            try:
                place = await self.store.get_place(place_id)
            except StoreError as exc:
                logger.error(f"Failed to load place {place_id}: {exc}")
                place = None
            if place is None:
                raise PlaceNotFound()
            if not can_mutate(identity, place, profile):
                raise Forbidden()

            google_place_id = google_place_id or place.google_place_id
            if not google_place_id:
                raise InvalidRequest(
                    "google_place_id is missing for this place",
                    code=ErrorCode.MISSING_EXTERNAL_PLACE_ID,
                )

        should_save = request.save is not False
        if should_save and not place_id:
            raise InvalidRequest("place_id is required to save")

        try:
            description = await self.pipeline.describe(google_place_id)
        except EnrichmentError as exc:
            raise surface_enrichment_error(exc) from exc
        except PlaceContextError as exc:
            raise ApplicationError(
                ErrorCode.PLACES_LOOKUP_ERROR,
                f"Google Places error: {exc.message}",
                details={"kind": exc.kind.value},
            ) from exc

        if not description:
            raise ApplicationError(
                ErrorCode.AI_UPSTREAM_ERROR,
                "OpenAI returned no usable text",
                details={"kind": EnrichmentErrorKind.EMPTY_RESPONSE.value},
            )

        if should_save:
            try:
                await self.store.update_place(place_id, {"description": description})
            except StoreError as exc:
                logger.error(f"Failed to save description for {place_id}: {exc}")
                raise StoreWriteError(ErrorCode.DB_ERROR, "Failed to save description", str(exc))

        return GeneratedDescription(
            place_id=place_id,
            google_place_id=google_place_id,
            description=description,
            saved=should_save,
        )
