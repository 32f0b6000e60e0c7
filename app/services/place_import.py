"""
Import Orchestrator

Imports Google place data into a new place or into an existing one:

    authenticate -> entitlement -> resolve target -> duplicate check
    -> apply fields -> apply photos -> best-effort AI description

Every gate before the first write raises an ApplicationError. Steps after
the primary write (photos, description) log their failures and never fail
the import.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.enrichment.pipeline import DescriptionPipeline
from app.errors import (
    DuplicatePlace,
    ErrorCode,
    Forbidden,
    InvalidRequest,
    StoreWriteError,
    TargetNotFound,
)
from app.models.auth import Identity, Profile
from app.models.places import ImportRequest, PlaceRecord, SelectedFields
from app.services.city_resolver import CityResolver
from app.services.entitlement import EntitlementGuard, can_mutate
from app.services.identity import IdentityResolver
from app.services.place_store import DuplicateExternalIdError, StoreError

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "Untitled Place"


@dataclass
class ImportResult:
    place_id: str
    created: bool

    @property
    def updated(self) -> bool:
        return not self.created


class PlaceImportService:
    """Import workflow for one request. Collaborators are injected."""

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
        self.city_resolver = CityResolver(store)

    async def import_place(self, request: ImportRequest) -> ImportResult:
        google_place_id = (request.google_place_id or "").strip()
        if not google_place_id:
            raise InvalidRequest("Invalid request: google_place_id is required")
        if request.selected_fields is None:
            raise InvalidRequest("Invalid request: selectedFields is required")
        fields = request.selected_fields

        identity = await self.identity_resolver.resolve_caller(request.access_token)
        profile = await self.guard.require_entitlement(identity, "create places")

        if request.target_place_id:
            return await self._import_into_existing(
                identity, profile, request.target_place_id, google_place_id, fields
            )
        return await self._import_new(identity, google_place_id, fields)

    async def _import_into_existing(
        self,
        identity: Identity,
        profile: Optional[Profile],
        target_place_id: str,
        google_place_id: str,
        fields: SelectedFields,
    ) -> ImportResult:
        target = await self._load_target(target_place_id)
        if not can_mutate(identity, target, profile):
            raise Forbidden()

        await self._check_duplicate(google_place_id, exclude_place_id=target.id)

        updates: Dict[str, Any] = {"google_place_id": google_place_id}
        updates.update(self._selected_values(fields))
        updates.update(await self._city_values(fields, updates))

        try:
            found = await self.store.update_place(target.id, updates)
        except DuplicateExternalIdError:
            raise await self._duplicate_error(google_place_id, exclude_place_id=target.id)
        except StoreError as exc:
            logger.error(f"Error updating place {target.id} from import: {exc}")
            raise StoreWriteError(ErrorCode.UPDATE_ERROR, "Failed to update place", str(exc))
        if not found:
            raise TargetNotFound()

        await self._replace_photos(target.id, identity.id, fields.photo_urls(), replace=True)

        has_description = bool(fields.selected_description()) or bool(
            target.description and target.description.strip()
        )
        if not has_description:
            await self._enrich_description(target.id, google_place_id)

        logger.info(f"Import into existing place {target.id} completed")
        return ImportResult(place_id=target.id, created=False)

    async def _import_new(
        self,
        identity: Identity,
        google_place_id: str,
        fields: SelectedFields,
    ) -> ImportResult:
        await self._check_duplicate(google_place_id)

        # Hidden until the owner completes it in the editor
        values: Dict[str, Any] = {
            "created_by": identity.id,
            "google_place_id": google_place_id,
            "access_level": "public",
            "is_hidden": True,
            "status": "draft",
        }
        values.update(self._selected_values(fields))
        values.update(await self._city_values(fields, values))
        if not values.get("title"):
            values["title"] = PLACEHOLDER_TITLE

        logger.info(
            f"Inserting place: google_place_id={google_place_id}, "
            f"has_address={'address' in values}, has_coords={'lat' in values and 'lng' in values}"
        )

        try:
            place_id = await self.store.insert_place(values)
        except DuplicateExternalIdError:
            # Lost a race with a concurrent import of the same place
            raise await self._duplicate_error(google_place_id)
        except StoreError as exc:
            logger.error(f"Error inserting place: {exc}")
            raise StoreWriteError(ErrorCode.INSERT_ERROR, "Failed to create place", str(exc))

        await self._replace_photos(place_id, identity.id, fields.photo_urls(), replace=False)

        if not fields.selected_description():
            await self._enrich_description(place_id, google_place_id)

        logger.info(f"Import completed: place_id={place_id}")
        return ImportResult(place_id=place_id, created=True)

    async def _load_target(self, target_place_id: str) -> PlaceRecord:
        try:
            target = await self.store.get_place(target_place_id)
        except StoreError as exc:
            logger.error(f"Failed to load target place {target_place_id}: {exc}")
            target = None
        if target is None:
            raise TargetNotFound()
        return target

    async def _check_duplicate(self, google_place_id: str, exclude_place_id: Optional[str] = None) -> None:
        try:
            existing = await self.store.find_place_by_external_id(
                google_place_id, exclude_place_id=exclude_place_id
            )
        except StoreError as exc:
            logger.error(f"Error checking google_place_id duplicate: {exc}")
            raise StoreWriteError(
                ErrorCode.DUPLICATE_CHECK_ERROR, "Failed to check for duplicate place"
            )
        if existing:
            raise DuplicatePlace(existing.id, existing.title)

    async def _duplicate_error(self, google_place_id: str, exclude_place_id: Optional[str] = None) -> DuplicatePlace:
        """Turn a unique-constraint violation into DuplicatePlace."""
        try:
            existing = await self.store.find_place_by_external_id(
                google_place_id, exclude_place_id=exclude_place_id
            )
        except StoreError as exc:
            logger.error(f"Failed to load conflicting place for {google_place_id}: {exc}")
            existing = None
        if existing is None:
            return DuplicatePlace(None, None)
        return DuplicatePlace(existing.id, existing.title)

    @staticmethod
    def _selected_values(fields: SelectedFields) -> Dict[str, Any]:
        """Selected title/address/description plus coordinates and the maps link."""
        values: Dict[str, Any] = {}
        if fields.selected_title():
            values["title"] = fields.selected_title()
        if fields.selected_address():
            values["address"] = fields.selected_address()
        if fields.selected_description():
            values["description"] = fields.selected_description()
        if fields.lat is not None:
            values["lat"] = fields.lat
        if fields.lng is not None:
            values["lng"] = fields.lng
        if fields.google_maps_url:
            values["link"] = fields.google_maps_url
        return values

    async def _city_values(self, fields: SelectedFields, values: Dict[str, Any]) -> Dict[str, Any]:
        city_name = (fields.city or "").strip()
        if not city_name:
            return {}

        city = await self.city_resolver.resolve(
            city_name,
            state=fields.city_state,
            country=fields.city_country,
            lat=values.get("lat"),
            lng=values.get("lng"),
        )
        if city is None:
            logger.warning(f"City {city_name!r} not resolved, storing raw name")
            return {"city": city_name, "city_name_cached": city_name}
        return {"city": city.name, "city_name_cached": city.name, "city_id": city.id}

    async def _replace_photos(self, place_id: str, user_id: str, urls: List[str], replace: bool) -> None:
        if not urls:
            return

        if replace:
            try:
                await self.store.delete_photos(place_id)
            except StoreError as exc:
                logger.error(f"Failed to clear existing photos of {place_id}: {exc}")

        rows = [
            {
                "place_id": place_id,
                "user_id": user_id,
                "url": url,
                "sort": index,
                "is_cover": index == 0,
            }
            for index, url in enumerate(urls)
        ]
        try:
            await self.store.insert_photos(rows)
        except StoreError as exc:
            logger.error(f"Failed to insert imported photos for {place_id}: {exc}")
            return

        try:
            await self.store.update_place(place_id, {"cover_url": urls[0]})
        except StoreError as exc:
            logger.error(f"Failed to sync cover_url for {place_id}: {exc}")

    async def _enrich_description(self, place_id: str, google_place_id: str) -> None:
        """Best-effort: the import has already succeeded at this point."""
        if not self.pipeline.configured:
            logger.info("AI description skipped: OpenAI or Google key not configured")
            return

        try:
            description = await self.pipeline.describe(google_place_id)
            if not description:
                logger.warning(f"AI description for {place_id} was empty after cleanup")
                return
            await self.store.update_place(place_id, {"description": description})
        except Exception as exc:
            logger.warning(f"AI description generation failed (non-fatal): {exc!r}")
