"""Data access for places, photos, cities and profiles."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.auth import Profile
from app.models.places import CityRecord, PlaceRecord
from app.models.tables import City, Place, PlacePhoto
from app.models.tables import Profile as ProfileRow

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
UNDEFINED_COLUMN = "42703"

# Columns that may be missing in older deployments of the places table
OPTIONAL_PLACE_COLUMNS = ("status",)


class StoreError(Exception):
    """A database read or write failed."""


class DuplicateExternalIdError(StoreError):
    """The google_place_id unique constraint rejected a write."""


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


class PlaceRepository:
    """Thin query layer over one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        try:
            result = await self.session.execute(
                select(ProfileRow).where(ProfileRow.id == user_id)
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to load profile: {exc}") from exc
        return Profile.model_validate(row) if row else None

    async def get_place(self, place_id: str) -> Optional[PlaceRecord]:
        try:
            result = await self.session.execute(select(Place).where(Place.id == place_id))
            row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to load place {place_id}: {exc}") from exc
        return PlaceRecord.model_validate(row) if row else None

    async def find_place_by_external_id(
        self,
        google_place_id: str,
        exclude_place_id: Optional[str] = None,
    ) -> Optional[PlaceRecord]:
        """Return the place referencing `google_place_id`, ignoring `exclude_place_id`."""
        query = select(Place).where(Place.google_place_id == google_place_id)
        if exclude_place_id:
            query = query.where(Place.id != exclude_place_id)
        try:
            result = await self.session.execute(query.limit(1))
            row = result.scalars().first()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to check google_place_id {google_place_id}: {exc}") from exc
        return PlaceRecord.model_validate(row) if row else None

    async def insert_place(self, values: Dict[str, Any]) -> str:
        """
        Insert a place and return its id.

        If the table lacks one of the optional columns the insert is retried
        once without them.

        Raises:
            DuplicateExternalIdError: google_place_id already used
            StoreError: any other failure
        """
        try:
            return await self._insert_place(values)
        except DBAPIError as exc:
            await self.session.rollback()
            present = [column for column in OPTIONAL_PLACE_COLUMNS if column in values]
            if _sqlstate(exc) != UNDEFINED_COLUMN or not present:
                raise self._map_write_error(exc) from exc
            logger.warning(f"places is missing {present}, retrying insert without them")
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(str(exc)) from exc

        retry_values = {k: v for k, v in values.items() if k not in OPTIONAL_PLACE_COLUMNS}
        try:
            return await self._insert_place(retry_values)
        except DBAPIError as exc:
            await self.session.rollback()
            raise self._map_write_error(exc) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(str(exc)) from exc

    async def _insert_place(self, values: Dict[str, Any]) -> str:
        result = await self.session.execute(
            insert(Place.__table__).values(**values).returning(Place.__table__.c.id)
        )
        place_id = result.scalar_one()
        await self.session.commit()
        return place_id

    async def update_place(self, place_id: str, values: Dict[str, Any]) -> bool:
        """Apply `values` to one place. Returns False when no row matched."""
        try:
            result = await self.session.execute(
                update(Place.__table__)
                .where(Place.__table__.c.id == place_id)
                .values(**values)
            )
            await self.session.commit()
        except DBAPIError as exc:
            await self.session.rollback()
            raise self._map_write_error(exc) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(str(exc)) from exc
        return result.rowcount > 0

    async def delete_photos(self, place_id: str) -> None:
        try:
            await self.session.execute(delete(PlacePhoto).where(PlacePhoto.place_id == place_id))
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(f"Failed to delete photos of {place_id}: {exc}") from exc

    async def insert_photos(self, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            return
        try:
            await self.session.execute(insert(PlacePhoto.__table__), rows)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(f"Failed to insert photos: {exc}") from exc

    async def get_or_create_city(
        self,
        name: str,
        state: Optional[str] = None,
        country: Optional[str] = None,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
    ) -> Optional[str]:
        """Call the get_or_create_city stored procedure and return the city id."""
        try:
            result = await self.session.execute(
                select(func.get_or_create_city(name, state, country, lat, lng))
            )
            city_id = result.scalar()
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(f"get_or_create_city failed: {exc}") from exc
        return str(city_id) if city_id else None

    async def get_city(self, city_id: str) -> Optional[CityRecord]:
        try:
            result = await self.session.execute(select(City).where(City.id == city_id))
            row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to load city {city_id}: {exc}") from exc
        return CityRecord.model_validate(row) if row else None

    @staticmethod
    def _map_write_error(exc: DBAPIError) -> StoreError:
        if isinstance(exc, IntegrityError) and _sqlstate(exc) == UNIQUE_VIOLATION:
            return DuplicateExternalIdError(str(exc.orig))
        return StoreError(str(getattr(exc, "orig", exc)))
