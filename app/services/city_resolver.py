"""Resolve free-text city names to rows of the cities table."""
import logging
from typing import Optional

from app.models.places import CityRecord
from app.services.place_store import StoreError

logger = logging.getLogger(__name__)


class CityResolver:
    """Get-or-create cities through the get_or_create_city procedure."""

    def __init__(self, store):
        self.store = store

    async def resolve(
        self,
        name: Optional[str],
        state: Optional[str] = None,
        country: Optional[str] = None,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
    ) -> Optional[CityRecord]:
        """
        Return the city for `name`, creating it if needed.

        State, country and coordinates only disambiguate; the procedure never
        creates two rows for the same effective key. Returns None when the
        name is blank or the procedure fails.
        """
        name = (name or "").strip()
        if not name:
            return None

        try:
            city_id = await self.store.get_or_create_city(
                name, state or None, country or None, lat, lng
            )
        except StoreError as exc:
            logger.error(f"Failed to resolve city via get_or_create_city: {exc}")
            return None

        if not city_id:
            logger.error(f"get_or_create_city returned no id for {name!r}")
            return None

        try:
            city = await self.store.get_city(city_id)
        except StoreError as exc:
            logger.warning(f"Failed to load city {city_id}, using input name: {exc}")
            city = None

        return city or CityRecord(id=city_id, name=name)
