"""Client for the Google Places API (New) and the Geocoding API."""
from typing import Any, Dict, List, Optional

import httpx

from app.config import Settings

SEARCH_FIELD_MASK = "places.id,places.displayName,places.formattedAddress,places.location"
DETAILS_FIELD_MASK = ",".join([
    "id",
    "displayName",
    "formattedAddress",
    "websiteUri",
    "nationalPhoneNumber",
    "rating",
    "userRatingCount",
    "regularOpeningHours",
    "types",
    "photos",
    "location",
    "addressComponents",
    "priceLevel",
])


def _circle(lat: float, lng: float, radius: float) -> Dict[str, Any]:
    return {"circle": {"center": {"latitude": lat, "longitude": lng}, "radius": radius}}


class GooglePlacesClient:
    """HTTP client wrapper for place lookups. Non-success statuses raise httpx.HTTPStatusError."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://places.googleapis.com/v1",
        geocode_url: str = "https://maps.googleapis.com/maps/api/geocode/json",
        legacy_photo_url: str = "https://maps.googleapis.com/maps/api/place/photo",
        timeout: float = 10.0,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.geocode_url = geocode_url
        self.legacy_photo_url = legacy_photo_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> Optional["GooglePlacesClient"]:
        """None when no Google key is configured."""
        if not settings.google_maps_api_key:
            return None
        return cls(
            http_client,
            settings.google_maps_api_key,
            base_url=settings.google_places_base_url,
            geocode_url=settings.google_geocode_url,
            legacy_photo_url=settings.google_legacy_photo_url,
            timeout=settings.google_places_timeout,
        )

    def _headers(self, field_mask: Optional[str] = None) -> Dict[str, str]:
        headers = {"X-Goog-Api-Key": self.api_key}
        if field_mask:
            headers["X-Goog-FieldMask"] = field_mask
        return headers

    async def get_place_details(self, place_id: str) -> Dict[str, Any]:
        """Full place record used for the import preview."""
        response = await self.http_client.get(
            f"{self.base_url}/places/{place_id}",
            headers=self._headers(DETAILS_FIELD_MASK),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def search_text(
        self,
        text_query: str,
        bias: Optional[tuple] = None,
        bias_radius: float = 100.0,
    ) -> List[Dict[str, Any]]:
        """
        Text Search, up to 5 candidates.

        Args:
            text_query: Place name, address or link text
            bias: Optional (lat, lng) to bias results towards
            bias_radius: Bias circle radius in meters
        """
        body: Dict[str, Any] = {"textQuery": text_query, "maxResultCount": 5}
        if bias:
            body["locationBias"] = _circle(bias[0], bias[1], bias_radius)

        response = await self.http_client.post(
            f"{self.base_url}/places:searchText",
            json=body,
            headers=self._headers(SEARCH_FIELD_MASK),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json().get("places") or []

    async def search_nearby(self, lat: float, lng: float, radius: float) -> List[Dict[str, Any]]:
        """Nearby Search restricted to a circle, up to 5 candidates of any type."""
        response = await self.http_client.post(
            f"{self.base_url}/places:searchNearby",
            json={"maxResultCount": 5, "locationRestriction": _circle(lat, lng, radius)},
            headers=self._headers(SEARCH_FIELD_MASK),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json().get("places") or []

    async def _geocode(self, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
        response = await self.http_client.get(
            self.geocode_url,
            params={**params, "key": self.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            return None
        return results[0]

    async def geocode(self, address: str) -> Optional[Dict[str, Any]]:
        """First Geocoding API result for an address, or None."""
        return await self._geocode({"address": address})

    async def reverse_geocode(self, lat: float, lng: float) -> Optional[Dict[str, Any]]:
        """First reverse-geocoding result for a coordinate, or None."""
        return await self._geocode({"latlng": f"{lat},{lng}"})

    async def fetch_photo(self, reference: str, max_width: int = 800) -> httpx.Response:
        """
        Download a place photo.

        `places/.../photos/...` names use the Places API (New) media
        endpoint; bare references use the legacy photo endpoint.
        """
        if reference.startswith("places/"):
            response = await self.http_client.get(
                f"{self.base_url}/{reference}/media",
                params={"maxWidthPx": max_width},
                headers=self._headers(),
                timeout=self.timeout,
                follow_redirects=True,
            )
        else:
            response = await self.http_client.get(
                self.legacy_photo_url,
                params={"maxwidth": max_width, "photo_reference": reference, "key": self.api_key},
                timeout=self.timeout,
                follow_redirects=True,
            )
        response.raise_for_status()
        return response
