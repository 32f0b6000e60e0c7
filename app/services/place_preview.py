"""
Place Preview Service
Turns a Google Maps link, a place id, a name or an address into the data the
import form is prefilled with.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from app.errors import (
    ApplicationError,
    ErrorCode,
    InvalidRequest,
    MissingConfiguration,
    PlaceNotFound,
    RateLimited,
)
from app.models.auth import Identity
from app.models.preview import (
    CoordinateLookup,
    OpeningHours,
    PlacePreview,
    PlacePreviewRequest,
    PlaceSearchResult,
    PreviewPhoto,
    SearchPhoto,
)
from app.services.google_places import GooglePlacesClient
from app.services.identity import IdentityResolver
from app.services.rate_limiter import RateLimiter
from app.services.redis_client import ModelCache
from app.utils.maps_urls import (
    PLACE_ID_PREFIX,
    extract_coordinates,
    extract_place_id,
    is_url,
    looks_like_address,
    strip_place_prefix,
    text_query_variations,
)
from app.utils.normalizers import coerce_float, coerce_int, display_text

logger = logging.getLogger(__name__)

NEARBY_RADII = (20.0, 50.0, 100.0, 200.0)
TEXT_BIAS_RADIUS = 100.0
METERS_PER_DEGREE = 111000
MAX_SEARCH_PHOTOS = 6
MAX_SEARCH_TYPES = 3

CITY_TYPES = ("locality", "postal_town", "sublocality", "sublocality_level_1")
STATE_TYPES = ("administrative_area_level_1", "administrative_area_level_2")


def _coordinates_in_payload(location: Any, lat_key: str, lng_key: str) -> Tuple[Optional[float], Optional[float]]:
    if not isinstance(location, dict):
        return None, None
    return coerce_float(location.get(lat_key)), coerce_float(location.get(lng_key))


def _address_parts(components: Any, long_key: str, short_key: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """(city, state, country) from address components; first match of each wins."""
    city = state = country = None
    for component in components if isinstance(components, list) else []:
        if not isinstance(component, dict):
            continue
        types = component.get("types") or []
        long_text = component.get(long_key) or component.get(short_key)
        short_text = component.get(short_key) or component.get(long_key)
        if city is None and any(t in types for t in CITY_TYPES):
            city = long_text
        if state is None and any(t in types for t in STATE_TYPES):
            state = short_text
        if country is None and "country" in types:
            country = long_text
    return city, state, country


def _string_list(values: Any) -> List[str]:
    return [v for v in values if isinstance(v, str)] if isinstance(values, list) else []


def _maps_url_for(place_id: Optional[str], query: str, query_is_url: bool) -> Optional[str]:
    if query_is_url:
        return query
    return f"https://www.google.com/maps/place/?q=place_id:{place_id}" if place_id else None


def normalize_place_details(data: Dict[str, Any], query: str, query_is_url: bool = False) -> PlacePreview:
    """Map a Places API (New) details payload onto PlacePreview."""
    name = display_text(data.get("displayName"))
    address = display_text(data.get("formattedAddress"))
    lat, lng = _coordinates_in_payload(data.get("location"), "latitude", "longitude")
    city, state, country = _address_parts(data.get("addressComponents"), "longText", "shortText")
    types = _string_list(data.get("types"))
    ratings_total = coerce_int(data.get("userRatingCount"))
    place_id = data.get("id")

    hours = data.get("regularOpeningHours")
    opening_hours = None
    if isinstance(hours, dict):
        opening_hours = OpeningHours(
            weekday_text=_string_list(hours.get("weekdayDescriptions")),
            periods=hours.get("periods") if isinstance(hours.get("periods"), list) else [],
        )

    references = []
    for photo in data.get("photos") or []:
        reference = photo.get("name") if isinstance(photo, dict) else photo
        if isinstance(reference, str) and reference:
            references.append(reference)

    return PlacePreview(
        name=name,
        business_name=name,
        formatted_address=address,
        address=address,
        website=data.get("websiteUri") or None,
        phone=data.get("nationalPhoneNumber") or None,
        rating=coerce_float(data.get("rating")),
        reviews_count=ratings_total,
        user_ratings_total=ratings_total,
        opening_hours=opening_hours,
        price_level=data.get("priceLevel") or None,
        category=types[0] if types else None,
        types=types,
        categories=types,
        place_id=place_id,
        google_place_id=place_id,
        google_maps_url=_maps_url_for(place_id, query, query_is_url),
        lat=lat,
        lng=lng,
        latitude=lat,
        longitude=lng,
        city=city,
        city_state=state,
        city_country=country,
        photos=[PreviewPhoto(reference=reference) for reference in references],
        photo_urls=references,
        is_coordinate_only=False,
    )


def normalize_geocode_result(result: Dict[str, Any], query: str) -> PlacePreview:
    """A coordinate-only preview from a Geocoding API result."""
    lat, lng = _coordinates_in_payload((result.get("geometry") or {}).get("location"), "lat", "lng")
    address = result.get("formatted_address") or None
    city, state, country = _address_parts(result.get("address_components"), "long_name", "short_name")
    types = _string_list(result.get("types"))
    name = address.split(",")[0].strip() if address else query

    return PlacePreview(
        name=name,
        business_name=name,
        formatted_address=address,
        address=address,
        types=types,
        categories=types,
        google_maps_url=f"https://www.google.com/maps/place/?q={lat},{lng}" if lat is not None and lng is not None else None,
        lat=lat,
        lng=lng,
        latitude=lat,
        longitude=lng,
        city=city,
        city_state=state,
        city_country=country,
        is_coordinate_only=True,
    )


def coordinate_only_preview(lat: float, lng: float, query: str) -> PlacePreview:
    return normalize_geocode_result(
        {"formatted_address": f"{lat}, {lng}", "geometry": {"location": {"lat": lat, "lng": lng}}},
        query,
    )


def to_search_result(
    data: Dict[str, Any],
    query: str,
    query_is_url: bool,
    photo_url: Callable[[str], str],
) -> PlaceSearchResult:
    """Compact search card; `photo_url` turns a photo name into a fetchable url."""
    types = _string_list(data.get("types"))
    description = ", ".join(t.replace("_", " ") for t in types[:MAX_SEARCH_TYPES]) or None
    lat, lng = _coordinates_in_payload(data.get("location"), "latitude", "longitude")

    photos = []
    for photo in (data.get("photos") or [])[:MAX_SEARCH_PHOTOS]:
        name = photo.get("name") if isinstance(photo, dict) else photo
        if not isinstance(name, str) or not name:
            continue
        reference = name.split("/photos/", 1)[1] if "/photos/" in name else name
        photos.append(SearchPhoto(id=f"photo_{len(photos)}", url=photo_url(name), reference=reference))

    return PlaceSearchResult(
        title=display_text(data.get("displayName")),
        address=display_text(data.get("formattedAddress")),
        description=description,
        photos=photos,
        lat=lat,
        lng=lng,
        google_place_id=data.get("id"),
        google_maps_url=_maps_url_for(data.get("id"), query, query_is_url),
    )


def _closest_place_id(places: List[Dict[str, Any]], lat: float, lng: float) -> Optional[str]:
    best, best_distance = places[0], math.inf
    for place in places:
        place_lat, place_lng = _coordinates_in_payload(place.get("location"), "latitude", "longitude")
        if place_lat is None or place_lng is None:
            continue
        distance = math.hypot(place_lat - lat, place_lng - lng) * METERS_PER_DEGREE
        if distance < best_distance:
            best, best_distance = place, distance
    place_id = best.get("id")
    return strip_place_prefix(place_id) if isinstance(place_id, str) and place_id else None


class PlaceResolver:
    """
    Finds a Google place id for a query using progressively looser lookups.

    Lookup failures are logged and treated as "not found" so the next
    strategy gets a chance. Only the final details call surfaces errors.
    """

    def __init__(self, client: GooglePlacesClient, coordinate_cache: Optional[ModelCache] = None):
        self.client = client
        self.coordinate_cache = coordinate_cache

    async def find_from_text(self, query: str, skip_nearby: bool = False, geocode_fallback: bool = True) -> Optional[str]:
        """
        Text Search over the query variations.

        With coordinates in a link the search is biased towards them and
        falls back to Nearby Search. Plain addresses fall back to geocoding.
        """
        query = query.strip()
        query_is_url = is_url(query)
        coordinates = extract_coordinates(query) if query_is_url else None

        for variation in text_query_variations(query):
            try:
                places = await self.client.search_text(variation, bias=coordinates, bias_radius=TEXT_BIAS_RADIUS)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning(f"Text search failed for {variation[:100]!r}: {exc}")
                continue
            for place in places:
                if isinstance(place.get("id"), str) and place["id"]:
                    return strip_place_prefix(place["id"])

        if skip_nearby:
            return None
        if coordinates:
            return await self.find_by_coordinates(*coordinates)
        if geocode_fallback and not query_is_url and looks_like_address(query, allow_comma=False):
            return await self.find_by_geocoding(query)
        return None

    async def find_by_coordinates(self, lat: float, lng: float) -> Optional[str]:
        """
        Closest place around a coordinate, widening the radius step by step.

        Falls back to reverse geocoding plus Text Search. The outcome, found
        or not, is cached per coordinate.
        """
        cache_key = f"{lat:.6f},{lng:.6f}"
        if self.coordinate_cache:
            cached = await self.coordinate_cache.get(cache_key)
            if cached is not None:
                return cached.place_id

        place_id = None
        for radius in NEARBY_RADII:
            try:
                places = await self.client.search_nearby(lat, lng, radius)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning(f"Nearby search failed at {radius}m: {exc}")
                continue
            if places:
                place_id = _closest_place_id(places, lat, lng)
                break

        if place_id is None:
            place_id = await self._find_by_reverse_geocoding(lat, lng)

        if self.coordinate_cache:
            await self.coordinate_cache.set(cache_key, CoordinateLookup(place_id=place_id))
        return place_id

    async def geocode(self, address: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.client.geocode(address)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"Geocoding failed for {address[:100]!r}: {exc}")
            return None

    async def find_by_geocoding(self, address: str) -> Optional[str]:
        result = await self.geocode(address)
        lat, lng = _coordinates_in_payload(((result or {}).get("geometry") or {}).get("location"), "lat", "lng")
        if lat is None or lng is None:
            return None
        return await self.find_by_coordinates(lat, lng)

    async def _find_by_reverse_geocoding(self, lat: float, lng: float) -> Optional[str]:
        try:
            result = await self.client.reverse_geocode(lat, lng)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"Reverse geocoding failed for {lat},{lng}: {exc}")
            return None
        address = (result or {}).get("formatted_address")
        if not address:
            return None
        return await self.find_from_text(address, skip_nearby=True)


@dataclass
class Resolution:
    place_id: Optional[str] = None
    geocode_result: Optional[Dict[str, Any]] = None
    coordinates: Optional[Tuple[float, float]] = None


class PlacePreviewService:
    """Authenticated, rate limited lookups behind the import form."""

    def __init__(
        self,
        client: Optional[GooglePlacesClient],
        identity_resolver: IdentityResolver,
        rate_limiter: RateLimiter,
        preview_cache: Optional[ModelCache] = None,
        search_cache: Optional[ModelCache] = None,
        coordinate_cache: Optional[ModelCache] = None,
        photo_url: Callable[[str], str] = lambda name: name,
    ):
        self.client = client
        self.identity_resolver = identity_resolver
        self.rate_limiter = rate_limiter
        self.preview_cache = preview_cache
        self.search_cache = search_cache
        self.coordinate_cache = coordinate_cache
        self.photo_url = photo_url

    async def _admit(self, request: PlacePreviewRequest) -> Tuple[str, GooglePlacesClient]:
        """Shared gates: query, caller, rate limit, Google key. Returns the trimmed query."""
        query = (request.query or "").strip()
        if not query:
            raise InvalidRequest("Invalid request: query is required (can be a Google Maps URL or address text)")

        identity: Identity = await self.identity_resolver.resolve_caller(request.access_token)

        if not await self.rate_limiter.allow(identity.id):
            raise RateLimited()

        if self.client is None:
            raise MissingConfiguration(ErrorCode.MISSING_GOOGLE_KEY, "Google Maps API key is not configured")
        return query, self.client

    async def _fetch_details(self, client: GooglePlacesClient, place_id: str) -> Dict[str, Any]:
        try:
            data = await client.get_place_details(place_id)
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error(f"Place details failed for {place_id}: {status}")
            if status in (400, 404):
                raise PlaceNotFound(f"Place not found: {place_id}") from exc
            if status == 403:
                raise ApplicationError(
                    ErrorCode.API_PERMISSION_ERROR,
                    "Google Maps API key does not have permission to access Places API.",
                    hint="Check the key's API restrictions in Google Cloud Console.",
                ) from exc
            raise ApplicationError(
                ErrorCode.PLACES_LOOKUP_ERROR, f"Google Places error {status}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(f"Place details request failed for {place_id}: {exc}")
            raise ApplicationError(ErrorCode.PLACES_LOOKUP_ERROR, "Failed to reach Google Places") from exc
        except ValueError as exc:
            raise ApplicationError(ErrorCode.INVALID_PLACE_DATA, "Invalid place data received from Google Maps API.") from exc

        if not isinstance(data, dict) or not data.get("id"):
            raise ApplicationError(ErrorCode.INVALID_PLACE_DATA, "Invalid place data received from Google Maps API.")
        return data

    async def _resolve(self, resolver: PlaceResolver, query: str) -> Resolution:
        query_is_url = is_url(query)
        resolution = Resolution()

        if query.startswith(PLACE_ID_PREFIX):
            resolution.place_id = query[len(PLACE_ID_PREFIX):].strip() or None
        elif query_is_url:
            resolution.place_id = extract_place_id(query)
            if not resolution.place_id:
                resolution.coordinates = extract_coordinates(query)
                if resolution.coordinates:
                    resolution.place_id = await resolver.find_by_coordinates(*resolution.coordinates)
        if resolution.place_id:
            return resolution

        address_like = not query_is_url and looks_like_address(query)
        if address_like:
            resolution.geocode_result = await resolver.geocode(query)
            lat, lng = _coordinates_in_payload(
                ((resolution.geocode_result or {}).get("geometry") or {}).get("location"), "lat", "lng"
            )
            if lat is not None and lng is not None:
                resolution.place_id = await resolver.find_by_coordinates(lat, lng)

        if not resolution.place_id:
            resolution.place_id = await resolver.find_from_text(query, geocode_fallback=not address_like)
        return resolution

    async def preview(self, request: PlacePreviewRequest) -> PlacePreview:
        """
        Resolve the query and return the import preview.

        Falls back to a coordinate-only preview when only a geocode result
        or link coordinates are available.

        Raises:
            InvalidRequest, Unauthorized, RateLimited, MissingConfiguration,
            PlaceNotFound, ApplicationError (upstream failures)
        """
        query, client = await self._admit(request)
        query_is_url = is_url(query)
        resolution = await self._resolve(PlaceResolver(client, self.coordinate_cache), query)

        if not resolution.place_id:
            if resolution.geocode_result:
                return normalize_geocode_result(resolution.geocode_result, query)
            if resolution.coordinates:
                return coordinate_only_preview(*resolution.coordinates, query)
            raise PlaceNotFound(
                "Could not find place from URL. Please make sure the Google Maps link is correct."
                if query_is_url else
                "Could not find place. Please check the address or place name and try again."
            )

        place_id = strip_place_prefix(resolution.place_id)
        if self.preview_cache:
            cached = await self.preview_cache.get(place_id)
            if cached is not None:
                return cached.model_copy(update={"google_maps_url": query}) if query_is_url else cached

        preview = normalize_place_details(await self._fetch_details(client, place_id), query, query_is_url)
        if self.preview_cache:
            await self.preview_cache.set(place_id, preview)
        logger.info(f"Previewed place {place_id}: {preview.name}")
        return preview

    async def search(self, request: PlacePreviewRequest) -> PlaceSearchResult:
        """
        Resolve the query to a single place card.

        Only a link's embedded place id and Text Search are used here; no
        coordinate-only results are produced.
        """
        query, client = await self._admit(request)
        query_is_url = is_url(query)

        place_id = extract_place_id(query) if query_is_url else None
        if not place_id:
            place_id = await PlaceResolver(client, self.coordinate_cache).find_from_text(query)
        if not place_id:
            raise PlaceNotFound(
                "Could not find place from URL. Please make sure the Google Maps link is correct."
                if query_is_url else
                "Could not find place. Try including the city name or using a Google Maps link."
            )

        place_id = strip_place_prefix(place_id)
        if self.search_cache:
            cached = await self.search_cache.get(place_id)
            if cached is not None:
                return cached.model_copy(update={"google_maps_url": query}) if query_is_url else cached

        result = to_search_result(await self._fetch_details(client, place_id), query, query_is_url, self.photo_url)
        if self.search_cache:
            await self.search_cache.set(place_id, result)
        return result
