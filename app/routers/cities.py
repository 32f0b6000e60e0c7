"""City resolution route."""
from fastapi import APIRouter, Depends

from app.dependencies import get_place_store
from app.errors import ApplicationError, ErrorCode, InvalidRequest
from app.models.places import CityResolveRequest, CityResolveResponse
from app.services.city_resolver import CityResolver
from app.services.place_store import PlaceRepository

router = APIRouter(prefix="/cities", tags=["cities"])


@router.post("/resolve", response_model=CityResolveResponse)
async def resolve_city(
    payload: CityResolveRequest,
    store: PlaceRepository = Depends(get_place_store),
):
    """
    Resolve a city name to a city id, creating the city if it doesn't exist.

    State, country and coordinates disambiguate cities sharing a name.
    """
    if not payload.name or not payload.name.strip():
        raise InvalidRequest("City name is required")

    city = await CityResolver(store).resolve(
        payload.name,
        state=payload.state,
        country=payload.country,
        lat=payload.lat,
        lng=payload.lng,
    )
    if city is None:
        raise ApplicationError(ErrorCode.CITY_RESOLVE_ERROR, "Failed to resolve city")

    return CityResolveResponse(
        city_id=city.id,
        name=city.name,
        slug=city.slug,
        state=city.state,
        country=city.country,
        lat=city.lat,
        lng=city.lng,
    )
