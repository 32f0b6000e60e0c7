"""Pydantic models for the Google place preview and search endpoints."""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Any, List, Optional


class PlacePreviewRequest(BaseModel):
    """A Google Maps link, a `place_id:...` string, a place name or an address."""
    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = Field(None, validation_alias=AliasChoices("query", "google_url"))
    access_token: Optional[str] = Field(
        None, validation_alias=AliasChoices("access_token", "credential")
    )


class OpeningHours(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    weekday_text: List[str] = Field(default_factory=list, alias="weekdayText")
    periods: List[Any] = Field(default_factory=list)


class PreviewPhoto(BaseModel):
    reference: str
    url: Optional[str] = None


class PlacePreview(BaseModel):
    """
    Everything the import form can prefill.

    `business_name`, `address`, `user_ratings_total`, `categories`,
    `google_place_id`, `latitude`/`longitude` and `photo_urls` duplicate
    other fields for older clients. `is_coordinate_only` marks results
    that have coordinates but no Google place behind them.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    business_name: Optional[str] = None
    formatted_address: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    rating: Optional[float] = None
    reviews_count: Optional[int] = None
    user_ratings_total: Optional[int] = None
    opening_hours: Optional[OpeningHours] = None
    price_level: Optional[str] = None
    category: Optional[str] = None
    types: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    place_id: Optional[str] = None
    google_place_id: Optional[str] = None
    google_maps_url: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    city_state: Optional[str] = None
    city_country: Optional[str] = None
    photos: List[PreviewPhoto] = Field(default_factory=list)
    photo_urls: List[str] = Field(default_factory=list)
    is_coordinate_only: bool = False


class SearchPhoto(BaseModel):
    id: str
    url: str
    reference: str


class PlaceSearchResult(BaseModel):
    """Compact search card: title, address, a type summary and up to 6 photos."""
    title: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    photos: List[SearchPhoto] = Field(default_factory=list)
    lat: Optional[float] = None
    lng: Optional[float] = None
    google_place_id: Optional[str] = None
    google_maps_url: Optional[str] = None


class CoordinateLookup(BaseModel):
    """Cached outcome of resolving a coordinate; `place_id` None means nothing was found."""
    place_id: Optional[str] = None
