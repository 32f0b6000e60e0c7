"""Pydantic models for places, photos, cities and the enrichment endpoints."""
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Optional, List, Any


class PlaceRecord(BaseModel):
    """Row of the places table as seen by the enrichment pipeline."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    address: Optional[str] = None
    google_place_id: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    city: Optional[str] = None
    city_id: Optional[str] = None
    city_name_cached: Optional[str] = None
    created_by: Optional[str] = None
    link: Optional[str] = None
    cover_url: Optional[str] = None


class PhotoRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    place_id: str
    user_id: Optional[str] = None
    url: str
    sort: int
    is_cover: bool = False


class CityRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class SelectedFields(BaseModel):
    """
    Fields the user picked from the import preview.

    `title`, `address` and `description` are selection flags paired with
    their `*Data` values. Coordinates, the maps link and the city are always
    applied when present.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: bool = False
    title_data: Optional[str] = Field(None, alias="titleData")
    address: bool = False
    address_data: Optional[str] = Field(None, alias="addressData")
    description: bool = False
    description_data: Optional[str] = Field(None, alias="descriptionData")
    lat: Optional[float] = None
    lng: Optional[float] = None
    google_maps_url: Optional[str] = None
    city: Optional[str] = None
    city_state: Optional[str] = None
    city_country: Optional[str] = None
    photos: Optional[List[Any]] = None

    def selected_title(self) -> Optional[str]:
        return self.title_data if self.title and self.title_data else None

    def selected_address(self) -> Optional[str]:
        return self.address_data if self.address and self.address_data else None

    def selected_description(self) -> Optional[str]:
        if self.description and self.description_data and self.description_data.strip():
            return self.description_data
        return None

    def photo_urls(self) -> List[str]:
        """Urls of the selected photos that carry a usable url, in order."""
        urls = []
        for photo in self.photos or []:
            if isinstance(photo, dict):
                url = photo.get("url")
                if isinstance(url, str) and url.strip():
                    urls.append(url.strip())
        return urls


class ImportRequest(BaseModel):
    """Import a third-party place into a new or an existing place."""
    model_config = ConfigDict(populate_by_name=True)

    google_place_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("google_place_id", "external_place_id")
    )
    target_place_id: Optional[str] = None
    selected_fields: Optional[SelectedFields] = Field(
        None, validation_alias=AliasChoices("selectedFields", "selected_fields")
    )
    access_token: Optional[str] = Field(
        None, validation_alias=AliasChoices("access_token", "credential")
    )


class ImportResponse(BaseModel):
    place_id: str
    created: bool
    updated: bool
    success: bool = True


class GenerateDescriptionRequest(BaseModel):
    """Generate a description for a stored place or a bare external place id."""
    model_config = ConfigDict(populate_by_name=True)

    place_id: Optional[str] = None
    google_place_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("google_place_id", "external_place_id")
    )
    access_token: Optional[str] = Field(
        None, validation_alias=AliasChoices("access_token", "credential")
    )
    save: Optional[bool] = None


class GenerateDescriptionResponse(BaseModel):
    place_id: Optional[str] = None
    google_place_id: str
    description: str
    saved: bool
    success: bool = True


class CityResolveRequest(BaseModel):
    name: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class CityResolveResponse(BaseModel):
    city_id: str
    name: str
    slug: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
