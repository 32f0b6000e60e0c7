"""SQLAlchemy tables read and written by the enrichment pipeline."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text

from app.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class City(Base):
    __tablename__ = "cities"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    name = Column(String, nullable=False)
    slug = Column(String, nullable=True)
    state = Column(String, nullable=True)
    country = Column(String, nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    role = Column(String, nullable=True)  # standard, premium, admin
    is_admin = Column(Boolean, nullable=True)
    subscription_status = Column(String, nullable=True)  # active, inactive


class Place(Base):
    __tablename__ = "places"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String, nullable=True)
    google_place_id = Column(String, nullable=True, unique=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    city = Column(String, nullable=True)  # legacy display string
    city_id = Column(String, ForeignKey("cities.id"), nullable=True)
    city_name_cached = Column(String, nullable=True)
    created_by = Column(String, nullable=True, index=True)
    link = Column(String, nullable=True)
    cover_url = Column(String, nullable=True)
    access_level = Column(String, nullable=True, default="public")
    is_hidden = Column(Boolean, nullable=True)
    # Not present in every deployment; inserts retry without it
    status = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class PlacePhoto(Base):
    __tablename__ = "place_photos"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    place_id = Column(String, ForeignKey("places.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=True)
    url = Column(String, nullable=False)
    sort = Column(Integer, nullable=False, default=0)
    is_cover = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
