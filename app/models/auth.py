"""Pydantic models for callers and their profiles."""
from pydantic import BaseModel, ConfigDict
from typing import Optional


class Identity(BaseModel):
    """Authenticated caller resolved from a bearer token."""
    id: str
    email: Optional[str] = None


class Profile(BaseModel):
    """Subset of the profiles table used for access checks."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    role: Optional[str] = None
    is_admin: Optional[bool] = None
    subscription_status: Optional[str] = None
