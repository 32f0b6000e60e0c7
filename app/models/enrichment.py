"""Transient models passed between enrichment steps."""
from typing import List, Optional

from pydantic import BaseModel, Field


class AiContext(BaseModel):
    """Normalized third-party facts about a place, used to build the prompt."""
    name: Optional[str] = None
    types: List[str] = Field(default_factory=list, description="At most 6 category tags")
    formatted_address: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    user_ratings_total: Optional[int] = Field(None, ge=0)
    editorial_summary: Optional[str] = None
    reviews: List[str] = Field(default_factory=list, description="At most 3 cleaned snippets")


class Prompt(BaseModel):
    """System and user instructions for one generation call."""
    system: str
    user: str
