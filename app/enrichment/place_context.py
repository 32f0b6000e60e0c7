"""
Place Context Fetcher
Loads a place from the Google Places API (New) and reduces it to an AiContext.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.enrichment.errors import EnrichmentErrorKind, PlaceContextError
from app.models.enrichment import AiContext
from app.services.redis_client import ContextCache
from app.utils.normalizers import clean_text, coerce_float, coerce_int, display_text

logger = logging.getLogger(__name__)

FIELD_MASK = ",".join([
    "id",
    "displayName",
    "types",
    "formattedAddress",
    "rating",
    "userRatingCount",
    "editorialSummary",
    "reviews",
])

MAX_TYPES = 6
MAX_REVIEWS = 3
MAX_REVIEW_CHARS = 240


def _review_text(review: Any) -> Optional[str]:
    """Structured `text.text` first, then a bare `text`, then `originalText`."""
    if not isinstance(review, dict):
        return None
    return display_text(review.get("text")) or display_text(review.get("originalText"))


def parse_place_context(data: Dict[str, Any]) -> AiContext:
    """Map a Places API payload onto the fixed AiContext shape."""
    raw_types = data.get("types")
    types: List[str] = []
    if isinstance(raw_types, list):
        types = [t.strip() for t in raw_types if isinstance(t, str) and t.strip()][:MAX_TYPES]

    rating = coerce_float(data.get("rating"))
    if rating is not None and not 0 <= rating <= 5:
        rating = None

    ratings_total = coerce_int(data.get("userRatingCount"))
    if ratings_total is not None and ratings_total < 0:
        ratings_total = None

    reviews: List[str] = []
    raw_reviews = data.get("reviews")
    for review in raw_reviews if isinstance(raw_reviews, list) else []:
        text = _review_text(review)
        if not text:
            continue
        snippet = clean_text(text)[:MAX_REVIEW_CHARS].strip()
        if snippet:
            reviews.append(snippet)
        if len(reviews) == MAX_REVIEWS:
            break

    return AiContext(
        name=display_text(data.get("displayName")),
        types=types,
        formatted_address=display_text(data.get("formattedAddress")),
        rating=rating,
        user_ratings_total=ratings_total,
        editorial_summary=display_text(data.get("editorialSummary")),
        reviews=reviews,
    )


class PlaceContextFetcher:
    """Fetches place facts used as grounding for description generation."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://places.googleapis.com/v1",
        timeout: float = 10.0,
        cache: Optional[ContextCache] = None,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache

    async def fetch_context(self, google_place_id: str) -> AiContext:
        """
        Get the AiContext for a Google place id.

        Args:
            google_place_id: Place id, with or without the `places/` prefix

        Raises:
            PlaceContextError: non-success status or unparsable payload
        """
        place_id = google_place_id[len("places/"):] if google_place_id.startswith("places/") else google_place_id

        if self.cache:
            cached = await self.cache.get(place_id)
            if cached is not None:
                return cached

        try:
            response = await self.http_client.get(
                f"{self.base_url}/places/{place_id}",
                headers={
                    "X-Goog-Api-Key": self.api_key,
                    "X-Goog-FieldMask": FIELD_MASK,
                },
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.error(f"Google Places request failed for {place_id}: {exc}")
            raise PlaceContextError(
                EnrichmentErrorKind.UPSTREAM_ERROR,
                502,
                f"Failed to reach Google Places: {exc}",
            ) from exc

        if not response.is_success:
            raise PlaceContextError(
                EnrichmentErrorKind.UPSTREAM_ERROR,
                response.status_code,
                f"Google Places error {response.status_code}: {response.text[:300]}",
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise PlaceContextError(
                EnrichmentErrorKind.MALFORMED_RESPONSE,
                response.status_code,
                "Google Places returned invalid JSON",
            ) from exc

        if not isinstance(data, dict):
            raise PlaceContextError(
                EnrichmentErrorKind.MALFORMED_RESPONSE,
                response.status_code,
                "Google Places returned an unexpected payload",
            )

        context = parse_place_context(data)

        if self.cache:
            await self.cache.set(place_id, context)

        return context
