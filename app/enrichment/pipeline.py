"""Runs context fetch, prompt, generation and normalization for one place."""
import logging
from typing import Optional

import httpx

from app.config import Settings
from app.enrichment.place_context import PlaceContextFetcher
from app.enrichment.prompt_builder import build_prompt
from app.enrichment.text_generator import ChatCompletionsClient
from app.enrichment.text_normalizer import normalize
from app.services.redis_client import ContextCache

logger = logging.getLogger(__name__)


class DescriptionPipeline:
    """Generates a normalized description from a Google place id."""

    def __init__(
        self,
        fetcher: Optional[PlaceContextFetcher],
        generator: ChatCompletionsClient,
        openai_api_key: Optional[str],
        model: str,
        timeout_ms: int,
    ):
        self.fetcher = fetcher
        self.generator = generator
        self.openai_api_key = openai_api_key
        self.model = model
        self.timeout_ms = timeout_ms

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient,
        cache: Optional[ContextCache] = None,
    ) -> "DescriptionPipeline":
        fetcher = None
        if settings.google_maps_api_key:
            fetcher = PlaceContextFetcher(
                http_client,
                settings.google_maps_api_key,
                base_url=settings.google_places_base_url,
                timeout=settings.google_places_timeout,
                cache=cache,
            )
        generator = ChatCompletionsClient(
            http_client,
            base_url=settings.openai_base_url,
            temperature=settings.openai_temperature,
        )
        return cls(
            fetcher,
            generator,
            settings.openai_api_key,
            settings.openai_model,
            settings.openai_timeout_ms,
        )

    @property
    def has_openai_key(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def has_places_key(self) -> bool:
        return self.fetcher is not None

    @property
    def configured(self) -> bool:
        return self.has_openai_key and self.has_places_key

    async def describe(self, google_place_id: str) -> str:
        """
        Fetch context, prompt the model and return the normalized text.

        Raises:
            PlaceContextError: the places lookup failed
            EnrichmentError: the generation call failed
        """
        if not self.configured:
            raise RuntimeError("Description pipeline is not configured")

        context = await self.fetcher.fetch_context(google_place_id)
        prompt = build_prompt(context)
        raw = await self.generator.generate(
            self.openai_api_key,
            self.model,
            prompt,
            timeout_ms=self.timeout_ms,
        )
        description = normalize(raw)
        logger.info(f"Generated description for {google_place_id} ({len(description)} chars)")
        return description
