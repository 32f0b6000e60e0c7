"""
Enrichment Module
=================

Generates place descriptions from third-party place data:

- Place context fetch (Google Places API)
- Prompt construction
- Text generation (chat completions)
- Content normalization
"""

from .errors import (
    EnrichmentError,
    EnrichmentErrorKind,
    PlaceContextError,
)
from .place_context import (
    PlaceContextFetcher,
    parse_place_context,
)
from .prompt_builder import build_prompt
from .text_generator import ChatCompletionsClient
from .text_normalizer import normalize
from .pipeline import DescriptionPipeline

__all__ = [
    "EnrichmentError",
    "EnrichmentErrorKind",
    "PlaceContextError",
    "PlaceContextFetcher",
    "parse_place_context",
    "build_prompt",
    "ChatCompletionsClient",
    "normalize",
    "DescriptionPipeline",
]
