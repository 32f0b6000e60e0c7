"""
Generative Text Invoker
Calls an OpenAI-compatible chat completions endpoint and classifies failures.
"""
import asyncio
import json
import logging
from typing import Any, Dict, Optional

import httpx

from app.enrichment.errors import EnrichmentError, EnrichmentErrorKind
from app.models.enrichment import Prompt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 25000
MAX_RAW_CHARS = 2000


def _classify(status_code: int, vendor_code: Optional[str]) -> EnrichmentErrorKind:
    code = (vendor_code or "").lower()
    if code == "insufficient_quota":
        return EnrichmentErrorKind.QUOTA_EXCEEDED
    if code == "rate_limit_exceeded" or status_code == 429:
        return EnrichmentErrorKind.RATE_LIMITED
    if code == "invalid_api_key":
        return EnrichmentErrorKind.INVALID_CREDENTIAL
    return EnrichmentErrorKind.UPSTREAM_ERROR


def _error_from_response(status_code: int, text: str) -> EnrichmentError:
    """Build an EnrichmentError from an `{"error": {message, type, code}}` body."""
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None

    error_obj: Dict[str, Any] = {}
    if isinstance(parsed, dict) and isinstance(parsed.get("error"), dict):
        error_obj = parsed["error"]

    message = error_obj.get("message")
    if not isinstance(message, str) or not message.strip():
        message = f"OpenAI request failed ({status_code})"
    vendor_type = error_obj.get("type") if isinstance(error_obj.get("type"), str) else None
    vendor_code = error_obj.get("code") if isinstance(error_obj.get("code"), str) else None

    return EnrichmentError(
        kind=_classify(status_code, vendor_code),
        http_status=status_code,
        message=message.strip(),
        vendor_error_code=vendor_code,
        vendor_error_type=vendor_type,
        raw=text[:MAX_RAW_CHARS],
    )


class ChatCompletionsClient:
    """Single-shot text generation with a hard timeout."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.openai.com/v1",
        temperature: float = 0.8,
    ):
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature

    async def generate(
        self,
        api_key: str,
        model: str,
        prompt: Prompt,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> str:
        """
        Generate text for `prompt`.

        Args:
            api_key: Bearer credential for the text service
            model: Model name
            prompt: System and user instructions
            timeout_ms: The request is cancelled after this many milliseconds

        Returns:
            The raw generated text (not normalized)

        Raises:
            EnrichmentError: on timeout, error status, or an unusable body
        """
        payload = {
            "model": model,
            "temperature": self.temperature,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        timeout_s = timeout_ms / 1000

        try:
            response = await asyncio.wait_for(
                self.http_client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                    timeout=timeout_s,
                ),
                timeout=timeout_s,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(f"OpenAI request timed out after {timeout_ms}ms")
            raise EnrichmentError(
                kind=EnrichmentErrorKind.TIMEOUT,
                http_status=504,
                message=f"OpenAI request timed out after {timeout_ms}ms",
            ) from exc
        except httpx.RequestError as exc:
            logger.error(f"Error calling OpenAI: {exc}")
            raise EnrichmentError(
                kind=EnrichmentErrorKind.UPSTREAM_ERROR,
                http_status=502,
                message=f"Failed to reach OpenAI: {exc}",
            ) from exc

        text = response.text
        if not response.is_success:
            error = _error_from_response(response.status_code, text)
            logger.error(f"OpenAI API error: {error!r}")
            raise error

        try:
            data = json.loads(text)
        except ValueError as exc:
            raise EnrichmentError(
                kind=EnrichmentErrorKind.MALFORMED_RESPONSE,
                http_status=response.status_code,
                message="OpenAI returned invalid JSON",
                raw=text[:MAX_RAW_CHARS],
            ) from exc

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list):
            raise EnrichmentError(
                kind=EnrichmentErrorKind.MALFORMED_RESPONSE,
                http_status=response.status_code,
                message="OpenAI response has no choices",
                raw=text[:MAX_RAW_CHARS],
            )

        content = None
        if choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict):
                content = message.get("content")

        if not isinstance(content, str) or not content.strip():
            raise EnrichmentError(
                kind=EnrichmentErrorKind.EMPTY_RESPONSE,
                http_status=response.status_code,
                message="OpenAI returned empty content",
            )

        return content
