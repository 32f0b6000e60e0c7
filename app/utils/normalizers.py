"""
Normalizers for text and loosely typed values coming from third-party APIs.

Upstream payloads are not consistent about shapes: names may be plain
strings or `{"text": ...}` objects, numbers may arrive as strings. These
helpers turn them into plain Python values or None.
"""

import math
import re
from typing import Any, Optional

URL_PATTERN = re.compile(r"https?://\S*|www\.\S*", re.IGNORECASE)
EMOJI_PATTERN = re.compile(
    "["
    "\U0001F000-\U0001FAFF"  # pictographs, emoticons, transport, flags, supplemental symbols
    "\u2190-\u21FF"  # arrows
    "\u2300-\u23FF"  # misc technical (watch, hourglass, alarm clock)
    "\u25A0-\u25FF"  # geometric shapes
    "\u2600-\u27BF"  # misc symbols and dingbats
    "\u2934\u2935"
    "\u2B00-\u2BFF"  # arrows and stars
    "\u3030\u303D\u3297\u3299"
    "\uFE0E\uFE0F"  # variation selectors
    "\u200D"  # zero width joiner
    "\u20E3"  # keycap
    "]"
)
WHITESPACE_PATTERN = re.compile(r"\s+")


def strip_emojis(text: str) -> str:
    return EMOJI_PATTERN.sub("", text)


def strip_urls(text: str) -> str:
    return URL_PATTERN.sub("", text)


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def clean_text(text: str) -> str:
    """Remove emoji and URLs, then collapse whitespace."""
    return collapse_whitespace(strip_urls(strip_emojis(text)))


def display_text(value: Any) -> Optional[str]:
    """Read a string that may be wrapped as `{"text": "..."}`."""
    if isinstance(value, dict):
        value = value.get("text")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def coerce_float(value: Any) -> Optional[float]:
    """Number or numeric string to float; anything else to None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def coerce_int(value: Any) -> Optional[int]:
    number = coerce_float(value)
    if number is None:
        return None
    return int(number)
