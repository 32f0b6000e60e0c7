"""Post-processing of generated descriptions."""

import re

from app.utils.normalizers import clean_text

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
MAX_SENTENCES = 5


def split_sentences(text: str):
    return [part.strip() for part in SENTENCE_BOUNDARY.split(text) if part.strip()]


def normalize(raw_text: str) -> str:
    """
    Enforce the content rules on generated text.

    Emoji and URLs are removed, whitespace collapsed, and the text clamped to
    at most MAX_SENTENCES sentences. Shorter text is kept whole; there is
    nothing to pad it with. normalize(normalize(x)) == normalize(x).
    """
    cleaned = clean_text(raw_text)
    sentences = split_sentences(cleaned)
    if not sentences:
        return cleaned
    return " ".join(sentences[:MAX_SENTENCES])
