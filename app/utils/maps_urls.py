"""
Helpers for reading Google Maps links and free-text place queries.

Maps links come in many shapes (share links, `/place/Name/@lat,lng/data=...`
paths, `?q=` and `?ll=` parameters). These functions pull out whatever
identifies the place without calling any API.
"""

import re
from typing import List, Optional, Tuple
from urllib.parse import parse_qs, unquote_plus, urlsplit

PLACE_ID_PREFIX = "place_id:"

COORDINATES_IN_PATH = re.compile(r"@(-?\d+\.?\d*),(-?\d+\.?\d*)")
COORDINATE_PAIR = re.compile(r"^(-?\d+\.?\d*),(-?\d+\.?\d*)$")
PLACE_NAME_IN_PATH = re.compile(r"/place/([^/@]+)")

# Tried in order against the whole link
PLACE_ID_IN_PATH = [
    re.compile(r"data=!4m[^!]*!3m1!1s([A-Za-z0-9_-]+)"),
    re.compile(r"data=!3m[^!]*!1s([A-Za-z0-9_-]+)"),
    re.compile(r"data=![^!]*!1s([A-Za-z0-9_-]+)"),
    re.compile(r"/data=!.*?!1s([A-Za-z0-9_-]+)"),
]
PLACE_ID_IN_DATA_PARAM = [
    re.compile(r"!1s([A-Za-z0-9_-]+)"),
    re.compile(r"!4m[^!]*!3m1!1s([A-Za-z0-9_-]+)"),
]

STREET_WORDS = re.compile(
    r"\b(street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr|lane|ln|way|place|pl"
    r"|court|ct|circle|cir|highway|hwy|parkway|pkwy)\b",
    re.IGNORECASE,
)
UNIT_WORDS = re.compile(r"\b(suite|ste|unit|apt|apartment|number|no)\b|#", re.IGNORECASE)
CITY_STATE = [
    re.compile(r",\s*[A-Z]{2}\s+\d{5}", re.IGNORECASE),
    re.compile(r",\s*[A-Z]{2}\b", re.IGNORECASE),
    re.compile(
        r"\b(florida|fl|california|ca|texas|tx|new york|ny|illinois|il|massachusetts|ma"
        r"|pennsylvania|pa|ohio|oh|georgia|ga|north carolina|nc|michigan|mi)\b",
        re.IGNORECASE,
    ),
]


def is_url(text: str) -> bool:
    """True for absolute http(s) links."""
    parts = urlsplit(text.strip())
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def strip_place_prefix(place_id: str) -> str:
    return place_id[len("places/"):] if place_id.startswith("places/") else place_id


def _query_param(url: str, name: str) -> Optional[str]:
    values = parse_qs(urlsplit(url).query).get(name)
    return values[0] if values else None


def _valid_pair(match: Optional[re.Match]) -> Optional[Tuple[float, float]]:
    if not match:
        return None
    lat, lng = float(match.group(1)), float(match.group(2))
    if -90 <= lat <= 90 and -180 <= lng <= 180:
        return lat, lng
    return None


def extract_coordinates(url: str) -> Optional[Tuple[float, float]]:
    """
    Coordinates from a maps link: `/@lat,lng` in the path, then `?q=lat,lng`,
    then `?ll=lat,lng`. Out-of-range pairs are ignored.
    """
    if not is_url(url):
        return None

    coordinates = _valid_pair(COORDINATES_IN_PATH.search(urlsplit(url).path))
    if coordinates:
        return coordinates

    for name in ("q", "ll"):
        value = _query_param(url, name)
        if value:
            coordinates = _valid_pair(COORDINATE_PAIR.match(value.strip()))
            if coordinates:
                return coordinates
    return None


def extract_place_id(url: str) -> Optional[str]:
    """
    The Google place id embedded in a maps link, if any.

    `?cid=` links and goo.gl short links carry no usable id and return None.
    """
    if not is_url(url):
        return None
    parts = urlsplit(url)

    if "maps.google.com" in parts.netloc and _query_param(url, "cid") is not None:
        return None

    q = _query_param(url, "q")
    if q and q.startswith(PLACE_ID_PREFIX):
        return q[len(PLACE_ID_PREFIX):].strip() or None

    for pattern in PLACE_ID_IN_PATH:
        match = pattern.search(url)
        if match:
            return match.group(1)

    data = _query_param(url, "data")
    if data:
        for pattern in PLACE_ID_IN_DATA_PARAM:
            match = pattern.search(data)
            if match:
                return match.group(1)

    return None


def place_name_from_url(url: str) -> Optional[str]:
    """Decoded `Name` from a `/place/Name/...` link."""
    match = PLACE_NAME_IN_PATH.search(urlsplit(url).path)
    if not match:
        return None
    name = re.sub(r"\s+", " ", unquote_plus(match.group(1))).strip()
    return name or None


def text_query_variations(query: str) -> List[str]:
    """
    Text-search queries to try for a raw query, best first.

    For links: the place name from the path (or the link itself), then the
    link without scheme and `www.`.
    """
    query = query.strip()
    if not is_url(query):
        return [query] if len(query) >= 2 else []

    variations = [place_name_from_url(query) or query]
    bare = re.sub(r"^www\.", "", re.sub(r"^https?://", "", query))
    if bare not in variations:
        variations.append(bare)
    return [v for v in variations if len(v) >= 2]


def looks_like_address(text: str, allow_comma: bool = True) -> bool:
    """
    A number plus a street word, a unit word, a city/state pattern or
    (with `allow_comma`) any comma.
    """
    if not re.search(r"\d", text):
        return False
    if STREET_WORDS.search(text) or UNIT_WORDS.search(text):
        return True
    if any(pattern.search(text) for pattern in CITY_STATE):
        return True
    return allow_comma and "," in text
