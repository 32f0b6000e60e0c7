from app.models.enrichment import AiContext
from app.models.preview import CoordinateLookup
from app.services.redis_client import ContextCache, ModelCache
from tests.fakes import MemoryRedis


async def test_round_trip_with_ttl():
    client = MemoryRedis()
    cache = ContextCache(client, ttl_seconds=60)
    context = AiContext(name="Sunset Deck", types=["bar"], rating=4.5, reviews=["Lovely."])

    assert await cache.set("ext-123", context) is True
    assert await cache.get("ext-123") == context
    assert client.ttls["place_context:ext-123"] == 60


async def test_miss_returns_none():
    assert await ContextCache(MemoryRedis(), 60).get("ext-404") is None


async def test_corrupt_entry_is_a_miss():
    client = MemoryRedis()
    client.values["place_context:ext-1"] = "{not json"

    assert await ContextCache(client, 60).get("ext-1") is None


async def test_redis_errors_are_misses():
    cache = ContextCache(MemoryRedis(fail=True), 60)

    assert await cache.get("ext-1") is None
    assert await cache.set("ext-1", AiContext()) is False


async def test_cached_empty_lookup_is_a_hit():
    cache = ModelCache(MemoryRedis(), 86400, "place_coordinates", CoordinateLookup)

    await cache.set("25.080000,-80.450000", CoordinateLookup(place_id=None))

    cached = await cache.get("25.080000,-80.450000")
    assert cached is not None
    assert cached.place_id is None
