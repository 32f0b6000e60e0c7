import httpx
import pytest

from app.enrichment.text_normalizer import split_sentences
from app.errors import (
    DuplicatePlace,
    ErrorCode,
    Forbidden,
    InvalidRequest,
    MissingServiceCredential,
    PremiumRequired,
    StoreWriteError,
    TargetNotFound,
    Unauthorized,
)
from app.models.auth import Profile
from app.models.places import ImportRequest
from app.services.place_import import PLACEHOLDER_TITLE, PlaceImportService
from tests.fakes import (
    ADMIN_TOKEN,
    FREE_TOKEN,
    OTHER_TOKEN,
    OWNER_TOKEN,
    FakePlaceStore,
    UpstreamRecorder,
    make_pipeline,
)


def make_service(store, identities, pipeline, service_role_configured=True) -> PlaceImportService:
    return PlaceImportService(store, identities, pipeline, service_role_configured)


def import_request(token=OWNER_TOKEN, google_place_id="ext-123", target=None, **fields) -> ImportRequest:
    return ImportRequest.model_validate({
        "google_place_id": google_place_id,
        "target_place_id": target,
        "selectedFields": fields,
        "access_token": token,
    })


def photos(*urls):
    return [{"url": url} for url in urls]


async def test_new_place_end_to_end(store, identities, upstream, pipeline):
    service = make_service(store, identities, pipeline)

    result = await service.import_place(import_request(
        title=True, titleData="Sunset Deck",
        lat=25.08, lng=-80.45,
        google_maps_url="https://maps.google.com/?cid=1",
    ))

    assert result.created is True
    assert result.updated is False
    row = store.places[result.place_id]
    assert row["title"] == "Sunset Deck"
    assert row["google_place_id"] == "ext-123"
    assert row["created_by"] == "owner"
    assert row["is_hidden"] is True
    assert row["status"] == "draft"
    assert row["access_level"] == "public"
    assert row["lat"] == 25.08 and row["lng"] == -80.45
    assert row["link"] == "https://maps.google.com/?cid=1"

    description = row["description"]
    assert 3 <= len(split_sentences(description)) <= 5
    assert "http" not in description and "www." not in description
    assert "🌅" not in description

    assert len(upstream.calls_to("places.googleapis.com")) == 1
    assert len(upstream.calls_to("api.openai.com")) == 1
    user_message = upstream.openai_payloads()[0]["messages"][1]["content"]
    assert "Place name: Sunset Deck" in user_message


async def test_missing_title_uses_placeholder(store, identities, pipeline):
    result = await make_service(store, identities, pipeline).import_place(
        import_request(title=False, titleData="Ignored")
    )

    assert store.places[result.place_id]["title"] == PLACEHOLDER_TITLE


async def test_unselected_fields_are_not_copied(store, identities, pipeline):
    result = await make_service(store, identities, pipeline).import_place(
        import_request(address=False, addressData="1 Ocean Dr")
    )

    assert "address" not in store.places[result.place_id]


async def test_reimport_same_external_id_is_duplicate(store, identities, pipeline):
    service = make_service(store, identities, pipeline)
    first = await service.import_place(import_request(title=True, titleData="Sunset Deck"))

    with pytest.raises(DuplicatePlace) as exc_info:
        await service.import_place(import_request(title=True, titleData="Again"))

    assert exc_info.value.existing_place_id == first.place_id
    assert exc_info.value.existing_title == "Sunset Deck"
    assert exc_info.value.http_status == 409
    assert len(store.places) == 1


async def test_concurrent_insert_maps_constraint_to_duplicate(identities, pipeline):
    class RacingStore(FakePlaceStore):
        """Duplicate check misses; the row lands before our insert."""

        def __init__(self):
            super().__init__()
            self.lookups = 0

        async def find_place_by_external_id(self, google_place_id, exclude_place_id=None):
            self.lookups += 1
            if self.lookups == 1:
                self.add_place(id="winner", title="Winner", google_place_id=google_place_id)
                return None
            return await super().find_place_by_external_id(google_place_id, exclude_place_id)

    store = RacingStore()
    store.profiles["owner"] = Profile(id="owner", subscription_status="active")

    with pytest.raises(DuplicatePlace) as exc_info:
        await make_service(store, identities, pipeline).import_place(import_request())

    assert exc_info.value.existing_place_id == "winner"
    assert list(store.places) == ["winner"]


async def test_new_place_photos_and_cover(store, identities, pipeline):
    result = await make_service(store, identities, pipeline).import_place(
        import_request(photos=photos("https://p/1.jpg", "https://p/2.jpg") + [{"name": "no-url"}])
    )

    rows = store.photos_for(result.place_id)
    assert [p["url"] for p in rows] == ["https://p/1.jpg", "https://p/2.jpg"]
    assert [p["sort"] for p in rows] == [0, 1]
    assert [p["is_cover"] for p in rows] == [True, False]
    assert all(p["user_id"] == "owner" for p in rows)
    assert store.places[result.place_id]["cover_url"] == "https://p/1.jpg"


async def test_blank_photo_urls_are_skipped(store, identities, pipeline):
    result = await make_service(store, identities, pipeline).import_place(
        import_request(photos=photos("   ", "\t", " https://p/1.jpg "))
    )

    rows = store.photos_for(result.place_id)
    assert [p["url"] for p in rows] == ["https://p/1.jpg"]
    assert rows[0]["is_cover"] is True
    assert store.places[result.place_id]["cover_url"] == "https://p/1.jpg"


async def test_update_replaces_photos(store, identities, pipeline):
    place_id = store.add_place(created_by="owner", description="Already written.")
    store.photos = [
        {"id": "a", "place_id": place_id, "url": "https://old/1", "sort": 0, "is_cover": True},
        {"id": "b", "place_id": place_id, "url": "https://old/2", "sort": 1, "is_cover": False},
    ]

    result = await make_service(store, identities, pipeline).import_place(import_request(
        target=place_id, photos=photos("https://new/1", "https://new/2", "https://new/3"),
    ))

    assert result.created is False
    assert result.updated is True
    rows = store.photos_for(place_id)
    assert [p["url"] for p in rows] == ["https://new/1", "https://new/2", "https://new/3"]
    assert [p["sort"] for p in rows] == [0, 1, 2]
    assert [p["is_cover"] for p in rows] == [True, False, False]
    assert store.places[place_id]["cover_url"] == "https://new/1"


async def test_update_without_photos_keeps_existing(store, identities, pipeline):
    place_id = store.add_place(created_by="owner", description="Kept.")
    store.photos = [{"id": "a", "place_id": place_id, "url": "https://old/1", "sort": 0, "is_cover": True}]

    await make_service(store, identities, pipeline).import_place(import_request(target=place_id))

    assert [p["url"] for p in store.photos_for(place_id)] == ["https://old/1"]


async def test_update_applies_selected_fields(store, identities, pipeline):
    place_id = store.add_place(created_by="owner", title="Old", description="Kept.")

    await make_service(store, identities, pipeline).import_place(import_request(
        target=place_id, title=True, titleData="Sunset Deck",
        address=True, addressData="1 Ocean Dr", lat=1.5, lng=2.5,
    ))

    row = store.places[place_id]
    assert row["title"] == "Sunset Deck"
    assert row["address"] == "1 Ocean Dr"
    assert row["google_place_id"] == "ext-123"
    assert (row["lat"], row["lng"]) == (1.5, 2.5)


async def test_update_by_non_owner_is_forbidden(store, identities, upstream, pipeline):
    place_id = store.add_place(created_by="owner", title="Mine")
    store.photos = [{"id": "a", "place_id": place_id, "url": "https://old/1", "sort": 0, "is_cover": True}]

    with pytest.raises(Forbidden):
        await make_service(store, identities, pipeline).import_place(import_request(
            token=OTHER_TOKEN, target=place_id, title=True, titleData="Stolen",
            photos=photos("https://x/1"),
        ))

    assert store.places[place_id]["title"] == "Mine"
    assert "google_place_id" not in store.places[place_id]
    assert [p["url"] for p in store.photos_for(place_id)] == ["https://old/1"]
    assert upstream.requests == []


async def test_admin_may_update_any_place(store, identities, pipeline):
    place_id = store.add_place(created_by="owner", description="Kept.")

    result = await make_service(store, identities, pipeline).import_place(
        import_request(token=ADMIN_TOKEN, target=place_id)
    )

    assert result.place_id == place_id


async def test_update_unknown_target(store, identities, pipeline):
    with pytest.raises(TargetNotFound):
        await make_service(store, identities, pipeline).import_place(import_request(target="missing"))


async def test_update_duplicate_excludes_target_itself(store, identities, pipeline):
    place_id = store.add_place(created_by="owner", google_place_id="ext-123", description="Kept.")

    result = await make_service(store, identities, pipeline).import_place(import_request(target=place_id))

    assert result.place_id == place_id


async def test_update_conflicting_with_other_place(store, identities, pipeline):
    other_id = store.add_place(created_by="other", title="Theirs", google_place_id="ext-123")
    place_id = store.add_place(created_by="owner")

    with pytest.raises(DuplicatePlace) as exc_info:
        await make_service(store, identities, pipeline).import_place(import_request(target=place_id))

    assert exc_info.value.existing_place_id == other_id


async def test_update_keeps_existing_description(store, identities, upstream, pipeline):
    place_id = store.add_place(created_by="owner", description="Handwritten words.")

    await make_service(store, identities, pipeline).import_place(import_request(target=place_id))

    assert store.places[place_id]["description"] == "Handwritten words."
    assert upstream.calls_to("api.openai.com") == []


async def test_update_without_description_is_enriched(store, identities, pipeline):
    place_id = store.add_place(created_by="owner", description="   ")

    await make_service(store, identities, pipeline).import_place(import_request(target=place_id))

    assert split_sentences(store.places[place_id]["description"])


async def test_imported_description_skips_generation(store, identities, upstream, pipeline):
    result = await make_service(store, identities, pipeline).import_place(
        import_request(description=True, descriptionData="From Google.")
    )

    assert store.places[result.place_id]["description"] == "From Google."
    assert upstream.requests == []


async def test_generation_failure_does_not_fail_import(store, identities):
    upstream = UpstreamRecorder(openai=lambda request: httpx.Response(
        429, json={"error": {"message": "quota", "code": "insufficient_quota"}}
    ))
    service = make_service(store, identities, make_pipeline(upstream))

    result = await service.import_place(import_request(title=True, titleData="Sunset Deck"))

    assert result.created is True
    assert store.places[result.place_id]["description"] is None


async def test_places_lookup_failure_does_not_fail_import(store, identities):
    upstream = UpstreamRecorder(google=lambda request: httpx.Response(500, text="boom"))
    service = make_service(store, identities, make_pipeline(upstream))

    result = await service.import_place(import_request())

    assert store.places[result.place_id]["description"] is None
    assert upstream.calls_to("api.openai.com") == []


async def test_description_write_failure_does_not_fail_import(store, identities, pipeline):
    store.failing.add("update_description")

    result = await make_service(store, identities, pipeline).import_place(import_request())

    assert store.places[result.place_id]["description"] is None


@pytest.mark.parametrize(
    "keys",
    [
        {"openai_api_key": None},
        {"google_api_key": None},
    ],
)
async def test_unconfigured_pipeline_skips_generation(store, identities, keys):
    upstream = UpstreamRecorder()
    service = make_service(store, identities, make_pipeline(upstream, **keys))

    result = await service.import_place(import_request())

    assert result.created is True
    assert upstream.requests == []


async def test_city_is_resolved(store, identities, pipeline):
    result = await make_service(store, identities, pipeline).import_place(
        import_request(city="key largo", city_state="FL", city_country="US")
    )

    row = store.places[result.place_id]
    assert row["city"] == "Key Largo"
    assert row["city_name_cached"] == "Key Largo"
    assert row["city_id"] in store.cities


async def test_city_failure_stores_raw_name(store, identities, pipeline):
    store.failing.add("get_or_create_city")

    result = await make_service(store, identities, pipeline).import_place(
        import_request(city="  Key Largo ")
    )

    row = store.places[result.place_id]
    assert row["city"] == "Key Largo"
    assert "city_id" not in row


async def test_photo_delete_failure_still_inserts(store, identities, pipeline):
    place_id = store.add_place(created_by="owner", description="Kept.")
    store.failing.add("delete_photos")

    await make_service(store, identities, pipeline).import_place(
        import_request(target=place_id, photos=photos("https://new/1"))
    )

    assert [p["url"] for p in store.photos_for(place_id)] == ["https://new/1"]


async def test_photo_insert_failure_does_not_fail_import(store, identities, pipeline):
    store.failing.add("insert_photos")

    result = await make_service(store, identities, pipeline).import_place(
        import_request(photos=photos("https://p/1.jpg"))
    )

    assert result.created is True
    assert "cover_url" not in store.places[result.place_id]


async def test_insert_failure_is_reported(store, identities, pipeline):
    store.failing.add("insert_place")

    with pytest.raises(StoreWriteError) as exc_info:
        await make_service(store, identities, pipeline).import_place(import_request())

    assert exc_info.value.code == ErrorCode.INSERT_ERROR
    assert exc_info.value.http_status == 500


async def test_duplicate_check_failure_is_reported(store, identities, pipeline):
    store.failing.add("find_place_by_external_id")

    with pytest.raises(StoreWriteError) as exc_info:
        await make_service(store, identities, pipeline).import_place(import_request())

    assert exc_info.value.code == ErrorCode.DUPLICATE_CHECK_ERROR
    assert store.places == {}


async def test_free_user_needs_premium(store, identities, pipeline):
    with pytest.raises(PremiumRequired):
        await make_service(store, identities, pipeline).import_place(import_request(token=FREE_TOKEN))

    assert store.places == {}


async def test_profile_read_failure_without_service_key(store, identities, pipeline):
    store.failing.add("get_profile")
    service = make_service(store, identities, pipeline, service_role_configured=False)

    with pytest.raises(MissingServiceCredential):
        await service.import_place(import_request())


@pytest.mark.parametrize("token", [None, "forged"])
async def test_unauthenticated_caller(store, identities, pipeline, token):
    with pytest.raises(Unauthorized):
        await make_service(store, identities, pipeline).import_place(import_request(token=token))


async def test_missing_external_id(store, identities, pipeline):
    with pytest.raises(InvalidRequest):
        await make_service(store, identities, pipeline).import_place(
            import_request(google_place_id="  ")
        )


async def test_missing_selected_fields(store, identities, pipeline):
    request = ImportRequest(google_place_id="ext-123", access_token=OWNER_TOKEN)

    with pytest.raises(InvalidRequest):
        await make_service(store, identities, pipeline).import_place(request)
