"""Shared fixtures for the enrichment pipeline tests."""
import pytest

from app.enrichment.pipeline import DescriptionPipeline
from app.models.auth import Identity, Profile
from tests.fakes import (
    ADMIN_TOKEN,
    FREE_TOKEN,
    OTHER_TOKEN,
    OWNER_TOKEN,
    FakeIdentityResolver,
    FakePlaceStore,
    UpstreamRecorder,
    make_pipeline,
)


@pytest.fixture
def store() -> FakePlaceStore:
    store = FakePlaceStore()
    store.profiles["owner"] = Profile(id="owner", subscription_status="active")
    store.profiles["other"] = Profile(id="other", role="premium")
    store.profiles["admin"] = Profile(id="admin", is_admin=True)
    store.profiles["free"] = Profile(id="free", role="standard", subscription_status="inactive")
    return store


@pytest.fixture
def identities() -> FakeIdentityResolver:
    return FakeIdentityResolver({
        OWNER_TOKEN: Identity(id="owner", email="owner@example.com"),
        OTHER_TOKEN: Identity(id="other", email="other@example.com"),
        ADMIN_TOKEN: Identity(id="admin", email="admin@example.com"),
        FREE_TOKEN: Identity(id="free", email="free@example.com"),
    })


@pytest.fixture
def upstream() -> UpstreamRecorder:
    return UpstreamRecorder()


@pytest.fixture
def pipeline(upstream) -> DescriptionPipeline:
    return make_pipeline(upstream)
