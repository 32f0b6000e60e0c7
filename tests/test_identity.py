import asyncio
import threading
import time
from types import SimpleNamespace

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient

from app.dependencies import get_identity_resolver
from app.errors import Unauthorized
from app.main import app
from app.services.identity import IdentityResolver

SECRET = "test-jwt-secret-with-enough-length-for-hs256"


def make_token(secret: str = SECRET, **overrides) -> str:
    claims = {
        "sub": "user-1",
        "email": "user@example.com",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def resolver() -> IdentityResolver:
    return IdentityResolver(jwt_secret=SECRET)


async def test_valid_token_resolves_identity(resolver):
    identity = await resolver.resolve_caller(make_token())

    assert identity.id == "user-1"
    assert identity.email == "user@example.com"


async def test_surrounding_whitespace_is_ignored(resolver):
    identity = await resolver.resolve_caller(f"  {make_token()}  ")

    assert identity.id == "user-1"


@pytest.mark.parametrize("credential", [None, "", "   "])
async def test_missing_credential(resolver, credential):
    with pytest.raises(Unauthorized):
        await resolver.resolve_caller(credential)


async def test_expired_token(resolver):
    with pytest.raises(Unauthorized) as exc_info:
        await resolver.resolve_caller(make_token(exp=int(time.time()) - 60))

    assert exc_info.value.message == "Token has expired"


@pytest.mark.parametrize(
    "token",
    [
        make_token(secret="some-other-secret-of-sufficient-length"),
        make_token(aud="anon"),
        make_token(sub=None),
        "not-a-jwt",
    ],
)
async def test_rejected_tokens(resolver, token):
    with pytest.raises(Unauthorized):
        await resolver.resolve_caller(token)


async def test_unconfigured_secret_rejects():
    with pytest.raises(Unauthorized):
        await IdentityResolver().resolve_caller(make_token())


class SlowJwksClient:
    """Blocks like PyJWKClient does while it downloads the key set."""

    def __init__(self, key, delay: float = 0.2):
        self.key = key
        self.delay = delay
        self.thread = None
        self.finished_at = None

    def get_signing_key_from_jwt(self, token):
        self.thread = threading.current_thread()
        time.sleep(self.delay)
        self.finished_at = time.monotonic()
        return SimpleNamespace(key=self.key)


@pytest.fixture(scope="module")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def make_rs256_token(private_key) -> str:
    claims = {"sub": "user-2", "aud": "authenticated", "exp": int(time.time()) + 3600}
    return jwt.encode(claims, private_key, algorithm="RS256", headers={"kid": "key-1"})


async def test_jwks_token_resolves_identity(rsa_key):
    resolver = IdentityResolver()
    resolver.jwks_client = SlowJwksClient(rsa_key.public_key(), delay=0)

    identity = await resolver.resolve_caller(make_rs256_token(rsa_key))

    assert identity.id == "user-2"
    assert identity.email is None


async def test_jwks_lookup_does_not_block_event_loop(rsa_key):
    jwks = SlowJwksClient(rsa_key.public_key(), delay=0.2)
    resolver = IdentityResolver()
    resolver.jwks_client = jwks
    ticked_at = []

    async def ticker():
        for _ in range(5):
            await asyncio.sleep(0.01)
        ticked_at.append(time.monotonic())

    identity, _ = await asyncio.gather(resolver.resolve_caller(make_rs256_token(rsa_key)), ticker())

    assert identity.id == "user-2"
    assert jwks.thread is not threading.main_thread()
    assert ticked_at[0] < jwks.finished_at


async def test_jwks_token_without_jwks_url_rejects(rsa_key):
    with pytest.raises(Unauthorized):
        await IdentityResolver(jwt_secret=SECRET).resolve_caller(make_rs256_token(rsa_key))


def test_resolver_is_built_once_per_app():
    with TestClient(app):
        resolver = app.state.identity_resolver
        request = SimpleNamespace(app=app)

        assert isinstance(resolver, IdentityResolver)
        assert get_identity_resolver(request) is resolver
        assert get_identity_resolver(request) is resolver
