"""Resolve bearer credentials to caller identities."""
import logging
from typing import Optional

import jwt
from fastapi.concurrency import run_in_threadpool
from jwt import PyJWKClient

from app.config import Settings
from app.errors import Unauthorized
from app.models.auth import Identity

logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Verifies session JWTs issued by the hosted auth service.

    HS256 tokens are checked against the shared JWT secret. When a JWKS url
    is configured, RS256/ES256 tokens are checked against its signing keys.
    Built once per process so the JWKS client keeps its key cache.
    """

    def __init__(
        self,
        jwt_secret: Optional[str] = None,
        jwks_url: Optional[str] = None,
        audience: Optional[str] = "authenticated",
    ):
        self.jwt_secret = jwt_secret
        self.audience = audience
        self.jwks_client = PyJWKClient(jwks_url) if jwks_url else None

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityResolver":
        return cls(
            jwt_secret=settings.auth_jwt_secret,
            jwks_url=settings.auth_jwks_url,
            audience=settings.auth_jwt_audience,
        )

    async def _decode(self, token: str) -> dict:
        options = {"require": ["sub", "exp"], "verify_aud": bool(self.audience)}
        algorithm = jwt.get_unverified_header(token).get("alg")

        if algorithm == "HS256":
            if not self.jwt_secret:
                raise Unauthorized("Token verification is not configured on server")
            return jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                audience=self.audience,
                options=options,
            )

        if self.jwks_client is None:
            raise Unauthorized("Token verification is not configured on server")
        # Key lookup may fetch the JWKS document with blocking urllib
        signing_key = await run_in_threadpool(self.jwks_client.get_signing_key_from_jwt, token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
            audience=self.audience,
            options=options,
        )

    async def resolve_caller(self, credential: Optional[str]) -> Identity:
        """
        Validate a bearer token and return the caller.

        Raises:
            Unauthorized: missing, malformed, expired or rejected token
        """
        if not credential or not credential.strip():
            raise Unauthorized()

        try:
            payload = await self._decode(credential.strip())
        except jwt.ExpiredSignatureError:
            logger.warning("Token has expired")
            raise Unauthorized("Token has expired")
        except jwt.PyJWTError as e:
            logger.warning(f"Invalid token: {str(e)}")
            raise Unauthorized()

        return Identity(id=str(payload["sub"]), email=payload.get("email"))
