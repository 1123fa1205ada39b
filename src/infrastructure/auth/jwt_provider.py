"""Supabase access token verification.

Asymmetric tokens (ES256/RS256) are checked against the project's published
JWKS; HS256 tokens against the shared JWT secret, which is also how tests and
local development mint tokens.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from jose import JOSEError, jwk, jwt

from core.config import settings
from infrastructure.auth.provider import TokenUser

logger = logging.getLogger(__name__)

ASYMMETRIC_ALGORITHMS = ("ES256", "RS256")
AUDIENCE = "authenticated"


class JWKSCache:
    """Signing keys from the JWKS endpoint, keyed by ``kid``.

    Keys are refetched once they are older than ``ttl_seconds``, or when a
    token names an unknown ``kid`` (signing key rotation). Misses never
    trigger more than one fetch per ``min_refresh_seconds``.
    """

    def __init__(
        self,
        url: str,
        ttl_seconds: float = 3600.0,
        min_refresh_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._ttl = ttl_seconds
        self._min_refresh = min_refresh_seconds
        self._transport = transport
        self._keys: dict[str, dict[str, Any]] = {}
        self._fetched_at: float | None = None

    async def get(self, kid: str) -> dict[str, Any] | None:
        if self._age() is None or self._age() > self._ttl:
            await self.refresh()
        key = self._keys.get(kid)
        if key is None and (self._age() is None or self._age() >= self._min_refresh):
            await self.refresh()
            key = self._keys.get(kid)
        return key

    async def refresh(self) -> None:
        if not self._url:
            return
        self._fetched_at = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                response = await client.get(self._url)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception("Failed to fetch JWKS from %s", self._url)
            return

        self._keys = {key["kid"]: key for key in data.get("keys", []) if key.get("kid")}
        logger.info("Loaded %d JWKS keys", len(self._keys))

    def _age(self) -> float | None:
        if self._fetched_at is None:
            return None
        return time.monotonic() - self._fetched_at


class JWTAuthProvider:
    """Validates Supabase access tokens and mints HS256 tokens for tests."""

    def __init__(
        self,
        secret_key: str = settings.jwt_secret_key,
        algorithm: str = settings.jwt_algorithm,
        expire_minutes: int = settings.jwt_expire_minutes,
        jwks: JWKSCache | None = None,
        allow_symmetric: bool = settings.symmetric_tokens_allowed,
    ) -> None:
        self._secret_key = secret_key
        self._allow_symmetric = allow_symmetric
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes
        self._jwks = jwks if jwks is not None else JWKSCache(settings.supabase_jwks_url)

    async def validate_token(self, token: str) -> TokenUser | None:
        """
        Verify signature, expiry and audience, then read the subject.

        Returns:
            TokenUser if valid, None if invalid, expired or missing claims
        """
        try:
            header = jwt.get_unverified_header(token)
            alg = header.get("alg", self._algorithm)

            if alg in ASYMMETRIC_ALGORITHMS:
                key: Any = await self._public_key(header.get("kid"), alg)
                if key is None:
                    return None
                algorithms = [alg]
            elif self._allow_symmetric:
                key = self._secret_key
                algorithms = [self._algorithm]
            else:
                logger.warning("Rejected %s token: symmetric verification disabled", alg)
                return None

            payload = jwt.decode(token, key, algorithms=algorithms, audience=AUDIENCE)
        except JOSEError:
            return None

        return TokenUser.from_claims(payload)

    async def _public_key(self, kid: str | None, alg: str) -> Any:
        if not kid:
            return None
        key_data = await self._jwks.get(kid)
        if key_data is None:
            logger.warning("No JWKS key for kid=%s", kid)
            return None
        return jwk.construct(key_data, algorithm=alg)

    def create_token(self, user: TokenUser) -> str:
        """Create an HS256 token shaped like a Supabase access token."""
        issued_at = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": str(user.id),
            "email": user.email,
            "aud": AUDIENCE,
            "role": "authenticated",
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=self._expire_minutes),
            "user_metadata": {"full_name": user.full_name},
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
