"""Supabase Auth client for passwordless (magic link) sign-in."""

import logging
from typing import Any
from uuid import UUID

import httpx

from core.exceptions import IdentityProviderError
from domain.repositories.identity_client import AuthSession

logger = logging.getLogger(__name__)


class SupabaseIdentityClient:
    """Calls the Supabase GoTrue endpoints with the public anon key."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        anon_key: str,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._timeout = httpx.Timeout(timeout_seconds)

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._anon_key,
            "authorization": f"Bearer {self._anon_key}",
            "accept": "application/json",
        }

    async def send_magic_link(
        self, email: str, redirect_to: str, code_challenge: str | None = None
    ) -> None:
        """Ask Supabase to email a sign-in link, creating the user if needed."""
        payload: dict[str, Any] = {"email": email, "create_user": True}
        if code_challenge:
            payload["code_challenge"] = code_challenge
            payload["code_challenge_method"] = "s256"

        try:
            response = await self._client.post(
                f"{self._base_url}/auth/v1/otp",
                params={"redirect_to": redirect_to},
                json=payload,
                headers=self._headers(),
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("Magic link request failed: %s", exc)
            raise IdentityProviderError("Could not send sign-in link") from exc

        if response.status_code >= 300:
            logger.error(
                "Magic link request rejected: %s %s",
                response.status_code,
                response.text[:500],
            )
            raise IdentityProviderError("Could not send sign-in link")

    async def exchange_code(self, auth_code: str, code_verifier: str) -> AuthSession | None:
        """Trade a PKCE auth code for a session."""
        try:
            response = await self._client.post(
                f"{self._base_url}/auth/v1/token",
                params={"grant_type": "pkce"},
                json={"auth_code": auth_code, "code_verifier": code_verifier},
                headers=self._headers(),
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("Auth code exchange failed: %s", exc)
            raise IdentityProviderError("Could not complete sign-in") from exc

        if 400 <= response.status_code < 500:
            logger.info("Auth code rejected: %s", response.status_code)
            return None
        if response.status_code >= 300:
            logger.error(
                "Auth code exchange error: %s %s",
                response.status_code,
                response.text[:500],
            )
            raise IdentityProviderError("Could not complete sign-in")

        body = response.json()
        user = body.get("user") or {}
        try:
            user_id = UUID(str(user.get("id")))
        except ValueError:
            logger.error("Auth code exchange returned no usable user id")
            return None

        return AuthSession(
            access_token=body.get("access_token", ""),
            refresh_token=body.get("refresh_token", ""),
            expires_in=int(body.get("expires_in") or 0),
            token_type=body.get("token_type") or "bearer",
            user_id=user_id,
            email=user.get("email") or "",
            user_metadata=user.get("user_metadata") or {},
        )
