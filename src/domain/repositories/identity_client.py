"""Identity provider client protocol."""

from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID


@dataclass
class AuthSession:
    """Session issued by the identity provider after a successful sign-in."""

    access_token: str
    refresh_token: str
    expires_in: int
    user_id: UUID
    email: str
    token_type: str = "bearer"
    user_metadata: dict[str, Any] = field(default_factory=dict)


class IIdentityClient(Protocol):
    """Passwordless sign-in operations delegated to the identity provider."""

    async def send_magic_link(
        self, email: str, redirect_to: str, code_challenge: str | None = None
    ) -> None:
        """Ask the provider to email a sign-in link. Raises IdentityProviderError."""
        ...

    async def exchange_code(self, auth_code: str, code_verifier: str) -> AuthSession | None:
        """Trade a PKCE auth code for a session; None when the code is rejected."""
        ...
