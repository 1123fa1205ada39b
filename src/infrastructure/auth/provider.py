"""Authentication provider protocol and the identity carried by a token."""

from dataclasses import dataclass
from typing import Any, Optional, Protocol
from uuid import UUID


@dataclass
class TokenUser:
    """The signed-in subject as asserted by the identity provider."""

    id: UUID
    email: str
    full_name: Optional[str] = None
    role: Optional[str] = None

    @classmethod
    def from_claims(cls, payload: dict[str, Any]) -> Optional["TokenUser"]:
        """
        Build a user from Supabase JWT claims.

        Supabase JWT payload structure:
            {
                "sub": "user-uuid",
                "email": "user@example.com",
                "role": "authenticated",
                "aud": "authenticated",
                "user_metadata": { "full_name": "Jane Doe" },
                "exp": 1234567890
            }

        Returns None when ``sub`` is missing or not a UUID, or ``email`` is missing.
        """
        subject = payload.get("sub")
        email = payload.get("email")
        if not subject or not email:
            return None
        try:
            user_id = UUID(str(subject))
        except ValueError:
            return None

        user_metadata = payload.get("user_metadata") or {}
        full_name = (
            user_metadata.get("full_name")
            or user_metadata.get("name")
            or payload.get("name")
        )
        return cls(id=user_id, email=email, full_name=full_name, role=payload.get("role"))


class IAuthProvider(Protocol):
    """Protocol for authentication providers."""

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """Return the token's user, or None if the token is invalid or expired."""
        ...
