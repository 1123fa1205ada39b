"""Passwordless sign-in flow backed by the identity provider."""

from dataclasses import dataclass
from urllib.parse import urlsplit

import structlog

from core.exceptions import AuthenticationError, ErrorCode, InvalidInputError
from domain.entities.profile import Profile
from domain.repositories.identity_client import AuthSession, IIdentityClient
from domain.services.profile_service import ProfileService

logger = structlog.get_logger()

DEFAULT_NEXT_PATH = "/dashboard"


@dataclass
class SignInResult:
    """Session plus the profile synced for it (None if the sync failed)."""

    session: AuthSession
    profile: Profile | None
    redirect_to: str


def safe_next_path(next_path: str | None) -> str:
    """Only same-site absolute paths are honoured as post-login destinations."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return DEFAULT_NEXT_PATH
    return next_path


class AuthService:
    """Sign-in orchestration: magic links, code exchange, profile sync."""

    def __init__(
        self,
        identity_client: IIdentityClient,
        profile_service: ProfileService,
        site_url: str,
    ) -> None:
        self._identity_client = identity_client
        self._profile_service = profile_service
        self._site_url = site_url.rstrip("/")

    @property
    def default_redirect(self) -> str:
        return f"{self._site_url}/auth/callback"

    async def send_magic_link(
        self,
        email: str,
        redirect_to: str | None = None,
        code_challenge: str | None = None,
    ) -> None:
        """Email a sign-in link that lands back on this site.

        ``code_challenge`` is the PKCE S256 challenge whose verifier the client
        keeps for the later code exchange.
        """
        target = redirect_to or self.default_redirect
        site = urlsplit(self._site_url)
        parsed = urlsplit(target)
        if (parsed.scheme, parsed.netloc) != (site.scheme, site.netloc):
            raise InvalidInputError(
                "Redirect URL must belong to this site",
                details={"redirect_to": target},
            )

        await self._identity_client.send_magic_link(email, target, code_challenge)
        logger.info("magic_link_sent", email_domain=email.rsplit("@", 1)[-1])

    async def complete_sign_in(
        self,
        auth_code: str,
        code_verifier: str,
        next_path: str | None = None,
    ) -> SignInResult:
        """
        Exchange the emailed auth code for a session and upsert the profile.

        Raises:
            AuthenticationError: the provider rejected the code
        """
        session = await self._identity_client.exchange_code(auth_code, code_verifier)
        if session is None:
            raise AuthenticationError(
                message="Sign-in link is invalid or has expired",
                error_code=ErrorCode.AUTH_CODE_INVALID,
            )

        full_name = session.user_metadata.get("full_name") or session.user_metadata.get("name")
        profile: Profile | None = None
        try:
            profile = await self._profile_service.sync_from_identity(
                session.user_id, session.email, full_name
            )
        except Exception:
            # sign-in proceeds without a profile row; the next mutation upserts it
            logger.exception("profile_sync_failed", owner_id=str(session.user_id))

        logger.info("sign_in_completed", owner_id=str(session.user_id))
        return SignInResult(
            session=session,
            profile=profile,
            redirect_to=f"{self._site_url}{safe_next_path(next_path)}",
        )
