"""Facade that wires every store onto one shared connection pool."""
from __future__ import annotations

import logging
from collections.abc import Mapping

from .config import Settings, database_url_from_env
from .credentials import clear_cookie, encode_cookie
from .database import Database
from .stores import (
    Clock,
    EmailVerificationLedger,
    IdentityStore,
    NodeEnrollmentRegistry,
    OAuthLinkRegistry,
    OAuthStateLedger,
    PasskeyChallengeLedger,
    PasskeyCredentialRegistry,
    SessionLedger,
    WalletOnboardingVault,
    now_ms,
)

logger = logging.getLogger(__name__)


class PortalStore:
    """All portal stores built from one explicit Settings object."""

    def __init__(self, settings: Settings, clock: Clock = now_ms) -> None:
        self.settings = settings
        self.db = Database(settings)
        self.identities = IdentityStore(self.db, clock)
        self.sessions = SessionLedger(self.db, clock)
        self.email_verifications = EmailVerificationLedger(self.db, clock)
        self.oauth_links = OAuthLinkRegistry(self.db, clock)
        self.oauth_states = OAuthStateLedger(self.db, clock)
        self.enrollments = NodeEnrollmentRegistry(self.db, clock)
        self.wallets = WalletOnboardingVault(self.db, clock)
        self.passkey_challenges = PasskeyChallengeLedger(self.db, clock)
        self.passkeys = PasskeyCredentialRegistry(self.db, clock)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PortalStore | None":
        """Build a store from environment variables, or None when no database is configured."""
        if database_url_from_env(environ) is None:
            logger.warning("PORTAL_DATABASE_URL not set; portal store disabled")
            return None
        return cls(Settings.from_env(environ))

    async def migrate(self) -> None:
        await self.db.create_schema()

    async def purge_expired(self) -> dict[str, int]:
        """Out-of-band cleanup of rows no consume or lookup can match any more."""
        return {
            "sessions": await self.sessions.purge_expired(),
            "email_verifications": await self.email_verifications.purge_expired(),
            "oauth_states": await self.oauth_states.purge_expired(),
            "passkey_challenges": await self.passkey_challenges.purge_expired(),
        }

    def encode_cookie(self, name: str, value: str, max_age_seconds: int | None = None) -> str:
        """Set-Cookie value; Secure follows the environment, max age the session lifetime."""
        if max_age_seconds is None:
            max_age_seconds = self.settings.session_ttl_ms // 1000
        return encode_cookie(name, value, max_age_seconds, secure=self.settings.secure_cookies)

    def clear_cookie(self, name: str) -> str:
        return clear_cookie(name, secure=self.settings.secure_cookies)

    async def close(self) -> None:
        await self.db.dispose()

    async def __aenter__(self) -> "PortalStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
