"""OAuth identity links and one-time redirect state."""
from __future__ import annotations

import logging

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError

from ..errors import ConstraintViolation, MalformedInput
from ..models import OAuthLink, OAuthState
from ..schemas import OAuthProvider, OAuthStateRecord, coerce_choice
from .base import Store

logger = logging.getLogger(__name__)


class OAuthLinkRegistry(Store):
    """(provider, subject) -> user id. Re-linking re-points to the latest user."""

    async def link(
        self,
        provider: OAuthProvider | str,
        provider_subject: str,
        user_id: str,
        email_snapshot: str | None = None,
    ) -> None:
        """Raises MalformedInput for an unsupported provider."""
        provider = coerce_choice(OAuthProvider, provider, "OAuth provider")
        stmt = self._db.insert(OAuthLink).values(
            provider=provider.value,
            provider_subject=provider_subject,
            user_id=user_id,
            email_snapshot=email_snapshot,
            created_at_ms=self._clock(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["provider", "provider_subject"],
            set_={
                "user_id": stmt.excluded.user_id,
                "email_snapshot": stmt.excluded.email_snapshot,
            },
        )
        async with self._db.transaction() as session:
            await session.execute(stmt)
        logger.info("Linked %s identity to %s", provider.value, user_id)

    async def find(self, provider: OAuthProvider | str, provider_subject: str) -> str | None:
        """Linked user id, or None. Unsupported providers are never linked."""
        try:
            provider = coerce_choice(OAuthProvider, provider, "OAuth provider")
        except MalformedInput:
            logger.debug("Lookup for unsupported OAuth provider %r", provider)
            return None
        stmt = select(OAuthLink.user_id).where(
            OAuthLink.provider == provider.value,
            OAuthLink.provider_subject == provider_subject,
        )
        async with self._db.transaction() as session:
            return (await session.execute(stmt)).scalar_one_or_none()


class OAuthStateLedger(Store):
    """Anti-forgery state; consuming deletes the row."""

    async def create(
        self,
        state_id: str,
        provider: OAuthProvider | str,
        redirect_uri: str,
        expires_at_ms: int | None = None,
    ) -> int:
        """Store a state row and return its expiry (default ``oauth_state_ttl_ms``).

        Raises MalformedInput for an unsupported provider.
        """
        provider = coerce_choice(OAuthProvider, provider, "OAuth provider")
        expires_at_ms = self._expiry(expires_at_ms, self._settings.oauth_state_ttl_ms)
        stmt = insert(OAuthState).values(
            state_id=state_id,
            provider=provider.value,
            redirect_uri=redirect_uri,
            expires_at_ms=expires_at_ms,
            created_at_ms=self._clock(),
        )
        try:
            async with self._db.transaction() as session:
                await session.execute(stmt)
        except IntegrityError as exc:
            raise ConstraintViolation("oauth state", state_id) from exc
        return expires_at_ms

    async def consume(self, state_id: str) -> OAuthStateRecord | None:
        stmt = (
            delete(OAuthState)
            .where(OAuthState.state_id == state_id, OAuthState.expires_at_ms > self._clock())
            .returning(OAuthState.provider, OAuthState.redirect_uri)
            .execution_options(synchronize_session=False)
        )
        async with self._db.transaction() as session:
            row = (await session.execute(stmt)).mappings().first()
        if row is None:
            logger.debug("OAuth state %s not consumable", state_id)
        return OAuthStateRecord.from_row(row)

    async def purge_expired(self) -> int:
        async with self._db.transaction() as session:
            result = await session.execute(
                delete(OAuthState)
                .where(OAuthState.expires_at_ms <= self._clock())
                .execution_options(synchronize_session=False)
            )
        return result.rowcount or 0
