"""Single-use email confirmation tokens."""
from __future__ import annotations

import logging

from sqlalchemy import delete, insert, or_, update
from sqlalchemy.exc import IntegrityError

from ..errors import ConstraintViolation
from ..models import EmailVerification
from .base import Store

logger = logging.getLogger(__name__)


class EmailVerificationLedger(Store):
    """Tokens are consumed with one conditional UPDATE; only one caller can win."""

    async def create(
        self, token_id: str, user_id: str, token_hash: str, expires_at_ms: int | None = None
    ) -> int:
        """Store a token hash and return its expiry (default ``email_verify_ttl_ms``)."""
        expires_at_ms = self._expiry(expires_at_ms, self._settings.email_verify_ttl_ms)
        stmt = insert(EmailVerification).values(
            token_id=token_id,
            user_id=user_id,
            token_hash=token_hash,
            expires_at_ms=expires_at_ms,
            created_at_ms=self._clock(),
        )
        try:
            async with self._db.transaction() as session:
                await session.execute(stmt)
        except IntegrityError as exc:
            raise ConstraintViolation("email verification", "token id or hash reused") from exc
        return expires_at_ms

    async def consume(self, token_hash: str) -> str | None:
        """Mark the token consumed and return its user id.

        Unknown, expired and already-consumed tokens all return None.
        """
        now = self._clock()
        stmt = (
            update(EmailVerification)
            .where(
                EmailVerification.token_hash == token_hash,
                EmailVerification.consumed_at_ms.is_(None),
                EmailVerification.expires_at_ms > now,
            )
            .values(consumed_at_ms=now)
            .returning(EmailVerification.user_id)
            .execution_options(synchronize_session=False)
        )
        async with self._db.transaction() as session:
            user_id = (await session.execute(stmt)).scalar_one_or_none()
        if user_id is None:
            logger.debug("Email verification token not consumable")
        return user_id

    async def purge_expired(self) -> int:
        """Delete consumed tokens and tokens past their expiry."""
        async with self._db.transaction() as session:
            result = await session.execute(
                delete(EmailVerification)
                .where(
                    or_(
                        EmailVerification.consumed_at_ms.is_not(None),
                        EmailVerification.expires_at_ms <= self._clock(),
                    )
                )
                .execution_options(synchronize_session=False)
            )
        removed = result.rowcount or 0
        if removed:
            logger.info("Purged %d spent email verification token(s)", removed)
        return removed
