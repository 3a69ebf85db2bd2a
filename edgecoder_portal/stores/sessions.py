"""Issued login sessions, looked up by token hash."""
from __future__ import annotations

import logging

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError

from ..errors import ConstraintViolation
from ..models import PortalSession
from ..schemas import SessionRecord
from .base import Store

logger = logging.getLogger(__name__)


class SessionLedger(Store):
    """Session rows store only the token hash; expired rows are ignored on read."""

    async def create(
        self, session_id: str, user_id: str, token_hash: str, expires_at_ms: int | None = None
    ) -> SessionRecord:
        """Store a new session; without ``expires_at_ms`` it lives for ``session_ttl_ms``."""
        expires_at_ms = self._expiry(expires_at_ms, self._settings.session_ttl_ms)
        stmt = insert(PortalSession).values(
            session_id=session_id,
            user_id=user_id,
            token_hash=token_hash,
            expires_at_ms=expires_at_ms,
            created_at_ms=self._clock(),
        )
        try:
            async with self._db.transaction() as session:
                await session.execute(stmt)
        except IntegrityError as exc:
            raise ConstraintViolation("session", "session id or token hash reused") from exc
        return SessionRecord(session_id=session_id, user_id=user_id, expires_at_ms=expires_at_ms)

    async def get_by_token_hash(self, token_hash: str) -> SessionRecord | None:
        stmt = select(
            PortalSession.session_id, PortalSession.user_id, PortalSession.expires_at_ms
        ).where(
            PortalSession.token_hash == token_hash,
            PortalSession.expires_at_ms > self._clock(),
        )
        async with self._db.transaction() as session:
            row = (await session.execute(stmt)).mappings().first()
        return SessionRecord.from_row(row)

    async def delete_by_token_hash(self, token_hash: str) -> bool:
        """Logout. Returns whether a session row was removed."""
        async with self._db.transaction() as session:
            result = await session.execute(
                delete(PortalSession)
                .where(PortalSession.token_hash == token_hash)
                .execution_options(synchronize_session=False)
            )
        return bool(result.rowcount)

    async def delete_for_user(self, user_id: str) -> int:
        """Drop every session of a user (sign out everywhere)."""
        async with self._db.transaction() as session:
            result = await session.execute(
                delete(PortalSession)
                .where(PortalSession.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
        removed = result.rowcount or 0
        logger.info("Removed %d session(s) for %s", removed, user_id)
        return removed

    async def purge_expired(self) -> int:
        async with self._db.transaction() as session:
            result = await session.execute(
                delete(PortalSession)
                .where(PortalSession.expires_at_ms <= self._clock())
                .execution_options(synchronize_session=False)
            )
        removed = result.rowcount or 0
        if removed:
            logger.info("Purged %d expired session(s)", removed)
        return removed
