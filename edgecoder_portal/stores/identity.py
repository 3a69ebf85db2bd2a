"""Account records keyed by user id and unique email."""
from __future__ import annotations

import logging

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError

from ..credentials import normalize_email
from ..errors import ConstraintViolation
from ..models import User
from ..schemas import UserRecord
from .base import Store
from .enrollment import fan_out_email_verified

logger = logging.getLogger(__name__)

USER_COLUMNS = tuple(User.__table__.c)


class IdentityStore(Store):
    """Create, look up and verify portal accounts."""

    async def create_user(
        self,
        user_id: str,
        email: str,
        *,
        password_hash: str | None = None,
        display_name: str | None = None,
        email_verified: bool = False,
    ) -> UserRecord:
        """Insert a new account.

        Raises ConstraintViolation when the id or (normalised) email is taken.
        """
        now = self._clock()
        stmt = (
            insert(User)
            .values(
                user_id=user_id,
                email=normalize_email(email),
                email_verified=email_verified,
                password_hash=password_hash,
                display_name=display_name,
                created_at_ms=now,
                verified_at_ms=now if email_verified else None,
            )
            .returning(*USER_COLUMNS)
        )
        try:
            async with self._db.transaction() as session:
                row = (await session.execute(stmt)).mappings().one()
        except IntegrityError as exc:
            logger.info("Rejected duplicate account %s", user_id)
            raise ConstraintViolation("user", "user id or email already registered") from exc
        return UserRecord.from_row(row)

    async def get_by_id(self, user_id: str) -> UserRecord | None:
        async with self._db.transaction() as session:
            row = (
                await session.execute(select(*USER_COLUMNS).where(User.user_id == user_id))
            ).mappings().first()
        return UserRecord.from_row(row)

    async def get_by_email(self, email: str) -> UserRecord | None:
        """Case-insensitive lookup."""
        async with self._db.transaction() as session:
            row = (
                await session.execute(
                    select(*USER_COLUMNS).where(func.lower(User.email) == normalize_email(email))
                )
            ).mappings().first()
        return UserRecord.from_row(row)

    async def mark_email_verified(self, user_id: str) -> UserRecord | None:
        """Flip the account to verified and fan out to its node enrollments.

        ``verified_at_ms`` keeps the time of the first verification. Both
        updates commit together.
        """
        now = self._clock()
        stmt = (
            update(User)
            .where(User.user_id == user_id)
            .values(
                email_verified=True,
                verified_at_ms=func.coalesce(User.verified_at_ms, now),
            )
            .returning(*USER_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        async with self._db.transaction() as session:
            row = (await session.execute(stmt)).mappings().first()
            if row is None:
                logger.debug("Verification for unknown user %s", user_id)
                return None
            nodes = await fan_out_email_verified(session, user_id, now)
        logger.info("User %s email verified; %d node(s) updated", user_id, nodes)
        return UserRecord.from_row(row)

    async def set_password_hash(self, user_id: str, password_hash: str) -> bool:
        async with self._db.transaction() as session:
            result = await session.execute(
                update(User)
                .where(User.user_id == user_id)
                .values(password_hash=password_hash)
                .execution_options(synchronize_session=False)
            )
        return bool(result.rowcount)

    async def set_display_name(self, user_id: str, display_name: str | None) -> bool:
        async with self._db.transaction() as session:
            result = await session.execute(
                update(User)
                .where(User.user_id == user_id)
                .values(display_name=display_name)
                .execution_options(synchronize_session=False)
            )
        return bool(result.rowcount)
