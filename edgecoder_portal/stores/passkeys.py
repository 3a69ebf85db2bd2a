"""WebAuthn ceremony challenges and enrolled passkey credentials.

Signature and attestation checks happen before these calls; the store
only persists what the verifier accepted.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from ..errors import ConstraintViolation
from ..models import PasskeyChallenge, PasskeyCredential
from ..schemas import (
    PasskeyChallengeRecord,
    PasskeyCredentialRecord,
    PasskeyFlow,
    Transport,
    canonical_transports,
    coerce_choice,
)
from .base import Store

logger = logging.getLogger(__name__)

CREDENTIAL_COLUMNS = tuple(PasskeyCredential.__table__.c)


class PasskeyChallengeLedger(Store):
    """One-time challenges; consuming deletes the row."""

    async def create(
        self,
        challenge_id: str,
        challenge: str,
        flow_type: PasskeyFlow | str,
        expires_at_ms: int | None = None,
        *,
        user_id: str | None = None,
        email: str | None = None,
    ) -> int:
        """Store a challenge and return its expiry (default ``passkey_challenge_ttl_ms``).

        Raises MalformedInput for an unknown flow type.
        """
        flow = coerce_choice(PasskeyFlow, flow_type, "passkey flow")
        expires_at_ms = self._expiry(expires_at_ms, self._settings.passkey_challenge_ttl_ms)
        stmt = insert(PasskeyChallenge).values(
            challenge_id=challenge_id,
            user_id=user_id,
            email=email,
            challenge=challenge,
            flow_type=flow.value,
            expires_at_ms=expires_at_ms,
            created_at_ms=self._clock(),
        )
        try:
            async with self._db.transaction() as session:
                await session.execute(stmt)
        except IntegrityError as exc:
            raise ConstraintViolation("passkey challenge", challenge_id) from exc
        return expires_at_ms

    async def consume(self, challenge_id: str) -> PasskeyChallengeRecord | None:
        stmt = (
            delete(PasskeyChallenge)
            .where(
                PasskeyChallenge.challenge_id == challenge_id,
                PasskeyChallenge.expires_at_ms > self._clock(),
            )
            .returning(
                PasskeyChallenge.user_id,
                PasskeyChallenge.email,
                PasskeyChallenge.challenge,
                PasskeyChallenge.flow_type,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._db.transaction() as session:
            row = (await session.execute(stmt)).mappings().first()
        if row is None:
            logger.debug("Passkey challenge %s not consumable", challenge_id)
        return PasskeyChallengeRecord.from_row(row)

    async def purge_expired(self) -> int:
        async with self._db.transaction() as session:
            result = await session.execute(
                delete(PasskeyChallenge)
                .where(PasskeyChallenge.expires_at_ms <= self._clock())
                .execution_options(synchronize_session=False)
            )
        return result.rowcount or 0


class PasskeyCredentialRegistry(Store):
    """Credentials keyed by credential id; re-registration replaces metadata."""

    async def upsert(
        self,
        credential_id: str,
        user_id: str,
        webauthn_user_id: str,
        public_key_b64url: str,
        counter: int,
        device_type: str,
        backed_up: bool,
        transports: Iterable[Transport | str] | None = None,
    ) -> PasskeyCredentialRecord:
        """Store a verified registration.

        Raises MalformedInput for unknown transport values.
        """
        canonical = canonical_transports(transports)
        now = self._clock()
        stmt = self._db.insert(PasskeyCredential).values(
            credential_id=credential_id,
            user_id=user_id,
            webauthn_user_id=webauthn_user_id,
            public_key_b64url=public_key_b64url,
            counter=counter,
            device_type=device_type,
            backed_up=backed_up,
            transports_json=[t.value for t in canonical] if canonical else None,
            created_at_ms=now,
            last_used_at_ms=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["credential_id"],
            set_={
                "user_id": stmt.excluded.user_id,
                "webauthn_user_id": stmt.excluded.webauthn_user_id,
                "public_key_b64url": stmt.excluded.public_key_b64url,
                "counter": stmt.excluded.counter,
                "device_type": stmt.excluded.device_type,
                "backed_up": stmt.excluded.backed_up,
                "transports_json": stmt.excluded.transports_json,
                "last_used_at_ms": stmt.excluded.last_used_at_ms,
            },
        ).returning(*CREDENTIAL_COLUMNS)
        async with self._db.transaction() as session:
            row = (await session.execute(stmt)).mappings().one()
        logger.info("Passkey stored for %s (%s)", user_id, device_type)
        return PasskeyCredentialRecord.from_row(row)

    async def update_counter(self, credential_id: str, counter: int) -> bool:
        """Persist a counter the verifier already accepted and bump last use."""
        async with self._db.transaction() as session:
            result = await session.execute(
                update(PasskeyCredential)
                .where(PasskeyCredential.credential_id == credential_id)
                .values(counter=counter, last_used_at_ms=self._clock())
                .execution_options(synchronize_session=False)
            )
        return bool(result.rowcount)

    async def get(self, credential_id: str) -> PasskeyCredentialRecord | None:
        async with self._db.transaction() as session:
            row = (
                await session.execute(
                    select(*CREDENTIAL_COLUMNS).where(
                        PasskeyCredential.credential_id == credential_id
                    )
                )
            ).mappings().first()
        return PasskeyCredentialRecord.from_row(row)

    async def list_for_user(self, user_id: str) -> list[PasskeyCredentialRecord]:
        async with self._db.transaction() as session:
            rows = (
                await session.execute(
                    select(*CREDENTIAL_COLUMNS)
                    .where(PasskeyCredential.user_id == user_id)
                    .order_by(
                        PasskeyCredential.created_at_ms.desc(),
                        PasskeyCredential.credential_id,
                    )
                )
            ).mappings().all()
        return [PasskeyCredentialRecord.from_row(row) for row in rows]

    async def delete(self, credential_id: str, user_id: str) -> bool:
        """Remove a credential, only if it belongs to ``user_id``."""
        async with self._db.transaction() as session:
            result = await session.execute(
                delete(PasskeyCredential)
                .where(
                    PasskeyCredential.credential_id == credential_id,
                    PasskeyCredential.user_id == user_id,
                )
                .execution_options(synchronize_session=False)
            )
        removed = bool(result.rowcount)
        if removed:
            logger.info("Passkey removed for %s", user_id)
        return removed
