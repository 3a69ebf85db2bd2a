"""Node enrollment registry: approval x email verification -> activation.

``active`` is never written from caller input. Every statement that
changes ``node_approved`` or ``email_verified`` also writes
``active = derive_active(...)`` in the same statement.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import and_, case, false, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..credentials import hash_token, secure_compare
from ..models import NodeEnrollment
from ..schemas import NodeEnrollmentRecord, NodeKind, NodeValidationPatch, coerce_choice
from .base import Store

logger = logging.getLogger(__name__)

ENROLLMENT_COLUMNS = tuple(NodeEnrollment.__table__.c)


def _as_condition(value: Any):
    if isinstance(value, bool):
        return true() if value else false()
    return value.is_(True)


def derive_active(node_approved: Any, email_verified: Any) -> Any:
    """Compute ``active`` from its two inputs.

    With plain booleans this returns a bool. When either input is a column
    or SQL expression it returns a CASE expression that the database
    evaluates against the row being written.
    """
    if isinstance(node_approved, bool) and isinstance(email_verified, bool):
        return node_approved and email_verified
    return case(
        (and_(_as_condition(node_approved), _as_condition(email_verified)), true()),
        else_=false(),
    )


async def fan_out_email_verified(session: AsyncSession, owner_user_id: str, now: int) -> int:
    """Flip email_verified on every enrollment of an owner, inside the caller's transaction."""
    result = await session.execute(
        update(NodeEnrollment)
        .where(NodeEnrollment.owner_user_id == owner_user_id)
        .values(
            email_verified=True,
            active=derive_active(NodeEnrollment.node_approved, True),
            updated_at_ms=now,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


class NodeEnrollmentRegistry(Store):
    """Persistent enrollment state machine for agents and coordinators."""

    async def upsert(
        self,
        node_id: str,
        node_kind: NodeKind | str,
        owner_user_id: str,
        owner_email: str,
        registration_token_hash: str,
        email_verified: bool,
    ) -> NodeEnrollmentRecord:
        """Register a node, or re-register it keeping its approval.

        On conflict the kind, owner, token hash and email flag are replaced
        and ``active`` is recomputed from the row's existing approval.
        Raises MalformedInput for an unknown node kind.
        """
        kind = coerce_choice(NodeKind, node_kind, "node kind")
        now = self._clock()
        stmt = self._db.insert(NodeEnrollment).values(
            node_id=node_id,
            node_kind=kind.value,
            owner_user_id=owner_user_id,
            owner_email=owner_email,
            registration_token_hash=registration_token_hash,
            email_verified=email_verified,
            node_approved=False,
            active=False,
            created_at_ms=now,
            updated_at_ms=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["node_id"],
            set_={
                "node_kind": stmt.excluded.node_kind,
                "owner_user_id": stmt.excluded.owner_user_id,
                "owner_email": stmt.excluded.owner_email,
                "registration_token_hash": stmt.excluded.registration_token_hash,
                "email_verified": stmt.excluded.email_verified,
                "active": derive_active(NodeEnrollment.node_approved, stmt.excluded.email_verified),
                "updated_at_ms": stmt.excluded.updated_at_ms,
            },
        ).returning(*ENROLLMENT_COLUMNS)

        async with self._db.transaction() as session:
            row = (await session.execute(stmt)).mappings().one()
        record = NodeEnrollmentRecord.from_row(row)
        logger.info("Node %s enrolled for %s (state=%s)", node_id, owner_user_id, record.state.value)
        return record

    async def set_approval(self, node_id: str, approved: bool) -> NodeEnrollmentRecord | None:
        stmt = (
            update(NodeEnrollment)
            .where(NodeEnrollment.node_id == node_id)
            .values(
                node_approved=approved,
                active=derive_active(bool(approved), NodeEnrollment.email_verified),
                updated_at_ms=self._clock(),
            )
            .returning(*ENROLLMENT_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        async with self._db.transaction() as session:
            row = (await session.execute(stmt)).mappings().first()
        if row is None:
            logger.debug("Approval change for unknown node %s", node_id)
            return None
        record = NodeEnrollmentRecord.from_row(row)
        logger.info("Node %s approval=%s (state=%s)", node_id, approved, record.state.value)
        return record

    async def mark_owner_email_verified(self, owner_user_id: str) -> int:
        """Apply the owner's email verification to all their nodes. Returns rows changed."""
        async with self._db.transaction() as session:
            changed = await fan_out_email_verified(session, owner_user_id, self._clock())
        logger.info("Email verification applied to %d node(s) of %s", changed, owner_user_id)
        return changed

    async def touch_validation(
        self, node_id: str, patch: NodeValidationPatch | None = None
    ) -> NodeEnrollmentRecord | None:
        """Record a validation ping. Only fields present in ``patch`` are written."""
        now = self._clock()
        values: dict[str, Any] = {"last_seen_ms": now, "updated_at_ms": now}
        if patch is not None:
            values.update(patch.column_values())
        stmt = (
            update(NodeEnrollment)
            .where(NodeEnrollment.node_id == node_id)
            .values(**values)
            .returning(*ENROLLMENT_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        async with self._db.transaction() as session:
            row = (await session.execute(stmt)).mappings().first()
        return NodeEnrollmentRecord.from_row(row)

    async def get(self, node_id: str) -> NodeEnrollmentRecord | None:
        async with self._db.transaction() as session:
            row = (
                await session.execute(
                    select(*ENROLLMENT_COLUMNS).where(NodeEnrollment.node_id == node_id)
                )
            ).mappings().first()
        return NodeEnrollmentRecord.from_row(row)

    async def list_by_owner(self, owner_user_id: str) -> list[NodeEnrollmentRecord]:
        async with self._db.transaction() as session:
            rows = (
                await session.execute(
                    select(*ENROLLMENT_COLUMNS)
                    .where(NodeEnrollment.owner_user_id == owner_user_id)
                    .order_by(NodeEnrollment.updated_at_ms.desc(), NodeEnrollment.node_id)
                )
            ).mappings().all()
        return [NodeEnrollmentRecord.from_row(row) for row in rows]

    async def verify_registration_token(
        self, node_id: str, raw_token: str
    ) -> NodeEnrollmentRecord | None:
        """Return the enrollment when ``raw_token`` matches its stored hash."""
        record = await self.get(node_id)
        if record is None:
            return None
        if not secure_compare(record.registration_token_hash, hash_token(raw_token)):
            logger.debug("Registration token mismatch for node %s", node_id)
            return None
        return record
