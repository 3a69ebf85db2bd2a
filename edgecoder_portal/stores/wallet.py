"""Custodial wallet onboarding records, at most one per user."""
from __future__ import annotations

import logging

from sqlalchemy import func, select, update

from ..models import WalletOnboarding
from ..schemas import WalletOnboardingRecord
from .base import Store

logger = logging.getLogger(__name__)

WALLET_COLUMNS = tuple(WalletOnboarding.__table__.c)


class WalletOnboardingVault(Store):
    async def create(
        self,
        user_id: str,
        account_id: str,
        seed_phrase_hash: str,
        encrypted_private_key_ref: str,
        network: str | None = None,
    ) -> bool:
        """Insert the user's record unless one exists. Returns True if created.

        ``network`` defaults to ``wallet_default_network``.
        """
        network = network or self._settings.wallet_default_network
        stmt = (
            self._db.insert(WalletOnboarding)
            .values(
                user_id=user_id,
                account_id=account_id,
                network=network,
                seed_phrase_hash=seed_phrase_hash,
                encrypted_private_key_ref=encrypted_private_key_ref,
                created_at_ms=self._clock(),
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
            .returning(WalletOnboarding.user_id)
        )
        async with self._db.transaction() as session:
            created = (await session.execute(stmt)).scalar_one_or_none() is not None
        if created:
            logger.info("Wallet onboarding recorded for %s on %s", user_id, network)
        return created

    async def get(self, user_id: str) -> WalletOnboardingRecord | None:
        async with self._db.transaction() as session:
            row = (
                await session.execute(
                    select(*WALLET_COLUMNS).where(WalletOnboarding.user_id == user_id)
                )
            ).mappings().first()
        return WalletOnboardingRecord.from_row(row)

    async def acknowledge(self, user_id: str) -> WalletOnboardingRecord | None:
        """Record the backup acknowledgement; the first timestamp is kept."""
        stmt = (
            update(WalletOnboarding)
            .where(WalletOnboarding.user_id == user_id)
            .values(
                acknowledged_at_ms=func.coalesce(
                    WalletOnboarding.acknowledged_at_ms, self._clock()
                )
            )
            .returning(*WALLET_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        async with self._db.transaction() as session:
            row = (await session.execute(stmt)).mappings().first()
        return WalletOnboardingRecord.from_row(row)
