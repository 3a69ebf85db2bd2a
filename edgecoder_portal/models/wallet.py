"""Custodial wallet onboarding record."""
from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin


class WalletOnboarding(CreatedAtMixin, Base):
    """One row per user; holds references only, never key material."""

    __tablename__ = "portal_wallet_onboarding"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    account_id: Mapped[str] = mapped_column(String, nullable=False)
    network: Mapped[str] = mapped_column(String, nullable=False)
    seed_phrase_hash: Mapped[str] = mapped_column(String, nullable=False)
    encrypted_private_key_ref: Mapped[str] = mapped_column(String, nullable=False)
    acknowledged_at_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
