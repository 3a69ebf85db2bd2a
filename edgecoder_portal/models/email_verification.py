"""Single-use email confirmation tokens."""
from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, UserOwnedMixin


class EmailVerification(UserOwnedMixin, CreatedAtMixin, Base):
    """Email confirmation token, consumed at most once."""

    __tablename__ = "portal_email_verifications"

    token_id: Mapped[str] = mapped_column(String, primary_key=True)
    token_hash: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    expires_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    consumed_at_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
