"""Login session model."""
from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, UserOwnedMixin


class PortalSession(UserOwnedMixin, CreatedAtMixin, Base):
    """Issued session; only the token hash is stored."""

    __tablename__ = "portal_sessions"

    session_id: Mapped[str] = mapped_column(String, primary_key=True)
    token_hash: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    expires_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
