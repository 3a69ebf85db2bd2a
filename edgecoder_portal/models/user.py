"""Portal account model."""
from sqlalchemy import BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin


class User(CreatedAtMixin, Base):
    """Account keyed by user id with a unique, normalised email."""

    __tablename__ = "portal_users"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    password_hash: Mapped[str | None] = mapped_column(String, nullable=True)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    verified_at_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
