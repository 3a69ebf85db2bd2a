"""Agent and coordinator enrollment model."""
from sqlalchemy import BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin


class NodeEnrollment(CreatedAtMixin, Base):
    """A node registered to an owner, gated by approval and email verification.

    ``active`` mirrors ``node_approved AND email_verified`` and is only ever
    written by the enrollment registry.
    """

    __tablename__ = "portal_node_enrollments"

    node_id: Mapped[str] = mapped_column(String, primary_key=True)
    node_kind: Mapped[str] = mapped_column(String, nullable=False)
    owner_user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    owner_email: Mapped[str] = mapped_column(String, nullable=False)
    registration_token_hash: Mapped[str] = mapped_column(String, nullable=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    node_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_seen_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_ip: Mapped[str | None] = mapped_column(String, nullable=True)
    last_country_code: Mapped[str | None] = mapped_column(String, nullable=True)
    last_vpn_detected: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    updated_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
