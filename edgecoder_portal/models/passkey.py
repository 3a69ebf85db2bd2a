"""WebAuthn challenge and credential models."""
from sqlalchemy import JSON, BigInteger, Boolean, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, UserOwnedMixin

TransportsJSON = JSON().with_variant(JSONB(), "postgresql")


class PasskeyChallenge(CreatedAtMixin, Base):
    """Server nonce for one registration or authentication ceremony."""

    __tablename__ = "portal_passkey_challenges"

    challenge_id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    challenge: Mapped[str] = mapped_column(String, nullable=False)
    flow_type: Mapped[str] = mapped_column(String, nullable=False)
    expires_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)


class PasskeyCredential(UserOwnedMixin, CreatedAtMixin, Base):
    """Enrolled public-key credential with its signature counter."""

    __tablename__ = "portal_passkey_credentials"

    credential_id: Mapped[str] = mapped_column(String, primary_key=True)
    webauthn_user_id: Mapped[str] = mapped_column(String, nullable=False)
    public_key_b64url: Mapped[str] = mapped_column(String, nullable=False)
    counter: Mapped[int] = mapped_column(BigInteger, nullable=False)
    device_type: Mapped[str] = mapped_column(String, nullable=False)
    backed_up: Mapped[bool] = mapped_column(Boolean, nullable=False)
    transports_json: Mapped[list[str] | None] = mapped_column(TransportsJSON, nullable=True)
    last_used_at_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
