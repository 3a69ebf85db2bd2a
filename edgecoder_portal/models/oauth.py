"""OAuth identity links and redirect state."""
from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin


class OAuthLink(CreatedAtMixin, Base):
    """Maps a provider subject to a portal user."""

    __tablename__ = "portal_oauth_links"

    provider: Mapped[str] = mapped_column(String, primary_key=True)
    provider_subject: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    email_snapshot: Mapped[str | None] = mapped_column(String, nullable=True)


class OAuthState(CreatedAtMixin, Base):
    """Anti-forgery state for one OAuth redirect round trip."""

    __tablename__ = "portal_oauth_states"

    state_id: Mapped[str] = mapped_column(String, primary_key=True)
    provider: Mapped[str] = mapped_column(String, nullable=False)
    redirect_uri: Mapped[str] = mapped_column(String, nullable=False)
    expires_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
