"""SQLAlchemy models for the portal schema."""
from .base import Base
from .email_verification import EmailVerification
from .node_enrollment import NodeEnrollment
from .oauth import OAuthLink, OAuthState
from .passkey import PasskeyChallenge, PasskeyCredential
from .session import PortalSession
from .user import User
from .wallet import WalletOnboarding

__all__ = [
    "Base",
    "EmailVerification",
    "NodeEnrollment",
    "OAuthLink",
    "OAuthState",
    "PasskeyChallenge",
    "PasskeyCredential",
    "PortalSession",
    "User",
    "WalletOnboarding",
]
