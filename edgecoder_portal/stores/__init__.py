"""Store classes, one per entity group, all sharing a Database."""
from .base import Clock, Store, now_ms
from .email_verification import EmailVerificationLedger
from .enrollment import NodeEnrollmentRegistry, derive_active
from .identity import IdentityStore
from .oauth import OAuthLinkRegistry, OAuthStateLedger
from .passkeys import PasskeyChallengeLedger, PasskeyCredentialRegistry
from .sessions import SessionLedger
from .wallet import WalletOnboardingVault

__all__ = [
    "Clock",
    "EmailVerificationLedger",
    "IdentityStore",
    "NodeEnrollmentRegistry",
    "OAuthLinkRegistry",
    "OAuthStateLedger",
    "PasskeyChallengeLedger",
    "PasskeyCredentialRegistry",
    "SessionLedger",
    "Store",
    "WalletOnboardingVault",
    "derive_active",
    "now_ms",
]
