"""Pydantic records returned by the stores, plus boundary enums and patches."""
from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from .errors import MalformedInput


class NodeKind(str, enum.Enum):
    AGENT = "agent"
    COORDINATOR = "coordinator"


class OAuthProvider(str, enum.Enum):
    GOOGLE = "google"
    APPLE = "apple"
    MICROSOFT = "microsoft"


class PasskeyFlow(str, enum.Enum):
    REGISTRATION = "registration"
    AUTHENTICATION = "authentication"


class Transport(str, enum.Enum):
    """Authenticator transports known to WebAuthn; declaration order is canonical."""

    USB = "usb"
    NFC = "nfc"
    BLE = "ble"
    SMART_CARD = "smart-card"
    HYBRID = "hybrid"
    INTERNAL = "internal"
    CABLE = "cable"


_TRANSPORT_VALUES = frozenset(transport.value for transport in Transport)


def coerce_choice(choices: type[enum.Enum], value: Any, label: str):
    """Return the member of ``choices`` for ``value``; MalformedInput otherwise."""
    try:
        return choices(value)
    except ValueError as exc:
        raise MalformedInput(f"unknown {label}: {value!r}") from exc


class EnrollmentState(str, enum.Enum):
    PENDING = "pending"
    AWAITING_OTHER = "awaiting_other"
    ACTIVE = "active"


def canonical_transports(values: Iterable[Any] | None) -> list[Transport] | None:
    """Validate transports and return them de-duplicated in canonical order.

    Raises MalformedInput for values that are not known transports.
    """

    if values is None:
        return None
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise MalformedInput("transports must be a list of strings")
    seen: set[Transport] = set()
    for value in values:
        try:
            seen.add(Transport(value))
        except ValueError as exc:
            raise MalformedInput(f"unknown passkey transport: {value!r}") from exc
    return [transport for transport in Transport if transport in seen]


class Record(BaseModel):
    """Base for immutable rows handed back to callers."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @classmethod
    def from_row(cls, row: Mapping[str, Any] | None):
        if row is None:
            return None
        return cls.model_validate(dict(row))


class UserRecord(Record):
    user_id: str
    email: str
    email_verified: bool
    password_hash: str | None = None
    display_name: str | None = None
    created_at_ms: int
    verified_at_ms: int | None = None


class SessionRecord(Record):
    session_id: str
    user_id: str
    expires_at_ms: int


class OAuthStateRecord(Record):
    provider: OAuthProvider
    redirect_uri: str


class NodeEnrollmentRecord(Record):
    node_id: str
    node_kind: NodeKind
    owner_user_id: str
    owner_email: str
    registration_token_hash: str
    email_verified: bool
    node_approved: bool
    active: bool
    last_seen_ms: int | None = None
    last_ip: str | None = None
    last_country_code: str | None = None
    last_vpn_detected: bool | None = None
    created_at_ms: int
    updated_at_ms: int

    @property
    def state(self) -> EnrollmentState:
        return enrollment_state(self.node_approved, self.email_verified)


def enrollment_state(node_approved: bool, email_verified: bool) -> EnrollmentState:
    if node_approved and email_verified:
        return EnrollmentState.ACTIVE
    if node_approved or email_verified:
        return EnrollmentState.AWAITING_OTHER
    return EnrollmentState.PENDING


_PATCH_COLUMNS = {
    "source_ip": "last_ip",
    "country_code": "last_country_code",
    "vpn_detected": "last_vpn_detected",
}


class NodeValidationPatch(BaseModel):
    """Telemetry from a node validation ping.

    Only fields that were explicitly provided are written. An omitted field
    keeps the stored value; a field given as ``None`` clears it.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    source_ip: str | None = None
    country_code: str | None = None
    vpn_detected: bool | None = None

    def column_values(self) -> dict[str, Any]:
        """Map the provided fields onto enrollment column names."""
        return {
            _PATCH_COLUMNS[name]: getattr(self, name)
            for name in self.model_fields_set
        }


class WalletOnboardingRecord(Record):
    user_id: str
    account_id: str
    network: str
    seed_phrase_hash: str
    encrypted_private_key_ref: str
    created_at_ms: int
    acknowledged_at_ms: int | None = None


class PasskeyChallengeRecord(Record):
    user_id: str | None = None
    email: str | None = None
    challenge: str
    flow_type: PasskeyFlow


class PasskeyCredentialRecord(Record):
    credential_id: str
    user_id: str
    webauthn_user_id: str
    public_key_b64url: str
    counter: int
    device_type: str
    backed_up: bool
    transports: list[Transport] | None = None
    created_at_ms: int
    last_used_at_ms: int | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any] | None):
        if row is None:
            return None
        data = dict(row)
        raw = data.pop("transports_json", None) or []
        known = [value for value in raw if value in _TRANSPORT_VALUES]
        data["transports"] = known or None
        return cls.model_validate(data)
