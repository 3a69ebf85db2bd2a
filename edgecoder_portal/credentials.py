"""Password, token and payload helpers used before any store call.

Nothing here touches the database. Stores only ever receive the hashed or
normalised values these functions produce.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re
import secrets
from typing import Any, Mapping
from urllib.parse import quote, unquote

PASSWORD_ALGORITHM = "scrypt"
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_DKLEN = 64
SALT_BYTES = 16

WALLET_REF_PREFIX = "seed-sha256:"

PASSKEY_BINARY_FIELDS = (
    "clientDataJSON",
    "attestationObject",
    "authenticatorData",
    "signature",
    "userHandle",
)

_IOS_PREFIX = re.compile(r"^(ios-|iphone-)")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


# ---------- passwords ----------
def _scrypt_hex(password: str, salt: str) -> str:
    derived = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        maxmem=64 * 1024 * 1024,
        dklen=SCRYPT_DKLEN,
    )
    return derived.hex()


def hash_password(password: str) -> str:
    """Hash a password for storage as ``scrypt$<salt>$<hex>``."""
    salt = secrets.token_hex(SALT_BYTES)
    return f"{PASSWORD_ALGORITHM}${salt}${_scrypt_hex(password, salt)}"


def verify_password(password: str, encoded: str | None) -> bool:
    """Check a plain password against the stored encoding. Fails closed."""
    if not isinstance(password, str) or not isinstance(encoded, str):
        return False
    parts = encoded.split("$")
    if len(parts) != 3:
        return False
    algo, salt, hash_hex = parts
    if algo != PASSWORD_ALGORITHM or not salt or not hash_hex:
        return False
    return secure_compare(_scrypt_hex(password, salt), hash_hex)


def secure_compare(a: str, b: str) -> bool:
    """Constant-time string comparison. Length mismatch returns early."""
    left = a.encode("utf-8")
    right = b.encode("utf-8")
    if len(left) != len(right):
        return False
    return hmac.compare_digest(left, right)


# ---------- tokens ----------
def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def hash_token(raw_token: str) -> str:
    """One-way hash for session, verification and registration tokens at rest."""
    return sha256_hex(raw_token)


def generate_token(nbytes: int = 32) -> str:
    """Random URL-safe raw token to hand to the client."""
    return secrets.token_urlsafe(nbytes)


def generate_six_digit_code() -> str:
    """Return a zero-padded code in 000000-999999.

    A 32-bit random value is reduced modulo 1_000_000, so values below
    ``2**32 % 1_000_000`` are very slightly more likely. The bias is below
    one part in four thousand and is accepted for short-lived codes.
    """
    value = int.from_bytes(secrets.token_bytes(4), "big") % 1_000_000
    return f"{value:06d}"


def derive_wallet_secret_ref(seed_phrase: str, account_id: str, pepper: str) -> str:
    """Deterministic keyed hash binding a seed phrase to an account and pepper."""
    digest = hashlib.sha256()
    for chunk in (seed_phrase, ":", account_id, ":", pepper):
        digest.update(chunk.encode("utf-8"))
    return f"{WALLET_REF_PREFIX}{digest.hexdigest()}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------- base64url ----------
def base64url_from_bytes(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


def bytes_from_base64url(value: str) -> bytes:
    """Decode base64url or standard base64, with or without padding.

    Raises ValueError when the input is not base64 at all.
    """
    canonical = normalize_base64url_string(value)
    if canonical is None:
        raise ValueError("empty base64url value")
    padded = canonical + "=" * (-len(canonical) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64url value: {exc}") from exc


def normalize_base64url_string(value: Any) -> str | None:
    """Canonical unpadded base64url form, or None for non-string or blank input."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return trimmed.replace("+", "-").replace("/", "_").rstrip("=")


def derive_webauthn_user_id(user_id: str) -> str:
    """Stable 16-byte WebAuthn user handle for a portal user."""
    return base64url_from_bytes(hashlib.sha256(user_id.encode("utf-8")).digest()[:16])


# ---------- passkey payloads ----------
def normalize_passkey_response_payload(value: Any) -> Any:
    """Return a copy of a WebAuthn response with ids and binary fields canonicalised.

    Non-mapping input is returned unchanged. Fields that cannot be
    normalised are kept as submitted so the verifier can reject them.
    """
    if not isinstance(value, Mapping):
        return value

    normalized = dict(value)
    source_response = value.get("response")
    response = dict(source_response) if isinstance(source_response, Mapping) else {}

    credential_id = (
        normalize_base64url_string(value.get("rawId"))
        or normalize_base64url_string(value.get("credentialId"))
        or normalize_base64url_string(value.get("id"))
    )
    if credential_id:
        normalized["id"] = credential_id
        normalized["rawId"] = credential_id

    for field in PASSKEY_BINARY_FIELDS:
        if response.get(field):
            response[field] = normalize_base64url_string(response[field]) or response[field]

    normalized["response"] = response
    return normalized


def derive_credential_id_from_verify_body(body: Mapping[str, Any]) -> str | None:
    """Pick the credential id from a verify request.

    Precedence: ``credentialId``, then ``response.id``, ``response.rawId``
    and ``response.credentialId``.
    """
    explicit = normalize_base64url_string(body.get("credentialId"))
    if explicit:
        return explicit
    response = body.get("response")
    if not isinstance(response, Mapping):
        return None
    for key in ("id", "rawId", "credentialId"):
        candidate = normalize_base64url_string(response.get(key))
        if candidate:
            return candidate
    return None


def derive_ios_device_id_from_node_id(node_id: str) -> str | None:
    """Extract the device suffix from ``ios-``/``iphone-`` node ids."""
    normalized = str(node_id).strip().lower()
    if not _IOS_PREFIX.match(normalized):
        return None
    suffix = _NON_ALNUM.sub("", _IOS_PREFIX.sub("", normalized, count=1))
    return suffix if len(suffix) >= 6 else None


# ---------- cookies ----------
def encode_cookie(name: str, value: str, max_age_seconds: int, secure: bool = False) -> str:
    secure_attr = "Secure; " if secure else ""
    return (
        f"{name}={quote(value, safe='')}; Path=/; HttpOnly; SameSite=Lax; "
        f"{secure_attr}Max-Age={int(max_age_seconds)}"
    )


def clear_cookie(name: str, secure: bool = False) -> str:
    secure_attr = "Secure; " if secure else ""
    return f"{name}=; Path=/; HttpOnly; SameSite=Lax; {secure_attr}Max-Age=0"


def parse_cookies(header: str | None) -> dict[str, str]:
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for segment in header.split(";"):
        key, sep, raw = segment.strip().partition("=")
        if not key or not sep:
            continue
        cookies[key] = unquote(raw)
    return cookies
