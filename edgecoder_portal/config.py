"""Portal store settings and configuration helpers."""
from __future__ import annotations

import os
from typing import Literal, Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import ConfigurationError

DEV_WALLET_PEPPER = "edgecoder-dev-pepper"

DAY_MS = 24 * 60 * 60 * 1000


class Settings(BaseModel):
    """Runtime configuration loaded from environment variables."""

    database_url: str = Field(
        default="sqlite+aiosqlite:///./edgecoder_portal.db", alias="PORTAL_DATABASE_URL"
    )
    environment: Literal["development", "production", "test"] = Field(
        default="development", alias="PORTAL_ENV"
    )
    wallet_secret_pepper: str = Field(default=DEV_WALLET_PEPPER, alias="WALLET_SECRET_PEPPER")
    wallet_default_network: Literal["bitcoin", "testnet", "signet"] = Field(
        default="signet", alias="WALLET_DEFAULT_NETWORK"
    )
    session_ttl_ms: int = Field(default=7 * DAY_MS, gt=0, alias="PORTAL_SESSION_TTL_MS")
    email_verify_ttl_ms: int = Field(default=DAY_MS, gt=0, alias="PORTAL_EMAIL_VERIFY_TTL_MS")
    oauth_state_ttl_ms: int = Field(default=10 * 60 * 1000, gt=0, alias="PORTAL_OAUTH_STATE_TTL_MS")
    passkey_challenge_ttl_ms: int = Field(default=300_000, gt=0, alias="PASSKEY_CHALLENGE_TTL_MS")
    pool_size: int = Field(default=5, ge=1, alias="PORTAL_DB_POOL_SIZE")
    busy_timeout_seconds: float = Field(default=30.0, gt=0, alias="PORTAL_DB_BUSY_TIMEOUT_S")
    echo_sql: bool = Field(default=False, alias="PORTAL_DB_ECHO")
    log_level: str = Field(default="INFO", alias="PORTAL_LOG_LEVEL")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
        "frozen": True,
    }

    @model_validator(mode="after")
    def _check_production(self) -> "Settings":
        if self.environment == "production" and self.wallet_secret_pepper == DEV_WALLET_PEPPER:
            raise ValueError("WALLET_SECRET_PEPPER must be set in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def secure_cookies(self) -> bool:
        """Cookies carry the Secure attribute only in production."""
        return self.is_production

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, dotenv: bool = True) -> "Settings":
        """Build a fresh Settings instance from the process environment.

        When ``environ`` is given it is used instead of ``os.environ`` and no
        ``.env`` file is read.
        """

        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ
        aliases = {field.alias for field in cls.model_fields.values() if field.alias}
        values = {key: value for key, value in environ.items() if key in aliases}
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc


def database_url_from_env(environ: Mapping[str, str] | None = None) -> str | None:
    """Return the configured database URL, or None when none is set."""

    if environ is None:
        load_dotenv()
        environ = os.environ
    url = environ.get("PORTAL_DATABASE_URL", "").strip()
    return url or None
