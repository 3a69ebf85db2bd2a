"""Settings loading and store construction tests."""
import logging

import pytest

from edgecoder_portal import ConfigurationError, PortalStore, Settings
from edgecoder_portal.logging_config import configure_logging


def test_settings_defaults() -> None:
    settings = Settings.from_env({})
    assert settings.database_url.startswith("sqlite+aiosqlite://")
    assert settings.session_ttl_ms == 7 * 24 * 60 * 60 * 1000
    assert settings.passkey_challenge_ttl_ms == 300_000
    assert settings.secure_cookies is False


def test_settings_read_from_environment_names() -> None:
    settings = Settings.from_env(
        {
            "PORTAL_DATABASE_URL": "sqlite+aiosqlite:///./other.db",
            "PORTAL_SESSION_TTL_MS": "1000",
            "WALLET_DEFAULT_NETWORK": "testnet",
            "PORTAL_ENV": "production",
            "WALLET_SECRET_PEPPER": "prod-pepper",
            "UNRELATED": "ignored",
        }
    )
    assert settings.database_url.endswith("other.db")
    assert settings.session_ttl_ms == 1000
    assert settings.wallet_default_network == "testnet"
    assert settings.secure_cookies is True


@pytest.mark.parametrize(
    "environ",
    [
        {"PORTAL_ENV": "production"},
        {"PORTAL_SESSION_TTL_MS": "0"},
        {"WALLET_DEFAULT_NETWORK": "dogecoin"},
    ],
)
def test_invalid_settings_raise_configuration_error(environ) -> None:
    with pytest.raises(ConfigurationError):
        Settings.from_env(environ)


def test_store_from_env_requires_database_url() -> None:
    assert PortalStore.from_env({}) is None


def test_unsupported_dialect_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        PortalStore(Settings(database_url="not-a-url"))


def test_configure_logging_sets_package_level() -> None:
    configure_logging(Settings.from_env({"PORTAL_LOG_LEVEL": "debug"}).log_level)
    package_logger = logging.getLogger("edgecoder_portal")
    assert package_logger.level == logging.DEBUG
    assert package_logger.propagate is False
    configure_logging("INFO")


@pytest.mark.asyncio
async def test_store_cookies_follow_environment(tmp_path) -> None:
    url = f"sqlite+aiosqlite:///{tmp_path / 'cookies.db'}"
    async with PortalStore(Settings(database_url=url, environment="development")) as dev:
        assert dev.encode_cookie("sid", "v") == (
            "sid=v; Path=/; HttpOnly; SameSite=Lax; Max-Age=604800"
        )
        assert "Secure" not in dev.clear_cookie("sid")

    prod_settings = Settings(database_url=url, environment="production", wallet_secret_pepper="p")
    async with PortalStore(prod_settings) as prod:
        assert prod.encode_cookie("sid", "v", 60) == (
            "sid=v; Path=/; HttpOnly; SameSite=Lax; Secure; Max-Age=60"
        )
        assert prod.clear_cookie("sid") == "sid=; Path=/; HttpOnly; SameSite=Lax; Secure; Max-Age=0"
