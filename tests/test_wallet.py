"""Wallet onboarding vault tests."""
import pytest

from edgecoder_portal import PortalStore
from edgecoder_portal.credentials import derive_wallet_secret_ref

SEED = "abandon ability able about above absent absorb abstract absurd abuse access accident"


async def _create(store: PortalStore, user_id: str = "u1", network: str | None = "signet") -> bool:
    account_id = f"acct-{user_id}"
    seed_hash = derive_wallet_secret_ref(SEED, account_id, store.settings.wallet_secret_pepper)
    return await store.wallets.create(
        user_id,
        account_id,
        seed_hash,
        f"kms://wallets/{account_id}",
        network,
    )


@pytest.mark.asyncio
async def test_wallet_created_once_per_user(store: PortalStore, clock) -> None:
    assert await _create(store) is True
    clock.advance(50)
    assert await _create(store, network="bitcoin") is False

    record = await store.wallets.get("u1")
    assert record.network == "signet"
    assert record.account_id == "acct-u1"
    assert record.seed_phrase_hash.startswith("seed-sha256:")
    assert SEED not in record.seed_phrase_hash
    assert record.encrypted_private_key_ref == "kms://wallets/acct-u1"
    assert record.acknowledged_at_ms is None
    assert await store.wallets.get("u2") is None


@pytest.mark.asyncio
async def test_wallet_network_defaults_to_setting(store: PortalStore) -> None:
    assert await _create(store, "u2", network=None) is True
    record = await store.wallets.get("u2")
    assert record.network == store.settings.wallet_default_network


@pytest.mark.asyncio
async def test_wallet_acknowledgement_is_idempotent(store: PortalStore, clock) -> None:
    await _create(store)
    clock.advance(1_000)
    first = await store.wallets.acknowledge("u1")
    assert first.acknowledged_at_ms == clock.now

    clock.advance(1_000)
    second = await store.wallets.acknowledge("u1")
    assert second.acknowledged_at_ms == first.acknowledged_at_ms
    assert await store.wallets.acknowledge("ghost") is None
