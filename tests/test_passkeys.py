"""Passkey challenge ledger and credential registry tests."""
import asyncio

import pytest

from edgecoder_portal import MalformedInput, PortalStore
from edgecoder_portal.credentials import derive_webauthn_user_id
from edgecoder_portal.schemas import PasskeyFlow, Transport

MINUTE_MS = 60_000


@pytest.mark.asyncio
async def test_challenge_expiry_and_single_use(store: PortalStore, clock) -> None:
    await store.passkey_challenges.create(
        "late", "nonce-late", PasskeyFlow.REGISTRATION, clock.now + MINUTE_MS, user_id="u1"
    )
    await store.passkey_challenges.create(
        "early", "nonce-early", "registration", clock.now + MINUTE_MS, user_id="u1"
    )

    clock.advance(MINUTE_MS // 2)
    consumed = await store.passkey_challenges.consume("early")
    assert consumed is not None
    assert consumed.challenge == "nonce-early"
    assert consumed.flow_type is PasskeyFlow.REGISTRATION
    assert consumed.user_id == "u1"
    assert await store.passkey_challenges.consume("early") is None

    clock.advance(MINUTE_MS)
    assert await store.passkey_challenges.consume("late") is None


@pytest.mark.asyncio
async def test_discoverable_challenge_without_user(store: PortalStore, clock) -> None:
    await store.passkey_challenges.create(
        "c1", "nonce", "authentication", clock.now + MINUTE_MS, email="a@x.com"
    )
    results = await asyncio.gather(*(store.passkey_challenges.consume("c1") for _ in range(8)))
    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert winners[0].user_id is None
    assert winners[0].email == "a@x.com"
    assert winners[0].flow_type is PasskeyFlow.AUTHENTICATION


async def _register(store: PortalStore, credential_id: str, user_id: str = "u1", **overrides):
    values = dict(
        webauthn_user_id=derive_webauthn_user_id(user_id),
        public_key_b64url="pk-1",
        counter=0,
        device_type="singleDevice",
        backed_up=False,
        transports=["internal", "hybrid"],
    )
    values.update(overrides)
    return await store.passkeys.upsert(credential_id, user_id, **values)


@pytest.mark.asyncio
async def test_credential_upsert_and_reregistration(store: PortalStore, clock) -> None:
    created = await _register(store, "cred-1")
    assert created.transports == [Transport.HYBRID, Transport.INTERNAL]
    assert created.created_at_ms == created.last_used_at_ms == clock.now

    clock.advance(500)
    replaced = await _register(
        store, "cred-1", public_key_b64url="pk-2", counter=3, backed_up=True,
        device_type="multiDevice", transports=["usb", "usb"],
    )
    assert replaced.public_key_b64url == "pk-2"
    assert replaced.counter == 3
    assert replaced.backed_up is True
    assert replaced.device_type == "multiDevice"
    assert replaced.transports == [Transport.USB]
    assert replaced.created_at_ms == created.created_at_ms
    assert replaced.last_used_at_ms == clock.now

    fetched = await store.passkeys.get("cred-1")
    assert fetched == replaced


@pytest.mark.asyncio
async def test_credential_without_transports(store: PortalStore) -> None:
    record = await _register(store, "cred-1", transports=None)
    assert record.transports is None
    record = await _register(store, "cred-2", transports=[])
    assert record.transports is None


@pytest.mark.asyncio
async def test_unknown_transport_is_rejected(store: PortalStore) -> None:
    with pytest.raises(MalformedInput):
        await _register(store, "cred-1", transports=["usb", "carrier-pigeon"])
    with pytest.raises(MalformedInput):
        await _register(store, "cred-1", transports="usb")
    assert await store.passkeys.get("cred-1") is None


@pytest.mark.asyncio
async def test_update_counter_bumps_last_use(store: PortalStore, clock) -> None:
    await _register(store, "cred-1")
    clock.advance(2_000)
    assert await store.passkeys.update_counter("cred-1", 7) is True
    record = await store.passkeys.get("cred-1")
    assert record.counter == 7
    assert record.last_used_at_ms == clock.now
    assert await store.passkeys.update_counter("ghost", 1) is False


@pytest.mark.asyncio
async def test_list_for_user_most_recent_first(store: PortalStore, clock) -> None:
    await _register(store, "first")
    clock.advance(10)
    await _register(store, "second")
    clock.advance(10)
    await _register(store, "other-user", user_id="u2")
    listed = await store.passkeys.list_for_user("u1")
    assert [c.credential_id for c in listed] == ["second", "first"]


@pytest.mark.asyncio
async def test_delete_is_owner_scoped(store: PortalStore) -> None:
    await _register(store, "cred-1")
    assert await store.passkeys.delete("cred-1", "u2") is False
    assert await store.passkeys.delete("cred-1", "u1") is True
    assert await store.passkeys.get("cred-1") is None


@pytest.mark.asyncio
async def test_challenge_defaults_to_configured_lifetime(store: PortalStore, clock) -> None:
    ttl = store.settings.passkey_challenge_ttl_ms
    expires = await store.passkey_challenges.create("c1", "nonce", PasskeyFlow.AUTHENTICATION)
    assert expires == clock.now + ttl

    clock.advance(ttl)
    assert await store.passkey_challenges.consume("c1") is None


@pytest.mark.asyncio
async def test_challenge_rejects_unknown_flow(store: PortalStore) -> None:
    with pytest.raises(MalformedInput):
        await store.passkey_challenges.create("c1", "nonce", "enrollment")
