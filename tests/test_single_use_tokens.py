"""Sessions, email verification tokens and OAuth state: expiry and one-time use."""
import asyncio

import pytest

from edgecoder_portal import ConstraintViolation, MalformedInput, PortalStore
from edgecoder_portal.credentials import generate_token, hash_token
from edgecoder_portal.schemas import OAuthProvider

HOUR_MS = 60 * 60 * 1000
CONTENDERS = 10


@pytest.mark.asyncio
async def test_session_lookup_respects_expiry(store: PortalStore, clock) -> None:
    token = generate_token()
    await store.sessions.create("s1", "u1", hash_token(token), clock.now + HOUR_MS)

    found = await store.sessions.get_by_token_hash(hash_token(token))
    assert found is not None
    assert found.session_id == "s1" and found.user_id == "u1"
    assert await store.sessions.get_by_token_hash(hash_token("other")) is None

    clock.advance(HOUR_MS)
    assert await store.sessions.get_by_token_hash(hash_token(token)) is None


@pytest.mark.asyncio
async def test_session_logout_and_purge(store: PortalStore, clock) -> None:
    await store.sessions.create("s1", "u1", hash_token("t1"), clock.now + HOUR_MS)
    await store.sessions.create("s2", "u1", hash_token("t2"), clock.now + 10)
    await store.sessions.create("s3", "u2", hash_token("t3"), clock.now + HOUR_MS)

    assert await store.sessions.delete_by_token_hash(hash_token("t1")) is True
    assert await store.sessions.delete_by_token_hash(hash_token("t1")) is False
    assert await store.sessions.get_by_token_hash(hash_token("t1")) is None

    clock.advance(10)
    assert await store.sessions.purge_expired() == 1
    assert await store.sessions.delete_for_user("u2") == 1
    assert await store.sessions.get_by_token_hash(hash_token("t3")) is None


@pytest.mark.asyncio
async def test_session_token_hash_is_unique(store: PortalStore, clock) -> None:
    await store.sessions.create("s1", "u1", hash_token("t"), clock.now + HOUR_MS)
    with pytest.raises(ConstraintViolation):
        await store.sessions.create("s2", "u2", hash_token("t"), clock.now + HOUR_MS)


@pytest.mark.asyncio
async def test_email_verification_consumed_once(store: PortalStore, clock) -> None:
    await store.email_verifications.create("t1", "u1", hash_token("raw"), clock.now + HOUR_MS)
    assert await store.email_verifications.consume(hash_token("raw")) == "u1"
    assert await store.email_verifications.consume(hash_token("raw")) is None
    assert await store.email_verifications.consume(hash_token("unknown")) is None


@pytest.mark.asyncio
async def test_email_verification_expired_is_not_found(store: PortalStore, clock) -> None:
    await store.email_verifications.create("t1", "u1", hash_token("raw"), clock.now + 1_000)
    clock.advance(1_000)
    assert await store.email_verifications.consume(hash_token("raw")) is None
    assert await store.email_verifications.purge_expired() == 1


@pytest.mark.asyncio
async def test_email_verification_concurrent_consume_has_one_winner(
    store: PortalStore, clock
) -> None:
    await store.email_verifications.create("t1", "u1", hash_token("raw"), clock.now + HOUR_MS)
    results = await asyncio.gather(
        *(store.email_verifications.consume(hash_token("raw")) for _ in range(CONTENDERS))
    )
    assert results.count("u1") == 1
    assert results.count(None) == CONTENDERS - 1


@pytest.mark.asyncio
async def test_oauth_state_is_one_time(store: PortalStore, clock) -> None:
    await store.oauth_states.create("s1", "google", "https://portal/cb", clock.now + HOUR_MS)
    consumed = await store.oauth_states.consume("s1")
    assert consumed is not None
    assert consumed.provider is OAuthProvider.GOOGLE
    assert consumed.redirect_uri == "https://portal/cb"
    assert await store.oauth_states.consume("s1") is None


@pytest.mark.asyncio
async def test_oauth_state_expired_and_concurrent(store: PortalStore, clock) -> None:
    await store.oauth_states.create("old", OAuthProvider.APPLE, "https://portal/cb", clock.now + 5)
    await store.oauth_states.create("new", OAuthProvider.MICROSOFT, "https://portal/cb", clock.now + HOUR_MS)
    clock.advance(5)
    assert await store.oauth_states.consume("old") is None

    results = await asyncio.gather(*(store.oauth_states.consume("new") for _ in range(CONTENDERS)))
    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert winners[0].provider is OAuthProvider.MICROSOFT
    assert await store.oauth_states.purge_expired() == 1


@pytest.mark.asyncio
async def test_oauth_state_rejects_unknown_provider(store: PortalStore, clock) -> None:
    with pytest.raises(MalformedInput):
        await store.oauth_states.create("s1", "myspace", "https://portal/cb", clock.now + HOUR_MS)


@pytest.mark.asyncio
async def test_oauth_link_relinks_to_latest_user(store: PortalStore) -> None:
    assert await store.oauth_links.find("google", "sub-1") is None
    await store.oauth_links.link("google", "sub-1", "u1", "a@x.com")
    assert await store.oauth_links.find("google", "sub-1") == "u1"
    assert await store.oauth_links.find("apple", "sub-1") is None

    await store.oauth_links.link(OAuthProvider.GOOGLE, "sub-1", "u2")
    assert await store.oauth_links.find(OAuthProvider.GOOGLE, "sub-1") == "u2"


@pytest.mark.asyncio
async def test_purge_expired_reports_each_ledger(store: PortalStore, clock) -> None:
    await store.sessions.create("s1", "u1", hash_token("t"), clock.now + 1)
    await store.passkey_challenges.create("c1", "nonce", "authentication", clock.now + 1)
    clock.advance(1)
    assert await store.purge_expired() == {
        "sessions": 1,
        "email_verifications": 0,
        "oauth_states": 0,
        "passkey_challenges": 1,
    }


@pytest.mark.asyncio
async def test_oauth_link_unknown_provider(store: PortalStore) -> None:
    assert await store.oauth_links.find("github", "sub-1") is None
    with pytest.raises(MalformedInput):
        await store.oauth_links.link("github", "sub-1", "u1")


@pytest.mark.asyncio
async def test_ledgers_default_to_configured_lifetimes(store: PortalStore, clock) -> None:
    settings = store.settings
    session = await store.sessions.create("s1", "u1", hash_token("t"))
    assert session.expires_at_ms == clock.now + settings.session_ttl_ms
    assert await store.email_verifications.create(
        "e1", "u1", hash_token("e")
    ) == clock.now + settings.email_verify_ttl_ms
    assert await store.oauth_states.create(
        "o1", "google", "https://portal/cb"
    ) == clock.now + settings.oauth_state_ttl_ms

    clock.advance(settings.oauth_state_ttl_ms)
    assert await store.oauth_states.consume("o1") is None
    assert await store.email_verifications.consume(hash_token("e")) == "u1"
    assert await store.sessions.get_by_token_hash(hash_token("t")) is not None
