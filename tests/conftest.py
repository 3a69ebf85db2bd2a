"""Test fixtures for the portal store."""
from pathlib import Path

import pytest
import pytest_asyncio

from edgecoder_portal import PortalStore, Settings

START_MS = 1_700_000_000_000


class FakeClock:
    """Controllable epoch-millisecond clock."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}",
        environment="test",
        busy_timeout_seconds=30,
    )


@pytest_asyncio.fixture
async def store(settings: Settings, clock: FakeClock) -> PortalStore:
    """Provide a migrated PortalStore on a throwaway SQLite file."""

    portal = PortalStore(settings, clock=clock)
    await portal.migrate()
    yield portal
    await portal.close()
