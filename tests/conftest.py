"""Shared fixtures for the security monitor tests."""

from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sanic import Sanic

from config import Config
from shield_modules.records import ThreatEvent
from shield_modules.rule import SecurityRule
from shield_modules.sqlite_store import SQLiteStore
from shield_modules.threat_store import MemoryStore, ThreatStore

# Each test builds its own app under the same name
Sanic.test_mode = True


@pytest.fixture
def config() -> Config:
    return Config(store_backend="memory", seed_default_rules=False)


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request: pytest.FixtureRequest) -> AsyncIterator[ThreatStore]:
    if request.param == "memory":
        s: ThreatStore = MemoryStore()
    else:
        s = SQLiteStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def sqlite_store() -> AsyncIterator[SQLiteStore]:
    s = SQLiteStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


def make_event(ip: str, threat_type: str = "SQL Injection", seconds_ago: float = 1.0,
               severity: str = "high") -> ThreatEvent:
    return ThreatEvent(
        ip_address=ip,
        threat_type=threat_type,
        severity=severity,
        request_path="/",
        request_method="GET",
        user_agent="pytest",
        payload={},
        blocked=False,
        created_at=datetime.now(timezone.utc) - timedelta(seconds=seconds_ago),
    )


async def add_events(store: ThreatStore, ip: str, count: int, **kwargs) -> None:
    for _ in range(count):
        await store.record_event(make_event(ip, **kwargs))


async def add_rule(store: ThreatStore, name: str, pattern: str, severity: str = "high",
                   **kwargs) -> SecurityRule:
    return await store.add_rule(SecurityRule(name=name, pattern=pattern, severity=severity, **kwargs))
