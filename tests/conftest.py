"""
Pytest configuration and shared fixtures for drift tests
"""
import os

os.environ["TESTING"] = "true"
os.environ["STORAGE_BACKEND"] = "memory"

import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport

from driftwatch.drift import (
    DriftMonitor,
    InMemorySessionStorage,
    ManualClock,
    MonitorRegistry,
    SignalStore,
    get_monitor_registry,
)

# 2024-01-01T00:00:00Z in epoch ms
SESSION_START_MS = 1_704_067_200_000


@pytest.fixture
def clock():
    """Manually advanced clock starting at a fixed instant"""
    return ManualClock(SESSION_START_MS)


@pytest.fixture
def storage():
    return InMemorySessionStorage()


@pytest.fixture
def store(storage, clock):
    return SignalStore("session-1", storage=storage, clock=clock)


@pytest.fixture
def first_choice():
    """Deterministic catalog selector"""
    return lambda items: items[0]


@pytest.fixture
def monitor(storage, clock, first_choice):
    return DriftMonitor("session-1", storage=storage, clock=clock, selector=first_choice)


@pytest.fixture
def registry(storage, clock):
    return MonitorRegistry(storage=storage, clock=clock)


@pytest.fixture
async def client(registry) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app with an isolated monitor registry"""
    from driftwatch.main import app

    app.dependency_overrides[get_monitor_registry] = lambda: registry
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client
    app.dependency_overrides.clear()
