"""
Pytest configuration and fixtures for brief-measure.

Provides cross-platform event loop configuration and delivery fixtures.
"""

import asyncio
import sys

import pytest

from brief_measure.config import get_settings
from brief_measure.delivery import (
    BackoffPolicy,
    ObservationStatus,
    ObservationUploader,
    QueueStore,
)

from doubles import BASE_URL, FakeClock, FakeCredentials, ScriptedTransport

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def credentials():
    return FakeCredentials()


@pytest.fixture
def status():
    return ObservationStatus()


@pytest.fixture
def store(tmp_path):
    return QueueStore.in_dir(tmp_path)


@pytest.fixture
def make_uploader(store, credentials, status, clock):
    """Factory building an uploader over the shared store/credentials/status."""

    def _make(transport=None, **kwargs):
        kwargs.setdefault("backoff", BackoffPolicy(base_seconds=60, max_seconds=86_400))
        kwargs.setdefault("clock", clock)
        return ObservationUploader(
            kwargs.pop("store", store),
            kwargs.pop("credentials", credentials),
            kwargs.pop("status", status),
            transport if transport is not None else ScriptedTransport(),
            **kwargs,
        )

    return _make


@pytest.fixture
def settings_env(tmp_path, monkeypatch):
    """Point Settings at a temp data dir and reset the cached instance."""
    monkeypatch.setenv("BRIEF_MEASURE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("BRIEF_MEASURE_API_BASE_URL", BASE_URL)
    get_settings.cache_clear()
    yield tmp_path / "data"
    get_settings.cache_clear()
