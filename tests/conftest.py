"""
Shared pytest fixtures.

Part of PT-118: In-memory fakes for the progression engine

Fixtures that build an app whose repository dependencies are overridden
with fakes sharing one FakeStore.

Usage:
    def test_something(fake_store, client):
        fake_store.signals.seed_check_ins([...])
        response = client.patch("/blocks/program-1/evaluate")
"""

from datetime import datetime, timezone
from typing import Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api import deps
from backend.main import create_app
from backend.settings import Settings
from tests.fakes import FakeStore, create_fake_store

TEST_USER_ID = "clinician-1"


def override_with_store(app: FastAPI, store: FakeStore, *, user_id: str = TEST_USER_ID) -> None:
    """Point every repository dependency and the auth dependency at fakes."""
    app.dependency_overrides[deps.get_signal_repo] = lambda: store.signals
    app.dependency_overrides[deps.get_prescription_repo] = lambda: store.prescriptions
    app.dependency_overrides[deps.get_block_repo] = lambda: store.blocks
    app.dependency_overrides[deps.get_cycle_repo] = lambda: store.cycles
    app.dependency_overrides[deps.get_flag_repo] = lambda: store.flags
    app.dependency_overrides[deps.get_current_user] = lambda: user_id


@pytest.fixture
def test_settings() -> Settings:
    return Settings(environment="test", _env_file=None)


@pytest.fixture
def fake_store() -> FakeStore:
    """Fresh fakes with one program (program-1) and two exercises."""
    return create_fake_store()


@pytest.fixture
def app(test_settings, fake_store) -> FastAPI:
    app = create_app(settings=test_settings)
    override_with_store(app, fake_store)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def fixed_clock() -> Callable[[datetime], Callable[[], datetime]]:
    """Build a clock returning a fixed aware datetime."""
    def _make(moment: datetime) -> Callable[[], datetime]:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return lambda: moment
    return _make
