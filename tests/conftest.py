from datetime import datetime, timezone

import pytest

from astn_session.config import SessionSettings
from astn_session.session import SessionManager
from astn_session.storage.session import SessionStorage
from tests.fakes import FakeClock, FakeIdentityService, FakeProfileClient

FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("ASTN_DATA_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture
def identity() -> FakeIdentityService:
    return FakeIdentityService()


@pytest.fixture
def profiles() -> FakeProfileClient:
    return FakeProfileClient()


@pytest.fixture
def storage(data_dir) -> SessionStorage:
    return SessionStorage()


@pytest.fixture
def settings() -> SessionSettings:
    return SessionSettings(sign_out_grace_period=0)


@pytest.fixture
def manager(identity, profiles, storage, settings, clock) -> SessionManager:
    return SessionManager(identity, profiles, storage, settings=settings, clock=clock)
