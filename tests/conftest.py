"""Pytest configuration and shared fixtures."""
from datetime import datetime, timedelta

import pytest

from vaultnote.core.crypto import MessageCodec
from vaultnote.core.message import LifecycleEngine
from vaultnote.infra.database import create_db_engine, make_session_factory
from vaultnote.infra.init_db import init_db
from vaultnote.services.janitor import Janitor
from vaultnote.services.message_store import MessageStore

TEST_SECRET = "correct horse battery staple"

# Cheap scrypt cost so hashing does not dominate the test run
FAST_SCRYPT = {"scrypt_n": 2 ** 10, "scrypt_r": 8, "scrypt_p": 1}


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'vaultnote.db'}"


@pytest.fixture
def db_engine(database_url):
    engine = create_db_engine(database_url, timeout=10)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(db_engine) -> MessageStore:
    return MessageStore(make_session_factory(db_engine))


@pytest.fixture
def codec() -> MessageCodec:
    return MessageCodec.from_secret(TEST_SECRET, **FAST_SCRYPT)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture
def janitor(store, clock) -> Janitor:
    return Janitor(store, consumed_grace_seconds=3600, cleanup_chance=0, clock=clock)


@pytest.fixture
def lifecycle(store, codec, janitor, clock) -> LifecycleEngine:
    return LifecycleEngine(store, codec, janitor=janitor, clock=clock, max_content_length=100)
