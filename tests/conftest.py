import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from datetime import datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from travelblog.app import create_app
from travelblog.auth.identity import IdentityResolver
from travelblog.auth.passwords import PasswordVerifier
from travelblog.auth.session import SessionManager, SignedCookie
from travelblog.auth.users import CredentialStore
from travelblog.config import Settings
from travelblog.infra.db import Database
from travelblog.infra.post_repo import PostRepository


class FakeClock:
    """Controllable replacement for the session manager's utcnow."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    # Cheap argon2 parameters keep the suite fast.
    return Settings(
        secret_key="test-secret-key",
        database_url=f"sqlite:///{tmp_path / 'travelblog.db'}",
        hash_time_cost=1,
        hash_memory_cost=1024,
        hash_parallelism=1,
        posts_path=tmp_path / "data" / "posts.yml",
        log_level="WARNING",
    )


@pytest.fixture()
def db(settings: Settings):
    d = Database(settings.database_url)
    d.create_all()
    yield d
    d.dispose()


@pytest.fixture()
def verifier() -> PasswordVerifier:
    return PasswordVerifier(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture()
def users(db) -> CredentialStore:
    return CredentialStore(db)


@pytest.fixture()
def resolver(users, verifier) -> IdentityResolver:
    return IdentityResolver(users, verifier)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sessions(db, clock) -> SessionManager:
    return SessionManager(db, max_age=3600, clock=clock)


@pytest.fixture()
def cookie() -> SignedCookie:
    return SignedCookie("test-secret-key", name="travelblog_session", max_age=3600)


@pytest.fixture()
def posts(tmp_path: Path) -> PostRepository:
    return PostRepository(tmp_path / "posts.yml")


@pytest.fixture()
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as c:
        yield c
