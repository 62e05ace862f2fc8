from datetime import datetime, timedelta, timezone

import pytest

from config import Settings
from services.entities import Identity, User
from services.identity import IdentityService
from services.posts import PostService
from tests.fakes import FakeAssetStore, InMemoryRepository


class Clock:
    """Каждый вызов возвращает время на минуту позже предыдущего."""

    def __init__(self):
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.current += timedelta(minutes=1)
        return self.current


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        SECRET_KEY="test-secret",
        BCRYPT_ROUNDS=4,
        DATABASE_URL="sqlite://",
        UPLOAD_DIR=str(tmp_path / "uploads"),
    )


@pytest.fixture
def users():
    return InMemoryRepository()


@pytest.fixture
def posts():
    return InMemoryRepository()


@pytest.fixture
def assets():
    return FakeAssetStore()


@pytest.fixture
def identity_service(users, assets, settings):
    return IdentityService(users, assets, settings)


@pytest.fixture
def post_service(posts, users, assets, settings):
    return PostService(posts, users, assets, settings, now=Clock())


@pytest.fixture
def author(users):
    user = User(id="author-1", name="Ada", email="ada@example.com", password_hash="x")
    users.rows[user.id] = user
    return Identity(id=user.id, name=user.name)


@pytest.fixture
def stranger(users):
    user = User(id="stranger-1", name="Mallory", email="mallory@example.com", password_hash="x")
    users.rows[user.id] = user
    return Identity(id=user.id, name=user.name)
