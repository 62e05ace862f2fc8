from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models.db_session import SqlAlchemyBase
from services.entities import Post, User
from services.errors import RepositoryError
from services.repositories import SqlPostRepository, SqlUserRepository

pytestmark = pytest.mark.anyio

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def db_sess():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SqlAlchemyBase.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def user_repo(db_sess):
    return SqlUserRepository(db_sess)


@pytest.fixture
def post_repo(db_sess):
    return SqlPostRepository(db_sess)


def make_user(user_id="u1", email="ada@example.com"):
    return User(id=user_id, name="Ada", email=email, password_hash="hash")


def make_post(post_id, category="tech", creator_id="u1", minutes=0):
    moment = BASE_TIME + timedelta(minutes=minutes)
    return Post(id=post_id, title=post_id, category=category, description="<p>text</p>",
                thumbnail=f"{post_id}.png", creator_id=creator_id, created_at=moment, updated_at=moment)


async def test_insert_and_find(user_repo):
    inserted = await user_repo.insert(make_user())

    assert inserted.post_count == 0
    assert inserted.avatar is None
    assert inserted.created_at is not None
    assert (await user_repo.find_by_id("u1")).email == "ada@example.com"
    assert (await user_repo.find_by_field("email", "ada@example.com")).id == "u1"
    assert await user_repo.find_by_id("missing") is None
    assert await user_repo.find_by_field("email", "other@example.com") is None


async def test_duplicate_email_raises_repository_error(user_repo):
    await user_repo.insert(make_user())

    with pytest.raises(RepositoryError):
        await user_repo.insert(make_user(user_id="u2"))

    # сессия остаётся рабочей после rollback
    assert len(await user_repo.find()) == 1


async def test_update(user_repo):
    await user_repo.insert(make_user())

    updated = await user_repo.update("u1", post_count=3, avatar="a.png")

    assert updated.post_count == 3
    assert updated.avatar == "a.png"
    assert await user_repo.update("missing", post_count=1) is None


async def test_update_unknown_field(user_repo):
    await user_repo.insert(make_user())

    with pytest.raises(ValueError):
        await user_repo.update("u1", nickname="ada")


async def test_find_with_filters_and_sort(user_repo, post_repo):
    await user_repo.insert(make_user())
    await post_repo.insert(make_post("p1", minutes=1))
    await post_repo.insert(make_post("p2", category="art", minutes=2))
    await post_repo.insert(make_post("p3", minutes=3))

    newest = await post_repo.find(sort="-created_at", category="tech")
    oldest = await post_repo.find(sort="created_at")

    assert [post.id for post in newest] == ["p3", "p1"]
    assert [post.id for post in oldest] == ["p1", "p2", "p3"]
    assert [post.id for post in await post_repo.find(creator_id="nobody")] == []


async def test_delete(user_repo, post_repo):
    await user_repo.insert(make_user())
    await post_repo.insert(make_post("p1"))

    assert await post_repo.delete("p1") is True
    assert await post_repo.find_by_id("p1") is None
    assert await post_repo.delete("p1") is False
