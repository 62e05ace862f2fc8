"""
Репозитории записей: абстрактный интерфейс на каждую сущность и реализация на SQLAlchemy.

Сервисы зависят только от интерфейса (Protocol) и сущностей из services.entities;
в тестах вместо SQL используется реализация в памяти (tests/fakes.py).
Каждый вызов SQL-репозитория фиксирует собственную транзакцию.
"""
import logging
from dataclasses import fields
from typing import Any, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.Posts import Posts
from models.Users import Users
from services.entities import Post, User
from services.errors import RepositoryError

logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    async def find(self, sort: Optional[str] = None, **filters: Any) -> List[User]: ...

    async def find_by_id(self, user_id: str) -> Optional[User]: ...

    async def find_by_field(self, field: str, value: Any) -> Optional[User]: ...

    async def insert(self, user: User) -> User: ...

    async def update(self, user_id: str, **values: Any) -> Optional[User]: ...

    async def delete(self, user_id: str) -> bool: ...


class PostRepository(Protocol):
    async def find(self, sort: Optional[str] = None, **filters: Any) -> List[Post]: ...

    async def find_by_id(self, post_id: str) -> Optional[Post]: ...

    async def find_by_field(self, field: str, value: Any) -> Optional[Post]: ...

    async def insert(self, post: Post) -> Post: ...

    async def update(self, post_id: str, **values: Any) -> Optional[Post]: ...

    async def delete(self, post_id: str) -> bool: ...


class SqlRepository:
    """
    Общая реализация CRUD поверх одной ORM-таблицы.

    sort -- имя колонки; префикс "-" означает сортировку по убыванию.
    """

    model = None
    entity = None

    def __init__(self, db_sess: Session):
        self.db_sess = db_sess

    def _to_entity(self, row):
        return self.entity(**{f.name: getattr(row, f.name) for f in fields(self.entity)})

    def _column(self, name: str):
        column = getattr(self.model, name, None)
        if column is None:
            raise ValueError(f"Unknown field: {name}")
        return column

    def _commit(self):
        try:
            self.db_sess.commit()
        except SQLAlchemyError as exc:
            self.db_sess.rollback()
            logger.exception("Database commit failed for %s", self.model.__tablename__)
            raise RepositoryError("DB error") from exc

    async def find(self, sort: Optional[str] = None, **filters: Any) -> list:
        query = self.db_sess.query(self.model)
        for name, value in filters.items():
            query = query.filter(self._column(name) == value)
        if sort:
            column = self._column(sort.lstrip("-"))
            query = query.order_by(column.desc() if sort.startswith("-") else column.asc())
        return [self._to_entity(row) for row in query.all()]

    async def find_by_id(self, record_id: str):
        row = self.db_sess.get(self.model, record_id)
        return self._to_entity(row) if row else None

    async def find_by_field(self, field: str, value: Any):
        row = self.db_sess.query(self.model).filter(self._column(field) == value).first()
        return self._to_entity(row) if row else None

    async def insert(self, entity):
        values = {f.name: getattr(entity, f.name) for f in fields(self.entity)}
        # пустые временные метки заполняются значениями по умолчанию колонок
        row = self.model(**{k: v for k, v in values.items() if v is not None})
        self.db_sess.add(row)
        self._commit()
        self.db_sess.refresh(row)
        return self._to_entity(row)

    async def update(self, record_id: str, **values: Any):
        row = self.db_sess.get(self.model, record_id)
        if not row:
            return None
        for name, value in values.items():
            self._column(name)
            setattr(row, name, value)
        self._commit()
        self.db_sess.refresh(row)
        return self._to_entity(row)

    async def delete(self, record_id: str) -> bool:
        row = self.db_sess.get(self.model, record_id)
        if not row:
            return False
        self.db_sess.delete(row)
        self._commit()
        return True


class SqlUserRepository(SqlRepository):
    model = Users
    entity = User


class SqlPostRepository(SqlRepository):
    model = Posts
    entity = Post
