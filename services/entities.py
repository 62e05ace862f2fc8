from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Identity:
    """Аутентифицированный пользователь, извлечённый из bearer-токена."""

    id: str
    name: str


@dataclass
class User:
    id: str
    name: str
    email: str
    password_hash: str
    avatar: Optional[str] = None
    post_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Post:
    id: str
    title: str
    category: str
    description: str
    thumbnail: str
    creator_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Upload:
    """Загруженный файл: исходное имя и содержимое."""

    filename: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)
