from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime
from models.db_session import SqlAlchemyBase


def utcnow():
    return datetime.now(timezone.utc)


class Users(SqlAlchemyBase):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)  # всегда в нижнем регистре
    password_hash = Column(String, nullable=False)
    avatar = Column(String, nullable=True)
    post_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

