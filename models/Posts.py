from sqlalchemy import Column, String, Text, ForeignKey, DateTime
from models.db_session import SqlAlchemyBase
from models.Users import utcnow


class Posts(SqlAlchemyBase):
    __tablename__ = "posts"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    category = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    thumbnail = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    creator_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
