from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class PostRead(BaseModel):
    id: str
    title: str
    category: str
    description: str
    thumbnail: str
    creator_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MessageRead(BaseModel):
    detail: str
