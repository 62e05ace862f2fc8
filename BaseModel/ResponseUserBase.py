from typing import Optional
from pydantic import BaseModel, ConfigDict


class UserRead(BaseModel):
    id: str
    name: str
    email: str
    avatar: Optional[str] = None
    post_count: int = 0

    model_config = ConfigDict(from_attributes=True)
