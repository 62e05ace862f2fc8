from typing import Optional
from pydantic import BaseModel, EmailStr


class UsersBase(BaseModel):
    # обязательность полей проверяет IdentityService, чтобы ответ был единым ("Fill in all fields")
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None
