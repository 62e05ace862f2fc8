from typing import Optional
from pydantic import BaseModel, EmailStr


class UsersUpdateBase(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None
    confirm_new_password: Optional[str] = None
