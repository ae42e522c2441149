from datetime import datetime
from pydantic import BaseModel, EmailStr
from typing import Optional

from app.schemas.enums import UserRole, AccountStatus


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    full_name: Optional[str] = None
    role: UserRole = UserRole.ADMIN


class UserRead(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role: UserRole
    account_status: AccountStatus
    last_login_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
