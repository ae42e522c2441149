import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from app.schemas.enums import UserRole, AccountStatus


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserBase(SQLModel):
    """Base fields shared across admin account schemas"""
    email: str = Field(..., index=True, unique=True, max_length=255)
    full_name: Optional[str] = Field(default=None, max_length=100)
    role: UserRole = Field(default=UserRole.ADMIN)


class User(UserBase, table=True):
    """Admin portal account"""
    id: str = Field(default_factory=generate_uuid, primary_key=True)
    hashed_password: str
    account_status: AccountStatus = Field(default=AccountStatus.PENDING_APPROVAL)
    approved_by: Optional[str] = Field(default=None)
    approved_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    last_login_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    @property
    def is_approved(self) -> bool:
        return self.account_status == AccountStatus.APPROVED

    @property
    def can_manage(self) -> bool:
        """Admins and super admins may mutate certificates and run syncs"""
        return self.role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)
