from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from app.models.user import utc_now


class VerificationLog(SQLModel, table=True):
    """One public lookup of a certificate's verification page"""
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    certificate_id: str = Field(foreign_key="certificate.id", index=True)
    verified_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
