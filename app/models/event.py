from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from typing import Optional
from uuid import uuid4
from datetime import datetime

from app.models.user import utc_now


class Event(SQLModel, table=True):
    """Issuing context (conference or session) certificates belong to"""
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    event_code: str = Field(index=True, unique=True, max_length=100)
    event_name: str = Field(max_length=200)
    year: int
    month: int
    session: int = Field(default=1)
    event_type: str = Field(default="mun", max_length=50)

    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    created_by: Optional[str] = Field(default=None, foreign_key="user.id")
