from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class EventCreate(BaseModel):
    event_code: str = Field(..., min_length=1)
    event_name: str = Field(..., min_length=1)
    year: Optional[int] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)
    session: Optional[int] = Field(default=None, ge=1)
    event_type: Optional[str] = None


class EventRead(BaseModel):
    id: str
    event_code: str
    event_name: str
    year: int
    month: int
    session: int
    event_type: str
    created_at: datetime
    created_by: Optional[str] = None
    certificate_count: int = 0

    class Config:
        from_attributes = True
