from datetime import datetime
from pydantic import BaseModel

from app.schemas.enums import UserRole


class Token(BaseModel):
    """Access token response"""
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    role: UserRole

