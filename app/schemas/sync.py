from pydantic import BaseModel, Field
from typing import List, Optional


class SyncRowSuccess(BaseModel):
    row: int
    certificate_id: str
    participant_name: str
    verification_url: str


class SyncRowError(BaseModel):
    row: int
    participant_name: str
    error: str


class ImportResult(BaseModel):
    """Outcome of a sheet -> database sync. Row errors do not fail the request."""
    message: str
    processed: int = 0
    success: List[SyncRowSuccess] = Field(default_factory=list)
    errors: List[SyncRowError] = Field(default_factory=list)
    sheetUpdated: Optional[int] = None
    sheetUpdateFailed: Optional[int] = None


class ExportResult(BaseModel):
    """Outcome of a database -> sheet sync"""
    message: str
    updated: int = 0
    failed: int = 0
