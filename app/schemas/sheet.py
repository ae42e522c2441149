from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional


class SheetColumns:
    """Column headers of the certificates spreadsheet"""
    CERT_TYPE = "Cert_Type"
    UNIQUE_ID = "Unique_ID"
    PARTICIPANT_NAME = "Participant_Name"
    EMAIL = "Email"
    INSTITUTION = "institution"  # lowercase in the live sheet
    VERIFICATION_URL = "Verification_URL"
    AWARD_TYPE = "Award_Type"
    COMMITTEE = "Committee"
    COUNTRY = "Country"
    DATE_ISSUED = "Date_Issued"
    VERIFIED_STATUS = "Verified_Status"
    EVENT_NAME = "Event_Name"


class SheetRow(BaseModel):
    """One spreadsheet row. Every cell is text and may be blank."""
    cert_type: str = Field(default="", alias=SheetColumns.CERT_TYPE)
    unique_id: str = Field(default="", alias=SheetColumns.UNIQUE_ID)
    participant_name: str = Field(default="", alias=SheetColumns.PARTICIPANT_NAME)
    email: str = Field(default="", alias=SheetColumns.EMAIL)
    institution: str = Field(default="", alias=SheetColumns.INSTITUTION)
    verification_url: str = Field(default="", alias=SheetColumns.VERIFICATION_URL)
    award_type: str = Field(default="", alias=SheetColumns.AWARD_TYPE)
    committee: str = Field(default="", alias=SheetColumns.COMMITTEE)
    country: str = Field(default="", alias=SheetColumns.COUNTRY)
    date_issued: str = Field(default="", alias=SheetColumns.DATE_ISSUED)
    verified_status: str = Field(default="", alias=SheetColumns.VERIFIED_STATUS)
    event_name: str = Field(default="", alias=SheetColumns.EVENT_NAME)

    class Config:
        populate_by_name = True
        extra = "ignore"

    @model_validator(mode="before")
    @classmethod
    def accept_capitalised_institution(cls, values: Any):
        # Older sheets used "Institution"
        if isinstance(values, dict) and not values.get(SheetColumns.INSTITUTION) and values.get("Institution"):
            values = {**values, SheetColumns.INSTITUTION: values["Institution"]}
        return values

    @field_validator("*", mode="before")
    @classmethod
    def coerce_to_text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @property
    def is_processed(self) -> bool:
        return bool(self.unique_id.strip())

    def to_sheet(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


class SheetUpdate(BaseModel):
    """Partial update of the row whose ``search_column`` equals ``search_value``"""
    search_column: str
    search_value: str
    data: Dict[str, str]


class BatchResult(BaseModel):
    success: int = 0
    failed: int = 0


class SheetOverview(BaseModel):
    total: int
    processed: int
    pending: int
    byType: Dict[str, int]
    rows: List[Dict[str, str]]
    cached: Optional[bool] = None
