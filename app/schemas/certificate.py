from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date, datetime

from app.schemas.enums import CertificateStatus


class CertificateCreate(BaseModel):
    """Manual issuance form. ``award_type`` is the printed certificate name."""
    cert_type: str = ""
    participant_name: Optional[str] = None
    email: Optional[str] = None
    institution: Optional[str] = None
    award_type: Optional[str] = None
    committee: Optional[str] = None
    country: Optional[str] = None
    position: Optional[str] = None  # Executive Board: Chairperson, Vice Chair, Rapporteur ...
    department: Optional[str] = None
    designation: Optional[str] = None
    add_to_sheet: bool = False


class CertificateUpdate(BaseModel):
    participant_name: Optional[str] = None
    school: Optional[str] = None
    certificate_type: Optional[str] = None
    date_issued: Optional[date] = None
    # Replaces all metadata when provided
    metadata: Optional[Dict[str, Optional[str]]] = None


class CertificateActionRequest(BaseModel):
    action: str
    reason: Optional[str] = None


class CertificateImportItem(BaseModel):
    participant_name: Optional[str] = None
    certificate_type: Optional[str] = None
    institution: Optional[str] = None
    email: Optional[str] = None
    event_name: Optional[str] = None
    committee: Optional[str] = None
    country: Optional[str] = None
    award: Optional[str] = None
    secretariat_role: Optional[str] = None


class CertificateImportRequest(BaseModel):
    certificates: List[CertificateImportItem] = Field(default_factory=list)


class CertificateImportResult(BaseModel):
    success: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)


class MetadataRead(BaseModel):
    field_name: str
    field_value: str

    class Config:
        from_attributes = True


class EventSummary(BaseModel):
    event_code: str
    event_name: str

    class Config:
        from_attributes = True


class CertificateRead(BaseModel):
    id: str
    certificate_id: str
    event_id: str
    certificate_type: str
    participant_name: str
    school: str
    date_issued: date
    status: CertificateStatus
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[str] = None
    revoked_reason: Optional[str] = None
    qr_code_data: str
    verification_count: int
    last_verified_at: Optional[datetime] = None
    created_at: datetime
    created_by: Optional[str] = None
    event: Optional[EventSummary] = None
    metadata_entries: List[MetadataRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CertificateList(BaseModel):
    certificates: List[CertificateRead]
    total: int
    page: int
    limit: int
    totalPages: int


class CreatedCertificate(BaseModel):
    id: str
    certificate_id: str
    participant_name: str
    verification_url: str


class CertificateCreateResponse(BaseModel):
    success: bool = True
    certificate: CreatedCertificate


class CertificateActionResponse(BaseModel):
    success: bool = True
    status: Optional[CertificateStatus] = None
    message: Optional[str] = None


class VerificationResult(BaseModel):
    valid: bool
    certificate_id: str
    participant_name: Optional[str] = None
    certificate_type: Optional[str] = None
    school: Optional[str] = None
    date_issued: Optional[date] = None
    status: Optional[CertificateStatus] = None
    event: Optional[EventSummary] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    message: Optional[str] = None


class VerificationLogRead(BaseModel):
    id: str
    certificate_id: str
    participant_name: str
    verified_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
