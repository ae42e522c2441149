from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field, Relationship
from typing import List, Optional
from uuid import uuid4
from datetime import date, datetime

from app.models.event import Event
from app.models.user import utc_now
from app.schemas.enums import CertificateStatus, MetadataFieldType


class Certificate(SQLModel, table=True):
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    # Public short code printed on the certificate and used in the verification URL
    certificate_id: str = Field(index=True, unique=True, max_length=16)
    event_id: str = Field(foreign_key="event.id", nullable=False)

    # Display name printed on the certificate (the award), not the category
    certificate_type: str
    participant_name: str
    school: str = Field(default="")
    date_issued: date
    qr_code_data: str

    status: CertificateStatus = Field(default=CertificateStatus.ACTIVE)
    revoked_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    revoked_by: Optional[str] = None
    revoked_reason: Optional[str] = None

    verification_count: int = Field(default=0)
    last_verified_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    created_by: Optional[str] = Field(default=None, foreign_key="user.id")

    event: Optional[Event] = Relationship(sa_relationship_kwargs={"lazy": "selectin"})
    metadata_entries: List["CertificateMetadata"] = Relationship(
        back_populates="certificate",
        sa_relationship_kwargs={"lazy": "selectin", "cascade": "all, delete-orphan"}
    )

    def metadata_dict(self) -> dict:
        return {entry.field_name: entry.field_value for entry in self.metadata_entries}


class CertificateMetadata(SQLModel, table=True):
    """Category specific key/value field attached to a certificate"""
    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    certificate_id: str = Field(foreign_key="certificate.id", index=True, nullable=False)
    field_name: str = Field(max_length=100)
    field_value: str
    field_type: MetadataFieldType = Field(default=MetadataFieldType.TEXT)

    certificate: Optional[Certificate] = Relationship(back_populates="metadata_entries")
