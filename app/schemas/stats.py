from pydantic import BaseModel
from typing import Dict, List
from datetime import datetime

from app.schemas.enums import CertificateStatus
from app.schemas.event import EventRead


class StatTotals(BaseModel):
    totalCertificates: int
    activeCertificates: int
    revokedCertificates: int
    totalVerifications: int
    totalEvents: int


class RecentCertificate(BaseModel):
    certificate_id: str
    participant_name: str
    certificate_type: str
    created_at: datetime
    status: CertificateStatus

    class Config:
        from_attributes = True


class DashboardStats(BaseModel):
    stats: StatTotals
    typeBreakdown: Dict[str, int]
    recentCertificates: List[RecentCertificate]
    events: List[EventRead]
