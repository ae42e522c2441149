"""
Public certificate verification
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.core.services import get_notifier
from app.crud.certificate import get_certificate_by_public_id, record_verification
from app.schemas.certificate import EventSummary, VerificationResult
from app.schemas.enums import CertificateStatus
from app.utils.discord import Notifier, verification_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/verify", tags=["Verification"])


@router.get("/{certificate_id}", response_model=VerificationResult)
async def verify_certificate(
    certificate_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    code = certificate_id.strip().lower()
    certificate = await get_certificate_by_public_id(db, code)
    if not certificate:
        logger.info(f"Verification of unknown certificate {code}")
        await notifier.notify(verification_event(code, None, verified=False))
        return VerificationResult(valid=False, certificate_id=code, message="Certificate not found")

    certificate = await record_verification(
        db,
        certificate,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    valid = certificate.status == CertificateStatus.ACTIVE
    await notifier.notify(verification_event(code, certificate.participant_name, verified=valid))

    return VerificationResult(
        valid=valid,
        certificate_id=certificate.certificate_id,
        participant_name=certificate.participant_name,
        certificate_type=certificate.certificate_type,
        school=certificate.school,
        date_issued=certificate.date_issued,
        status=certificate.status,
        event=EventSummary.model_validate(certificate.event) if certificate.event else None,
        metadata=certificate.metadata_dict(),
        message=None if valid else f"Certificate revoked: {certificate.revoked_reason or 'no reason given'}",
    )
