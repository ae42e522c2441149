import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from fastapi import status
from sqlalchemy import delete, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.certificate import Certificate, CertificateMetadata
from app.models.event import Event
from app.models.user import utc_now
from app.models.verification_log import VerificationLog
from app.schemas.certificate import CertificateUpdate
from app.schemas.enums import CertificateStatus
from app.core.exceptions import CustomHTTPException
from app.core.error_codes import CERTIFICATE_NOT_FOUND, DATABASE_ERROR
from app.utils.certificates import generate_certificate_id, generate_verification_url, get_today_date

logger = logging.getLogger(__name__)

MAX_ID_ATTEMPTS = 10
MAX_INSERT_ATTEMPTS = 3


async def get_certificate(session: AsyncSession, cert_id: str) -> Optional[Certificate]:
    result = await session.execute(select(Certificate).where(Certificate.id == cert_id))
    return result.scalar_one_or_none()


async def require_certificate(session: AsyncSession, cert_id: str) -> Certificate:
    certificate = await get_certificate(session, cert_id)
    if not certificate:
        raise CustomHTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Certificate not found",
            error_code=CERTIFICATE_NOT_FOUND
        )
    return certificate


async def get_certificate_by_public_id(session: AsyncSession, certificate_id: str) -> Optional[Certificate]:
    result = await session.execute(select(Certificate).where(Certificate.certificate_id == certificate_id))
    return result.scalar_one_or_none()


async def certificate_id_exists(session: AsyncSession, certificate_id: str) -> bool:
    result = await session.execute(
        select(Certificate.id).where(Certificate.certificate_id == certificate_id)
    )
    return result.first() is not None


async def generate_unique_certificate_id(session: AsyncSession, max_attempts: int = MAX_ID_ATTEMPTS) -> str:
    """
    Draw ids until one is not in the database, giving up after ``max_attempts``
    checks and returning the last candidate. The unique index on
    certificate_id catches whatever slips through (see create_certificate).
    """
    candidate = generate_certificate_id()
    for _ in range(max_attempts):
        if not await certificate_id_exists(session, candidate):
            return candidate
        logger.info(f"Certificate id {candidate} already taken, regenerating")
        candidate = generate_certificate_id()
    logger.warning(f"No free certificate id after {max_attempts} checks, using {candidate}")
    return candidate


async def create_certificate(
    session: AsyncSession,
    *,
    event_id: str,
    certificate_type: str,
    participant_name: str,
    school: str = "",
    metadata: Optional[Dict[str, str]] = None,
    created_by: Optional[str] = None,
    date_issued: Optional[date] = None,
) -> Certificate:
    """
    Insert a certificate and its metadata in one transaction under a fresh
    public id. A unique-index conflict on the id rolls back and retries with a
    new id, up to MAX_INSERT_ATTEMPTS times.

    Rolls back the session on failure, which expires loaded instances; pass
    plain ids, not ORM objects that are read afterwards.
    """
    metadata = metadata or {}
    issued = date_issued or get_today_date()

    for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
        certificate_id = await generate_unique_certificate_id(session)
        certificate = Certificate(
            certificate_id=certificate_id,
            event_id=event_id,
            certificate_type=certificate_type,
            participant_name=participant_name,
            school=school or "",
            date_issued=issued,
            qr_code_data=generate_verification_url(certificate_id),
            created_by=created_by,
            metadata_entries=[
                CertificateMetadata(field_name=name, field_value=value)
                for name, value in metadata.items()
            ],
        )
        session.add(certificate)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            if not await certificate_id_exists(session, certificate_id):
                raise
            logger.warning(f"Certificate id {certificate_id} collided on insert (attempt {attempt})")
            continue

        await session.refresh(certificate)
        return certificate

    raise CustomHTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f"Could not allocate a unique certificate id after {MAX_INSERT_ATTEMPTS} attempts",
        error_code=DATABASE_ERROR
    )


async def list_certificates(
    session: AsyncSession,
    page: int = 1,
    limit: int = 50,
    search: str = "",
    status_filter: str = "",
    cert_type: str = "",
) -> Tuple[List[Certificate], int]:
    filters = []
    if search:
        pattern = f"%{search}%"
        filters.append(or_(
            Certificate.participant_name.ilike(pattern),
            Certificate.certificate_id.ilike(pattern),
            Certificate.school.ilike(pattern),
        ))
    if status_filter and status_filter != "all":
        filters.append(Certificate.status == CertificateStatus(status_filter))
    if cert_type:
        filters.append(Certificate.certificate_type == cert_type)

    total = (await session.execute(select(func.count(Certificate.id)).where(*filters))).scalar_one()
    result = await session.execute(
        select(Certificate)
        .where(*filters)
        .order_by(Certificate.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def list_certificates_for_export(
    session: AsyncSession,
    status_filter: Optional[str] = None,
    cert_type: Optional[str] = None,
    event_code: Optional[str] = None,
) -> List[Certificate]:
    query = select(Certificate).order_by(Certificate.created_at.desc())
    if status_filter and status_filter != "all":
        query = query.where(Certificate.status == CertificateStatus(status_filter))
    if cert_type and cert_type != "all":
        query = query.where(Certificate.certificate_type == cert_type)
    if event_code:
        query = query.join(Event, Event.id == Certificate.event_id).where(Event.event_code == event_code)
    result = await session.execute(query)
    return list(result.scalars().all())


async def update_certificate(session: AsyncSession, certificate: Certificate, data: CertificateUpdate) -> Certificate:
    """Update the main fields; when metadata is given it replaces all existing entries."""
    try:
        for field in ("participant_name", "school", "certificate_type", "date_issued"):
            value = getattr(data, field)
            if value is not None:
                setattr(certificate, field, value)

        if data.metadata is not None:
            certificate.metadata_entries = [
                CertificateMetadata(field_name=name, field_value=str(value))
                for name, value in data.metadata.items()
                if value is not None and value != ""
            ]

        session.add(certificate)
        await session.commit()
        await session.refresh(certificate)
        return certificate
    except Exception as e:
        await session.rollback()
        raise CustomHTTPException(status_code=500, detail=f"Failed to update certificate: {str(e)}", error_code=DATABASE_ERROR)


async def revoke_certificate(
    session: AsyncSession, certificate: Certificate, revoked_by: Optional[str], reason: Optional[str] = None
) -> Certificate:
    certificate.status = CertificateStatus.REVOKED
    certificate.revoked_at = utc_now()
    certificate.revoked_by = revoked_by
    certificate.revoked_reason = reason or "Revoked by admin"
    session.add(certificate)
    await session.commit()
    await session.refresh(certificate)
    return certificate


async def restore_certificate(session: AsyncSession, certificate: Certificate) -> Certificate:
    certificate.status = CertificateStatus.ACTIVE
    certificate.revoked_at = None
    certificate.revoked_by = None
    certificate.revoked_reason = None
    session.add(certificate)
    await session.commit()
    await session.refresh(certificate)
    return certificate


async def delete_certificate(session: AsyncSession, certificate: Certificate) -> None:
    try:
        await session.execute(delete(VerificationLog).where(VerificationLog.certificate_id == certificate.id))
        await session.delete(certificate)
        await session.commit()
    except Exception as e:
        await session.rollback()
        raise CustomHTTPException(status_code=500, detail=f"Failed to delete certificate: {str(e)}", error_code=DATABASE_ERROR)


async def record_verification(
    session: AsyncSession, certificate: Certificate, ip_address: Optional[str], user_agent: Optional[str]
) -> Certificate:
    now = utc_now()
    certificate.verification_count += 1
    certificate.last_verified_at = now
    session.add(certificate)
    session.add(VerificationLog(
        certificate_id=certificate.id,
        verified_at=now,
        ip_address=ip_address,
        user_agent=user_agent,
    ))
    await session.commit()
    await session.refresh(certificate)
    return certificate


async def list_verification_logs(session: AsyncSession, limit: int = 100) -> List[Tuple[VerificationLog, str]]:
    result = await session.execute(
        select(VerificationLog, Certificate.participant_name)
        .join(Certificate, Certificate.id == VerificationLog.certificate_id)
        .order_by(VerificationLog.verified_at.desc())
        .limit(limit)
    )
    return [(log, name) for log, name in result.all()]
