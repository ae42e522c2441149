"""
Certificate management endpoints
"""

import csv
import io
import json
import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.core.security import get_admin_user, get_current_active_user
from app.core.services import Services, get_services
from app.core.exceptions import CustomHTTPException, SheetDBError
from app.core.error_codes import INVALID_ACTION, MISSING_REQUIRED_FIELDS
from app.crud import certificate as certificate_crud
from app.crud.event import get_event_by_code, require_event
from app.models.certificate import Certificate
from app.models.user import User
from app.schemas.certificate import (
    CertificateActionRequest,
    CertificateActionResponse,
    CertificateCreate,
    CertificateCreateResponse,
    CertificateImportRequest,
    CertificateImportResult,
    CertificateList,
    CertificateRead,
    CertificateUpdate,
    CreatedCertificate,
)
from app.schemas.enums import CertificateAction, ExportFormat
from app.schemas.sheet import SheetColumns, SheetUpdate
from app.utils.cache import BATCH_KEYS, CACHE_KEYS
from app.utils.certificates import (
    build_metadata_fields,
    get_default_event_name,
    get_today_date,
    import_metadata_fields,
    sheet_detail_columns,
    validate_certificate_fields,
)
from app.utils.discord import certificate_created_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/certificates", tags=["Certificates"])

EXPORT_COLUMNS = [
    "Certificate ID",
    "Participant Name",
    "Certificate Type",
    "School",
    "Event",
    "Date Issued",
    "Status",
    "Verification Count",
    "Verification URL",
]


def _queue_sheet_update(services: Services, certificate_id: str, data: dict) -> None:
    services.cache.queue_update(
        BATCH_KEYS.SHEET_UPDATES,
        SheetUpdate(search_column=SheetColumns.UNIQUE_ID, search_value=certificate_id, data=data),
        services.push_sheet_updates,
    )


def _certificates_changed(services: Services) -> None:
    services.cache.invalidate(CACHE_KEYS.STATS)
    services.cache.invalidate_pattern(r"^certificates")


@router.get("", response_model=CertificateList)
async def list_certificates(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    search: str = Query(""),
    status_filter: str = Query("", alias="status", pattern="^(all|active|revoked)?$"),
    cert_type: str = Query("", alias="type"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    certificates, total = await certificate_crud.list_certificates(
        db, page=page, limit=limit, search=search, status_filter=status_filter, cert_type=cert_type
    )
    return {
        "certificates": certificates,
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if total else 0,
    }


@router.post("/create", response_model=CertificateCreateResponse)
async def create_certificate(
    data: CertificateCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_admin_user),
    services: Services = Depends(get_services),
):
    validation = validate_certificate_fields(data.cert_type, data.model_dump())
    if not validation.valid:
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing required fields: {', '.join(validation.missing_fields)}",
            error_code=MISSING_REQUIRED_FIELDS
        )

    event = await require_event(db, get_default_event_name())
    event_code = event.event_code
    certificate_type = (data.award_type or "").strip() or data.cert_type
    metadata = build_metadata_fields(
        data.cert_type,
        email=data.email,
        committee=data.committee,
        country=data.country,
        department=data.department,
        designation=data.designation,
        position=data.position,
    )

    certificate = await certificate_crud.create_certificate(
        db,
        event_id=event.id,
        certificate_type=certificate_type,
        participant_name=data.participant_name.strip(),
        school=(data.institution or "").strip(),
        metadata=metadata,
        created_by=current_user.id,
    )
    logger.info(f"Certificate {certificate.certificate_id} created by {current_user.email}")

    if data.add_to_sheet:
        committee_column, country_column = sheet_detail_columns(data.cert_type, metadata)
        try:
            await services.sheet.add_row({
                SheetColumns.CERT_TYPE: data.cert_type,
                SheetColumns.UNIQUE_ID: certificate.certificate_id,
                SheetColumns.PARTICIPANT_NAME: certificate.participant_name,
                SheetColumns.EMAIL: data.email or "",
                SheetColumns.INSTITUTION: certificate.school,
                SheetColumns.VERIFICATION_URL: certificate.qr_code_data,
                SheetColumns.AWARD_TYPE: data.award_type or "",
                SheetColumns.COMMITTEE: committee_column,
                SheetColumns.COUNTRY: country_column,
                SheetColumns.DATE_ISSUED: certificate.date_issued.isoformat(),
                SheetColumns.VERIFIED_STATUS: certificate.status.value,
                SheetColumns.EVENT_NAME: event_code,
            })
            services.cache.invalidate_pattern(r"^sheet_")
        except SheetDBError as e:
            # The certificate exists either way; the export flow can repair the sheet later
            logger.warning(f"Could not add certificate {certificate.certificate_id} to the sheet: {e}")

    _certificates_changed(services)
    await services.notifier.notify(certificate_created_event(
        certificate.certificate_id, certificate.participant_name, certificate_type, current_user.email
    ))

    return {
        "success": True,
        "certificate": CreatedCertificate(
            id=certificate.id,
            certificate_id=certificate.certificate_id,
            participant_name=certificate.participant_name,
            verification_url=certificate.qr_code_data,
        ),
    }


@router.post("/import", response_model=CertificateImportResult)
async def import_certificates(
    payload: CertificateImportRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_admin_user),
    services: Services = Depends(get_services),
):
    """Bulk JSON import. Entries are inserted one by one and failures are collected."""
    user_id = current_user.id
    result = CertificateImportResult()
    events = {}

    for item in payload.certificates:
        name = (item.participant_name or "").strip()
        if not name or not (item.certificate_type or "").strip():
            result.failed += 1
            result.errors.append(f"Missing required fields for {name or 'unknown participant'}")
            continue

        event_code = item.event_name or get_default_event_name()
        if event_code not in events:
            event = await get_event_by_code(db, event_code)
            events[event_code] = event.id if event else None
        event_id = events[event_code]
        if event_id is None:
            result.failed += 1
            result.errors.append(f"Event {event_code} not found for {name}")
            continue

        metadata = import_metadata_fields(
            item.certificate_type,
            committee=item.committee,
            country=item.country,
            award=item.award,
            secretariat_role=item.secretariat_role,
        )

        try:
            await certificate_crud.create_certificate(
                db,
                event_id=event_id,
                certificate_type=item.certificate_type.strip(),
                participant_name=name,
                school=(item.institution or "").strip(),
                metadata=metadata,
                created_by=user_id,
            )
            result.success += 1
        except Exception as e:
            await db.rollback()
            result.failed += 1
            result.errors.append(f"Failed to import {name}: {str(e)}")
            logger.error(f"Import of {name} failed: {e}")

    if result.success:
        _certificates_changed(services)
    logger.info(f"Bulk import: {result.success} imported, {result.failed} failed")
    return result


@router.get("/export")
async def export_certificates(
    format: ExportFormat = Query(ExportFormat.CSV),
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(all|active|revoked)?$"),
    cert_type: Optional[str] = Query(None, alias="type"),
    event: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    certificates = await certificate_crud.list_certificates_for_export(
        db, status_filter=status_filter, cert_type=cert_type, event_code=event
    )
    filename = f"certificates-{get_today_date().isoformat()}"

    if format == ExportFormat.JSON:
        body = json.dumps(
            [CertificateRead.model_validate(c).model_dump(mode="json") for c in certificates],
            indent=2,
        )
        return Response(
            content=body,
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{filename}.json"'},
        )

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for c in certificates:
        writer.writerow([
            c.certificate_id,
            c.participant_name,
            c.certificate_type,
            c.school,
            c.event.event_name if c.event else "",
            c.date_issued.isoformat(),
            c.status.value,
            c.verification_count,
            c.qr_code_data,
        ])
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'},
    )


@router.get("/{cert_id}", response_model=CertificateRead)
async def read_certificate(
    cert_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return await certificate_crud.require_certificate(db, cert_id)


@router.put("/{cert_id}", response_model=CertificateRead)
async def update_certificate(
    cert_id: str,
    data: CertificateUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_admin_user),
    services: Services = Depends(get_services),
):
    certificate = await certificate_crud.require_certificate(db, cert_id)
    certificate = await certificate_crud.update_certificate(db, certificate, data)

    _queue_sheet_update(services, certificate.certificate_id, {
        SheetColumns.PARTICIPANT_NAME: certificate.participant_name,
        SheetColumns.INSTITUTION: certificate.school,
        SheetColumns.AWARD_TYPE: certificate.certificate_type,
        SheetColumns.DATE_ISSUED: certificate.date_issued.isoformat(),
    })
    _certificates_changed(services)
    return certificate


@router.patch("/{cert_id}", response_model=CertificateActionResponse)
async def change_certificate_status(
    cert_id: str,
    request: CertificateActionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_admin_user),
    services: Services = Depends(get_services),
):
    try:
        action = CertificateAction(request.action)
    except ValueError:
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid action",
            error_code=INVALID_ACTION
        )

    certificate = await certificate_crud.require_certificate(db, cert_id)
    if action == CertificateAction.REVOKE:
        certificate = await certificate_crud.revoke_certificate(db, certificate, current_user.id, request.reason)
        message = "Certificate revoked"
    else:
        certificate = await certificate_crud.restore_certificate(db, certificate)
        message = "Certificate restored"

    _queue_sheet_update(services, certificate.certificate_id, {
        SheetColumns.VERIFIED_STATUS: certificate.status.value,
    })
    _certificates_changed(services)
    logger.info(f"{message}: {certificate.certificate_id} by {current_user.email}")
    return {"success": True, "status": certificate.status, "message": message}


@router.delete("/{cert_id}", response_model=CertificateActionResponse)
async def delete_certificate(
    cert_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_admin_user),
    services: Services = Depends(get_services),
):
    certificate: Certificate = await certificate_crud.require_certificate(db, cert_id)
    public_id = certificate.certificate_id
    await certificate_crud.delete_certificate(db, certificate)

    _queue_sheet_update(services, public_id, {
        SheetColumns.UNIQUE_ID: "",
        SheetColumns.VERIFICATION_URL: "",
        SheetColumns.VERIFIED_STATUS: "deleted",
    })
    _certificates_changed(services)
    logger.info(f"Certificate {public_id} deleted by {current_user.email}")
    return {"success": True, "message": "Certificate deleted"}
