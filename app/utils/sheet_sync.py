"""
Reconciliation between the certificates spreadsheet and the database.

Two one-directional flows:

* ``import_from_sheet``: rows without a Unique_ID are turned into certificates
  (the sheet decides which rows need processing). Rows are handled one at a
  time; a bad row is reported and skipped, never aborting the run. Generated
  ids and URLs are written back to the sheet in one batch at the end.
* ``export_to_sheet``: rows that already have a Unique_ID are compared with the
  database (the source of truth) and only drifted rows are re-pushed.

A row's database insert and its sheet write-back are separate steps. If the
write-back fails the database is ahead of the sheet until the export flow
catches up.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.certificate import create_certificate, get_certificate_by_public_id
from app.crud.event import require_event
from app.models.certificate import Certificate
from app.schemas.sheet import SheetColumns, SheetRow, SheetUpdate
from app.schemas.sync import ExportResult, ImportResult, SyncRowError, SyncRowSuccess
from app.utils.cache import CACHE_KEYS, SyncCache
from app.utils.certificates import (
    build_metadata_fields,
    detail_fields_from_sheet,
    generate_verification_url,
    get_default_event_name,
    validate_certificate_fields,
)
from app.utils.discord import Notifier, sync_complete_event, sync_errors_event
from app.utils.sheetdb import SheetDBClient

logger = logging.getLogger(__name__)


class SheetReconciler:
    def __init__(
        self,
        session: AsyncSession,
        sheet: SheetDBClient,
        cache: SyncCache,
        notifier: Notifier,
        event_code: Optional[str] = None,
    ):
        self.session = session
        self.sheet = sheet
        self.cache = cache
        self.notifier = notifier
        self.event_code = event_code or get_default_event_name()

    async def read_rows(self) -> List[SheetRow]:
        """All sheet rows, served from the cache while fresh"""
        rows = self.cache.get(CACHE_KEYS.SHEET_DATA)
        if rows is None:
            rows = await self.sheet.get_all_rows()
            self.cache.set(CACHE_KEYS.SHEET_DATA, rows)
        return rows

    def _sheet_changed(self) -> None:
        self.cache.invalidate_pattern(r"^sheet_")

    async def import_from_sheet(self, created_by: Optional[str] = None) -> ImportResult:
        rows = await self.read_rows()
        unprocessed = [row for row in rows if not row.is_processed]
        if not unprocessed:
            return ImportResult(message="No new certificates to process")

        event = await require_event(self.session, self.event_code)
        # Plain values: a failed row rolls the session back and expires ORM instances
        event_id, event_code = event.id, event.event_code

        successes: List[SyncRowSuccess] = []
        errors: List[SyncRowError] = []
        writebacks: List[SheetUpdate] = []

        for position, row in enumerate(unprocessed, start=1):
            name = row.participant_name.strip() or "Unknown"
            try:
                error = self._row_problem(row)
                if error:
                    errors.append(SyncRowError(row=position, participant_name=name, error=error))
                    logger.warning(f"Skipping sheet row {position} ({name}): {error}")
                    continue

                certificate = await self._insert_certificate(row, event_id, created_by)
            except Exception as e:
                await self.session.rollback()
                errors.append(SyncRowError(row=position, participant_name=name, error=str(e) or "Failed to insert"))
                logger.error(f"Sheet row {position} ({name}) failed: {e}")
                continue

            writebacks.append(self._writeback(row, certificate, event_code))
            successes.append(SyncRowSuccess(
                row=position,
                certificate_id=certificate.certificate_id,
                participant_name=certificate.participant_name,
                verification_url=certificate.qr_code_data,
            ))
            logger.info(f"Sheet row {position} ({name}) issued certificate {certificate.certificate_id}")

        result = ImportResult(
            message=f"Sync completed: {len(successes)} processed, {len(errors)} errors",
            processed=len(successes),
            success=successes,
            errors=errors,
        )

        if writebacks:
            # One batch after every row, so the counts cover the whole run
            batch = await self.sheet.batch_update_rows(writebacks)
            result.sheetUpdated = batch.success
            result.sheetUpdateFailed = batch.failed
            self._sheet_changed()

        logger.info(result.message)
        await self.notifier.notify(sync_complete_event(
            len(successes),
            len(errors),
            [{"participant_name": s.participant_name, "certificate_id": s.certificate_id} for s in successes],
        ))
        if errors:
            await self.notifier.notify(sync_errors_event([e.model_dump() for e in errors]))
        return result

    @staticmethod
    def _row_problem(row: SheetRow) -> Optional[str]:
        validation = validate_certificate_fields(row.cert_type, {
            "participant_name": row.participant_name,
            "committee": row.committee,
            "country": row.country,
        })
        if not validation.valid:
            return f"Missing required fields: {', '.join(validation.missing_fields)}"
        # Award_Type is the printed certificate name, so it cannot be blank
        if not row.award_type.strip():
            return "Award_Type is required - this is the certificate name"
        return None

    async def _insert_certificate(self, row: SheetRow, event_id: str, created_by: Optional[str]) -> Certificate:
        metadata = build_metadata_fields(
            row.cert_type,
            email=row.email,
            **detail_fields_from_sheet(row.cert_type, row.committee, row.country),
        )
        return await create_certificate(
            self.session,
            event_id=event_id,
            certificate_type=row.award_type.strip(),
            participant_name=row.participant_name.strip(),
            school=row.institution.strip(),
            metadata=metadata,
            created_by=created_by,
        )

    @staticmethod
    def _writeback(row: SheetRow, certificate: Certificate, event_code: str) -> SheetUpdate:
        return SheetUpdate(
            search_column=SheetColumns.PARTICIPANT_NAME,
            search_value=row.participant_name,
            data={
                SheetColumns.UNIQUE_ID: certificate.certificate_id,
                SheetColumns.VERIFICATION_URL: certificate.qr_code_data,
                SheetColumns.DATE_ISSUED: certificate.date_issued.isoformat(),
                SheetColumns.VERIFIED_STATUS: certificate.status.value,
                SheetColumns.EVENT_NAME: event_code,
            },
        )

    async def export_to_sheet(self) -> ExportResult:
        rows = await self.read_rows()
        processed = [row for row in rows if row.is_processed]
        if not processed:
            return ExportResult(message="No certificates to sync")

        updates: List[SheetUpdate] = []
        for row in processed:
            certificate = await get_certificate_by_public_id(self.session, row.unique_id.strip())
            if not certificate:
                logger.info(f"Sheet row {row.unique_id} has no certificate in the database")
                continue
            correction = self.correction_for(row, certificate)
            if correction:
                updates.append(correction)

        if not updates:
            return ExportResult(message="All sheet data is up to date")

        batch = await self.sheet.batch_update_rows(updates)
        self._sheet_changed()
        logger.info(f"Sheet export: {batch.success} updated, {batch.failed} failed")
        return ExportResult(
            message=f"Sheet sync completed: {batch.success} updated, {batch.failed} failed",
            updated=batch.success,
            failed=batch.failed,
        )

    def correction_for(self, row: SheetRow, certificate: Certificate) -> Optional[SheetUpdate]:
        """The update that makes ``row`` match the database, or None when it already does"""
        expected: Dict[str, str] = {
            SheetColumns.VERIFICATION_URL: generate_verification_url(certificate.certificate_id),
            SheetColumns.DATE_ISSUED: certificate.date_issued.isoformat(),
            SheetColumns.VERIFIED_STATUS: certificate.status.value,
            SheetColumns.EVENT_NAME: certificate.event.event_code if certificate.event else self.event_code,
        }
        current = {
            SheetColumns.VERIFICATION_URL: row.verification_url.strip(),
            SheetColumns.DATE_ISSUED: row.date_issued.strip(),
            SheetColumns.VERIFIED_STATUS: row.verified_status.strip(),
            SheetColumns.EVENT_NAME: row.event_name.strip(),
        }
        if current == expected:
            return None
        return SheetUpdate(
            search_column=SheetColumns.UNIQUE_ID,
            search_value=row.unique_id,
            data=expected,
        )
