"""
Spreadsheet <-> database reconciliation endpoints.

Row level problems come back inside a 200 payload; only precondition and
store failures turn into error responses.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.core.security import get_admin_user
from app.core.services import Services, get_services
from app.core.exceptions import SheetDBError
from app.models.user import User
from app.schemas.sync import ExportResult, ImportResult
from app.utils.cache import CACHE_KEYS
from app.utils.discord import error_event
from app.utils.sheet_sync import SheetReconciler

router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post("/from-sheet", response_model=ImportResult, response_model_exclude_none=True)
async def sync_from_sheet(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_admin_user),
    services: Services = Depends(get_services),
):
    reconciler = SheetReconciler(db, services.sheet, services.cache, services.notifier)
    try:
        result = await reconciler.import_from_sheet(created_by=current_user.id)
    except SheetDBError as e:
        await services.notifier.notify(error_event("Sync Failed", str(e)))
        raise
    services.cache.invalidate(CACHE_KEYS.STATS)
    return result


@router.post("/to-sheet", response_model=ExportResult)
async def sync_to_sheet(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_admin_user),
    services: Services = Depends(get_services),
):
    reconciler = SheetReconciler(db, services.sheet, services.cache, services.notifier)
    try:
        return await reconciler.export_to_sheet()
    except SheetDBError as e:
        await services.notifier.notify(error_event("Sheet Export Failed", str(e)))
        raise
