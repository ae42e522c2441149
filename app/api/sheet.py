from collections import Counter

from fastapi import APIRouter, Depends

from app.core.security import get_current_active_user
from app.core.services import get_sheet_client, get_sync_cache
from app.models.user import User
from app.schemas.sheet import SheetOverview
from app.utils.cache import CACHE_KEYS, SyncCache
from app.utils.sheetdb import SheetDBClient

router = APIRouter(prefix="/sheet", tags=["Sheet"])


@router.get("", response_model=SheetOverview, response_model_exclude_none=True)
async def read_sheet(
    current_user: User = Depends(get_current_active_user),
    sheet: SheetDBClient = Depends(get_sheet_client),
    cache: SyncCache = Depends(get_sync_cache),
):
    rows = cache.get(CACHE_KEYS.SHEET_DATA)
    cached = rows is not None
    if not cached:
        rows = await sheet.get_all_rows()
        cache.set(CACHE_KEYS.SHEET_DATA, rows)

    processed = sum(1 for row in rows if row.is_processed)
    by_type = Counter(row.cert_type or "Unknown" for row in rows)
    return SheetOverview(
        total=len(rows),
        processed=processed,
        pending=len(rows) - processed,
        byType=dict(by_type),
        rows=[row.to_sheet() for row in rows],
        cached=cached,
    )
