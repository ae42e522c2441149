from fastapi import APIRouter, Depends

from app.core.security import get_current_active_user
from app.core.services import get_sync_cache
from app.crud.stats import get_dashboard_stats
from app.db.database import get_session_factory
from app.models.user import User
from app.schemas.stats import DashboardStats
from app.utils.cache import CACHE_KEYS, SyncCache

router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("", response_model=DashboardStats)
async def read_stats(
    current_user: User = Depends(get_current_active_user),
    session_factory=Depends(get_session_factory),
    cache: SyncCache = Depends(get_sync_cache),
):
    stats = cache.get(CACHE_KEYS.STATS)
    if stats is None:
        stats = await get_dashboard_stats(session_factory)
        cache.set(CACHE_KEYS.STATS, stats)
    return stats
