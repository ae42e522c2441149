from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.core.security import get_admin_user, get_current_active_user
from app.core.services import get_notifier, get_sync_cache
from app.crud.event import create_event, list_events_with_counts
from app.models.user import User
from app.schemas.event import EventCreate, EventRead
from app.utils.cache import CACHE_KEYS, SyncCache
from app.utils.discord import Notifier, event_created_event

router = APIRouter(prefix="/events", tags=["Events"])


@router.get("")
async def list_events(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    events = await list_events_with_counts(db)
    return {
        "events": [
            EventRead.model_validate({**event.model_dump(), "certificate_count": count})
            for event, count in events
        ]
    }


@router.post("")
async def add_event(
    data: EventCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_admin_user),
    notifier: Notifier = Depends(get_notifier),
    cache: SyncCache = Depends(get_sync_cache),
):
    event = await create_event(db, data, created_by=current_user.id)
    cache.invalidate(CACHE_KEYS.STATS)
    await notifier.notify(event_created_event(event.event_code, event.event_name))
    return {"event": EventRead.model_validate(event)}
