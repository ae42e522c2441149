import re
from datetime import date
from typing import List, Optional, Tuple

from fastapi import status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.event import Event
from app.models.certificate import Certificate
from app.schemas.event import EventCreate
from app.core.exceptions import CustomHTTPException
from app.core.error_codes import EVENT_NOT_FOUND, EVENT_ALREADY_EXISTS, DATABASE_ERROR


def slugify_event_code(code: str) -> str:
    return re.sub(r"\s+", "-", code.strip().lower())


async def get_event_by_code(session: AsyncSession, event_code: str) -> Optional[Event]:
    result = await session.execute(select(Event).where(Event.event_code == event_code))
    return result.scalar_one_or_none()


async def require_event(session: AsyncSession, event_code: str) -> Event:
    """Events are never created implicitly; a missing event is a hard failure."""
    event = await get_event_by_code(session, event_code)
    if not event:
        raise CustomHTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f'Event "{event_code}" not found in database. Please create it first.',
            error_code=EVENT_NOT_FOUND
        )
    return event


async def list_events_with_counts(session: AsyncSession) -> List[Tuple[Event, int]]:
    counts = (
        select(Certificate.event_id, func.count(Certificate.id).label("certificate_count"))
        .group_by(Certificate.event_id)
        .subquery()
    )
    result = await session.execute(
        select(Event, func.coalesce(counts.c.certificate_count, 0))
        .outerjoin(counts, counts.c.event_id == Event.id)
        .order_by(Event.created_at.desc())
    )
    return [(event, count) for event, count in result.all()]


async def create_event(session: AsyncSession, data: EventCreate, created_by: Optional[str] = None) -> Event:
    today = date.today()
    event_code = slugify_event_code(data.event_code)
    event = Event(
        event_code=event_code,
        event_name=data.event_name,
        year=data.year or today.year,
        month=data.month or today.month,
        session=data.session or 1,
        event_type=data.event_type or "mun",
        created_by=created_by,
    )
    try:
        session.add(event)
        await session.commit()
        await session.refresh(event)
        return event
    except IntegrityError:
        await session.rollback()
        raise CustomHTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f'Event "{event_code}" already exists',
            error_code=EVENT_ALREADY_EXISTS
        )
    except Exception as e:
        await session.rollback()
        raise CustomHTTPException(status_code=500, detail=f"Failed to create event: {str(e)}", error_code=DATABASE_ERROR)
