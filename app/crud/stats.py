"""
Dashboard statistics.

The counts are independent reads, so each runs in its own session and they
are gathered concurrently.
"""

import asyncio
from collections import Counter
from typing import Any, Callable

from sqlalchemy import func
from sqlmodel import select

from app.models.certificate import Certificate
from app.schemas.enums import CertificateStatus
from app.crud.event import list_events_with_counts


async def _run(session_factory: Callable, fn: Callable) -> Any:
    async with session_factory() as session:
        return await fn(session)


async def _scalar(session_factory: Callable, statement) -> Any:
    async def query(session):
        return (await session.execute(statement)).scalar_one()
    return await _run(session_factory, query)


async def _all(session_factory: Callable, statement) -> list:
    async def query(session):
        return list((await session.execute(statement)).all())
    return await _run(session_factory, query)


async def get_dashboard_stats(session_factory: Callable) -> dict:
    (
        total,
        active,
        revoked,
        verifications,
        recent,
        types,
        events,
    ) = await asyncio.gather(
        _scalar(session_factory, select(func.count(Certificate.id))),
        _scalar(session_factory, select(func.count(Certificate.id)).where(Certificate.status == CertificateStatus.ACTIVE)),
        _scalar(session_factory, select(func.count(Certificate.id)).where(Certificate.status == CertificateStatus.REVOKED)),
        _scalar(session_factory, select(func.coalesce(func.sum(Certificate.verification_count), 0))),
        _all(session_factory, select(Certificate).order_by(Certificate.created_at.desc()).limit(10)),
        _all(session_factory, select(Certificate.certificate_type)),
        _run(session_factory, list_events_with_counts),
    )

    type_breakdown = Counter((row[0] or "Unknown") for row in types)

    return {
        "stats": {
            "totalCertificates": total or 0,
            "activeCertificates": active or 0,
            "revokedCertificates": revoked or 0,
            "totalVerifications": verifications or 0,
            "totalEvents": len(events),
        },
        "typeBreakdown": dict(type_breakdown),
        "recentCertificates": [row[0].model_dump() for row in recent],
        "events": [{**event.model_dump(), "certificate_count": count} for event, count in events],
    }
