from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.db.database import get_db
from app.core.security import get_current_active_user
from app.crud.certificate import list_verification_logs
from app.models.user import User
from app.schemas.certificate import VerificationLogRead

router = APIRouter(prefix="/logs", tags=["Logs"])


@router.get("/verifications", response_model=List[VerificationLogRead])
async def read_verification_logs(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    logs = await list_verification_logs(db, limit=limit)
    return [
        VerificationLogRead(
            id=log.id,
            certificate_id=log.certificate_id,
            participant_name=participant_name,
            verified_at=log.verified_at,
            ip_address=log.ip_address,
            user_agent=log.user_agent,
        )
        for log, participant_name in logs
    ]
