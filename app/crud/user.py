"""
Admin account CRUD operations
"""
from typing import Optional
from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.models.user import User, utc_now
from app.schemas.user import UserCreate
from app.schemas.enums import AccountStatus
from app.core.security import get_password_hash
from app.core.exceptions import CustomHTTPException


async def get_user_by_email(session: AsyncSession, email: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.email == email.lower().strip()))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    user_data: UserCreate,
    account_status: AccountStatus = AccountStatus.PENDING_APPROVAL,
    approved_by: Optional[str] = None,
) -> User:
    """Create an admin account. New accounts wait for approval unless told otherwise."""
    if await get_user_by_email(session, user_data.email):
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
            error_code="USER_ALREADY_EXISTS"
        )

    user = User(
        email=user_data.email.lower().strip(),
        full_name=user_data.full_name,
        role=user_data.role,
        hashed_password=get_password_hash(user_data.password),
        account_status=account_status,
        approved_by=approved_by,
        approved_at=utc_now() if account_status == AccountStatus.APPROVED else None,
    )
    try:
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user
    except IntegrityError as e:
        await session.rollback()
        raise CustomHTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Database integrity error: {str(e)}",
            error_code="DATABASE_INTEGRITY_ERROR"
        )


async def record_login(session: AsyncSession, user: User) -> None:
    user.last_login_at = utc_now()
    session.add(user)
    await session.commit()
