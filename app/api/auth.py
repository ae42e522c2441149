"""
Authentication endpoints
"""

import logging
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.auth import Token
from app.schemas.user import UserRead
from app.core.security import verify_password, create_access_token, get_current_active_user, ROLE_SCOPES
from app.core.services import get_notifier
from app.core.exceptions import CustomHTTPException
from app.core.error_codes import INVALID_CREDENTIALS, ACCOUNT_NOT_APPROVED
from app.crud.user import get_user_by_email, record_login
from app.models.user import User
from app.utils.discord import Notifier, login_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/token", response_model=Token)
@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    user = await get_user_by_email(db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.warning(f"Failed login attempt for: {form_data.username}")
        await notifier.notify(login_event(form_data.username, success=False))
        raise CustomHTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            error_code=INVALID_CREDENTIALS,
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_approved:
        raise CustomHTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {user.account_status.value.replace('_', ' ')}",
            error_code=ACCOUNT_NOT_APPROVED,
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id, role, email = str(user.id), user.role, user.email
    await record_login(db, user)
    await notifier.notify(login_event(email, success=True))

    access_token, expires_at = create_access_token(user_id, ROLE_SCOPES[role])
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_at": expires_at,
        "role": role,
    }


@router.get("/me", response_model=UserRead)
async def read_me(current_user: User = Depends(get_current_active_user)):
    return current_user
