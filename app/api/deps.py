from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
import jwt
from jwt.exceptions import PyJWTError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.clinic_access import ClinicAccess, check_permission, deny, resolve_clinic_access
from app.core.config import settings
from app.core.redis import RedisClient, get_redis
from app.db.models import User
from app.db.models.enums import UserRole
from app.db.session import get_session

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)

async def _user_from_token(token: str, session: AsyncSession, redis: RedisClient) -> Optional[User]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            return None
        user_uuid = UUID(user_id)
    except (PyJWTError, ValidationError, ValueError):
        return None

    # logged out tokens are gone from redis
    if not await redis.get_token(token):
        return None

    return await session.get(User, user_uuid)

async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception
    user = await _user_from_token(token, session, redis)
    if user is None:
        raise credentials_exception
    return user

async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis),
) -> Optional[User]:
    if not token:
        return None
    return await _user_from_token(token, session, redis)

async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return user

async def get_clinic_access(
    x_clinic_id: Optional[UUID] = Header(default=None),
    token: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis),
) -> ClinicAccess:
    user = await _user_from_token(token, session, redis) if token else None
    if user is None:
        raise deny("unauthenticated", "Authentication required")
    return await resolve_clinic_access(session, user, x_clinic_id)

def require_permission(permission: str):
    async def dependency(access: ClinicAccess = Depends(get_clinic_access)) -> ClinicAccess:
        return check_permission(access, permission)
    return dependency
