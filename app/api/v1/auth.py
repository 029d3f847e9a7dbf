from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, oauth2_scheme
from app.core.rate_limit import enforce, get_client_ip, register_limiter
from app.core.redis import RedisClient, get_redis
from app.db.models import User
from app.db.session import get_session
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    OtpSendRequest,
    OtpVerifyRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserInfo,
)
from app.services.auth_service import AuthService

router = APIRouter()

async def get_auth_service(
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis),
) -> AuthService:
    return AuthService(session, redis)

@router.post("/otp/send")
async def send_otp(
    payload: OtpSendRequest,
    service: AuthService = Depends(get_auth_service)
):
    return await service.send_otp(payload)

@router.post("/otp/verify")
async def verify_otp(
    payload: OtpVerifyRequest,
    service: AuthService = Depends(get_auth_service)
):
    return await service.verify_otp(payload)

@router.post("/register", status_code=201)
async def register(
    payload: RegisterRequest,
    request: Request,
    service: AuthService = Depends(get_auth_service)
):
    enforce(register_limiter, get_client_ip(request))
    return await service.register(payload)

@router.post("/reset-password")
async def reset_password(
    payload: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service)
):
    return await service.reset_password(payload)

@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    return await service.login(login_data)

@router.post("/logout")
async def logout(
    token: str = Depends(oauth2_scheme),
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    return await service.logout(token)

@router.get("/me", response_model=UserInfo)
async def read_me(current_user: User = Depends(get_current_user)):
    return current_user
