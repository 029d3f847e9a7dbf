import json
import math
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update
from sqlmodel import select

from app.core.config import settings
from app.core.logger import logger
from app.core.rate_limit import otp_limiter
from app.core.redis import RedisClient
from app.core.security import verify_password, get_password_hash, create_access_token
from app.core.sms import generate_otp, is_valid_nepal_phone, mask_phone, normalize_phone, send_otp_sms
from app.db.models import Otp, User
from app.db.models.enums import OtpPurpose, UserRole
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    OtpSendRequest,
    OtpVerifyRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserInfo,
)

OTP_TTL_SECONDS = 5 * 60
OTP_MAX_ATTEMPTS = 5
VERIFICATION_TTL_SECONDS = 10 * 60
MIN_PASSWORD_LENGTH = 8

SMS_PURPOSE = {
    OtpPurpose.REGISTER: "register",
    OtpPurpose.FORGOT_PASSWORD: "reset",
    OtpPurpose.VERIFY_PHONE: "login",
}

class AuthService:
    def __init__(self, session: AsyncSession, redis: RedisClient):
        self.session = session
        self.redis = redis

    async def get_user_by_phone(self, phone: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.phone == phone))
        return result.scalars().first()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalars().first()

    def _parse_purpose(self, purpose: Optional[str]) -> OtpPurpose:
        try:
            return OtpPurpose(purpose)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid purpose")

    async def send_otp(self, data: OtpSendRequest) -> dict:
        if not data.phone:
            raise HTTPException(status_code=400, detail="Phone number is required")
        phone = normalize_phone(data.phone)
        if not phone or not is_valid_nepal_phone(phone):
            raise HTTPException(status_code=400, detail="Invalid Nepal mobile number. Use format: 98XXXXXXXX")
        purpose = self._parse_purpose(data.purpose)

        allowed, retry_after_ms = otp_limiter.check(phone)
        if not allowed:
            retry_after = math.ceil(retry_after_ms / 1000)
            raise HTTPException(
                status_code=429,
                detail={
                    "error": f"Too many OTP requests. Try again in {retry_after} seconds.",
                    "retryAfter": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )

        if purpose == OtpPurpose.REGISTER and await self.get_user_by_phone(phone):
            raise HTTPException(
                status_code=400,
                detail="This phone number is already registered. Please login instead.",
            )

        if purpose == OtpPurpose.FORGOT_PASSWORD and not await self.get_user_by_phone(phone):
            # same answer as a real send
            return {"success": True, "message": "If this phone is registered, you will receive an OTP."}

        now = datetime.utcnow()
        await self.session.execute(
            update(Otp)
            .where(Otp.phone == phone, Otp.purpose == purpose.value, Otp.verified == False)
            .values(expires_at=now)
        )

        code = generate_otp()
        otp = Otp(
            phone=phone,
            code=get_password_hash(code),
            purpose=purpose.value,
            expires_at=now + timedelta(seconds=OTP_TTL_SECONDS),
        )
        self.session.add(otp)
        await self.session.commit()

        sms_result = await send_otp_sms(phone, code, SMS_PURPOSE[purpose])
        if not sms_result.success:
            logger.error(f"OTP SMS to {mask_phone(phone)} failed: {sms_result.error}")
            raise HTTPException(status_code=500, detail="Failed to send OTP. Please try again.")

        return {
            "success": True,
            "message": "OTP sent successfully",
            "phone": mask_phone(phone),
            "expiresIn": OTP_TTL_SECONDS,
        }

    async def verify_otp(self, data: OtpVerifyRequest) -> dict:
        if not data.phone:
            raise HTTPException(status_code=400, detail="Phone number is required")
        if not data.code or len(data.code) != 6:
            raise HTTPException(status_code=400, detail="Invalid OTP code")
        phone = normalize_phone(data.phone)
        if not phone:
            raise HTTPException(status_code=400, detail="Invalid phone number")
        purpose = self._parse_purpose(data.purpose)

        stmt = (
            select(Otp)
            .where(
                Otp.phone == phone,
                Otp.purpose == purpose.value,
                Otp.verified == False,
                Otp.expires_at > datetime.utcnow(),
            )
            .order_by(Otp.created_at.desc())
        )
        result = await self.session.execute(stmt)
        otp = result.scalars().first()
        if not otp:
            raise HTTPException(status_code=400, detail="OTP expired or not found. Please request a new one.")

        if otp.attempts >= OTP_MAX_ATTEMPTS:
            otp.expires_at = datetime.utcnow()
            self.session.add(otp)
            await self.session.commit()
            raise HTTPException(status_code=400, detail="Too many failed attempts. Please request a new OTP.")

        if not verify_password(data.code, otp.code):
            remaining = OTP_MAX_ATTEMPTS - otp.attempts - 1
            otp.attempts += 1
            self.session.add(otp)
            await self.session.commit()
            raise HTTPException(
                status_code=400,
                detail={
                    "error": f"Invalid OTP code. {remaining} attempts remaining.",
                    "remainingAttempts": remaining,
                },
            )

        otp.verified = True
        self.session.add(otp)
        await self.session.commit()

        verification_token = secrets.token_hex(32)
        await self.redis.set_verification(verification_token, phone, purpose.value, VERIFICATION_TTL_SECONDS)

        return {
            "success": True,
            "message": "OTP verified successfully",
            "verificationToken": verification_token,
            "phone": phone,
            "purpose": purpose.value,
        }

    def _validate_password(self, password: Optional[str], missing_message: str):
        if not password:
            raise HTTPException(status_code=400, detail=missing_message)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(status_code=400, detail="Password must be at least 8 characters")

    async def register(self, data: RegisterRequest) -> dict:
        email = data.email.strip().lower() if data.email else None
        if not email and not data.phone:
            raise HTTPException(status_code=400, detail="Email or phone number is required")
        self._validate_password(data.password, "Password is required")

        role = UserRole.PROFESSIONAL if data.account_type == "clinic" else UserRole.USER
        name = data.name.strip() if data.name and data.name.strip() else None

        if data.phone and not email:
            if not data.verification_token:
                raise HTTPException(
                    status_code=400,
                    detail="Phone verification required. Please verify your OTP first.",
                )
            phone = normalize_phone(data.phone)
            if not phone or not is_valid_nepal_phone(phone):
                raise HTTPException(status_code=400, detail="Invalid phone number format")

            verified = await self.redis.consume_verification(data.verification_token)
            if not verified:
                raise HTTPException(status_code=400, detail="Verification expired. Please request a new OTP.")
            if verified["phone"] != phone:
                raise HTTPException(status_code=400, detail="Phone number mismatch. Please verify again.")
            if verified["purpose"] != OtpPurpose.REGISTER.value:
                raise HTTPException(status_code=400, detail="Invalid verification token for registration.")

            if await self.get_user_by_phone(phone):
                raise HTTPException(status_code=400, detail="This phone number is already registered")

            user = User(
                phone=phone,
                phone_verified=True,
                password_hash=get_password_hash(data.password),
                name=name,
                role=role.value,
            )
            login_with = "phone"
        else:
            if await self.get_user_by_email(email):
                raise HTTPException(status_code=400, detail="User with this email already exists")
            phone = normalize_phone(data.phone) if data.phone else None
            if phone and await self.get_user_by_phone(phone):
                raise HTTPException(status_code=400, detail="This phone number is already registered")

            user = User(
                email=email,
                phone=phone,
                password_hash=get_password_hash(data.password),
                name=name,
                role=role.value,
            )
            login_with = "email"

        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        return {
            "message": "Account created successfully",
            "user": UserInfo.model_validate(user).model_dump(mode="json"),
            "loginWith": login_with,
        }

    async def reset_password(self, data: ResetPasswordRequest) -> dict:
        if not data.phone:
            raise HTTPException(status_code=400, detail="Phone number is required")
        self._validate_password(data.password, "New password is required")
        if not data.verification_token:
            raise HTTPException(status_code=400, detail="Verification token is required")

        verified = await self.redis.consume_verification(data.verification_token)
        if not verified:
            raise HTTPException(status_code=400, detail="Verification expired. Please request a new OTP.")
        if verified["purpose"] != OtpPurpose.FORGOT_PASSWORD.value:
            raise HTTPException(status_code=400, detail="Invalid verification token for password reset.")

        user = await self.get_user_by_phone(verified["phone"])
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        user.password_hash = get_password_hash(data.password)
        user.phone_verified = True
        user.updated_at = datetime.utcnow()
        self.session.add(user)
        await self.session.commit()

        return {
            "success": True,
            "message": "Password reset successfully. You can now login with your new password.",
        }

    async def login(self, login_data: LoginRequest) -> LoginResponse:
        identifier = login_data.identifier.strip()
        if "@" in identifier:
            user = await self.get_user_by_email(identifier.lower())
        else:
            phone = normalize_phone(identifier)
            user = await self.get_user_by_phone(phone) if phone else None

        if not user or not verify_password(login_data.password, user.password_hash):
            raise HTTPException(status_code=401, detail="Invalid credentials")

        access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        access_token = create_access_token(
            data={"sub": str(user.id)}, expires_delta=access_token_expires
        )

        token_data = {
            "user_id": str(user.id),
            "role": user.role,
        }
        await self.redis.set_token(
            access_token,
            json.dumps(token_data),
            settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        )

        return LoginResponse(
            access_token=access_token,
            token_type="bearer",
            user=UserInfo.model_validate(user),
        )

    async def logout(self, token: str) -> dict:
        await self.redis.delete_token(token)
        return {"success": True}
