from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID

class OtpSendRequest(BaseModel):
    phone: Optional[str] = None
    purpose: Optional[str] = None

class OtpVerifyRequest(BaseModel):
    phone: Optional[str] = None
    code: Optional[str] = None
    purpose: Optional[str] = None

class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    verification_token: Optional[str] = Field(default=None, alias="verificationToken")
    account_type: Optional[str] = Field(default=None, alias="accountType")

    class Config:
        populate_by_name = True

class ResetPasswordRequest(BaseModel):
    phone: Optional[str] = None
    password: Optional[str] = None
    verification_token: Optional[str] = Field(default=None, alias="verificationToken")

    class Config:
        populate_by_name = True

class LoginRequest(BaseModel):
    identifier: str # email or phone
    password: str

class UserInfo(BaseModel):
    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: str
    phone_verified: bool = False

    class Config:
        from_attributes = True

class LoginResponse(BaseModel):
    access_token: str
    token_type: str
    user: UserInfo
