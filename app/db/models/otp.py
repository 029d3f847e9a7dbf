from sqlmodel import SQLModel, Field
from datetime import datetime
from uuid import UUID, uuid4

class Otp(SQLModel, table=True):
    __tablename__ = "otps"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    phone: str = Field(index=True)
    code: str # bcrypt hash of the 6 digit code
    purpose: str # REGISTER, FORGOT_PASSWORD, VERIFY_PHONE
    attempts: int = Field(default=0)
    verified: bool = Field(default=False)
    expires_at: datetime
    created_at: datetime = Field(default_factory=datetime.utcnow)
