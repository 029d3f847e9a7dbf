from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "DoctorSewa"
    API_V1_STR: str = "/api/v1"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_DB: str = "doctorsewa"
    DATABASE_URL: Optional[str] = None

    SECRET_KEY: str = "change-this-secret-key"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    BCRYPT_ROUNDS: int = 12

    REDIS_URL: str = "redis://localhost:6379/0"

    AAKASH_SMS_TOKEN: Optional[str] = None
    AAKASH_SMS_URL: str = "https://sms.aakashsms.com/sms/v3/send"
    RESEND_API_KEY: Optional[str] = None
    EMAIL_FROM: str = "DoctorSewa <noreply@doctorsewa.org>"
    APP_URL: str = "https://doctorsewa.org"
    UPLOAD_DIR: str = "uploads"
    LOG_LEVEL: str = "INFO"

    class Config:
        case_sensitive = True
        env_file = ".env"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.DATABASE_URL:
            self.DATABASE_URL = f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}/{self.POSTGRES_DB}"

settings = Settings()
