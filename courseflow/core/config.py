from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "Courseflow"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./courseflow.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Cache / OTP
    REDIS_URL: Optional[str] = None
    OTP_EXPIRE_MINUTES: int = 10

    # Storage
    USE_LOCAL_STORAGE: bool = False
    UPLOAD_DIR: str = "uploads"
    LOCAL_BASE_URL: str = "http://localhost:8000"
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    S3_BUCKET_NAME: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None
    CDN_PUBLIC_BASE_URL: Optional[str] = None
    STREAMING_UPLOAD_THRESHOLD: str = "20MB"
    CHUNK_SIZE: str = "8MB"
    UPLOAD_TIMEOUT_SECONDS: int = 600

    # Email
    SENDGRID_API_KEY: Optional[str] = None
    EMAILS_FROM_EMAIL: str = "no-reply@courseflow.local"
    EMAILS_FROM_NAME: str = "Courseflow"

    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"
    EXPOSE_ERROR_DETAILS: bool = False

    class Config:
        env_file = ".env"

settings = Settings()
