# dissertation_app/config.py
from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List

class Settings(BaseSettings):
    APP_NAME: str = "Dissertation Registration API"
    ENVIRONMENT: str = "development"

    # Database
    DATABASE_URL: str = "sqlite:///./dissertation_registration.db"

    # JWT & Security
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60
    BCRYPT_ROUNDS: int = 12  # 4 is enough for tests

    # File Storage
    UPLOAD_DIR: Path = Path("uploads")
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_UPLOAD_EXTENSIONS: set = {".pdf"}
    ALLOWED_UPLOAD_CONTENT_TYPES: set = {"application/pdf"}

    # Frontend origins allowed by CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # Workflow rules
    ALLOW_OVERLAPPING_SESSIONS: bool = True
    CASCADE_WITHDRAW_ON_APPROVAL: bool = True
    RESET_STATUS_ON_REUPLOAD: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()

# Create upload directory if it doesn't exist
settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
