from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator
import os
from pathlib import Path
from enum import Enum


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment Configuration
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    LOG_LEVEL: str = "INFO"

    # Project Information
    PROJECT_NAME: str = "MedReminder"
    API_V1_STR: str = "/api/v1"
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # Database
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///./medreminder.db"

    # Report exports
    USE_S3_UPLOADS: bool = False
    AWS_REGION: Optional[str] = None
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_S3_BUCKET: Optional[str] = None
    REPORTS_S3_PREFIX: str = "reports"
    REPORTS_LOCAL_DIR: Optional[str] = None  # derived if not set
    REPORTS_BASE_URL: str = "http://localhost:8000/files/reports"
    PRESIGNED_URL_TTL_SECONDS: int = 7 * 24 * 3600

    # Outbound email
    SMTP_SERVER: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    FROM_EMAIL: Optional[str] = None

    # API Security
    VALID_API_KEYS: List[str] = []

    @model_validator(mode="after")
    def _finalize_and_validate(self) -> "Settings":
        # If S3 is enabled but bucket is missing/blank, fall back to local storage
        if self.USE_S3_UPLOADS and (self.AWS_S3_BUCKET is None or str(self.AWS_S3_BUCKET).strip() == ""):
            self.USE_S3_UPLOADS = False
            print("⚠️ [Config] USE_S3_UPLOADS is True but AWS_S3_BUCKET is blank. Using local report storage.")

        if not self.REPORTS_LOCAL_DIR:
            try:
                project_root = Path(__file__).resolve().parents[2]
            except Exception:
                project_root = Path(os.getcwd())
            self.REPORTS_LOCAL_DIR = str(project_root / "data" / "reports")

        return self

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_SERVER and self.SMTP_USERNAME and self.SMTP_PASSWORD and self.FROM_EMAIL)


settings = Settings()
