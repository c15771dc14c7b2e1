from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from functools import lru_cache


# Known placeholder secrets that must never reach a production deployment
WEAK_SECRET_KEYS = {
    "changeme",
    "secret",
    "password",
    "devsecretchange",
    "development-secret-key-change-in-production",
    "your-secret-key",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/shiprepair_erp"

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support."""
        if v and v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    # Auth (tokens are issued by the external token service)
    SECRET_KEY: str = "development-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120

    # CORS
    FRONTEND_URL: str = "http://localhost:5173"

    # Attachments
    UPLOAD_DIR: str = "uploads/cost-attachments"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    ALLOWED_ATTACHMENT_MIME_TYPES: list[str] = [
        "image/jpeg",
        "image/png",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ]

    # Work order deletion notifications.
    # Empty list means "every ADMIN user"; the fallback is used when there are none.
    DELETE_NOTIFICATION_RECIPIENTS: list[str] = []
    FALLBACK_ADMIN_EMAIL: str = "admin@demo.com"

    # Dashboard alerts
    STARTING_SOON_DAYS: int = 5
    ENGINEER_OVERLOAD_THRESHOLD: int = 3

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    DOCS_ENABLED: bool = True

    @model_validator(mode="after")
    def validate_production_security(self) -> "Settings":
        """Reject weak secrets and force DEBUG off outside development."""
        if self.is_production:
            if self.SECRET_KEY in WEAK_SECRET_KEYS:
                raise ValueError("SECRET_KEY is a known weak value")
            if len(self.SECRET_KEY) < 32:
                raise ValueError("SECRET_KEY must be at least 32 characters in production")
            self.DEBUG = False
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ("production", "staging")

    @property
    def sqlalchemy_echo(self) -> bool:
        """SQL echo is only ever enabled for local debugging."""
        return self.DEBUG and not self.is_production

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
