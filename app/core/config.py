from typing import List, Union, Optional
from pydantic import AnyHttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "HealthPal Portal"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    @field_validator("ENVIRONMENT")
    @classmethod
    def check_environment(cls, v: str) -> str:
        v = v.lower()
        if v not in ("development", "staging", "production", "test"):
            raise ValueError(f"Unknown environment: {v}")
        return v

    # Backend endpoint and key; both are required
    DATABASE_URL: str
    SECRET_KEY: str

    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    @model_validator(mode='after')
    def normalize_db_url(self) -> 'Settings':
        if self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgres://", "postgresql+psycopg2://", 1)
        elif self.DATABASE_URL.startswith("postgresql://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgresql://", "postgresql+psycopg2://", 1)
        return self

    # JWT
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    PASSWORD_RESET_EXPIRE_MINUTES: int = 30

    # Session context
    SESSION_INACTIVITY_MINUTES: int = 15
    SESSION_REFRESH_MINUTES: int = 50

    # Redis / presence
    REDIS_URL: str = "redis://localhost:6379/0"
    PRESENCE_HEARTBEAT_SECONDS: int = 60

    # Cloudinary
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    SIGNED_URL_EXPIRES_SECONDS: int = 3600

    # Encryption of clinical free text
    ENCRYPTION_KEY: str = "healthpal-development-key"

    # Outgoing e-mail
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    EMAIL_FROM_ADDRESS: str = "no-reply@healthpal.app"

    FRONTEND_URL: str = "http://localhost:5173"

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra='ignore')

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT in ("development", "test")


settings = Settings()
