from typing import List, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Carlora"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # --- Environment & Debug ---
    ENVIRONMENT: str = "local"  # local | development | staging | production
    DEBUG: bool = False  # Default to False for security
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # --- SMTP transport ---
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM: Optional[str] = None
    SMTP_POOL_MAX_CONNECTIONS: int = 5
    SMTP_POOL_MAX_MESSAGES: int = 100
    SMTP_RATE_LIMIT: float = 5.0  # messages per second

    # Inbox receiving form notifications (falls back to SMTP_USER)
    FORM_NOTIFY_EMAIL: Optional[str] = None

    # --- Presentational map (public token, safe to expose) ---
    MAPBOX_TOKEN: Optional[str] = None

    # --- Rate Limiting / Proxy ---
    REDIS_URL: Optional[str] = None
    FORM_RATE_LIMIT: int = 5
    FORM_RATE_WINDOW_SECONDS: int = 60
    TRUSTED_PROXIES: List[str] = Field(
        default_factory=lambda: ["127.0.0.1", "10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16"],
        description="CIDR ranges of trusted reverse proxies for X-Forwarded-For",
    )

    # --- Uploads ---
    UPLOAD_DIR: str = "tmp"

    # --- CORS ---
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=list,
        validate_default=True,
        description="List of allowed CORS origins. Configure in .env",
    )

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def default_allowed_origins(
        cls, v: Optional[List[str]], info: ValidationInfo
    ) -> Optional[List[str]]:
        env = info.data.get("ENVIRONMENT") or "local"
        if env != "production":
            if v is None:
                return ["http://localhost:3000"]
            if isinstance(v, str) and v.strip() in ("", "[]"):
                return ["http://localhost:3000"]
            if isinstance(v, list) and len(v) == 0:
                return ["http://localhost:3000"]
        return v

    @field_validator("SMTP_PORT")
    @classmethod
    def validate_smtp_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("SMTP_PORT must be a valid TCP port")
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def simulate_email(self) -> bool:
        """Development mode logs outgoing email instead of delivering it."""
        return self.ENVIRONMENT == "development"


settings = Settings()
