"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# config.py is at: backend/halal_tools/core/config.py
# Project root is: backend/halal_tools/core/../../../
_current_file = Path(__file__).resolve()
_backend_dir = _current_file.parent.parent.parent
_project_root = _backend_dir.parent
ENV_FILE = _project_root / ".env"
# Fallback: try in backend/ directory if not found in project root
if not ENV_FILE.exists():
    ENV_FILE = _backend_dir / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE, override=True)


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Halal Business Tools"
    app_env: str = Field(default="development", description="Application environment")
    log_level: str = Field(default="INFO", description="Logging level")
    secret_key: str = Field(..., description="Secret key used to sign access tokens")
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=5000, ge=1, le=65535, description="API port")
    allowed_origins: str = Field(
        default="*",
        description="Allowed CORS origins (comma-separated)"
    )
    trust_proxy_headers: bool = Field(
        default=False,
        description="Take the client address from X-Forwarded-For (only behind a trusted proxy)"
    )

    # Logging
    log_sqlalchemy: bool = Field(default=False, description="Enable SQLAlchemy query logging")
    log_uvicorn_access: bool = Field(default=False, description="Enable Uvicorn access logging")
    log_module_levels: Optional[str] = Field(
        default=None,
        description='Module-specific log levels (JSON string, e.g., {"halal_tools.api": "DEBUG"})'
    )
    log_format: str = Field(
        default="json",
        description="Log format: 'json' for structured logging, 'text' for plain text"
    )
    log_file_enabled: bool = Field(default=True, description="Enable file logging")
    log_file_path: str = Field(
        default="logs/halal_tools.log",
        description="Path to log file (relative to project root)"
    )
    log_file_rotation: str = Field(
        default="midnight",
        description="Log file rotation: 'midnight' or 'W0'..'W6' (weekly)"
    )
    log_file_retention: int = Field(default=30, ge=1, description="Number of rotated log files to keep")
    log_sensitive_data: bool = Field(
        default=False,
        description="Enable logging of sensitive data (passwords, tokens, OTPs) - NOT RECOMMENDED"
    )

    # Database
    database_dsn: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy database URL; overrides the POSTGRES_* settings"
    )
    postgres_host: str = Field(default="localhost", description="PostgreSQL host")
    postgres_db: str = Field(default="halal_tools", description="PostgreSQL database name")
    postgres_user: str = Field(default="postgres", description="PostgreSQL user")
    postgres_password: str = Field(default="", description="PostgreSQL password")
    postgres_port: int = Field(default=5432, ge=1, le=65535, description="PostgreSQL port")
    database_pool_size: int = Field(default=5, ge=1, description="Database pool size")
    database_max_overflow: int = Field(default=10, ge=0, description="Database max overflow")
    database_keepalive_seconds: int = Field(
        default=30,
        ge=5,
        description="Interval of the idle-connection keep-alive ping (seconds)"
    )

    # Authentication
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_expires_hours: int = Field(default=24 * 7, ge=1, description="Access token lifetime (hours)")
    otp_ttl_minutes: int = Field(default=5, ge=1, description="Password reset OTP lifetime (minutes)")
    otp_daily_limit: int = Field(default=3, ge=1, description="Password reset OTPs per email per day")
    otp_max_attempts: int = Field(default=5, ge=1, description="Wrong guesses allowed per password reset OTP")

    # Free usage quota
    max_free_generations: int = Field(
        default=5,
        ge=0,
        description="Free contract generations per identity per calendar month"
    )

    # Outgoing email
    smtp_host: str = Field(default="smtp.gmail.com", description="SMTP host")
    smtp_port: int = Field(default=587, ge=1, le=65535, description="SMTP port")
    smtp_user: Optional[str] = Field(default=None, description="SMTP user (also the sender address)")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS")
    email_from_name: str = Field(default="Halal Tools Support", description="Sender display name")

    # LLM (investment evaluation)
    together_api_key: Optional[str] = Field(default=None, description="Together AI API key")
    llm_api_url: str = Field(
        default="https://api.together.xyz/v1/chat/completions",
        description="Chat completions endpoint"
    )
    llm_model: str = Field(
        default="mistralai/Mixtral-8x7B-Instruct-v0.1",
        description="Model used for investment evaluation"
    )
    llm_temperature: float = Field(default=0.4, ge=0.0, le=1.0, description="LLM temperature")
    llm_timeout_seconds: int = Field(default=30, ge=5, le=300, description="LLM request timeout (seconds)")

    # Precious metal rates
    metal_api_key: Optional[str] = Field(default=None, description="MetalpriceAPI key")
    metal_api_url: str = Field(
        default="https://api.metalpriceapi.com/v1/latest",
        description="Spot price endpoint"
    )
    metal_base_currency: str = Field(default="PKR", description="Currency the rates are quoted in")
    metal_fetch_timeout_seconds: float = Field(default=10.0, gt=0, description="Spot price request timeout")
    metal_refresh_interval_seconds: int = Field(
        default=12 * 60 * 60,
        ge=60,
        description="Interval between spot price refreshes (seconds)"
    )
    metal_refresh_on_startup: bool = Field(default=False, description="Refresh spot prices at startup")

    # Background tasks
    enable_background_tasks: bool = Field(default=True, description="Run periodic background tasks")

    @field_validator("metal_base_currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Currency codes are upper case in the price feed"""
        return v.strip().upper()

    @property
    def database_url(self) -> str:
        """Construct database URL"""
        if self.database_dsn:
            return self.database_dsn
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
