# valet_app/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./valet_parking.db"
    DB_TIMEOUT_SECONDS: int = 5          # Per-statement / lock wait budget

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_IP: str = "0.0.0.0"
    BACKEND_PORT: int = 8080
    CORS_ORIGINS: list[str] = ["*"]

    # ── Security ──────────────────────────────────────────────────────────
    JWT_SECRET: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    TOKEN_TTL_DAYS: int = 30

    # ── One-time codes ────────────────────────────────────────────────────
    LOGIN_OTP_TTL_MINUTES: int = 5
    PICKUP_OTP_TTL_MINUTES: int = 30
    EXPOSE_OTP_IN_RESPONSE: bool = True  # MVP only: codes echoed back to the caller

    # ── Notifier (SMS gateway) ────────────────────────────────────────────
    SMS_GATEWAY_URL: Optional[str] = None   # Leave empty to log codes only
    SMS_GATEWAY_TOKEN: Optional[str] = None
    NOTIFIER_TIMEOUT_SECONDS: float = 5.0

    # ── Sessions ──────────────────────────────────────────────────────────
    HISTORY_LIMIT: int = 50

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None        # Defaults to <repo>/logs

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
