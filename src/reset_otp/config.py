"""Password reset service — configuration loaded from environment."""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── Database (user store) ─────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./reset_otp.db"

    # ── One-time codes ────────────────────────────────────
    # development: code echoed in the response, delivery failures swallowed
    # production:  code never echoed, delivery failure is an error
    reset_mode: Literal["development", "production"] = "development"
    otp_ttl_seconds: int = 600
    otp_max_attempts: int = 3
    require_known_identity: bool = False
    sweep_interval_seconds: float = 60.0

    # ── Delivery ──────────────────────────────────────────
    delivery_backend: Literal["log", "smtp"] = "log"
    delivery_timeout_seconds: float = 10.0
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    email_from: str = "no-reply@example.com"

    # ── Reset-flow client ─────────────────────────────────
    api_base_url: str = "http://localhost:8000/api"
    resend_cooldown_seconds: int = 60
    min_password_length: int = 6

    # ── App ───────────────────────────────────────────────
    app_name: str = "Password Reset Service"
    debug: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_development(self) -> bool:
        return self.reset_mode == "development"


# Singleton settings instance
settings = Settings()
