"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Carry My Words"
    debug: bool = False
    environment: str = "development"  # "production" makes the cron secret mandatory
    secret_key: str = "change-me-in-production"
    app_url: str = "http://localhost:8000"  # Public base URL used in emailed links

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database
    database_url: str = "sqlite:///./carry_my_words.db"

    # Scheduler-facing endpoints
    cron_secret: str = ""

    # Check-in protocol
    token_validity_hours: int = 48
    reminder_retry_hours: int = 24
    deny_grace_hours: int = 48
    default_checkin_interval_days: int = 30

    # Media links
    media_base_url: str = "http://localhost:8000/storage"
    media_link_ttl_days: int = 7

    # Email (Gmail API)
    mail_sender: str = "Carry My Words <noreply@carrymywords.com>"
    google_client_id: str = ""
    google_client_secret: str = ""
    google_refresh_token: str = ""  # Obtained via scripts/get_token.py

    # Background jobs
    scheduler_enabled: bool = True
    checkin_job_hour: int = 9
    expiry_sweep_minutes: int = 15
    delivery_interval_minutes: int = 5

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
