"""Configuration management using Pydantic Settings"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Local store
    database_url: str = "sqlite:///./finance_hub.db"

    # Remote backend
    remote_api_base: str = "http://localhost:8001"
    remote_api_key: Optional[str] = None

    # Service
    service_name: str = "finance-hub"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0

    # Sync
    sync_page_size: int = 100
    sync_enabled: bool = True

    # Analytics
    first_weekday: int = 0  # 0 = Monday ... 6 = Sunday


settings = Settings()
