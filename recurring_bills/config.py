"""Configuration management using Pydantic Settings"""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Settlement journal
    database_url: str = "sqlite:///./settlements.db"

    # External Services
    finance_api_base: str = "http://localhost:8001"

    # Service
    service_name: str = "recurring-bills"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 10.0
    http_max_retries: int = 3
    http_backoff_base: float = 0.5  # Exponential backoff base in seconds, GETs only

    # Settlement
    settlement_timeout_seconds: float = 20.0
    auto_payment_marker: str = "Auto-payment"
    amount_match_tolerance: Decimal = Decimal("0.01")
    projection_max_iterations: int = 52


settings = Settings()
