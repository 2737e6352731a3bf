"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """
    Application configuration loaded from environment variables.

    Tax rates, pay days and forecast assumptions are not configuration: they
    live in the persisted Settings entity.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./cash_planner.db"

    # Receipt storage (S3-compatible)
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket: str = "receipts"
    minio_public_url: str = "http://localhost:9000"
    minio_secure: bool = False
    receipt_max_bytes: int = 10 * 1024 * 1024

    # Service
    service_name: str = "cash-planner"
    log_level: str = "INFO"

    # Engine windows
    default_forecast_horizon: int = 12
    provision_horizon_days: int = 30


config = Config()
