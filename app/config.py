from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    DEBUG: bool = False  # Echo SQL statements

    # Goods Receipt Settings
    GRN_SINGLE_EVENT_PER_PO: bool = False  # Only one GRN allowed per purchase order
    GRN_ENFORCE_BATCH_QUANTITY: bool = False  # Batch quantities must add up to received qty
    GRN_DEFAULT_BATCH_SHELF_LIFE_DAYS: int = 365  # Expiry used when a batch has none

    # Vendor Payment Settings
    CREDIT_NOTE_NUMBER_PREFIX: str = "CN"
    EXCESS_ADVANCE_REASON: str = "Excess advance payment"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
