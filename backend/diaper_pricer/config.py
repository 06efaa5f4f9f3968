"""Application configuration via Pydantic Settings."""

from typing import List, Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./diaper_pricer.db"

    @model_validator(mode="after")
    def fix_database_url(self) -> "Settings":
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://"""
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            self.DATABASE_URL = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgres://"):
            self.DATABASE_URL = url.replace("postgres://", "postgresql+asyncpg://", 1)
        return self

    # App
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:3000"  # Comma-separated

    # Catalog freshness
    STALENESS_HOURS: float = 12

    # Fetch resilience
    FETCH_TIMEOUT_SECONDS: float = 15.0
    FETCH_MAX_ATTEMPTS: int = 3
    FETCH_BASE_DELAY_SECONDS: float = 1.5
    FETCH_MAX_DELAY_SECONDS: float = 10.0
    FETCH_JITTER_SECONDS: float = 0.5
    MIN_HTML_LENGTH: int = 1000

    # Adapter pacing
    REQUEST_DELAY_MIN_SECONDS: float = 2.0
    REQUEST_DELAY_MAX_SECONDS: float = 4.0
    MIN_PRODUCTS_PER_COMBINATION: int = 2
    MAX_ITEMS_PER_PAGE: int = 8

    # Search defaults (comma-separated)
    DEFAULT_BRANDS: str = "Pampers,Huggies,Kirkland,Parent's Choice,Life Brand,Seventh Generation"
    DEFAULT_SIZES: str = "1,2,3,4,5,6"
    ENABLED_RETAILERS: str = ""  # Empty means every registered adapter

    # Browser capability
    HEADLESS: bool = True

    # Orchestration
    JOB_DEADLINE_SECONDS: Optional[float] = None
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_CHECK_MINUTES: int = 60
    SEED_FALLBACK_CATALOG: bool = True

    @staticmethod
    def _split(value: str) -> List[str]:
        return [item.strip() for item in value.split(",") if item.strip()]

    def get_cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS into a list of origins."""
        return self._split(self.CORS_ORIGINS)

    def get_default_brands(self) -> List[str]:
        return self._split(self.DEFAULT_BRANDS)

    def get_default_sizes(self) -> List[str]:
        return self._split(self.DEFAULT_SIZES)

    def get_enabled_retailers(self) -> List[str]:
        """Parse ENABLED_RETAILERS into adapter keys.

        Returns:
            List of adapter keys, empty if every registered adapter should run
        """
        return self._split(self.ENABLED_RETAILERS)


settings = Settings()
