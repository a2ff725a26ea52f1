"""Application configuration via Pydantic Settings."""

from typing import Optional

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
    DATABASE_URL: str = "sqlite+aiosqlite:///./pricetrack.db"

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
    DEBUG: bool = True

    # Local state (sessions, credentials, run input)
    STATE_DIR: str = ".state"
    CREDENTIALS_PATH: str = ".state/creds.json"
    RUN_LINKS_PATH: str = "data/products.json"

    # Browser
    BROWSER_HEADLESS: bool = True
    BROWSER_SLOW_MO_MS: int = 150
    BROWSER_LOCALE: str = "en-GB"
    BROWSER_TIMEZONE: str = "Europe/London"
    BROWSER_USER_AGENT: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/118 Safari/537.36"
    )

    # Timeouts (milliseconds) for every wait inside an adapter
    NAVIGATION_TIMEOUT_MS: int = 30000
    ELEMENT_TIMEOUT_MS: int = 15000
    CHALLENGE_TIMEOUT_MS: int = 20000

    # Orchestration
    LOGIN_MAX_ATTEMPTS: int = 2
    LOGIN_RETRY_WAIT_SEC: float = 2.0
    RUN_ETA_PER_LINK_SEC: int = 8
    RUN_ETA_MIN_SEC: int = 20
    SCRAPER_SITE: str = ""

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"

    def estimate_eta(self, link_count: int) -> Optional[int]:
        """Rough run duration in seconds for a given number of links.

        Returns:
            ETA in seconds, or None when there is nothing to scrape
        """
        if link_count <= 0:
            return None
        return max(self.RUN_ETA_MIN_SEC, link_count * self.RUN_ETA_PER_LINK_SEC)


settings = Settings()
