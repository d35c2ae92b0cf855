"""
Application Configuration
Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Apify platform credentials (CAPTCHA actor calls, proxy issuance)
    apify_token: Optional[str] = None
    apify_proxy_password: Optional[str] = None
    apify_proxy_hostname: str = "proxy.apify.com"
    apify_proxy_port: int = 8000

    # Browser Configuration
    headless: bool = True
    max_concurrency_ceiling: int = 20
    user_agent: str = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"

    # Crawl timing (seconds)
    captcha_retry_base_delay: float = 2.0
    scroll_settle_delay: float = 2.0
    review_scroll_delay: float = 1.0
    contact_navigation_timeout: float = 10.0
    photo_fetch_timeout: float = 30.0

    # Storage Configuration
    dataset_name: Optional[str] = None
    key_value_store_name: Optional[str] = None

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Paths
    @property
    def log_dir(self) -> Path:
        """Get the log directory path."""
        return Path(__file__).parent.parent.parent / "logs"

    @property
    def log_file(self) -> Path:
        """Get the log file path."""
        return self.log_dir / "scraper.log"

    # Only load .env if it exists to avoid permission errors
    model_config = SettingsConfigDict(
        env_file=".env" if Path(".env").exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )


def get_settings() -> Settings:
    """Load a fresh Settings instance from the current environment."""
    return Settings()
