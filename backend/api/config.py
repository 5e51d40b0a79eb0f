"""
Application Configuration
Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str = "sqlite:///./data/jobs.db"

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False

    # CORS Configuration
    cors_origins: List[str] = ["*"]

    # Scraper Configuration (seconds)
    scraper_headless: bool = False  # Logins need a visible window
    scraper_navigation_timeout: float = 60.0
    scraper_list_timeout: float = 15.0
    scraper_settle_seconds: float = 2.0
    scraper_recommendation_settle_seconds: float = 3.0
    scraper_scroll_wait_seconds: float = 2.0
    scraper_detail_delay_min: float = 1.5
    scraper_detail_delay_max: float = 3.0
    scraper_page_delay_min: float = 2.0
    scraper_page_delay_max: float = 4.0
    scraper_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Scrape run defaults, used until overridden in the settings table
    default_max_pages: int = 3
    default_scrape_mode: str = "search"

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
        return self.log_dir / "backend.log"

    @property
    def data_dir(self) -> Path:
        """Get the data directory path."""
        return Path(__file__).parent.parent / "data"

    @property
    def browser_data_dir(self) -> Path:
        """Persistent browser profile, keeps manual logins between runs."""
        return self.data_dir / "browser"

    class Config:
        # Only load .env if it exists to avoid permission errors
        env_file = ".env" if Path(".env").exists() else None
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
