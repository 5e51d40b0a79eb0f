"""
Tests for application configuration.
"""

import pytest

from scrapers.engine import PacingPolicy


class TestSettings:
    """Test the Settings configuration class."""

    def test_settings_defaults(self):
        """Test that settings have sensible defaults."""
        from api.config import settings

        assert settings.api_host == "0.0.0.0"
        assert settings.api_port == 8000
        assert settings.api_debug is False
        assert settings.scraper_headless is False
        assert settings.default_max_pages == 3
        assert settings.default_scrape_mode == "search"
        assert settings.log_level == "INFO"

    def test_settings_database_url(self):
        """Test that database URL is set."""
        from api.config import settings

        assert settings.database_url is not None
        assert "jobs.db" in settings.database_url

    def test_settings_cors_origins(self):
        """Test that CORS origins are configured."""
        from api.config import settings

        assert isinstance(settings.cors_origins, list)
        assert len(settings.cors_origins) > 0

    def test_settings_log_paths(self):
        """Test that log paths are valid."""
        from api.config import settings

        assert settings.log_file.name == "backend.log"
        assert settings.log_file.parent == settings.log_dir

    def test_settings_browser_profile(self):
        """Test that the browser profile lives under the data directory."""
        from api.config import settings

        assert "data" in str(settings.data_dir)
        assert settings.browser_data_dir.parent == settings.data_dir

    def test_env_override(self, monkeypatch):
        """Test that environment variables override defaults."""
        from api.config import Settings

        monkeypatch.setenv("SCRAPER_HEADLESS", "true")
        monkeypatch.setenv("DEFAULT_MAX_PAGES", "5")

        overridden = Settings()

        assert overridden.scraper_headless is True
        assert overridden.default_max_pages == 5


class TestPacingFromSettings:
    """Test that crawl pacing is read from settings."""

    def test_pacing_defaults(self):
        """Test the default timeouts and delay windows."""
        from api.config import Settings

        pacing = PacingPolicy.from_settings(Settings())

        assert pacing.navigation_timeout == 60.0
        assert pacing.list_timeout == 15.0
        assert pacing.detail_delay == (1.5, 3.0)
        assert pacing.page_delay == (2.0, 4.0)
