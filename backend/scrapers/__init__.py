"""
Job scraping system for job-harvest.

This module provides:
- A site adapter contract with one adapter per job board
- A generic crawl engine (paginated search and recommendation feeds)
- Reconciliation of scraped listings with stored records
- A run coordinator that ties them to a Playwright browser surface
"""

from .base import (
    SiteAdapter,
    SiteConfig,
    JobListing,
    ScrapeMode,
    ScrapeOptions,
    ScrapeResult,
    ScraperCapabilities,
    ScraperOutcome,
    NavigableSurface,
    ScrapeConfigError,
    BrowserUnavailableError,
)
from .config import SITES, get_site_config, get_enabled_sites
from .engine import CrawlEngine, PacingPolicy
from .manager import ScraperManager, SCRAPER_REGISTRY, run_scraper

__all__ = [
    'SiteAdapter',
    'SiteConfig',
    'JobListing',
    'ScrapeMode',
    'ScrapeOptions',
    'ScrapeResult',
    'ScraperCapabilities',
    'ScraperOutcome',
    'NavigableSurface',
    'ScrapeConfigError',
    'BrowserUnavailableError',
    'SITES',
    'get_site_config',
    'get_enabled_sites',
    'CrawlEngine',
    'PacingPolicy',
    'ScraperManager',
    'SCRAPER_REGISTRY',
    'run_scraper',
]
