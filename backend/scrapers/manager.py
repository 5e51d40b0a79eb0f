"""
Scraper Manager - orchestrates scrape runs across job boards.

Validates the run, acquires one browser surface, crawls each requested
source sequentially, reconciles the listings into the record store and
aggregates per-source results. The surface is released on every exit path.
"""

import asyncio
from dataclasses import asdict
from typing import Dict, List, Optional, Type, Callable, Awaitable, Iterable
from datetime import datetime, timezone
import logging

from .base import (
    Colors,
    JobListing,
    NavigableSurface,
    NavigationError,
    ScrapeConfigError,
    ScrapeMode,
    ScrapeOptions,
    ScrapeResult,
    SiteAdapter,
)
from .config import SITES
from .engine import CrawlEngine, PacingPolicy
from .reconcile import ReconcileAction, reconcile_listing

from .sites.naukri import NaukriAdapter
from .sites.linkedin import LinkedInAdapter

logger = logging.getLogger(__name__)

MIN_PAGES = 1
MAX_PAGES = 10

SurfaceFactory = Callable[[], Awaitable[NavigableSurface]]


# Registry of implemented adapters
SCRAPER_REGISTRY: Dict[str, Type[SiteAdapter]] = {
    'naukri': NaukriAdapter,
    'linkedin': LinkedInAdapter,
}


async def launch_browser_surface() -> NavigableSurface:
    """Default surface factory: Playwright with the persistent profile from settings."""
    from api.config import settings
    from .crawlers.browser import BrowserSurface

    return await BrowserSurface.launch(
        settings.browser_data_dir,
        headless=settings.scraper_headless,
        user_agent=settings.scraper_user_agent,
        default_timeout=settings.scraper_navigation_timeout,
    )


class ScraperManager:
    """
    Manages and orchestrates scrape runs.

    Usage:
        manager = ScraperManager(db_session)

        # Search two boards
        results = await manager.run(['naukri', 'linkedin'], ['python'], max_pages=2)

        # Check whether the browser profile is logged in
        status = await manager.check_login_status('naukri')
    """

    def __init__(
        self,
        db_session=None,
        surface_factory: Optional[SurfaceFactory] = None,
        pacing: Optional[PacingPolicy] = None,
    ):
        """
        Initialize the scraper manager.

        Args:
            db_session: SQLAlchemy database session (None skips persistence)
            surface_factory: Async callable returning a started NavigableSurface
            pacing: Delays and timeouts (defaults come from settings)
        """
        self.db = db_session
        self.surface_factory = surface_factory or launch_browser_surface
        self.pacing = pacing
        self.results: Dict[str, ScrapeResult] = {}

    def _get_pacing(self) -> PacingPolicy:
        if self.pacing is None:
            from api.config import settings
            self.pacing = PacingPolicy.from_settings(settings)
        return self.pacing

    def get_adapter(self, site_key: str) -> SiteAdapter:
        """
        Get an adapter instance for a site.

        Raises:
            ScrapeConfigError: If no adapter is registered for site_key
        """
        if site_key not in SCRAPER_REGISTRY:
            valid = ', '.join(SCRAPER_REGISTRY.keys())
            raise ScrapeConfigError(f"Unknown scraper: {site_key}. Valid scrapers: {valid}")
        return SCRAPER_REGISTRY[site_key]()

    @staticmethod
    def validate(sources: Iterable[str], keywords: Iterable[str], max_pages: int, mode) -> ScrapeMode:
        """
        Reject a misconfigured run before any navigation happens.

        Returns:
            The parsed ScrapeMode

        Raises:
            ScrapeConfigError: On unknown mode or source, no sources,
                no keywords for a search, or a page budget outside 1-10
        """
        try:
            mode = ScrapeMode(mode)
        except ValueError:
            valid = ', '.join(m.value for m in ScrapeMode)
            raise ScrapeConfigError(f"Unknown scrape mode: {mode}. Valid modes: {valid}")

        sources = list(sources or [])
        if not sources:
            raise ScrapeConfigError("No sources selected")

        unknown = [s for s in sources if s not in SCRAPER_REGISTRY]
        if unknown:
            valid = ', '.join(SCRAPER_REGISTRY.keys())
            raise ScrapeConfigError(f"Unknown scraper: {', '.join(unknown)}. Valid scrapers: {valid}")

        if mode != ScrapeMode.RECOMMENDATIONS and not [k for k in (keywords or []) if k and k.strip()]:
            raise ScrapeConfigError("Keywords are required for search mode")

        if not isinstance(max_pages, int) or not MIN_PAGES <= max_pages <= MAX_PAGES:
            raise ScrapeConfigError(f"max_pages must be between {MIN_PAGES} and {MAX_PAGES}")

        return mode

    async def run(
        self,
        sources: List[str],
        keywords: List[str],
        max_pages: int = 3,
        fetch_full_details: bool = True,
        mode=ScrapeMode.SEARCH,
    ) -> List[ScrapeResult]:
        """
        Run one scrape across the requested sources, in order.

        Returns:
            One ScrapeResult per source

        Raises:
            ScrapeConfigError: Before any navigation when the run is invalid
            BrowserUnavailableError: When the surface cannot be acquired
        """
        mode = self.validate(sources, keywords, max_pages, mode)
        options = ScrapeOptions(
            keywords=[k.strip() for k in (keywords or []) if k and k.strip()],
            max_pages=max_pages,
            fetch_full_details=fetch_full_details,
            mode=mode,
        )

        logger.info(f"Starting {mode.value} scrape for {len(sources)} sources: {sources}")

        surface = await self.surface_factory()
        results = []
        try:
            for source in sources:
                results.append(await self.scrape_source(surface, source, options))
        finally:
            await surface.close()

        return results

    async def scrape_source(self, surface: NavigableSurface, source: str, options: ScrapeOptions) -> ScrapeResult:
        """
        Crawl and persist one source.

        Unexpected exceptions are downgraded to an error on this source's
        result so later sources still run.
        """
        result = ScrapeResult(source=source, started_at=datetime.now(timezone.utc))
        logger.info(f"Running {Colors.bold(source)} in mode: {options.mode.value}")

        try:
            adapter = self.get_adapter(source)
            engine = CrawlEngine(adapter, self._get_pacing())
            outcome = await engine.scrape(surface, options)

            result.jobs_found = len(outcome.jobs)
            result.errors.extend(outcome.errors)
            result.warnings.extend(outcome.warnings)
            result.login_required = outcome.login_required

            self.save_listings(outcome.jobs, result)

        except Exception as e:
            logger.error(f"Scraper failed for {source}: {e}")
            result.errors.append(str(e))

        result.finish()
        self.results[source] = result

        logger.info(
            f"{source}: found {result.jobs_found}, "
            f"{Colors.green(f'{result.jobs_added} new')}, "
            f"{Colors.cyan(f'{result.jobs_updated} updated')}, "
            f"{Colors.gray(f'{result.jobs_skipped} unchanged')}, "
            f"{Colors.red(f'{len(result.errors)} errors')}"
        )
        return result

    def save_listings(self, jobs: List[JobListing], result: ScrapeResult):
        """Reconcile each listing; each insert or patch commits on its own."""
        if self.db is None:
            if jobs:
                logger.warning(f"No database session - {len(jobs)} jobs not saved")
            return

        from api.database import JobStore

        store = JobStore(self.db)
        for job in jobs:
            try:
                action = reconcile_listing(store, job)
            except Exception as e:
                result.errors.append(f"Failed to save job: {e}")
                store.rollback()
                continue

            if action == ReconcileAction.ADDED:
                result.jobs_added += 1
            elif action == ReconcileAction.UPDATED:
                result.jobs_updated += 1
            else:
                result.jobs_skipped += 1

        if result.jobs_updated:
            logger.info(f"Updated {result.jobs_updated} existing jobs with new data")

    async def check_login_status(self, site_key: str, settle_seconds: Optional[float] = None) -> Dict:
        """
        Open the site's home page and run the adapter's login detector.

        Returns:
            Dict with site, logged_in, username (None unless logged in) and login_url.
            A home page that fails to load counts as not logged in.
        """
        adapter = self.get_adapter(site_key)
        pacing = self._get_pacing()
        surface = await self.surface_factory()
        logged_in = False
        username = None
        try:
            await surface.navigate(adapter.get_home_url(), timeout=pacing.navigation_timeout)
            await asyncio.sleep(pacing.settle_seconds if settle_seconds is None else settle_seconds)
            logged_in = await adapter.is_logged_in(surface)
            if logged_in:
                username = await adapter.get_username(surface)
        except NavigationError as e:
            logger.warning(f"Could not load {site_key} home page for login check: {e}")
        finally:
            await surface.close()

        logger.info(f"{site_key} login status: {'logged in' if logged_in else 'not logged in'}")
        return {
            'site': site_key,
            'logged_in': logged_in,
            'username': username,
            'login_url': adapter.config.login_url,
        }

    def list_scrapers(self) -> List[Dict]:
        """
        List all configured sites with their capabilities.

        Returns:
            List of site info dictionaries
        """
        scrapers = []
        for key, config in SITES.items():
            implemented = key in SCRAPER_REGISTRY
            capabilities = SCRAPER_REGISTRY[key]().get_capabilities() if implemented else None
            scrapers.append({
                'key': key,
                'name': config.display_name,
                'enabled': config.enabled,
                'implemented': implemented,
                'url': config.base_url,
                'login_url': config.login_url,
                'capabilities': asdict(capabilities) if capabilities else None,
            })
        return scrapers

    def get_implemented_scrapers(self) -> List[str]:
        return list(SCRAPER_REGISTRY.keys())

    def get_results_summary(self) -> Dict:
        """
        Get summary of all scrape results.

        Returns:
            Summary dictionary with totals
        """
        if not self.results:
            return {
                'total_sites': 0,
                'successful': 0,
                'failed': 0,
                'jobs_found': 0,
                'jobs_added': 0,
                'jobs_updated': 0,
                'login_required': False,
            }

        successful = sum(1 for r in self.results.values() if r.success)

        return {
            'total_sites': len(self.results),
            'successful': successful,
            'failed': len(self.results) - successful,
            'jobs_found': sum(r.jobs_found for r in self.results.values()),
            'jobs_added': sum(r.jobs_added for r in self.results.values()),
            'jobs_updated': sum(r.jobs_updated for r in self.results.values()),
            'login_required': any(r.login_required for r in self.results.values()),
            'sites': {k: v.to_dict() for k, v in self.results.items()},
        }


# Convenience function for standalone usage

async def run_scraper(
    sources: List[str],
    keywords: List[str],
    max_pages: int = 3,
    fetch_full_details: bool = True,
    mode=ScrapeMode.SEARCH,
    db_session=None,
) -> List[ScrapeResult]:
    """
    Run a scrape with the default browser surface.

    Args:
        sources: Registry keys to scrape, in order
        keywords: Search keywords
        max_pages: Page budget per source (1-10)
        fetch_full_details: Visit each job's own page
        mode: search, recommendations or both
        db_session: Optional database session

    Returns:
        List of ScrapeResult
    """
    manager = ScraperManager(db_session)
    return await manager.run(sources, keywords, max_pages, fetch_full_details, mode)
