"""
Crawl engine - the generic scraping algorithm shared by every job board.

The engine is parameterized by a SiteAdapter and drives a NavigableSurface.
It owns pagination, infinite-scroll loading, pacing between requests,
per-item error isolation and the detail-page merge. It never raises for
item or page failures; those are collected on the returned ScraperOutcome.
"""

import asyncio
import random
import logging
from dataclasses import dataclass
from typing import List, Dict, Optional, Any, Tuple, Callable, Awaitable

from .base import (
    Colors,
    JobListing,
    NavigableSurface,
    ScrapeMode,
    ScrapeOptions,
    ScraperOutcome,
    SiteAdapter,
)
from .utils.normalizers import absolute_url

logger = logging.getLogger(__name__)

CardParser = Callable[[NavigableSurface, int], Awaitable[Dict[str, Any]]]

RECOMMENDED_SUFFIX = '-recommended'


@dataclass
class PacingPolicy:
    """Timeouts and delays, in seconds, applied while crawling."""
    navigation_timeout: float = 60.0
    list_timeout: float = 15.0
    settle_seconds: float = 2.0                 # After navigation, for client-side rendering
    recommendation_settle_seconds: float = 3.0
    scroll_wait_seconds: float = 2.0            # Lazy-load time after each scroll
    detail_delay: Tuple[float, float] = (1.5, 3.0)
    page_delay: Tuple[float, float] = (2.0, 4.0)

    @classmethod
    def from_settings(cls, settings) -> 'PacingPolicy':
        return cls(
            navigation_timeout=settings.scraper_navigation_timeout,
            list_timeout=settings.scraper_list_timeout,
            settle_seconds=settings.scraper_settle_seconds,
            recommendation_settle_seconds=settings.scraper_recommendation_settle_seconds,
            scroll_wait_seconds=settings.scraper_scroll_wait_seconds,
            detail_delay=(settings.scraper_detail_delay_min, settings.scraper_detail_delay_max),
            page_delay=(settings.scraper_page_delay_min, settings.scraper_page_delay_max),
        )


async def random_delay(bounds: Tuple[float, float]) -> None:
    """Sleep for a random duration within bounds."""
    low, high = bounds
    await asyncio.sleep(random.uniform(low, high) if high > 0 else 0)


class CrawlEngine:
    """
    Runs search and recommendation crawls for one adapter.

    Usage:
        engine = CrawlEngine(NaukriAdapter(), PacingPolicy())
        outcome = await engine.scrape(surface, ScrapeOptions(keywords=['python']))
    """

    def __init__(self, adapter: SiteAdapter, pacing: Optional[PacingPolicy] = None):
        self.adapter = adapter
        self.pacing = pacing or PacingPolicy()
        self.logger = logging.getLogger(f"scraper.{adapter.name}")

    async def scrape(self, surface: NavigableSurface, options: ScrapeOptions) -> ScraperOutcome:
        """
        Dispatch on the requested mode.

        Args:
            surface: Browser surface shared by the whole run
            options: Keywords, page budget, detail flag and mode

        Returns:
            ScraperOutcome with listings, errors, warnings and login flag
        """
        mode = ScrapeMode(options.mode)
        capabilities = self.adapter.get_capabilities()

        if mode == ScrapeMode.RECOMMENDATIONS:
            if not capabilities.supports_recommendations:
                return ScraperOutcome(errors=[f"{self.adapter.name} does not support recommendations"])
            return await self.scrape_recommendations(surface, options)

        if mode == ScrapeMode.BOTH:
            jobs: List[JobListing] = []
            errors: List[str] = []
            warnings: List[str] = []
            login_required = False

            if capabilities.supports_recommendations:
                rec = await self.scrape_recommendations(surface, options)
                jobs.extend(rec.jobs)
                errors.extend(rec.errors)
                warnings.extend(rec.warnings)
                login_required = rec.login_required
                if login_required:
                    warnings.append('Skipping recommendations - login required')

            search = await self.scrape_search(surface, options)
            return ScraperOutcome(
                jobs=jobs + search.jobs,
                errors=errors + search.errors,
                warnings=warnings + search.warnings,
                login_required=login_required,
            )

        return await self.scrape_search(surface, options)

    async def scrape_search(self, surface: NavigableSurface, options: ScrapeOptions) -> ScraperOutcome:
        """Paginated keyword search, one page at a time up to options.max_pages."""
        outcome = ScraperOutcome()
        selector = self.adapter.get_listing_selector()

        self.logger.info(f"Starting search scrape with keywords: {', '.join(options.keywords)}")

        for page_num in range(1, options.max_pages + 1):
            try:
                search_url = self.adapter.build_search_url(options.keywords, page_num)
                self.logger.info(f"Scraping page {page_num}: {search_url}")

                await surface.navigate(search_url, timeout=self.pacing.navigation_timeout)
                await asyncio.sleep(self.pacing.settle_seconds)

                if not await surface.wait_for_selector(selector, self.pacing.list_timeout):
                    self.logger.info(f"No job listings found on page {page_num}")
                    break

                page_jobs = await self._collect_cards(
                    surface, selector, self.adapter.parse_job_card,
                    self.adapter.name, outcome.errors, 'job card',
                )

                fetch_details = options.fetch_full_details and bool(page_jobs)
                if fetch_details:
                    page_jobs = await self._fetch_details(surface, page_jobs, outcome.errors, 'job')

                outcome.jobs.extend(page_jobs)

                if fetch_details:
                    # Pagination controls are read from the search page DOM
                    self.logger.info(f"Returning to search results: {search_url}")
                    await surface.navigate(search_url, timeout=self.pacing.navigation_timeout)
                    await asyncio.sleep(self.pacing.settle_seconds)
                    await surface.wait_for_selector(selector, self.pacing.list_timeout)

                is_last_page = page_num >= options.max_pages
                if not is_last_page and not await self.adapter.has_next_page(surface):
                    self.logger.info(f"No next page after page {page_num}")
                    break

                if not is_last_page:
                    await random_delay(self.pacing.page_delay)

            except Exception as e:
                outcome.errors.append(f"Failed to scrape page {page_num}: {e}")
                self.logger.error(f"   {Colors.red('[ERR]')} page {page_num}: {e}")

        self._log_summary('Search', outcome)
        return outcome

    async def scrape_recommendations(self, surface: NavigableSurface, options: ScrapeOptions) -> ScraperOutcome:
        """Personalised feed: login check, scroll-to-load, then parse every card."""
        recommendations_url = self.adapter.get_recommendations_url()
        if not recommendations_url:
            return ScraperOutcome(errors=[f"{self.adapter.name} does not expose a recommendations page"])

        outcome = ScraperOutcome()
        self.logger.info(f"Scraping recommendations from: {recommendations_url}")

        try:
            await surface.navigate(recommendations_url, timeout=self.pacing.navigation_timeout)
            await asyncio.sleep(self.pacing.recommendation_settle_seconds)

            if not await self.adapter.is_logged_in(surface):
                self.logger.warning(f"{Colors.yellow('Not logged in')} - recommendations need a session")
                outcome.warnings.append('Not logged in - cannot access recommendations')
                outcome.login_required = True
                return outcome

            selector = self.adapter.get_recommendation_list_selector()
            if not await surface.wait_for_selector(selector, self.pacing.list_timeout):
                self.logger.info("No recommendations found")
                outcome.warnings.append('No recommendations found')
                return outcome

            await self._scroll_to_load_more(surface, options.max_pages * 2)

            jobs = await self._collect_cards(
                surface, selector, self.adapter.parse_recommendation_card,
                f"{self.adapter.name}{RECOMMENDED_SUFFIX}", outcome.errors, 'recommendation card',
            )

            if options.fetch_full_details and jobs:
                jobs = await self._fetch_details(surface, jobs, outcome.errors, 'recommendation')

            outcome.jobs.extend(jobs)

        except Exception as e:
            outcome.errors.append(f"Failed to scrape recommendations: {e}")
            self.logger.error(f"   {Colors.red('[ERR]')} recommendations: {e}")

        self._log_summary('Recommendations', outcome)
        return outcome

    async def _collect_cards(
        self,
        surface: NavigableSurface,
        selector: str,
        parser: CardParser,
        source_tag: str,
        errors: List[str],
        label: str,
    ) -> List[JobListing]:
        """
        Parse every card matching selector.

        Cards without both a URL and a title are dropped. A parser failure
        is recorded and the next card is attempted.
        """
        cards = await surface.query_all(selector)
        self.logger.info(f"Found {len(cards)} {label}s")

        jobs = []
        for i in range(len(cards)):
            try:
                data = await parser(surface, i) or {}
                if not data.get('url') or not data.get('title'):
                    continue
                url = absolute_url(data['url'], self.adapter.base_url)
                jobs.append(JobListing.from_partial(data, source=source_tag, url=url))
            except Exception as e:
                errors.append(f"Failed to parse {label} {i + 1}: {e}")
        return jobs

    async def _fetch_details(
        self,
        surface: NavigableSurface,
        jobs: List[JobListing],
        errors: List[str],
        label: str,
    ) -> List[JobListing]:
        """Visit each job's own page and merge what it adds, pacing between visits."""
        self.logger.info(f"Fetching full details for {len(jobs)} {label}s...")

        enriched = []
        for i, job in enumerate(jobs):
            if i > 0:
                await random_delay(self.pacing.detail_delay)
            try:
                self.logger.info(f"Fetching details {i + 1}/{len(jobs)}: {job.title}")
                details = await self.adapter.parse_job_details(surface, job.url)
                enriched.append(job.merge_details(details or {}))
            except Exception as e:
                errors.append(f"Failed to fetch details for {label} {i + 1}: {e}")
                enriched.append(job)
        return enriched

    async def _scroll_to_load_more(self, surface: NavigableSurface, max_scrolls: int) -> None:
        """Scroll to trigger lazy loading; stop after two scrolls without growth."""
        stale_scrolls = 0
        for i in range(max_scrolls):
            previous_height = await surface.current_height()
            await surface.scroll_to_bottom()
            await asyncio.sleep(self.pacing.scroll_wait_seconds)
            new_height = await surface.current_height()

            if new_height <= previous_height:
                stale_scrolls += 1
                if stale_scrolls >= 2:
                    self.logger.info(f"No more content to load after {i + 1} scrolls")
                    break
            else:
                stale_scrolls = 0
                self.logger.debug(f"Scrolled {i + 1}/{max_scrolls}, new height: {new_height}")

    def _log_summary(self, phase: str, outcome: ScraperOutcome) -> None:
        self.logger.info(
            f"{phase} complete. Found {Colors.green(f'{len(outcome.jobs)} jobs')}, "
            f"{Colors.red(f'{len(outcome.errors)} errors')}"
        )
