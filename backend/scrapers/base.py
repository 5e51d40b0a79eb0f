"""
Base classes for the job scraper system.

This module defines the data structures shared by the crawl engine, the
abstract site adapter contract implemented once per job board, and the
navigable surface contract the engine drives.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Optional, Any
from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for colorized logging."""
    RESET = '\033[0m'
    BOLD = '\033[1m'

    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GRAY = '\033[90m'

    @staticmethod
    def green(text):
        return f"{Colors.GREEN}{text}{Colors.RESET}"

    @staticmethod
    def yellow(text):
        return f"{Colors.YELLOW}{text}{Colors.RESET}"

    @staticmethod
    def red(text):
        return f"{Colors.RED}{text}{Colors.RESET}"

    @staticmethod
    def blue(text):
        return f"{Colors.BLUE}{text}{Colors.RESET}"

    @staticmethod
    def cyan(text):
        return f"{Colors.CYAN}{text}{Colors.RESET}"

    @staticmethod
    def gray(text):
        return f"{Colors.GRAY}{text}{Colors.RESET}"

    @staticmethod
    def bold(text):
        return f"{Colors.BOLD}{text}{Colors.RESET}"


class ScrapeConfigError(ValueError):
    """Raised when a scrape run is misconfigured and must not start."""


class BrowserUnavailableError(RuntimeError):
    """Raised when the browser surface cannot be acquired."""


class NavigationError(RuntimeError):
    """Raised when a page navigation fails or returns an error status."""


class ScrapeMode(str, Enum):
    """What a scrape run collects from each source."""
    SEARCH = "search"                    # Keyword search, paginated
    RECOMMENDATIONS = "recommendations"  # Personalised feed, needs login
    BOTH = "both"                        # Recommendations first, then search


@dataclass
class SiteConfig:
    """Configuration for a job board."""
    name: str                           # Registry key and source tag (e.g., 'naukri')
    display_name: str                   # Human readable name
    base_url: str                       # Prefix for relative job URLs
    home_url: str                       # Page used for login-state checks
    login_url: Optional[str] = None     # Where an operator logs in manually
    search_location: Optional[str] = None  # Location filter for search URLs
    enabled: bool = True                # Whether to include in default runs


@dataclass(frozen=True)
class ScraperCapabilities:
    """Static facts about what a source supports."""
    supports_recommendations: bool = False
    requires_login: bool = False
    recommendations_require_login: bool = True


@dataclass
class ScrapeOptions:
    """Options for a single scrape run, read-only while it runs."""
    keywords: List[str]
    max_pages: int = 3
    fetch_full_details: bool = True
    mode: ScrapeMode = ScrapeMode.SEARCH


@dataclass
class JobListing:
    """Standardized job posting after scraping."""
    source: str
    url: str
    title: str

    external_id: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    experience: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    email: Optional[str] = None
    apply_url: Optional[str] = None
    posted_at: Optional[str] = None

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_partial(cls, data: Dict[str, Any], source: str, url: str) -> 'JobListing':
        """Build a listing from an adapter's partial dict, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.field_names()}
        known.update(source=source, url=url)
        return cls(**known)

    def merge_details(self, details: Dict[str, Any]) -> 'JobListing':
        """
        Overlay a detail-page result onto this summary listing.

        Detail values win only when present and non-empty; otherwise the
        summary value is kept. URL and source always stay from the summary,
        since detail pages may report a redirected URL.
        """
        merged = asdict(self)
        for name, value in details.items():
            if name in ('url', 'source') or name not in merged:
                continue
            if value:
                merged[name] = value
        return JobListing(**merged)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScraperOutcome:
    """What one source's crawl produced."""
    jobs: List[JobListing] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    login_required: bool = False


@dataclass
class ScrapeResult:
    """Result of scraping and saving one source."""
    source: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    jobs_found: int = 0
    jobs_added: int = 0
    jobs_updated: int = 0
    jobs_skipped: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    login_required: bool = False

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def finish(self) -> 'ScrapeResult':
        self.completed_at = datetime.now(timezone.utc)
        return self

    def to_dict(self) -> Dict:
        return {
            'source': self.source,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'duration_seconds': self.duration_seconds,
            'jobs_found': self.jobs_found,
            'jobs_added': self.jobs_added,
            'jobs_updated': self.jobs_updated,
            'jobs_skipped': self.jobs_skipped,
            'errors': self.errors,
            'warnings': self.warnings,
            'login_required': self.login_required,
            'success': self.success,
        }


class NavigableSurface(ABC):
    """
    A single browser tab the crawl engine drives.

    Implementations own the underlying browser resources; callers must
    call close() on every exit path.
    """

    @abstractmethod
    async def navigate(self, url: str, timeout: Optional[float] = None) -> None:
        """Load a URL. Raises NavigationError on failure."""

    @abstractmethod
    async def wait_for_selector(self, selector: str, timeout: float) -> bool:
        """Wait for a selector; return False instead of raising when absent."""

    @abstractmethod
    async def query_all(self, selector: str) -> List[Any]:
        """Return handles for every element matching the selector."""

    @abstractmethod
    async def element_html(self, selector: str, index: int) -> Optional[str]:
        """Outer HTML of the index-th element matching selector, or None."""

    @abstractmethod
    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run a script in the page and return its JSON-able result."""

    @abstractmethod
    async def click(self, selector: str) -> bool:
        """Click the first match. Returns False if nothing was clicked."""

    @abstractmethod
    async def scroll_to_bottom(self) -> None:
        pass

    @abstractmethod
    async def current_height(self) -> int:
        pass

    @abstractmethod
    async def content(self) -> str:
        """Full HTML of the current page."""

    async def has_element(self, selector: str) -> bool:
        try:
            return len(await self.query_all(selector)) > 0
        except Exception:
            return False

    @abstractmethod
    async def close(self) -> None:
        pass


class SiteAdapter(ABC):
    """
    Abstract contract for a job board.

    Adapters describe how to find and read listings; they hold no run
    state and never orchestrate. The crawl engine takes an adapter value.

    Subclasses must implement:
    - build_search_url(): URL for a keyword search page
    - get_listing_selector(): CSS selector matching one job card
    - parse_job_card(): Extract a partial listing from one card

    Optional overrides:
    - parse_job_details(): Read a job's own page
    - get_next_page_selector(): Pagination control
    - get_capabilities(), is_logged_in(), get_username(), get_recommendations_url(),
      get_recommendation_list_selector(), parse_recommendation_card()
    """

    def __init__(self, config: SiteConfig):
        self.config = config
        self.logger = logging.getLogger(f"scraper.{config.name}")

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @abstractmethod
    def build_search_url(self, keywords: List[str], page_num: int) -> str:
        pass

    @abstractmethod
    def get_listing_selector(self) -> str:
        pass

    @abstractmethod
    async def parse_job_card(self, surface: NavigableSurface, index: int) -> Dict[str, Any]:
        """
        Parse the index-th job card on the current search page.

        Returns:
            Partial listing dict keyed by JobListing field names
        """

    async def parse_job_details(self, surface: NavigableSurface, url: str) -> Dict[str, Any]:
        return {}

    def get_next_page_selector(self) -> Optional[str]:
        return None

    async def has_next_page(self, surface: NavigableSurface) -> bool:
        selector = self.get_next_page_selector()
        if not selector:
            return False
        return await surface.has_element(selector)

    def get_capabilities(self) -> ScraperCapabilities:
        return ScraperCapabilities()

    async def is_logged_in(self, surface: NavigableSurface) -> bool:
        return False

    async def get_username(self, surface: NavigableSurface) -> Optional[str]:
        """Display name of the logged-in account, if the page shows one."""
        return None

    def get_recommendations_url(self) -> Optional[str]:
        return None

    def get_recommendation_list_selector(self) -> str:
        return self.get_listing_selector()

    async def parse_recommendation_card(self, surface: NavigableSurface, index: int) -> Dict[str, Any]:
        return await self.parse_job_card(surface, index)

    def get_home_url(self) -> str:
        return self.config.home_url
