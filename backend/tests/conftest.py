"""
Pytest configuration and fixtures for Job Harvest tests.
"""

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.database import Base, get_db
from api.main import app, get_surface_factory, get_pacing_policy
from scrapers.base import NavigableSurface, SiteAdapter, SiteConfig, ScraperCapabilities
from scrapers.engine import PacingPolicy


# Create an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# No sleeping in tests
NO_DELAY = PacingPolicy(
    navigation_timeout=1.0,
    list_timeout=1.0,
    settle_seconds=0,
    recommendation_settle_seconds=0,
    scroll_wait_seconds=0,
    detail_delay=(0, 0),
    page_delay=(0, 0),
)


def override_get_db():
    """Override the get_db dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


class FakeSurface(NavigableSurface):
    """
    Scripted surface: each URL maps to a page description.

    A page is a dict with optional keys:
        cards: list of card dicts returned by FakeAdapter.parse_job_card
        elements: selectors present on the page
        html: page HTML returned by content()
        snippets: selector -> outerHTML of the first matching element
        heights: successive document heights reported while scrolling
        fail: exception raised when the page is navigated to
    """

    def __init__(self, pages: Optional[Dict[str, Dict[str, Any]]] = None):
        self.pages = pages or {}
        self.current_url: Optional[str] = None
        self.visited: List[str] = []
        self.scrolls = 0
        self.closed = False
        self._height_index = 0

    @property
    def page(self) -> Dict[str, Any]:
        return self.pages.get(self.current_url, {})

    async def navigate(self, url, timeout=None):
        self.visited.append(url)
        self.current_url = url
        self._height_index = 0
        failure = self.pages.get(url, {}).get('fail')
        if failure:
            raise failure

    async def wait_for_selector(self, selector, timeout):
        return selector in self.page.get('elements', ()) or bool(self.page.get('cards'))

    async def query_all(self, selector):
        if selector in self.page.get('elements', ()):
            return [selector]
        return list(self.page.get('cards', []))

    async def element_html(self, selector, index):
        snippets = self.page.get('snippets', {})
        if selector in snippets:
            return snippets[selector] if index == 0 else None
        cards = self.page.get('card_html', [])
        return cards[index] if index < len(cards) else None

    async def evaluate(self, script, arg=None):
        return None

    async def click(self, selector):
        return selector in self.page.get('elements', ())

    async def scroll_to_bottom(self):
        self.scrolls += 1
        self._height_index += 1

    async def current_height(self):
        heights = self.page.get('heights', [1000])
        return heights[min(self._height_index, len(heights) - 1)]

    async def content(self):
        return self.page.get('html', '')

    async def close(self):
        self.closed = True


class FakeAdapter(SiteAdapter):
    """Adapter over FakeSurface pages; cards are dicts, details keyed by URL."""

    def __init__(self, name='fake', details=None, supports_recommendations=True,
                 logged_in=True, next_page=True):
        super().__init__(SiteConfig(
            name=name,
            display_name=name.title(),
            base_url=f'https://{name}.example',
            home_url=f'https://{name}.example/home',
        ))
        self.details = details or {}
        self.supports_recommendations = supports_recommendations
        self.logged_in = logged_in
        self.next_page = next_page

    def build_search_url(self, keywords, page_num):
        return f"{self.base_url}/search?q={'+'.join(keywords)}&page={page_num}"

    def get_listing_selector(self):
        return '.card'

    def get_next_page_selector(self):
        return '.next'

    async def has_next_page(self, surface):
        return self.next_page

    def get_capabilities(self):
        return ScraperCapabilities(supports_recommendations=self.supports_recommendations)

    async def is_logged_in(self, surface):
        return self.logged_in

    def get_recommendations_url(self):
        return f"{self.base_url}/recommended" if self.supports_recommendations else None

    async def parse_job_card(self, surface, index):
        card = surface.page['cards'][index]
        if isinstance(card, Exception):
            raise card
        return dict(card)

    async def parse_job_details(self, surface, url):
        await surface.navigate(url)
        detail = self.details.get(url, {})
        if isinstance(detail, Exception):
            raise detail
        return dict(detail)


@pytest.fixture
def no_delay():
    return NO_DELAY


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_surface():
    """Surface handed out by the API's surface factory override."""
    return FakeSurface()


@pytest.fixture(scope="function")
def client(db_session, fake_surface):
    """Create a test client with database and browser overrides."""
    async def surface_factory():
        return fake_surface

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_surface_factory] = lambda: surface_factory
    app.dependency_overrides[get_pacing_policy] = lambda: NO_DELAY
    Base.metadata.create_all(bind=engine)

    # Use TestClient directly without context manager for compatibility
    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sample_job(db_session):
    """Create a sample job for testing."""
    from api.database import Job

    job = Job(
        source="naukri",
        external_id="123",
        url="https://www.naukri.com/job-listings-python-developer-acme-123",
        title="Python Developer",
        company="Acme",
        location="Pune",
        salary="Not disclosed",
        description="Short",
        match_score=72,
    )
    db_session.add(job)
    db_session.commit()
    db_session.refresh(job)
    return job
