"""
LinkedIn adapter.

LinkedIn uses hashed class names that change between deploys, so cards are
read structurally: the job link is the anchor pointing at /jobs/view/, and
company, location and posting age are recognised by their text.
"""

import asyncio
from typing import List, Dict, Any, Optional
from urllib.parse import quote

from ..base import SiteAdapter, ScraperCapabilities, NavigableSurface
from ..config import get_site_config
from ..utils.normalizers import normalize_text, strip_query
from ..utils.extractors import parse_html, first_text, first_href, leaf_texts, extract_job_id, first_line


LISTING_SELECTOR = 'main ul > li, .jobs-search-results__list-item, .job-card-container, .base-search-card'
RECOMMENDATION_SELECTOR = ('main ul > li, .scaffold-layout__list-item, '
                           '.jobs-search-results__list-item, .job-card-container')
NEXT_PAGE_SELECTOR = 'button[aria-label="Next"], button[aria-label="View next page"]'
SEE_MORE_SELECTOR = 'button:has-text("more")'

LOGGED_IN_SELECTORS = [
    '.global-nav__me-photo',
    '.feed-identity-module',
    '.global-nav__me-content',
    '.profile-rail-card__actor-link',
    'img.global-nav__me-photo',
]

USERNAME_SELECTORS = ['.feed-identity-module__actor-meta', '.profile-rail-card__actor-link', '.global-nav__me-content']

JOB_ID_PATTERNS = [r'/jobs/view/(\d+)']
RESULTS_PER_PAGE = 25
REMOTE_FILTER = '2'  # f_WT=2

LOCATION_MARKERS = ('Remote', 'India', 'Hybrid')
COMPANY_EXCLUDES = ('Remote', 'India', 'ago', 'Apply', 'Promoted', 'Viewed')
SALARY_MARKERS = ('$', '₹', 'LPA')
WORK_TYPES = {'Remote', 'Hybrid', 'On-site', 'Full-time', 'Part-time', 'Contract'}


def _find_job_link(soup):
    """First /jobs/view/ link in a card -> (url without query, title or None)."""
    for link in soup.find_all('a'):
        href = link.get('href') or ''
        if '/jobs/view/' not in href:
            continue
        text = normalize_text(link.get_text(' '))
        title = text if text and len(text) > 5 and 'Easy Apply' not in text else None
        return strip_query(href.strip()), title
    return None, None


def _classify_leaves(soup, title: Optional[str]) -> Dict[str, Optional[str]]:
    """Assign company, location and posted age from leaf element texts."""
    found = {'company': None, 'location': None, 'posted_at': None}
    for text in leaf_texts(soup):
        if (found['company'] is None and text != title and 1 < len(text) < 100
                and not any(marker in text for marker in COMPANY_EXCLUDES)):
            found['company'] = text
            continue
        if (found['location'] is None and len(text) < 100
                and any(marker in text for marker in LOCATION_MARKERS)):
            found['location'] = text
            continue
        if found['posted_at'] is None and 'ago' in text and len(text) < 30:
            found['posted_at'] = text
    return found


def parse_search_card_html(html: Optional[str]) -> Dict[str, Any]:
    """Extract a partial listing from one search result card."""
    soup = parse_html(html)
    if soup.find(True) is None:
        return {}

    url, title = _find_job_link(soup)
    title = title or first_text(soup, ['.job-card-list__title', '.base-search-card__title',
                                       'a[href*="/jobs/view/"] span', 'strong'])
    leaves = _classify_leaves(soup, title)

    if not url:
        url = strip_query(first_href(soup, ['a[href*="/jobs/view/"]', 'a.job-card-container__link',
                                            'a.base-card__full-link']))

    return {
        'title': title,
        'company': leaves['company'] or first_text(
            soup, ['.job-card-container__company-name', '.base-search-card__subtitle']),
        'location': leaves['location'] or first_text(
            soup, ['.job-card-container__metadata-item', '.job-search-card__location']),
        'url': url,
        'posted_at': leaves['posted_at'] or first_text(soup, ['time', '.job-search-card__listdate']),
        'external_id': extract_job_id(url, JOB_ID_PATTERNS),
    }


def parse_recommendation_card_html(html: Optional[str]) -> Dict[str, Any]:
    """Extract a partial listing from one recommended-jobs card."""
    soup = parse_html(html)
    card = soup.find(True)
    if card is None:
        return {}

    url, title = _find_job_link(soup)
    leaves = _classify_leaves(soup, title)

    data_job_id = card.get('data-job-id') or card.get('data-occludable-job-id')
    if not data_job_id:
        nested = soup.select_one('[data-job-id]')
        data_job_id = nested.get('data-job-id') if nested is not None else None

    return {
        'title': title,
        'company': leaves['company'],
        'location': leaves['location'],
        'url': url,
        'external_id': extract_job_id(url, JOB_ID_PATTERNS) or data_job_id,
        'posted_at': leaves['posted_at'],
    }


def _about_the_job(soup) -> Optional[str]:
    """HTML of the blocks following the "About the job" heading."""
    heading = None
    for h2 in soup.find_all('h2'):
        if 'about the job' in h2.get_text().strip().lower():
            heading = h2
            break
    if heading is None or heading.parent is None:
        return None

    parts = []
    current = heading.parent.find_next_sibling()
    while current is not None:
        inner_h2 = current.find('h2')
        if inner_h2 is not None and 'about the job' not in inner_h2.get_text().lower():
            break
        if 'Requirements added by' in current.get_text():
            break
        inner = current.decode_contents()
        if inner:
            parts.append(inner)
        current = current.find_next_sibling()

    return '\n'.join(parts) if parts else None


def _longest_paragraph(soup, min_length: int = 200) -> Optional[str]:
    longest = ''
    for p in soup.find_all('p'):
        text = p.get_text().strip()
        if len(text) > len(longest) and len(text) > min_length:
            longest = text
    return longest or None


def parse_details_html(html: Optional[str], page_url: str) -> Dict[str, Any]:
    """
    Extract the full listing from a job's own page.

    Args:
        html: Page HTML
        page_url: URL the page was loaded from (for the external id)
    """
    soup = parse_html(html)

    company = None
    for link in soup.select('a[href*="/company/"]'):
        text = normalize_text(link.get_text(' '))
        if text and len(text) < 100 and 'followers' not in text:
            company = text
            break

    title = None
    toolbar = soup.select_one('[role="toolbar"]')
    if toolbar is not None:
        for el in toolbar.find_all(['div', 'span']):
            text = normalize_text(el.get_text(' ')) or ''
            if 10 < len(text) < 200 and '•' not in text and 'Save' not in text and 'Apply' not in text:
                title = text
                break
    if not title:
        title = first_text(soup, ['h1'])

    main = soup.select_one('main main') or soup.select_one('main')
    blocks = [normalize_text(el.get_text(' ')) or '' for el in main.find_all(['div', 'span'])] if main else []

    location = next((t for t in blocks
                     if t and len(t) < 100 and any(m in t for m in LOCATION_MARKERS)
                     and 'About' not in t and 'Apply' not in t), None)
    posted_at = next((t for t in blocks if 'ago' in t and len(t) < 50), None)
    salary = next((t for t in blocks if len(t) < 100 and any(m in t for m in SALARY_MARKERS)), None)

    work_types = []
    for button in soup.find_all('button'):
        text = button.get_text().strip()
        if text in WORK_TYPES:
            work_types.append(text)

    return {
        'title': title,
        'company': company,
        'location': location,
        'salary': salary,
        'description': _about_the_job(soup) or _longest_paragraph(soup),
        'posted_at': posted_at,
        'requirements': ', '.join(work_types) or None,
        'external_id': extract_job_id(page_url, JOB_ID_PATTERNS),
    }


class LinkedInAdapter(SiteAdapter):
    """
    Adapter for linkedin.com jobs.

    Site structure:
    - Search: /jobs/search/?keywords=...&location=India&f_WT=2&start=25*(n-1)
    - Recommendations: /jobs/collections/recommended/ (login required)
    - Job pages: /jobs/view/{id}/ with a collapsible "About the job" section
    """

    detail_timeout = 60.0
    detail_settle_seconds = 3.0
    detail_ready_timeout = 15.0
    expand_wait_seconds = 0.5

    def __init__(self):
        super().__init__(get_site_config('linkedin'))

    def get_capabilities(self) -> ScraperCapabilities:
        return ScraperCapabilities(
            supports_recommendations=True,
            requires_login=False,
            recommendations_require_login=True,
        )

    def build_search_url(self, keywords: List[str], page_num: int) -> str:
        query = quote(' '.join(keywords), safe='')
        location = quote(self.config.search_location or '', safe='')
        start = (page_num - 1) * RESULTS_PER_PAGE
        return (f"{self.base_url}/jobs/search/?keywords={query}"
                f"&location={location}&f_WT={REMOTE_FILTER}&start={start}")

    def get_listing_selector(self) -> str:
        return LISTING_SELECTOR

    def get_next_page_selector(self) -> Optional[str]:
        return NEXT_PAGE_SELECTOR

    def get_recommendations_url(self) -> Optional[str]:
        return f"{self.base_url}/jobs/collections/recommended/"

    def get_recommendation_list_selector(self) -> str:
        return RECOMMENDATION_SELECTOR

    async def is_logged_in(self, surface: NavigableSurface) -> bool:
        for selector in LOGGED_IN_SELECTORS:
            if await surface.has_element(selector):
                return True
        return False

    async def get_username(self, surface: NavigableSurface) -> Optional[str]:
        for selector in USERNAME_SELECTORS:
            name = first_line(await surface.element_html(selector, 0))
            if name:
                return name
        return None

    async def parse_job_card(self, surface: NavigableSurface, index: int) -> Dict[str, Any]:
        html = await surface.element_html(LISTING_SELECTOR, index)
        return parse_search_card_html(html)

    async def parse_recommendation_card(self, surface: NavigableSurface, index: int) -> Dict[str, Any]:
        html = await surface.element_html(RECOMMENDATION_SELECTOR, index)
        return parse_recommendation_card_html(html)

    async def parse_job_details(self, surface: NavigableSurface, url: str) -> Dict[str, Any]:
        self.logger.info(f"Parsing job details from {url}")
        await surface.navigate(url, timeout=self.detail_timeout)
        await asyncio.sleep(self.detail_settle_seconds)
        await surface.wait_for_selector('h2, main', self.detail_ready_timeout)

        # Collapsed descriptions only render their first lines
        if await surface.click(SEE_MORE_SELECTOR):
            await asyncio.sleep(self.expand_wait_seconds)

        return parse_details_html(await surface.content(), url)
