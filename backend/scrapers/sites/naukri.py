"""
Naukri adapter.

Naukri ships both hashed (styles_*__xxxx) and legacy class names depending
on the page version, so every field is read through an ordered fallback
list. Search works without a session; recommendations need a login.
"""

import asyncio
from typing import List, Dict, Any, Optional

from ..base import SiteAdapter, ScraperCapabilities, NavigableSurface
from ..config import get_site_config
from ..utils.normalizers import normalize_text, slugify, normalize_experience_slug
from ..utils.extractors import (
    parse_html,
    first_text,
    first_html,
    first_href,
    all_texts,
    extract_email,
    extract_job_id,
    first_line,
)


LISTING_SELECTOR = '.srp-jobtuple-wrapper, .jobTuple, article.jobTuple'
RECOMMENDATION_SELECTOR = '.recommended-job-card, .rec-job-tuple, .jobTuple, .srp-jobtuple-wrapper'
NEXT_PAGE_SELECTOR = 'a.fright.fs14.btn-secondary.br2'
DETAIL_READY_SELECTOR = '.styles_jd-header-wrapper__UJTU4, .jd-header-wrapper, .job-details'

LOGGED_IN_SELECTORS = [
    '.nI-gNb-drawer__icon',
    '.user-prof-icon',
    '.nI-gNb-sb__user',
    '.view-profile-wrapper',
    '.nI-gNb-sb__user-name',
]

USERNAME_SELECTORS = ['.nI-gNb-sb__user-name', '.user-name', '.view-profile-wrapper a']

JOB_ID_PATTERNS = [r'job-listings-([^?]+)', r'jid=(\d+)']

# ---- search card ----
CARD_TITLE = ['.title', 'a.title', '.jobTupleHeader a', '.row1 a.title', 'h2 a', '.info .title']
CARD_COMPANY = ['.comp-name', '.companyInfo .subTitle', '.jobTupleHeader .subTitle',
                'a.subTitle', '.company-name', '.row2 .comp-name']
CARD_LOCATION = ['.loc-wrap .locWdth', '.loc', '.location', '.locWdth',
                 '.row3 .loc-wrap span', '.ni-job-tuple-icon-srp-location + span']
CARD_SALARY = ['.sal-wrap .ni-job-tuple-icon-srp-rupee + span', '.salary', '.sal',
               '.row4 .sal-wrap span', '.ni-job-tuple-icon-srp-rupee']
CARD_URL = ['a.title', '.title a', '.jobTupleHeader a', 'h2 a', 'a[href*="/job-listings"]']
CARD_DESCRIPTION = ['.job-desc', '.jobTupleFooter .ellipsis', '.row5 .ellipsis', '.job-description']
CARD_POSTED = ['.job-post-day', '.postDate', '.freshness span', '.row6 span']

# ---- recommendation card ----
REC_TITLE = ['.title', 'a.title', '.rec-job-title', '.jobTupleHeader a', 'h2 a']
REC_COMPANY = ['.companyWrapper .subTitle', '.comp-name', '.companyInfo .subTitle', 'a.subTitle']
REC_LOCATION = ['.location span.ellipsis', '.location span', '.loc-wrap .locWdth', '.loc span', '.locWdth']
REC_EXPERIENCE = ['.experience span.ellipsis', '.experience span', '.exp span', '.expwdth']
REC_SALARY = ['.salary span.ellipsis', '.salary span', '.sal span', '.sal-wrap span']
REC_DESCRIPTION = ['.job-description', '.job-desc', '.ni-job-tuple-description', '.jobDescription']
REC_POSTED = ['.jobTupleFooter .type span', '.job-post-day span', '.freshness span', '.postDate']
REC_URL = ['a.title', '.title a', '.rec-job-title a', 'a[href*="/job-listings"]']
REC_SKILLS = '.tags li, .tag-li, .skillsList li, .chipLi'

# ---- detail page ----
DETAIL_TITLE = ['.styles_jd-header-title__rZwM1', '.jd-header-title', '.job-title', 'h1.title']
DETAIL_COMPANY = ['.styles_jd-header-comp-name__MvqAI a', '.jd-header-comp-name a',
                  '.company-name', '.comp-name a']
DETAIL_SALARY = ['.styles_jhc__salary__jdfEC', '.salary', '.salaryText', '.sal']
DETAIL_LOCATION = ['.styles_jhc__loc___Du2H', '.loc', '.location', '.locWdth']
DETAIL_EXPERIENCE = ['.styles_jhc__exp__k_giM', '.exp', '.experience']
DETAIL_DESCRIPTION = ['.styles_JDC__dang-inner-html__h0K4t', '.dang-inner-html', '.job-desc',
                      '.jobDescriptionText', '.styles_job-desc-container__txpYf',
                      '#job-description', '.jd-desc']
DETAIL_REQUIREMENTS = ['.styles_key-skill__GIPn_ .chip', '.key-skill .chip',
                       '.chip-container .chip', '.skills-section']
DETAIL_SKILL_CHIPS = '.styles_key-skill__GIPn_ a, .key-skill a, .chip'
DETAIL_APPLY = ['.styles_apply-button__uStvl a', '.apply-button a', 'a[href*="apply"]']
DETAIL_POSTED = ['.styles_jhc__jd-stats__lT29m span:last-child', '.post-date', '.postDate', '.postedDate']
DETAIL_HIGHLIGHTS = '.styles_details__Y424J .styles_detail__lT1PC, .key-value, .details-row'


def build_recommendation_url(title: Optional[str], company: Optional[str], location: Optional[str],
                             experience: Optional[str], job_id: str) -> str:
    """
    Rebuild a job URL for recommendation cards that carry only a job id.

    Examples:
        ("Python Dev", "Acme", "Pune", "3-5 Yrs", "123")
            -> https://www.naukri.com/job-listings-python-dev-acme-pune-3-to-5-years-123
    """
    parts = [slugify(part) for part in (title, company, location) if part]
    if experience:
        parts.append(normalize_experience_slug(experience))
    parts.append(job_id)
    return f"https://www.naukri.com/job-listings-{'-'.join(parts)}"


def parse_search_card_html(html: Optional[str]) -> Dict[str, Any]:
    """Extract a partial listing from one search result card."""
    soup = parse_html(html)
    if soup.find(True) is None:
        return {}

    return {
        'title': first_text(soup, CARD_TITLE),
        'company': first_text(soup, CARD_COMPANY),
        'location': first_text(soup, CARD_LOCATION),
        'salary': first_text(soup, CARD_SALARY),
        'url': first_href(soup, CARD_URL),
        'description': first_text(soup, CARD_DESCRIPTION),
        'posted_at': first_text(soup, CARD_POSTED),
    }


def parse_recommendation_card_html(html: Optional[str]) -> Dict[str, Any]:
    """
    Extract a partial listing from one recommended-jobs card.

    Recommendation cards often lack an anchor; the URL is then rebuilt
    from the data-job-id attribute.
    """
    soup = parse_html(html)
    card = soup.find(True)
    if card is None:
        return {}

    title = first_text(soup, REC_TITLE)
    company = first_text(soup, REC_COMPANY)
    location = first_text(soup, REC_LOCATION)
    experience = first_text(soup, REC_EXPERIENCE)
    job_id = card.get('data-job-id') or card.get('data-jobid')

    url = first_href(soup, REC_URL)
    if not url and job_id:
        url = build_recommendation_url(title, company, location, experience, job_id)

    skills = ', '.join(all_texts(soup, REC_SKILLS))

    return {
        'title': title,
        'company': company,
        'location': location,
        'experience': experience,
        'salary': first_text(soup, REC_SALARY),
        'url': url,
        'external_id': job_id,
        'description': first_text(soup, REC_DESCRIPTION),
        'requirements': skills or None,
        'posted_at': first_text(soup, REC_POSTED),
    }


def _parse_highlights(soup) -> Dict[str, str]:
    """Label/value pairs from the job highlights block, keyed by letters-only label."""
    highlights = {}
    for pair in soup.select(DETAIL_HIGHLIGHTS):
        label = first_text(pair, ['.styles_label__YTVYY', '.label', 'dt'])
        value = first_text(pair, ['.styles_value__BEsNS', '.value', 'dd'])
        if label and value:
            key = ''.join(ch for ch in label.lower() if 'a' <= ch <= 'z')
            highlights[key] = value
    return highlights


def parse_details_html(html: Optional[str], page_url: str) -> Dict[str, Any]:
    """
    Extract the full listing from a job's own page.

    Args:
        html: Page HTML
        page_url: URL the page was loaded from (for the external id)
    """
    soup = parse_html(html)
    highlights = _parse_highlights(soup)

    description = first_html(soup, DETAIL_DESCRIPTION)
    skill_chips = ', '.join(all_texts(soup, DETAIL_SKILL_CHIPS))

    return {
        'title': first_text(soup, DETAIL_TITLE),
        'company': first_text(soup, DETAIL_COMPANY),
        'location': first_text(soup, DETAIL_LOCATION),
        'salary': first_text(soup, DETAIL_SALARY) or highlights.get('salary'),
        'description': description,
        'requirements': skill_chips or first_text(soup, DETAIL_REQUIREMENTS),
        'experience': first_text(soup, DETAIL_EXPERIENCE) or highlights.get('experience'),
        'email': extract_email(description),
        'apply_url': first_href(soup, DETAIL_APPLY),
        'posted_at': first_text(soup, DETAIL_POSTED),
        'external_id': extract_job_id(page_url, JOB_ID_PATTERNS),
    }


class NaukriAdapter(SiteAdapter):
    """
    Adapter for naukri.com.

    Site structure:
    - Search: /{keywords}-jobs, then /{keywords}-jobs-{n} for later pages
    - Recommendations: /mnjuser/recommendedjobs (infinite scroll, login required)
    - Job pages: /job-listings-{slug}-{id}
    """

    detail_timeout = 60.0
    detail_settle_seconds = 2.0
    detail_ready_timeout = 15.0

    def __init__(self):
        super().__init__(get_site_config('naukri'))

    def get_capabilities(self) -> ScraperCapabilities:
        return ScraperCapabilities(
            supports_recommendations=True,
            requires_login=False,
            recommendations_require_login=True,
        )

    def build_search_url(self, keywords: List[str], page_num: int) -> str:
        query = '-'.join(keywords).lower()
        query = '-'.join(query.split())
        if page_num == 1:
            return f"{self.base_url}/{query}-jobs"
        return f"{self.base_url}/{query}-jobs-{page_num}"

    def get_listing_selector(self) -> str:
        return LISTING_SELECTOR

    def get_next_page_selector(self) -> Optional[str]:
        return NEXT_PAGE_SELECTOR

    def get_recommendations_url(self) -> Optional[str]:
        return f"{self.base_url}/mnjuser/recommendedjobs"

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
        await surface.navigate(url, timeout=self.detail_timeout)
        await asyncio.sleep(self.detail_settle_seconds)
        await surface.wait_for_selector(DETAIL_READY_SELECTOR, self.detail_ready_timeout)

        details = parse_details_html(await surface.content(), url)
        self.logger.debug(f"Parsed details for {url}: {normalize_text(details.get('title') or '')}")
        return details
