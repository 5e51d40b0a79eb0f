"""
Data normalization utilities for scrapers.

These functions standardize scraped text and URLs into consistent formats.
"""

import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit


def normalize_text(text: Optional[str]) -> Optional[str]:
    """
    Collapse runs of whitespace and trim.

    Examples:
        "  Senior\\n   Engineer " -> "Senior Engineer"
        "   " -> None
    """
    if text is None:
        return None
    text = re.sub(r'\s+', ' ', text.replace('\xa0', ' ')).strip()
    return text or None


def absolute_url(url: Optional[str], base_url: str) -> Optional[str]:
    """
    Make a job URL absolute against the site's base URL.

    Examples:
        /job-listings-123, https://www.naukri.com -> https://www.naukri.com/job-listings-123
        https://x.com/a -> https://x.com/a
    """
    if not url:
        return None
    url = url.strip()
    if url.startswith(('http://', 'https://')):
        return url
    return urljoin(base_url.rstrip('/') + '/', url)


def strip_query(url: Optional[str]) -> Optional[str]:
    """Drop query string and fragment (tracking parameters)."""
    if not url:
        return url
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, '', ''))


def slugify(text: str) -> str:
    """
    Build a URL slug from text.

    Examples:
        "Python Developer" -> "python-developer"
        "Acme (India) Pvt. Ltd." -> "acme-india-pvt-ltd"
    """
    slug = re.sub(r'[^a-z0-9\s-]', '', text.lower())
    slug = re.sub(r'\s+', '-', slug.strip())
    return re.sub(r'-+', '-', slug)


def normalize_experience_slug(experience: str) -> str:
    """
    Convert an experience range into Naukri's URL form.

    Examples:
        "3-5 Yrs" -> "3-to-5-years"
        "0-1 yr" -> "0-to-1-years"
    """
    slug = re.sub(r'(\d+)\s*-\s*(\d+)\s*yrs?', r'\1-to-\2-years', experience.lower())
    return re.sub(r'\s+', '-', slug.strip())
