"""Shared utilities for scrapers."""

from .normalizers import (
    normalize_text,
    absolute_url,
    strip_query,
    slugify,
    normalize_experience_slug,
)
from .extractors import (
    parse_html,
    first_text,
    first_html,
    first_href,
    all_texts,
    leaf_texts,
    first_line,
    extract_email,
    extract_job_id,
)

__all__ = [
    'normalize_text',
    'absolute_url',
    'strip_query',
    'slugify',
    'normalize_experience_slug',
    'parse_html',
    'first_text',
    'first_html',
    'first_href',
    'all_texts',
    'leaf_texts',
    'first_line',
    'extract_email',
    'extract_job_id',
]
