"""
Reconciliation of scraped listings with stored job records.

A listing is keyed by its canonical URL. Unknown URLs are inserted; known
ones are patched only where the stored record is missing data or holds a
placeholder, so user-edited fields and rich stored values are never lost.
"""

from enum import Enum
from typing import Dict, Any, Optional

from .base import JobListing

# Stored descriptions shorter than this are treated as truncated summaries
DESCRIPTION_MIN_LENGTH = 50

SALARY_PLACEHOLDERS = {'not disclosed'}

# Fields patched only when the stored value is empty
FILL_IF_EMPTY = ('requirements', 'experience', 'posted_at', 'email', 'apply_url')


class ReconcileAction(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_placeholder_salary(value: str) -> bool:
    return value.strip().lower() in SALARY_PLACEHOLDERS


def compute_patch(existing: Any, listing: JobListing) -> Dict[str, Any]:
    """
    Work out which stored fields a fresh listing may overwrite.

    Args:
        existing: Stored record (any object exposing the listing attributes)
        listing: Freshly scraped listing

    Returns:
        Dict of field name -> new value; empty when nothing qualifies
    """
    patch = {}

    if not _is_empty(listing.description):
        current = getattr(existing, 'description', None)
        if listing.description != current and (_is_empty(current) or len(current) < DESCRIPTION_MIN_LENGTH):
            patch['description'] = listing.description

    for name in FILL_IF_EMPTY:
        value = getattr(listing, name)
        if not _is_empty(value) and _is_empty(getattr(existing, name, None)):
            patch[name] = value

    if not _is_empty(listing.salary) and not _is_placeholder_salary(listing.salary):
        current = getattr(existing, 'salary', None)
        if _is_empty(current) or _is_placeholder_salary(current):
            patch['salary'] = listing.salary

    return patch


def reconcile_listing(store, listing: JobListing) -> ReconcileAction:
    """
    Insert or selectively patch one listing.

    The store must provide find_by_url(url), insert(listing) and
    patch(record_id, fields). Store errors propagate to the caller.
    """
    existing: Optional[Any] = store.find_by_url(listing.url)

    if existing is None:
        store.insert(listing)
        return ReconcileAction.ADDED

    patch = compute_patch(existing, listing)
    if patch and store.patch(existing.id, patch):
        return ReconcileAction.UPDATED
    return ReconcileAction.SKIPPED
