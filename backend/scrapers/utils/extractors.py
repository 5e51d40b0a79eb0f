"""
Data extraction utilities for scrapers.

Job boards change their markup often, so fields are located through ordered
fallback selector lists: the first selector with usable content wins.
"""

import re
from typing import Optional, List, Iterator
from bs4 import BeautifulSoup, Tag

from .normalizers import normalize_text


EMAIL_PATTERN = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')


def parse_html(html: Optional[str]) -> BeautifulSoup:
    """Parse an HTML fragment or page."""
    return BeautifulSoup(html or '', 'html.parser')


def first_text(node: Tag, selectors: List[str]) -> Optional[str]:
    """
    Text of the first selector that matches with non-empty text.

    Args:
        node: Element to search within
        selectors: CSS selectors in priority order

    Returns:
        Normalized text or None
    """
    for selector in selectors:
        el = node.select_one(selector)
        if el is None:
            continue
        text = normalize_text(el.get_text(' '))
        if text:
            return text
    return None


def first_html(node: Tag, selectors: List[str]) -> Optional[str]:
    """Inner HTML of the first selector that matches with content."""
    for selector in selectors:
        el = node.select_one(selector)
        if el is None:
            continue
        inner = el.decode_contents().strip()
        if inner:
            return inner
    return None


def first_href(node: Tag, selectors: List[str]) -> Optional[str]:
    """href of the first matching anchor that has one."""
    for selector in selectors:
        el = node.select_one(selector)
        if el is not None and el.get('href'):
            return el['href'].strip()
    return None


def all_texts(node: Tag, selector: str) -> List[str]:
    """Non-empty texts of every match, in document order."""
    texts = []
    for el in node.select(selector):
        text = normalize_text(el.get_text(' '))
        if text:
            texts.append(text)
    return texts


def leaf_texts(node: Tag, tags=('div', 'span')) -> Iterator[str]:
    """
    Yield text of elements with no child elements.

    Used for boards that ship hashed class names: fields are recognised
    by content instead of by selector.
    """
    for el in node.find_all(list(tags)):
        if el.find(True) is not None:
            continue
        text = normalize_text(el.get_text())
        if text:
            yield text


def first_line(html: Optional[str]) -> Optional[str]:
    """
    First non-empty text line of an element.

    Examples:
        "<div>Asha Rao<br/>Backend Engineer</div>" -> "Asha Rao"
    """
    soup = parse_html(html)
    for line in soup.get_text('\n').split('\n'):
        text = normalize_text(line)
        if text:
            return text
    return None


def extract_email(text: Optional[str]) -> Optional[str]:
    """
    Extract the first email address from text.

    Examples:
        "Send CV to hr@acme.io today" -> "hr@acme.io"
    """
    if not text:
        return None
    match = EMAIL_PATTERN.search(text)
    return match.group(0) if match else None


def extract_job_id(url: Optional[str], patterns: List[str]) -> Optional[str]:
    """
    Extract an external job id from a URL using the first matching pattern.

    Each pattern must have one capturing group.
    """
    if not url:
        return None
    for pattern in patterns:
        match = re.search(pattern, url)
        if match:
            return match.group(1)
    return None
