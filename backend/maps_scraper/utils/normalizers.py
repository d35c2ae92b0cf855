"""
Data normalization utilities for scrapers.

These functions standardize scraped text into consistent formats.
"""

import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin

# Size token embedded in googleusercontent image URLs, e.g. "=w80-h106"
PHOTO_SIZE_PATTERN = r'=w\d+-h\d+'
PHOTO_HIGH_RES_TOKEN = '=w2048-h2048'


def clean_text(text: Optional[str]) -> Optional[str]:
    """
    Collapse whitespace and strip. Returns None for empty results.

    Examples:
        "  Joe's   Pizza \\n" -> "Joe's Pizza"
        "   " -> None
    """
    if text is None:
        return None
    # Maps renders private-use icon glyphs in front of address/phone values
    text = re.sub(r'[\ue000-\uf8ff]', ' ', text)
    text = ' '.join(text.split())
    return text or None


def first_line(text: Optional[str]) -> Optional[str]:
    """Return the first non-empty line of a multi-line text."""
    if not text:
        return None
    for line in text.splitlines():
        line = clean_text(line)
        if line:
            return line
    return None


def parse_rating(text: Optional[str]) -> Optional[float]:
    """
    Parse a star rating.

    Examples:
        "4.5" -> 4.5
        "4,7 stars" -> 4.7
        "Rated 3 out of 5" -> 3.0
    """
    if not text:
        return None
    match = re.search(r'(\d+(?:[.,]\d+)?)', text)
    if not match:
        return None
    try:
        return float(match.group(1).replace(',', '.'))
    except ValueError:
        return None


def parse_count(text: Optional[str]) -> Optional[int]:
    """
    Parse a count that may contain thousands separators.

    Examples:
        "(1,234)" -> 1234
        "2 345 reviews" -> 2345
    """
    if not text:
        return None
    digits = ''.join(ch for ch in text if ch.isdigit())
    if not digits:
        return None
    return int(digits)


def parse_star_count(label: Optional[str]) -> Optional[int]:
    """Parse the integer star count from an aria-label like '4 stars'."""
    if not label:
        return None
    match = re.search(r'(\d+)', label)
    if match:
        return int(match.group(1))
    return None


def absolute_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve a possibly relative href against the page URL."""
    if not href:
        return None
    href = href.strip()
    if not href:
        return None
    return urljoin(base_url, href)


def upgrade_photo_url(src: str) -> str:
    """
    Rewrite a googleusercontent thumbnail URL to its high resolution variant.

    Example:
        ".../p/AF1Qip=w80-h106-k-no" -> ".../p/AF1Qip=w2048-h2048-k-no"
    """
    return re.sub(PHOTO_SIZE_PATTERN, PHOTO_HIGH_RES_TOKEN, src, count=1)


def ordered_unique(values: Iterable[str]) -> List[str]:
    """De-duplicate while keeping first-seen order."""
    return list(dict.fromkeys(v for v in values if v))
