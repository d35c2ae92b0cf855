"""Shared utilities for scrapers."""

from .normalizers import (
    clean_text,
    first_line,
    parse_rating,
    parse_count,
    upgrade_photo_url,
    ordered_unique,
)
from .extractors import (
    ExtractionRule,
    SelectorText,
    SelectorAttr,
    first_match,
    parse_html,
    extract_emails,
    extract_phone_numbers,
    extract_gps,
    extract_place_id,
)

__all__ = [
    'clean_text',
    'first_line',
    'parse_rating',
    'parse_count',
    'upgrade_photo_url',
    'ordered_unique',
    'ExtractionRule',
    'SelectorText',
    'SelectorAttr',
    'first_match',
    'parse_html',
    'extract_emails',
    'extract_phone_numbers',
    'extract_gps',
    'extract_place_id',
]
