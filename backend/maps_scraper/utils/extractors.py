"""
Data extraction utilities for scrapers.

Extraction rules are small callables applied to a parsed page snapshot.
Each rule returns a value or None; fields list their rules in priority order
and the first non-empty result wins, so markup variance is absorbed by the
rule lists in config.py instead of per-field branching.
"""

import re
from dataclasses import dataclass
from typing import Optional, List, Sequence
from bs4 import BeautifulSoup, Tag

from .normalizers import clean_text, ordered_unique
from ..base import GpsPoint

EMAIL_PATTERN = r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}'
PHONE_PATTERN = r'(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}'
# Place URLs carry coordinates as ...!8m2!3d40.7484!4d-73.9857...
GPS_PATTERN = r'!3d(-?\d+(?:\.\d+)?)!4d(-?\d+(?:\.\d+)?)'
PLACE_ID_PATTERN = r'/place/([^/?#]+)'
SITE_KEY_PATTERN = r'''sitekey['"]?\s*[:=]\s*['"]([\w-]{20,})['"]'''


class ExtractionRule:
    """Base class for extraction rules. Subclasses implement apply()."""

    def apply(self, root: Tag) -> Optional[str]:
        raise NotImplementedError

    def __call__(self, root: Tag) -> Optional[str]:
        try:
            return self.apply(root)
        except (AttributeError, TypeError, ValueError):
            return None


@dataclass(frozen=True)
class SelectorText(ExtractionRule):
    """Text content of the first element matching a CSS selector."""
    selector: str

    def apply(self, root: Tag) -> Optional[str]:
        node = root.select_one(self.selector)
        if node is None:
            return None
        return clean_text(node.get_text(' ', strip=True))


@dataclass(frozen=True)
class SelectorAttr(ExtractionRule):
    """
    Attribute of the first element matching a CSS selector.

    When pattern is given, the first capture group of the match is returned.
    """
    selector: str
    attr: str
    pattern: Optional[str] = None

    def apply(self, root: Tag) -> Optional[str]:
        node = root.select_one(self.selector)
        if node is None:
            return None
        value = node.get(self.attr)
        if isinstance(value, list):
            value = ' '.join(value)
        value = clean_text(value)
        if value and self.pattern:
            match = re.search(self.pattern, value, re.IGNORECASE)
            return clean_text(match.group(1)) if match else None
        return value


def first_match(rules: Sequence[ExtractionRule], root: Tag) -> Optional[str]:
    """Apply rules in order and return the first non-empty result."""
    for rule in rules:
        value = rule(root)
        if value:
            return value
    return None


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or '', 'html.parser')


def extract_emails(text: str) -> List[str]:
    """Return unique emails discovered in a text blob, in order of appearance."""
    if not text:
        return []
    return ordered_unique(m.group(0) for m in re.finditer(EMAIL_PATTERN, text))


def extract_phone_numbers(text: str) -> List[str]:
    """Return unique phone-number-shaped substrings, in order of appearance."""
    if not text:
        return []
    return ordered_unique(m.group(0).strip() for m in re.finditer(PHONE_PATTERN, text))


def extract_gps(url: Optional[str]):
    """
    Parse the !3d<lat>!4d<lng> pair embedded in a place URL.

    Returns:
        GpsPoint or None when the URL carries no coordinates
    """
    if not url:
        return None
    match = re.search(GPS_PATTERN, url)
    if not match:
        return None
    try:
        return GpsPoint(lat=float(match.group(1)), lng=float(match.group(2)))
    except ValueError:
        return None


def extract_place_id(url: Optional[str]) -> str:
    """Return the /place/<id>/ URL segment, or 'unknown'."""
    if url:
        match = re.search(PLACE_ID_PATTERN, url)
        if match:
            return match.group(1)
    return 'unknown'


def extract_site_key(soup: BeautifulSoup, html: str) -> Optional[str]:
    """Find the reCAPTCHA site key on a challenge page."""
    node = soup.select_one('[data-sitekey]')
    if node and node.get('data-sitekey'):
        return node['data-sitekey']
    match = re.search(SITE_KEY_PATTERN, html or '')
    if match:
        return match.group(1)
    return None
