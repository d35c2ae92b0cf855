"""
Google Maps page handlers.

ListingDiscoverer walks the results feed of a search and returns place
references. DetailExtractor reads a place page into a base PlaceRecord.

Both work on HTML snapshots from page.content(), parsed with BeautifulSoup,
so they can be exercised against canned markup.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from bs4 import Tag

from ..base import ListingItem, PlaceRecord
from ..config import (
    DETAIL_RULES,
    FEED_END_SELECTOR,
    FEED_SELECTOR,
    LISTING_ANCHOR_SELECTOR,
    LISTING_SCROLL_INCREMENT,
    LISTING_TITLE_SELECTORS,
    MAX_SCROLL_ATTEMPTS,
)
from ..convergence import ConvergenceDetector
from ..utils.extractors import ExtractionRule, first_match, parse_html, extract_gps
from ..utils.normalizers import absolute_url, clean_text, first_line, parse_count, parse_rating

logger = logging.getLogger(__name__)

# Scrolls the results feed (or the window when no feed is rendered) and
# reports whether more distance is left.
FEED_SCROLL_SCRIPT = """
({selector, increment}) => {
    const feed = document.querySelector(selector);
    if (feed) {
        feed.scrollBy(0, increment);
        return feed.scrollHeight > feed.scrollTop + feed.clientHeight + 100;
    }
    window.scrollBy(0, increment);
    return window.innerHeight + window.scrollY < document.body.scrollHeight - 100;
}
"""


def listing_title(anchor: Tag) -> Optional[str]:
    """
    Title of a results-feed entry.

    Tries the known title sub-selectors, then the anchor's aria-label, then
    the first line of the anchor text.
    """
    for selector in LISTING_TITLE_SELECTORS:
        node = anchor.select_one(selector)
        if node is not None:
            text = clean_text(node.get_text(' ', strip=True))
            if text:
                return text
    label = clean_text(anchor.get('aria-label'))
    if label:
        return label
    return first_line(anchor.get_text('\n'))


class ListingDiscoverer:
    """
    Search-phase scroll loop.

    Args:
        settle_delay: Seconds to wait after each feed scroll
        max_scroll_attempts: Hard bound on scroll rounds
    """

    def __init__(self, settle_delay: float = 2.0, max_scroll_attempts: int = MAX_SCROLL_ATTEMPTS):
        self.settle_delay = settle_delay
        self.max_scroll_attempts = max_scroll_attempts

    def collect_visible(self, soup, base_url: str, seen: Dict[str, ListingItem]) -> int:
        """Add unseen anchors from one snapshot to `seen`. Returns the rendered anchor count."""
        anchors = soup.select(LISTING_ANCHOR_SELECTOR)
        for anchor in anchors:
            url = absolute_url(anchor.get('href'), base_url)
            if not url or url in seen:
                continue
            seen[url] = ListingItem(title=listing_title(anchor) or '', url=url)
        return len(anchors)

    async def discover(self, page, max_places: int) -> List[ListingItem]:
        """
        Scroll the results feed until max_places unique listings are seen,
        the feed ends, or the scroll budget runs out.

        Returns:
            At most max_places ListingItems in discovery order
        """
        seen: Dict[str, ListingItem] = {}
        detector = ConvergenceDetector(max_rounds=self.max_scroll_attempts)

        while True:
            soup = parse_html(await page.content())
            rendered = self.collect_visible(soup, page.url, seen)
            logger.debug(f"Feed round {detector.rounds + 1}: {rendered} rendered, {len(seen)} unique")

            if len(seen) >= max_places:
                break
            if soup.select_one(FEED_END_SELECTOR) is not None:
                logger.info(f"Reached end of results list with {len(seen)} listings")
                break

            detector.record(rendered)
            can_scroll = await page.evaluate(
                FEED_SCROLL_SCRIPT, {'selector': FEED_SELECTOR, 'increment': LISTING_SCROLL_INCREMENT}
            )
            detector.update_can_scroll(bool(can_scroll))
            if detector.has_converged():
                break
            await asyncio.sleep(self.settle_delay)

        return list(seen.values())[:max_places]


class DetailExtractor:
    """Reads a loaded place page into a base PlaceRecord."""

    def __init__(self, rules: Optional[Dict[str, Sequence[ExtractionRule]]] = None):
        self.rules = rules or DETAIL_RULES

    def field(self, name: str, soup) -> Optional[str]:
        return first_match(self.rules.get(name, ()), soup)

    async def extract(self, page, listing: Optional[ListingItem] = None) -> PlaceRecord:
        """
        Args:
            page: Loaded place page
            listing: Reference discovered during search, used as title/url fallback

        Returns:
            PlaceRecord with scraped_at set at completion
        """
        soup = parse_html(await page.content())
        url = page.url or (listing.url if listing else '')

        title = self.field('title', soup)
        if not title and listing is not None:
            title = listing.title or None

        record = PlaceRecord(
            title=title,
            url=url,
            address=self.field('address', soup),
            phone=self.field('phone', soup),
            website=absolute_url(self.field('website', soup), url),
            rating=parse_rating(self.field('rating', soup)),
            review_count=parse_count(self.field('review_count', soup)),
            gps=extract_gps(url),
        )
        record.scraped_at = datetime.now(timezone.utc)
        return record
