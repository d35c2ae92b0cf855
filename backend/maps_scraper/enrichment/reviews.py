"""
Review collection for a loaded place page.

Reviews are lazy-loaded into a scrollable panel. The collector expands
truncated texts, then alternates snapshot parsing and panel scrolling until
enough unique reviews are gathered or the panel stops producing new ones.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from ..base import Review, ReviewResponse
from ..config import (
    MORE_BUTTON_DELAY,
    MORE_BUTTON_SELECTORS,
    REVIEW_CONTAINER_SELECTORS,
    REVIEW_IDLE_THRESHOLD,
    REVIEW_MAX_ROUNDS,
    REVIEW_RESPONSE_RULES,
    REVIEW_RESPONSE_SELECTOR,
    REVIEW_RULES,
    REVIEW_SCROLL_INCREMENT,
    REVIEW_STALL_LIMIT,
    REVIEWS_PANEL_SELECTOR,
    REVIEWS_TAB_SELECTORS,
)
from ..convergence import ConvergenceDetector
from ..utils.extractors import first_match, parse_html
from ..utils.normalizers import parse_star_count

logger = logging.getLogger(__name__)

REVIEW_SCROLL_SCRIPT = """
({selector, increment}) => {
    const panel = document.querySelector(selector);
    if (panel) {
        panel.scrollBy(0, increment);
    } else {
        window.scrollBy(0, increment);
    }
}
"""

REVIEW_CAN_SCROLL_SCRIPT = """
(selector) => {
    const panel = document.querySelector(selector);
    if (panel) {
        return panel.scrollHeight > panel.scrollTop + panel.clientHeight + 100;
    }
    return window.innerHeight + window.scrollY < document.body.scrollHeight - 100;
}
"""


def parse_review(element: Tag) -> Optional[Review]:
    """
    Parse one rendered review container.

    Returns:
        Review, or None when it has neither author nor text
    """
    review = Review(
        author=first_match(REVIEW_RULES['author'], element),
        rating=parse_star_count(first_match(REVIEW_RULES['rating'], element)),
        text=first_match(REVIEW_RULES['text'], element),
        date=first_match(REVIEW_RULES['date'], element),
    )

    response_node = element.select_one(REVIEW_RESPONSE_SELECTOR)
    if response_node is not None:
        review.response = ReviewResponse(
            owner=first_match(REVIEW_RESPONSE_RULES['owner'], response_node),
            text=first_match(REVIEW_RESPONSE_RULES['text'], response_node),
            date=first_match(REVIEW_RESPONSE_RULES['date'], response_node),
        )

    if review.is_empty:
        return None
    return review


def review_containers(soup: BeautifulSoup) -> List[Tag]:
    for selector in REVIEW_CONTAINER_SELECTORS:
        nodes = soup.select(selector)
        if nodes:
            return nodes
    return []


def extract_reviews(soup: BeautifulSoup) -> List[Review]:
    """All reviews rendered in a snapshot. A review that fails to parse is left out."""
    reviews = []
    for element in review_containers(soup):
        try:
            review = parse_review(element)
        except Exception as e:
            logger.debug(f"Skipping unparsable review: {e}")
            continue
        if review is not None:
            reviews.append(review)
    return reviews


class ReviewCollector:
    """
    Args:
        max_reviews: Upper bound on returned reviews
        scroll_delay: Seconds to wait after each panel scroll
        idle_threshold: Rounds without new rendered reviews before stopping
            (only once the panel cannot scroll further)
    """

    def __init__(
        self,
        max_reviews: int = 50,
        scroll_delay: float = 1.0,
        idle_threshold: int = REVIEW_IDLE_THRESHOLD,
        stall_limit: Optional[int] = REVIEW_STALL_LIMIT,
        max_rounds: Optional[int] = REVIEW_MAX_ROUNDS,
    ):
        self.max_reviews = max_reviews
        self.scroll_delay = scroll_delay
        self.idle_threshold = idle_threshold
        self.stall_limit = stall_limit
        self.max_rounds = max_rounds

    async def open_reviews_tab(self, page):
        """Switch the place panel to its reviews tab if one is rendered."""
        for selector in REVIEWS_TAB_SELECTORS:
            try:
                tabs = await page.query_selector_all(selector)
                if tabs:
                    await tabs[0].click()
                    await asyncio.sleep(self.scroll_delay)
                    return
            except Exception as e:
                logger.debug(f"Reviews tab {selector} not clickable: {e}")

    async def expand_more_buttons(self, page) -> int:
        """Click every "More" control once. Returns how many clicks succeeded."""
        clicked = 0
        for selector in MORE_BUTTON_SELECTORS:
            try:
                buttons = await page.query_selector_all(selector)
            except Exception as e:
                logger.debug(f"Lookup failed for {selector}: {e}")
                continue
            for button in buttons:
                try:
                    await button.click()
                    clicked += 1
                    await asyncio.sleep(MORE_BUTTON_DELAY)
                except Exception as e:
                    logger.debug(f"More button not clickable: {e}")
            if buttons:
                break
        return clicked

    async def collect(self, page) -> List[Review]:
        """
        Gather up to max_reviews unique reviews from the page.

        Returns:
            Reviews in first-seen order, deduplicated by (author, text[:50])
        """
        if self.max_reviews <= 0:
            return []

        await self.open_reviews_tab(page)
        await self.expand_more_buttons(page)

        collected: Dict[Tuple[str, str], Review] = {}
        detector = ConvergenceDetector(
            idle_threshold=self.idle_threshold,
            max_rounds=self.max_rounds,
            stall_limit=self.stall_limit,
        )

        while True:
            rendered = extract_reviews(parse_html(await page.content()))
            for review in rendered:
                collected.setdefault(review.dedup_key, review)
            detector.record(len(rendered))

            if len(collected) >= self.max_reviews:
                break

            await page.evaluate(
                REVIEW_SCROLL_SCRIPT, {'selector': REVIEWS_PANEL_SELECTOR, 'increment': REVIEW_SCROLL_INCREMENT}
            )
            await asyncio.sleep(self.scroll_delay)
            can_scroll = await page.evaluate(REVIEW_CAN_SCROLL_SCRIPT, REVIEWS_PANEL_SELECTOR)
            detector.update_can_scroll(bool(can_scroll))

            if detector.has_converged():
                logger.debug(f"Review panel converged after {detector.rounds} rounds")
                break

        reviews = list(collected.values())[:self.max_reviews]
        logger.info(f"Collected {len(reviews)} reviews")
        return reviews
