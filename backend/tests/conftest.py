"""
Pytest configuration and fixtures for the Google Maps scraper tests.

No browser is started: FakePage serves canned HTML and answers the
evaluate() scripts the scraper sends.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from maps_scraper.base import PhotoFetchFailure
from maps_scraper.captcha import CaptchaGuard
from maps_scraper.config import load_input
from maps_scraper.context import RunContext
from maps_scraper.settings import Settings


class FakeElement:
    """Clickable element handle."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.clicks = 0

    async def click(self):
        if self.fail:
            raise RuntimeError("Element is not clickable")
        self.clicks += 1


class FakeContext:
    def __init__(self, page_factory: Callable[[], 'FakePage']):
        self.page_factory = page_factory
        self.opened: List['FakePage'] = []

    async def new_page(self) -> 'FakePage':
        page = self.page_factory()
        self.opened.append(page)
        return page


class FakePage:
    """
    Stand-in for a Playwright page.

    Args:
        snapshots: HTML returned by successive content() calls (the last one repeats)
        url: Current page URL
        routes: URL -> HTML; when given, content() serves the route of the current URL
        evaluate_results: script -> value, or callable(arg) -> value
        elements: selector -> element handles for query_selector_all()
        goto_errors: URL -> exception raised by goto()
        goto_delay: Seconds goto() sleeps before returning
    """

    def __init__(
        self,
        snapshots: Optional[List[str]] = None,
        url: str = 'https://www.google.com/maps',
        routes: Optional[Dict[str, str]] = None,
        evaluate_results: Optional[Dict[str, Any]] = None,
        elements: Optional[Dict[str, List[FakeElement]]] = None,
        goto_errors: Optional[Dict[str, Exception]] = None,
        goto_delay: float = 0,
    ):
        self.snapshots = list(snapshots or ['<html><body></body></html>'])
        self.url = url
        self.routes = routes
        self.evaluate_results = evaluate_results or {}
        self.elements = elements or {}
        self.goto_errors = goto_errors or {}
        self.goto_delay = goto_delay
        self.content_calls = 0
        self.evaluate_calls: List[Tuple[str, Any]] = []
        self.visited: List[str] = []
        self.closed = False
        self.context = FakeContext(self._sibling)

    def _sibling(self) -> 'FakePage':
        return FakePage(routes=self.routes, goto_errors=self.goto_errors)

    async def goto(self, url: str, **kwargs):
        if self.goto_delay:
            await asyncio.sleep(self.goto_delay)
        if url in self.goto_errors:
            raise self.goto_errors[url]
        self.url = url
        self.visited.append(url)
        return None

    async def content(self) -> str:
        self.content_calls += 1
        if self.routes is not None:
            return self.routes.get(self.url, '<html><body></body></html>')
        index = min(self.content_calls - 1, len(self.snapshots) - 1)
        return self.snapshots[index]

    async def evaluate(self, script: str, arg: Any = None):
        self.evaluate_calls.append((script, arg))
        result = self.evaluate_results.get(script)
        if callable(result):
            return result(arg)
        return result

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        return self.elements.get(selector, [])

    async def close(self):
        self.closed = True

    def calls_to(self, script: str) -> int:
        return sum(1 for s, _ in self.evaluate_calls if s == script)


class FakeBrowser:
    """BrowserSession double handing out routed FakePages."""

    def __init__(self, routes: Dict[str, str], goto_errors: Optional[Dict[str, Exception]] = None, goto_delay: float = 0):
        self.routes = routes
        self.goto_errors = goto_errors or {}
        self.goto_delay = goto_delay
        self.pages: List[FakePage] = []

    @asynccontextmanager
    async def page(self):
        page = FakePage(routes=self.routes, goto_errors=self.goto_errors, goto_delay=self.goto_delay)
        self.pages.append(page)
        try:
            yield page
        finally:
            await page.close()

    async def close(self):
        pass


class MemorySink:
    def __init__(self):
        self.records = []

    async def append(self, record):
        self.records.append(record)


class MemoryBlobStore:
    def __init__(self):
        self.blobs: Dict[str, Tuple[bytes, str]] = {}

    async def put(self, key: str, data: bytes, content_type: str):
        self.blobs[key] = (data, content_type)


class FakeFetcher:
    """PhotoFetcher double. URLs listed in `failing` raise PhotoFetchFailure."""

    def __init__(self, failing: Optional[List[str]] = None):
        self.failing = set(failing or [])
        self.fetched: List[str] = []

    async def fetch(self, url: str):
        self.fetched.append(url)
        if url in self.failing:
            raise PhotoFetchFailure(url, "HTTP 404")
        return b'\xff\xd8\xff', 'image/jpeg'

    async def close(self):
        pass


class SequenceSolver:
    """CAPTCHA solver returning/raising the given outcomes in order."""

    def __init__(self, outcomes: List[Any]):
        self.outcomes = list(outcomes)
        self.calls: List[Tuple[str, Optional[str]]] = []

    async def solve(self, page_url: str, site_key: Optional[str]) -> str:
        self.calls.append((page_url, site_key))
        outcome = self.outcomes[len(self.calls) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def test_settings():
    """Settings with every delay set to zero."""
    return Settings(
        scroll_settle_delay=0,
        review_scroll_delay=0,
        captcha_retry_base_delay=0,
        contact_navigation_timeout=5,
    )


@pytest.fixture
def make_context(test_settings):
    """Build a RunContext around fakes: make_context(input_dict, routes, **overrides)."""

    def _make(input_data: Dict, routes: Dict[str, str], **overrides) -> RunContext:
        browser = overrides.pop('browser', None) or FakeBrowser(routes)
        return RunContext(
            scrape_input=load_input(input_data),
            settings=overrides.pop('settings', test_settings),
            browser=browser,
            guard=overrides.pop('guard', CaptchaGuard(None)),
            sink=overrides.pop('sink', MemorySink()),
            blob_store=overrides.pop('blob_store', MemoryBlobStore()),
            photo_fetcher=overrides.pop('photo_fetcher', FakeFetcher()),
        )

    return _make
