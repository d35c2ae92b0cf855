"""
Tests for the scrape orchestrator: queueing, caps and per-item isolation.
"""

from unittest.mock import AsyncMock

import pytest

from conftest import FakeBrowser, MemorySink, SequenceSolver
from maps_scraper.base import NetworkTimeoutError
from maps_scraper.captcha import CaptchaGuard
from maps_scraper.config import build_search_url
from maps_scraper.manager import ScrapeOrchestrator

PLACE = 'https://www.google.com/maps/place/Place{0}/data=!3d40.7{0}!4d-73.9{0}'
SEARCH_URL = build_search_url('pizza New York')
BASE_INPUT = {
    'searches': [{'query': 'pizza', 'location': 'New York'}],
    'proxyConfiguration': {'useApifyProxy': False},
}


def search_html(count: int) -> str:
    anchors = ''.join(
        f'<a href="{PLACE.format(i)}"><div class="qBF1Pd">Place {i}</div></a>' for i in range(count)
    )
    return f'<html><body><div role="feed">{anchors}<span class="HlvSq">End</span></div></body></html>'


def place_html(i: int, website: str = '') -> str:
    site = f'<a data-item-id="authority" href="{website}">site</a>' if website else ''
    return (
        '<html><body><div role="main">'
        f'<h1 class="DUwDvf">Place {i}</h1>'
        f'<button data-item-id="address"><div class="Io6YTe">{i} Main St</div></button>'
        f'{site}</div></body></html>'
    )


def routes_for(count: int, **extra) -> dict:
    routes = {SEARCH_URL: search_html(count)}
    routes.update({PLACE.format(i): place_html(i) for i in range(count)})
    routes.update(extra)
    return routes


class TestScrapeOrchestrator:
    async def test_search_then_details(self, make_context):
        sink = MemorySink()
        ctx = make_context(dict(BASE_INPUT), routes_for(3), sink=sink)

        result = await ScrapeOrchestrator(ctx).run()

        assert result.searches == 1
        assert result.listings_found == 3
        assert result.details_enqueued == 3
        assert result.records == 3
        assert result.errors == 0
        assert sorted(r.title for r in sink.records) == ['Place 0', 'Place 1', 'Place 2']
        assert all(r.gps is not None for r in sink.records)
        assert result.completed_at is not None
        # One page per work item, all closed
        assert len(ctx.browser.pages) == 4
        assert all(page.closed for page in ctx.browser.pages)

    async def test_max_places_caps_detail_items(self, make_context):
        """Test that no more than maxPlaces DETAIL items are enqueued."""
        sink = MemorySink()
        ctx = make_context(dict(BASE_INPUT, maxPlaces=2), routes_for(6), sink=sink)

        result = await ScrapeOrchestrator(ctx).run()

        assert result.details_enqueued == 2
        assert result.records == 2
        assert len(sink.records) == 2

    async def test_item_failure_is_isolated(self, make_context):
        """Test that a failing DETAIL item is dropped and the rest complete."""
        failing_url = PLACE.format(1)
        browser = FakeBrowser(routes_for(3), goto_errors={failing_url: RuntimeError("net::ERR_CONNECTION_RESET")})
        sink = MemorySink()
        ctx = make_context(dict(BASE_INPUT), {}, browser=browser, sink=sink)

        result = await ScrapeOrchestrator(ctx).run()

        assert result.records == 2
        assert result.errors == 1
        assert result.error_details[0]['url'] == failing_url
        assert result.error_details[0]['label'] == 'DETAIL'
        assert sorted(r.title for r in sink.records) == ['Place 0', 'Place 2']

    async def test_review_failure_keeps_base_record(self, make_context):
        """Test that a throwing review pipeline still yields the record with reviews=[]."""
        sink = MemorySink()
        ctx = make_context(dict(BASE_INPUT, includeReviews=True, maxPlaces=1), routes_for(1), sink=sink)
        orchestrator = ScrapeOrchestrator(ctx)
        orchestrator.reviews.collect = AsyncMock(side_effect=RuntimeError("panel detached"))

        result = await orchestrator.run()

        [record] = sink.records
        assert record.reviews == []
        assert record.title == 'Place 0'
        assert record.address == '0 Main St'
        assert record.gps is not None
        assert record.scraped_at is not None
        assert result.enrichment_failures == 1
        assert result.errors == 0

    async def test_captcha_without_solver_drops_item(self, make_context):
        challenge = '<html><body><div class="g-recaptcha" data-sitekey="x"></div></body></html>'
        sink = MemorySink()
        ctx = make_context(dict(BASE_INPUT), routes_for(2, **{PLACE.format(0): challenge}), sink=sink)

        result = await ScrapeOrchestrator(ctx).run()

        assert result.records == 1
        assert result.errors == 1
        assert result.error_details[0]['error_type'] == 'CaptchaBlockedError'

    async def test_captcha_solved_then_extracted(self, make_context):
        challenge = '<html><body><div class="g-recaptcha" data-sitekey="x"></div></body></html>'
        browser = FakeBrowser({SEARCH_URL: challenge})
        solver = SequenceSolver(['token'])
        ctx = make_context(dict(BASE_INPUT), {}, browser=browser, guard=CaptchaGuard(solver, base_delay=0))

        result = await ScrapeOrchestrator(ctx).run()

        # The fake page keeps serving the challenge, the guard only warns and carries on
        assert len(solver.calls) == 1
        assert result.errors == 0

    async def test_handler_timeout(self, make_context):
        browser = FakeBrowser(routes_for(1), goto_delay=0.2)
        ctx = make_context(dict(BASE_INPUT, requestHandlerTimeoutSecs=0.05), {}, browser=browser)

        result = await ScrapeOrchestrator(ctx).run()

        assert result.errors == 1
        assert result.error_details[0]['error_type'] == NetworkTimeoutError.__name__

    async def test_contact_uses_secondary_page(self, make_context):
        website = 'https://place0.example.com/'
        routes = routes_for(1, **{
            PLACE.format(0): place_html(0, website),
            website: '<html><body>Mail hi@place0.example.com</body></html>',
        })
        sink = MemorySink()
        ctx = make_context(dict(BASE_INPUT, extractContactInfo=True), routes, sink=sink)

        await ScrapeOrchestrator(ctx).run()

        [record] = sink.records
        assert record.contact_info.emails == ['hi@place0.example.com']
        detail_page = ctx.browser.pages[1]
        [contact_page] = detail_page.context.opened
        assert contact_page.visited == [website]
        assert contact_page.closed

    async def test_contact_failure_degrades_to_empty(self, make_context):
        website = 'https://down.example.com/'
        routes = routes_for(1, **{PLACE.format(0): place_html(0, website)})
        browser = FakeBrowser(routes, goto_errors={website: NetworkTimeoutError("timed out")})
        sink = MemorySink()
        ctx = make_context(dict(BASE_INPUT, extractContactInfo=True), {}, browser=browser, sink=sink)

        result = await ScrapeOrchestrator(ctx).run()

        [record] = sink.records
        assert record.contact_info.to_dict() == {'emails': [], 'socialMedia': {}, 'phoneNumbers': []}
        assert result.enrichment_failures == 1

    async def test_challenged_website_degrades_contact(self, make_context):
        """Test that a CAPTCHA on the place website empties contact info but keeps the record."""
        website = 'https://guarded.example.com/'
        routes = routes_for(1, **{
            PLACE.format(0): place_html(0, website),
            website: '<html><body>hi@guarded.example.com<div class="g-recaptcha"></div></body></html>',
        })
        sink = MemorySink()
        ctx = make_context(dict(BASE_INPUT, extractContactInfo=True), routes, sink=sink)

        result = await ScrapeOrchestrator(ctx).run()

        [record] = sink.records
        assert record.contact_info.to_dict() == {'emails': [], 'socialMedia': {}, 'phoneNumbers': []}
        assert result.enrichment_failures == 1
        assert result.errors == 0
        [contact_page] = ctx.browser.pages[1].context.opened
        assert contact_page.closed

    @pytest.mark.parametrize("requested, expected", [(3, 3), (50, 20), (0, 1)])
    def test_pool_size_bounded_by_ceiling(self, make_context, requested, expected):
        data = dict(BASE_INPUT)
        if requested:
            data['maxConcurrency'] = requested
        ctx = make_context(data, {})
        if not requested:
            ctx.settings = ctx.settings.model_copy(update={'max_concurrency_ceiling': 1})

        assert ScrapeOrchestrator(ctx).pool_size == expected
