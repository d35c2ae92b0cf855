"""
Scrape orchestrator - owns the work queue and the worker pool.

Usage:
    async with RunContext.open(scrape_input, settings) as ctx:
        result = await ScrapeOrchestrator(ctx).run()

The queue starts with one SEARCH item per configured search. A SEARCH item
enqueues up to maxPlaces DETAIL items; a DETAIL item pushes one record to the
dataset. Any failure inside an item is logged, counted and the item dropped.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, List

from .base import (
    Colors,
    ContactInfo,
    ExtractionPartialFailure,
    NetworkTimeoutError,
    PlaceRecord,
    RunResult,
    WorkItem,
    WorkLabel,
)
from .config import build_search_url
from .context import RunContext
from .crawlers.browser import navigate
from .enrichment import ContactCollector, PhotoCollector, ReviewCollector
from .sites import DetailExtractor, ListingDiscoverer

logger = logging.getLogger(__name__)

# Fields reported in the per-place extraction summary
BASE_FIELDS = ['title', 'address', 'phone', 'website', 'rating', 'review_count', 'gps']


class ScrapeOrchestrator:
    """
    Runs one scrape over a RunContext.

    Args:
        ctx: Process-scoped collaborators (browser, guard, storages)
    """

    def __init__(self, ctx: RunContext):
        self.ctx = ctx
        self.input = ctx.scrape_input
        self.settings = ctx.settings
        self.logger = logging.getLogger('scraper.google_maps')

        self.discoverer = ListingDiscoverer(settle_delay=self.settings.scroll_settle_delay)
        self.extractor = DetailExtractor()
        self.reviews = ReviewCollector(
            max_reviews=self.input.max_reviews,
            scroll_delay=self.settings.review_scroll_delay,
        )
        self.photos = PhotoCollector(ctx.photo_fetcher, ctx.blob_store)
        self.contact = ContactCollector()

        self.result = RunResult(started_at=datetime.now(timezone.utc))
        self._processed = 0

    @property
    def pool_size(self) -> int:
        return max(1, min(self.input.max_concurrency, self.settings.max_concurrency_ceiling))

    async def run(self) -> RunResult:
        """Process the queue to exhaustion and return the run statistics."""
        searches = self.input.search_requests()
        self.result.searches = len(searches)

        queue: asyncio.Queue = asyncio.Queue()
        for search in searches:
            queue.put_nowait(WorkItem.for_search(search, build_search_url(search.search_term)))

        self.logger.info(
            f"Starting scrape: {len(searches)} searches, maxPlaces={self.input.max_places}, "
            f"{self.pool_size} workers"
        )

        workers = [asyncio.create_task(self._worker(queue)) for _ in range(self.pool_size)]
        try:
            await queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        self.result.finish()
        duration = self.result.duration_seconds or 0
        self.logger.info(
            f"✅ Scrape complete in {duration:.1f}s: {self.result.records} records, "
            f"{self.result.errors} errors, {self.result.enrichment_failures} enrichment failures"
        )
        return self.result

    async def _worker(self, queue: asyncio.Queue):
        while True:
            item = await queue.get()
            try:
                await self.process(item, queue)
            finally:
                queue.task_done()

    async def process(self, item: WorkItem, queue: asyncio.Queue):
        """Run one work item inside the per-item failure boundary."""
        self._processed += 1
        self.logger.info(f"\n{Colors.cyan('❯❯❯')}")
        self.logger.info(
            f"{Colors.bold(f'[{self._processed}]')} {item.label.value} {Colors.bold(item.name)} "
            f"{Colors.gray(f'({item.url})')}"
        )

        timeout = self.input.request_handler_timeout_secs
        try:
            await asyncio.wait_for(self.handle(item, queue), timeout=timeout)
        except asyncio.TimeoutError:
            self._drop(item, NetworkTimeoutError(f"Handler exceeded {timeout:.0f}s"))
        except Exception as e:
            self._drop(item, e)

    def _drop(self, item: WorkItem, error: BaseException):
        self.result.record_error(item, error)
        self.logger.error(f"   {Colors.red('[ERR]')} {item.name}: {type(error).__name__}: {error}")

    async def handle(self, item: WorkItem, queue: asyncio.Queue):
        async with self.ctx.browser.page() as page:
            if item.label == WorkLabel.SEARCH:
                await self.handle_search(page, item, queue)
            else:
                await self.handle_detail(page, item)

    async def handle_search(self, page, item: WorkItem, queue: asyncio.Queue):
        await navigate(page, item.url, self.input.navigation_timeout_secs)
        await self.ctx.guard.ensure_clear(page)

        listings = await self.discoverer.discover(page, self.input.max_places)
        self.result.listings_found += len(listings)

        for listing in listings[:self.input.max_places]:
            queue.put_nowait(WorkItem.for_listing(listing))
            self.result.details_enqueued += 1

        self.logger.info(f"   {Colors.green('[OK]')} {item.name}: {len(listings)} places queued")

    async def handle_detail(self, page, item: WorkItem):
        guard = self.ctx.guard

        await navigate(page, item.url, self.input.navigation_timeout_secs)
        await guard.ensure_clear(page)

        record = await self.extractor.extract(page, item.listing)

        if self.input.include_reviews:
            await guard.ensure_clear(page)
            record.reviews = await self._degrade('reviews', self.reviews.collect(page), [])

        if self.input.download_photos:
            await guard.ensure_clear(page)
            record.photos = await self._degrade('photos', self.photos.collect(page, record.place_id), [])

        if self.input.extract_contact_info and record.website:
            await guard.ensure_clear(page)
            record.contact_info = await self._degrade(
                'contact', self._collect_contact(page, record.website), ContactInfo()
            )

        await self.ctx.sink.append(record)
        self.result.records += 1

        self.log_record_fields(record)
        self.logger.info(f"   {Colors.green('[OK]')} {record.title or item.name}: saved")

        if self.result.records % 10 == 0:
            self.logger.info(
                f"\n{Colors.bold('Progress')}: {self.result.records} records "
                f"({Colors.red(f'{self.result.errors} errors')}, "
                f"{Colors.yellow(f'{self.result.enrichment_failures} enrichment failures')})"
            )

    async def _collect_contact(self, page, website: str) -> ContactInfo:
        """
        Visit the place's website on a secondary page of the same context.

        A challenge on the website raises here and degrades the contact step only.
        """
        contact_page = await page.context.new_page()
        try:
            await navigate(contact_page, website, self.settings.contact_navigation_timeout)
            await self.ctx.guard.ensure_clear(contact_page)
            return await self.contact.collect(contact_page)
        finally:
            await contact_page.close()

    async def _degrade(self, pipeline: str, step: Awaitable[Any], default: Any) -> Any:
        """Await an enrichment step; on failure log it and return the empty default."""
        try:
            return await step
        except Exception as e:
            failure = ExtractionPartialFailure(pipeline, e)
            self.result.enrichment_failures += 1
            self.logger.warning(f"   {Colors.yellow('[WARN]')} {failure}")
            return default

    def log_record_fields(self, record: PlaceRecord):
        """Log which fields were captured and which are missing."""
        fields: List[str] = list(BASE_FIELDS)
        if self.input.include_reviews:
            fields.append('reviews')
        if self.input.download_photos:
            fields.append('photos')
        if self.input.extract_contact_info:
            fields.append('contact_info')

        captured = [f for f in fields if getattr(record, f) not in (None, [], '')]
        missing = [f for f in fields if f not in captured]

        label = record.title or record.place_id
        if captured:
            self.logger.info(f"   ➤ {label}: {', '.join(captured)}")
        else:
            self.logger.info(f"   ➤ {label}: no data captured")
        if missing:
            self.logger.info(f"   ✘ missing: {', '.join(missing)}")
