"""
Process-scoped run context.

Everything a run needs (input, settings, proxy handle, browser, storages,
CAPTCHA guard) is built once here and handed to the orchestrator. Teardown
happens once when the context exits.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from crawlee.proxy_configuration import ProxyConfiguration

from .captcha import ApifyCaptchaSolver, CaptchaGuard, CaptchaSolver
from .config import ScrapeInput
from .crawlers.browser import BrowserSession
from .crawlers.static import PhotoFetcher
from .proxy import ApifyProxyIssuer, ProxyIssuer, ProxyProvisioner
from .settings import Settings
from .storage import BlobStore, DatasetSink, KeyValueBlobStore, Sink

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    scrape_input: ScrapeInput
    settings: Settings
    browser: BrowserSession
    guard: CaptchaGuard
    sink: Sink
    blob_store: BlobStore
    photo_fetcher: PhotoFetcher
    proxy: Optional[ProxyConfiguration] = None

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        scrape_input: ScrapeInput,
        settings: Settings,
        proxy_issuer: Optional[ProxyIssuer] = None,
        solver: Optional[CaptchaSolver] = None,
    ) -> AsyncIterator['RunContext']:
        """
        Build the run's collaborators.

        Raises:
            ConfigurationError: Invalid proxy country or missing credentials,
                before any navigation happens
        """
        proxy_config = scrape_input.proxy_config()
        captcha_config = scrape_input.captcha_config()

        provisioner = ProxyProvisioner(proxy_config, proxy_issuer or ApifyProxyIssuer(settings))
        proxy = await provisioner.provision()

        if solver is None and captcha_config.enabled:
            solver = ApifyCaptchaSolver(settings.apify_token, captcha_config)
        if solver is None:
            logger.info("No CAPTCHA solver configured - challenged items will be dropped")
        guard = CaptchaGuard(solver, captcha_config.max_retries, settings.captcha_retry_base_delay)

        sink = await DatasetSink.open(settings.dataset_name)
        blob_store = await KeyValueBlobStore.open(settings.key_value_store_name)

        photo_proxy = await proxy.new_url() if proxy is not None else None
        photo_fetcher = PhotoFetcher(timeout=settings.photo_fetch_timeout, proxy=photo_proxy)
        browser = BrowserSession(proxy=proxy, headless=settings.headless, user_agent=settings.user_agent)

        try:
            await browser.start()
            yield cls(
                scrape_input=scrape_input,
                settings=settings,
                browser=browser,
                guard=guard,
                sink=sink,
                blob_store=blob_store,
                photo_fetcher=photo_fetcher,
                proxy=proxy,
            )
        finally:
            await browser.close()
            await photo_fetcher.close()
