"""
Browser session for Google Maps.

Uses Playwright Chromium with the same hardening as a regular stealth crawl
(automation flag off, realistic viewport and user agent). One browser is
shared by the whole run; every work item gets its own context and page.
"""

import asyncio
import random
import logging
from contextlib import asynccontextmanager
from typing import Optional, Dict, AsyncIterator
from urllib.parse import urlparse, unquote

from playwright.async_api import (
    async_playwright,
    Browser,
    Page,
    TimeoutError as PlaywrightTimeoutError,
)
from crawlee.proxy_configuration import ProxyConfiguration

from ..base import NetworkTimeoutError

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--disable-dev-shm-usage',
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-background-timer-throttling',
    '--disable-backgrounding-occluded-windows',
    '--disable-renderer-backgrounding',
    '--disable-gpu',
]

STEALTH_INIT_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined
    });

    Object.defineProperty(navigator, 'languages', {
        get: () => ['en-US', 'en']
    });
"""


def playwright_proxy(proxy_url: Optional[str]) -> Optional[Dict[str, str]]:
    """
    Convert a proxy URL into Playwright's proxy settings.

    Example:
        "http://groups-RESIDENTIAL:pw@proxy.apify.com:8000" ->
        {'server': 'http://proxy.apify.com:8000', 'username': 'groups-RESIDENTIAL', 'password': 'pw'}
    """
    if not proxy_url:
        return None
    parsed = urlparse(proxy_url)
    server = f"{parsed.scheme or 'http'}://{parsed.hostname}"
    if parsed.port:
        server += f":{parsed.port}"
    proxy = {'server': server}
    if parsed.username:
        proxy['username'] = unquote(parsed.username)
    if parsed.password:
        proxy['password'] = unquote(parsed.password)
    return proxy


async def navigate(page: Page, url: str, timeout_secs: float):
    """
    Navigate and wait for DOMContentLoaded.

    Raises:
        NetworkTimeoutError: If navigation exceeds timeout_secs
    """
    try:
        return await page.goto(url, wait_until='domcontentloaded', timeout=int(timeout_secs * 1000))
    except PlaywrightTimeoutError as e:
        raise NetworkTimeoutError(f"Navigation to {url} timed out after {timeout_secs:.0f}s") from e


class BrowserSession:
    """
    Shared Chromium instance handing out isolated pages.

    Usage:
        async with BrowserSession(proxy=handle) as session:
            async with session.page() as page:
                await navigate(page, url, 60)
    """

    def __init__(
        self,
        proxy: Optional[ProxyConfiguration] = None,
        headless: bool = True,
        user_agent: Optional[str] = None,
    ):
        self.proxy = proxy
        self.headless = headless
        self.user_agent = user_agent
        self._playwright = None
        self._browser: Optional[Browser] = None

    async def start(self):
        """Launch Chromium, routed through the proxy handle when one was issued."""
        if self._browser is not None:
            return

        proxy_settings = None
        if self.proxy is not None:
            proxy_settings = playwright_proxy(await self.proxy.new_url())

        self._playwright = await async_playwright().start()
        logger.debug("Launching Chromium browser...")
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=LAUNCH_ARGS,
                proxy=proxy_settings,
                handle_sigint=False,
                handle_sigterm=False,
                handle_sighup=False,
            )
        except Exception as e:
            logger.error(f"Failed to launch browser: {e}")
            await self.close()
            raise

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Fresh context + page for one work item, closed on exit."""
        if self._browser is None:
            await self.start()

        context = await self._browser.new_context(
            viewport={'width': 1920 + random.randint(0, 100), 'height': 1080},
            user_agent=self.user_agent,
            locale='en-US',
            ignore_https_errors=True,
            extra_http_headers={'Accept-Language': 'en-US,en;q=0.9'},
        )
        await context.add_init_script(STEALTH_INIT_SCRIPT)
        page = await context.new_page()
        try:
            yield page
        finally:
            await self._close_quietly(context.close(), "context")

    async def _close_quietly(self, closing, what: str, timeout: float = 2.0):
        try:
            await asyncio.wait_for(closing, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{what.capitalize()} close timed out, forcing cleanup")
        except Exception as e:
            logger.debug(f"Error closing {what}: {e}")

    async def close(self):
        """Close the browser and stop Playwright."""
        if self._browser:
            await self._close_quietly(self._browser.close(), "browser")
            self._browser = None
        if self._playwright:
            await self._close_quietly(self._playwright.stop(), "playwright")
            self._playwright = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
