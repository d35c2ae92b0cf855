"""
CAPTCHA interrupt handling.

Every page load passes through CaptchaGuard.ensure_clear():

    CLEAN -> CHECK -> CLEAN | CHALLENGED
    CHALLENGED -> SOLVING -> CLEAN | BLOCKED

Solving is delegated to an external solver behind a narrow
solve(page_url, site_key) -> token contract; the default implementation runs
the Apify anti-captcha actor.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from apify_client import ApifyClient

from .base import CaptchaBlockedError, CaptchaSolveExhaustedError, ConfigurationError
from .config import CaptchaConfig, CAPTCHA_WIDGET_SELECTORS
from .utils.extractors import parse_html, extract_site_key

logger = logging.getLogger(__name__)

GRECAPTCHA_PRESENT_SCRIPT = "() => !!window.grecaptcha"

INJECT_TOKEN_SCRIPT = """
(token) => {
    const textarea = document.querySelector('textarea[name="g-recaptcha-response"]');
    if (textarea) {
        textarea.value = token;
        textarea.dispatchEvent(new Event('input', { bubbles: true }));
    }
    window.__recaptchaToken = token;
}
"""


class CaptchaSolver(Protocol):
    async def solve(self, page_url: str, site_key: Optional[str]) -> str:
        ...


class ApifyCaptchaSolver:
    """Runs an Apify anti-captcha actor and reads the token from its dataset."""

    def __init__(self, api_token: str, config: CaptchaConfig):
        if not api_token:
            raise ConfigurationError("APIFY_TOKEN must be set to call the CAPTCHA solver actor")
        self._client = ApifyClient(api_token)
        self.config = config

    async def solve(self, page_url: str, site_key: Optional[str]) -> str:
        run_input: Dict[str, Any] = {
            'startUrls': [{'url': page_url}],
            'antiCaptchaApiKey': self.config.api_key,
        }
        if site_key:
            run_input['siteKey'] = site_key

        items = await self._run_actor(run_input)
        solution = (items[0].get('solution') or {}) if items else {}
        token = solution.get('gRecaptchaResponse') or solution.get('token')
        if not token:
            raise RuntimeError("No solution token found in actor response")
        return token

    async def _run_actor(self, run_input: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Run the solver actor in a thread pool (client is sync)."""

        def _sync_run() -> List[Dict[str, Any]]:
            run = self._client.actor(self.config.solver_id).call(run_input=run_input)
            if run is None:
                return []
            return list(self._client.dataset(run["defaultDatasetId"]).iterate_items())

        return await asyncio.to_thread(_sync_run)


class CaptchaGuard:
    """
    Detects challenges on a loaded page and resolves them through the solver.

    Args:
        solver: External solver, or None when no API key is configured
        max_retries: Solve attempts before giving up
        base_delay: Seconds; retry k waits k * base_delay (linear)
    """

    def __init__(self, solver: Optional[CaptchaSolver], max_retries: int = 3, base_delay: float = 2.0):
        self.solver = solver
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay

    async def check(self, page) -> bool:
        """True when the page shows a challenge widget or challenge script/site key."""
        if '/sorry/' in (page.url or ''):
            return True
        soup = parse_html(await page.content())
        for selector in CAPTCHA_WIDGET_SELECTORS:
            if soup.select_one(selector) is not None:
                return True
        try:
            return bool(await page.evaluate(GRECAPTCHA_PRESENT_SCRIPT))
        except Exception as e:
            logger.debug(f"grecaptcha probe failed: {e}")
            return False

    async def ensure_clear(self, page) -> Optional[str]:
        """
        Run the guard state machine for the current page.

        Returns:
            The injected token if a challenge was solved, else None

        Raises:
            CaptchaBlockedError: Challenge present and no solver configured
            CaptchaSolveExhaustedError: Every solve attempt failed
        """
        if not await self.check(page):
            return None

        logger.warning(f"CAPTCHA detected on {page.url}")
        if self.solver is None:
            raise CaptchaBlockedError(f"CAPTCHA detected on {page.url} but no solver is configured")

        html = await page.content()
        site_key = extract_site_key(parse_html(html), html)
        token = await self._solve_with_retries(page.url, site_key)

        await page.evaluate(INJECT_TOKEN_SCRIPT, token)
        if await self.check(page):
            logger.warning(f"Challenge markers still present after token injection on {page.url}")
        else:
            logger.info("CAPTCHA solved, page is clean")
        return token

    async def _solve_with_retries(self, page_url: str, site_key: Optional[str]) -> str:
        last_error: Optional[BaseException] = None
        for attempt in range(self.max_retries):
            if attempt > 0:
                # Linear backoff: attempt x base delay
                await asyncio.sleep(attempt * self.base_delay)
            try:
                token = await self.solver.solve(page_url, site_key)
                if not token:
                    raise RuntimeError("Solver returned an empty token")
                return token
            except Exception as e:
                last_error = e
                logger.warning(f"CAPTCHA solve attempt {attempt + 1}/{self.max_retries} failed: {e}")

        raise CaptchaSolveExhaustedError(self.max_retries, last_error)
