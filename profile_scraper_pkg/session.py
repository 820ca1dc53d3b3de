import random
from typing import Hashable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .browser import BrowserHandle, connect_over_cdp, launch_browser, new_context, random_viewport
from .cancellation import CancelToken
from .errors import BrowserLaunchError, ScrapeCancelled
from .identity import IdentityPool
from .models import ScraperSettings
from .navigation import NETWORK_IDLE_WINDOW, RETRY_BACKOFF, simulate_reading
from .scraper_logging import get_logger

logger = get_logger(__name__)


class BrowserSession:
    """One browser per worker, bound to that worker's sticky identity.

    The proxy is read from the identity pool once, at construction; the
    user agent is drawn again on every `build()`.
    """

    def __init__(
        self,
        settings: ScraperSettings,
        identity: IdentityPool,
        session_id: Optional[Hashable],
        token: CancelToken,
    ):
        self.settings = settings
        self.identity = identity
        self.session_id = session_id
        self.token = token
        self.proxy = identity.select_proxy(session_id)

    async def build(self) -> BrowserHandle:
        """Start (or attach to) a browser and open the working page.

        Any failure is fatal for the run: whatever was already started is
        released and `BrowserLaunchError` raised.
        """
        user_agent = self.identity.select_user_agent()
        handle = BrowserHandle(None, None, None, None, owns_browser=not self.settings.use_cdp,
                               proxy=self.proxy, user_agent=user_agent)
        try:
            handle.playwright = await async_playwright().start()
            if self.settings.use_cdp:
                if self.proxy:
                    logger.warning("Proxy ignored for CDP-attached browser", session=self.session_id)
                handle.browser = await connect_over_cdp(handle.playwright, self.settings.cdp_url)
            else:
                handle.browser = await launch_browser(
                    handle.playwright,
                    headless=self.settings.headless,
                    proxy=self.proxy,
                    timeout_ms=self.settings.timeout * 1000,
                )
            handle.context = await new_context(
                handle.browser,
                user_agent=user_agent,
                accept_language=self.settings.accept_language,
                viewport=random_viewport(),
            )
            handle.page = await handle.context.new_page()
        except Exception as e:
            await handle.close()
            raise BrowserLaunchError(f"Could not start browser for session {self.session_id}: {e}") from e
        logger.info("Browser session ready", session=self.session_id, proxy=self.proxy, user_agent=user_agent)
        return handle

    async def fetch_with_retries(self, handle: BrowserHandle, url: str, max_attempts: Optional[int] = None) -> Optional[str]:
        """Navigate, settle, pace and capture the rendered HTML.

        Returns None once `max_attempts` navigation attempts have failed; the
        caller treats that as "unfetchable", which is distinct from a page
        that loaded but turned out to be a block page.
        """
        if max_attempts is None:
            max_attempts = self.settings.max_fetch_attempts
        page = handle.page
        for attempt in range(1, max_attempts + 1):
            self.token.raise_if_cancelled()
            try:
                await page.goto(url, timeout=self.settings.timeout * 1000, wait_until="domcontentloaded")
                await self._wait_for_network_idle(handle)
                await self.simulate_pacing(handle)
                return await page.content()
            except PlaywrightError as e:
                logger.warning("Fetch attempt failed", url=url, attempt=attempt, max_attempts=max_attempts, error=str(e))
                if attempt < max_attempts:
                    logger.info("Retrying", url=url, next_attempt=attempt + 1, max_attempts=max_attempts)
                    await self.token.sleep_between(RETRY_BACKOFF)
        logger.error("Could not fetch page", url=url, attempts=max_attempts)
        return None

    async def simulate_pacing(self, handle: BrowserHandle) -> None:
        """Run the reading simulation; release the browser if cancelled."""
        try:
            await simulate_reading(handle.page, self.token)
        except ScrapeCancelled:
            logger.warning("Scraper interrupted during pacing", session=self.session_id)
            await handle.close()
            raise

    async def _wait_for_network_idle(self, handle: BrowserHandle) -> None:
        # Slow pages that never go idle inside the window are captured as-is.
        window = random.uniform(*NETWORK_IDLE_WINDOW)
        try:
            await handle.page.wait_for_load_state("networkidle", timeout=window * 1000)
        except PlaywrightTimeoutError:
            logger.debug("Network not idle within window", window=round(window, 2))
