import random
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urlparse

import httpx
from playwright.async_api import Browser, BrowserContext, Page, Playwright

from .scraper_logging import get_logger

logger = get_logger(__name__)

_LOCAL_HOSTS = {"127.0.0.1", "localhost", "::1"}


@dataclass
class BrowserHandle:
    """One live browser bound to one identity.

    Owns the Playwright driver, the browser (when launched rather than
    attached over CDP), the context and the working page. `close()` is
    idempotent so every exit path can call it.
    """
    playwright: Optional[Playwright]
    browser: Optional[Browser]
    context: Optional[BrowserContext]
    page: Optional[Page]
    owns_browser: bool = True
    proxy: Optional[str] = None
    user_agent: Optional[str] = None
    closed: bool = False

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Always close the tab; close the whole browser only when we launched it
        for resource in (self.page, self.context):
            try:
                if resource:
                    await resource.close()
            except Exception as e:
                logger.debug("Close failed", error=str(e))
        try:
            if self.browser and self.owns_browser:
                await self.browser.close()
        except Exception as e:
            logger.debug("Browser close failed", error=str(e))
        try:
            if self.playwright:
                await self.playwright.stop()
        except Exception as e:
            logger.debug("Playwright stop failed", error=str(e))


def random_viewport() -> Dict[str, int]:
    return {"width": random.randint(800, 1600), "height": random.randint(600, 1100)}


async def launch_browser(playwright: Playwright, headless: bool = True, proxy: Optional[str] = None, timeout_ms: float = 30000) -> Browser:
    """Launch a Chromium browser with conservative flags for scraping.

    Headless and proxy are configurable per session. Sandboxing is disabled
    and shared memory avoided so the browser also starts inside containers.
    """
    return await playwright.chromium.launch(
        headless=headless,
        proxy={"server": proxy} if proxy else None,
        timeout=timeout_ms,
        args=[
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-infobars",
            "--no-first-run",
            "--mute-audio",
        ],
    )


async def new_context(
    browser: Browser,
    user_agent: Optional[str],
    accept_language: str,
    viewport: Dict[str, int],
) -> BrowserContext:
    """Create a browser context carrying the session identity headers.

    When no user agent was selected, the browser's own agent is kept and only
    the language header is added.
    """
    headers = {"Accept-Language": accept_language}
    if user_agent:
        headers["User-Agent"] = user_agent
    return await browser.new_context(
        user_agent=user_agent,
        viewport=viewport,
        locale=accept_language.split(",")[0],
        extra_http_headers=headers,
    )


async def resolve_cdp_endpoint(cdp_url: str, timeout: float = 10.0) -> str:
    """Return the websocket debugger URL for a remote Chrome when needed.

    Chrome rejects DevTools HTTP requests whose Host header is not an IP or
    localhost, so for other hosts the websocket URL is fetched from
    `/json/version` first and the original host substituted back in.
    Local endpoints are returned unchanged.
    """
    parsed = urlparse(cdp_url)
    host = parsed.hostname or ""
    if host in _LOCAL_HOSTS:
        return cdp_url
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(cdp_url.rstrip("/") + "/json/version", headers={"Host": "localhost"}, timeout=timeout)
            if response.status_code == 200:
                ws_url = response.json().get("webSocketDebuggerUrl", "")
                if ws_url:
                    ws = urlparse(ws_url)
                    return ws._replace(netloc=f"{host}:{ws.port or parsed.port}").geturl()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Failed to fetch CDP websocket URL, trying direct connect", cdp_url=cdp_url, error=str(e))
    return cdp_url


async def connect_over_cdp(playwright: Playwright, cdp_url: str) -> Browser:
    """Attach to an existing Chrome started with `--remote-debugging-port`.

    The operator can solve challenges in the same window the scraper uses.
    """
    endpoint = await resolve_cdp_endpoint(cdp_url)
    return await playwright.chromium.connect_over_cdp(endpoint)
