import random
from typing import Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .cancellation import CancelToken
from .scraper_logging import get_logger

logger = get_logger(__name__)

# (cumulative probability, pause bounds in seconds)
READING_PAUSE_TIERS = (
    (0.6, (15.0, 18.0)),
    (0.9, (18.0, 21.0)),
    (1.0, (21.0, 24.0)),
)
SCROLL_STEPS = (5, 10)
SCROLL_INCREMENT_PX = (50, 200)
SCROLL_STEP_PAUSE = (0.75, 3.0)
RESIZE_PROBABILITY = 0.08
RETRY_BACKOFF = (3.0, 6.0)
NETWORK_IDLE_WINDOW = (5.0, 7.0)


def reading_pause_bounds(roll: float) -> Tuple[float, float]:
    """Map a uniform roll in [0, 1) to the dwell-time tier it falls in."""
    for threshold, bounds in READING_PAUSE_TIERS:
        if roll < threshold:
            return bounds
    return READING_PAUSE_TIERS[-1][1]


async def scroll_through(page: Page, token: CancelToken) -> int:
    """Scroll down in small random increments, capped at a random height.

    Returns the final scroll offset. A page that refuses the scroll (closed
    target, navigation in flight) just ends the sequence early.
    """
    total_height = 1000 + random.randint(0, 2000)
    position = 0
    for _ in range(random.randint(*SCROLL_STEPS)):
        position = min(position + random.randint(*SCROLL_INCREMENT_PX), total_height)
        try:
            await page.evaluate("(y) => window.scrollTo(0, y)", position)
        except PlaywrightError as e:
            logger.debug("Scroll skipped", error=str(e))
            break
        await token.sleep_between(SCROLL_STEP_PAUSE)
    return position


async def jitter_viewport(page: Page) -> None:
    """Resize the viewport slightly so the window size is not static."""
    width = 1000 + random.randint(-150, 300)
    height = 800 + random.randint(-150, 200)
    try:
        await page.set_viewport_size({"width": width, "height": height})
    except PlaywrightError as e:
        logger.debug("Viewport resize skipped", error=str(e))


async def simulate_reading(page: Page, token: CancelToken) -> None:
    """Dwell on the page like a reader: pause, scroll, maybe resize.

    Every wait goes through the token, so a cancelled run stops here before
    sleeping at all.
    """
    token.raise_if_cancelled()
    await token.sleep_between(reading_pause_bounds(random.random()))
    await scroll_through(page, token)
    if random.random() < RESIZE_PROBABILITY:
        await jitter_viewport(page)
