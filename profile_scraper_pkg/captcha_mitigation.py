import webbrowser
from typing import Callable, Optional

from .blocked_page import BlockedPageDetector
from .cancellation import CancelToken
from .models import MitigationOutcome, MitigationStatus
from .scraper_logging import get_logger

logger = get_logger(__name__)

HumanChannel = Callable[[str], object]


def open_in_browser(url: str) -> None:
    """Show the blocked URL in the operator's own browser."""
    webbrowser.open(url, new=2)


class CaptchaMitigator:
    """Bounded, human-assisted unblocking of one URL.

    checking -> ok when the page is clean. Otherwise awaiting_human: the URL
    is surfaced to the operator and the whole run, every worker included,
    pauses for `wait_seconds`.
    The budget is then decremented: retry while it stays positive, abort
    once it is spent. The budget lives with the caller and is threaded
    through each call.
    """

    def __init__(
        self,
        detector: BlockedPageDetector,
        token: CancelToken,
        wait_seconds: float = 30,
        human_channel: Optional[HumanChannel] = None,
    ):
        self.detector = detector
        self.token = token
        self.wait_seconds = wait_seconds
        self.human_channel = human_channel or open_in_browser

    async def handle(self, content: Optional[str], url: str, attempts_remaining: int, total_attempts: int) -> MitigationOutcome:
        # checking
        if not self.detector.is_blocked(content, url=url):
            return MitigationOutcome(status=MitigationStatus.OK, attempts_remaining=attempts_remaining)

        logger.warning(
            "Blocked detected. Solve the CAPTCHA in the opened browser",
            url=url,
            state=MitigationStatus.AWAITING_HUMAN.value,
            wait_seconds=self.wait_seconds,
        )
        # The whole run stands still while the operator solves the challenge.
        async with self.token.paused():
            self._notify_human(url)
            await self.token.sleep(self.wait_seconds)

        attempts_remaining -= 1
        if attempts_remaining <= 0:
            logger.error("URL blocked on every attempt; aborting run", url=url, attempts=total_attempts)
            return MitigationOutcome(status=MitigationStatus.ABORT, attempts_remaining=attempts_remaining)
        return MitigationOutcome(status=MitigationStatus.RETRY, attempts_remaining=attempts_remaining)

    def _notify_human(self, url: str) -> None:
        try:
            self.human_channel(url)
        except Exception as e:
            logger.warning("Could not open URL for manual solving", url=url, error=str(e))
