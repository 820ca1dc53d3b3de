import re
from typing import Callable, Optional, Pattern, Sequence, Union

from bs4 import BeautifulSoup

from . import config
from .scraper_logging import get_logger
from .storage import BlockLog

logger = get_logger(__name__)

_INVISIBLE_TAGS = ("script", "style", "noscript", "template")

BlockedCallback = Callable[[Optional[str], str], None]


class BlockedPageDetector:
    """Classify fetched HTML as a challenge/verification page.

    A page is blocked when its visible text matches the phrase pattern or
    any element matches one of the structural selectors (CAPTCHA widgets,
    challenge forms); neither signal takes priority. Each positive
    classification is reported to `on_blocked` and appended to the block
    log, repeated detections of the same URL included.
    """

    def __init__(
        self,
        selectors: Sequence[str] = config.BLOCKED_SELECTORS,
        blocked_pattern: Union[str, Pattern[str]] = config.BLOCKED_PATTERN,
        on_blocked: Optional[BlockedCallback] = None,
        block_log: Optional[BlockLog] = None,
    ):
        self.selectors = tuple(selectors)
        self.blocked_pattern = (
            blocked_pattern if isinstance(blocked_pattern, re.Pattern) else re.compile(blocked_pattern, re.I)
        )
        self.on_blocked = on_blocked
        self.block_log = block_log

    def is_blocked(self, content: Optional[str], url: Optional[str] = None) -> bool:
        if not content or not content.strip():
            return False

        soup = BeautifulSoup(content, "html.parser")
        matched_selector = next((sel for sel in self.selectors if soup.select_one(sel) is not None), None)
        for tag in soup(_INVISIBLE_TAGS):
            tag.decompose()
        text_match = self.blocked_pattern.search(soup.get_text(" "))

        blocked = bool(text_match) or matched_selector is not None
        if blocked:
            logger.debug(
                "Block signals",
                url=url,
                phrase=text_match.group(0) if text_match else None,
                selector=matched_selector,
            )
            if self.on_blocked:
                self.on_blocked(url, content)
            if self.block_log:
                self.block_log.append(url)
        return blocked
