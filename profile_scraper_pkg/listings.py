from pathlib import Path
from typing import List, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .errors import SourceNotFound
from .scraper_logging import get_logger
from .storage import append_csv_rows, read_text

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://proadvisor.intuit.com"
CARD_SELECTOR = ".qba-matchmaking-ui-search-card"
LINK_SELECTOR = ".accountant-name a"
BADGE_SELECTOR = ".qba-matchmaking-ui-badge .badge-text"
TARGET_BADGES = ("desktop", "pro", "premier", "enterprise")


class ListingHarvester:
    """Collect profile URLs from a saved search-results page.

    Cards are kept when any of their badges mentions a target keyword; the
    resulting URLs are appended to a pending list the scraper then consumes.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        target_badges: Sequence[str] = TARGET_BADGES,
    ):
        self.base_url = base_url
        self.target_badges = [b.lower() for b in target_badges]

    def harvest_file(self, html_path: str) -> List[str]:
        path = Path(html_path)
        if not path.exists():
            raise SourceNotFound(html_path)
        return self.harvest(read_text(path))

    def harvest(self, html: str) -> List[str]:
        soup = BeautifulSoup(html, "html.parser")
        cards = soup.select(CARD_SELECTOR)
        logger.info("Found profile cards", count=len(cards))

        results: List[str] = []
        for card in cards:
            link = card.select_one(LINK_SELECTOR)
            if link is None or not link.get("href"):
                continue
            name = link.parent.get_text(" ", strip=True)
            badges = [
                " ".join(div.get_text(strip=True) for div in badge.find_all("div")).strip()
                or badge.get_text(" ", strip=True)
                for badge in card.select(BADGE_SELECTOR)
            ]
            if self._has_target_badge(badges):
                results.append(urljoin(self.base_url, link["href"]))
                logger.info("✓ Matching badge", name=name, href=link["href"])
            else:
                logger.info("✗ No matching badges", name=name, href=link["href"])
        logger.info("Extracted profiles with target badges", count=len(results))
        return results

    def _has_target_badge(self, badges: Sequence[str]) -> bool:
        return any(target in badge.lower() for badge in badges for target in self.target_badges)


def append_to_pending(urls: Sequence[str], csv_path: str) -> int:
    """Append URLs to a pending CSV with a `url` header; return how many."""
    if not urls:
        return 0
    append_csv_rows(Path(csv_path), ["url"], [[u] for u in urls])
    logger.info("Appended URLs to pending list", count=len(urls), path=csv_path)
    return len(urls)
