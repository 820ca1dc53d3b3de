import threading
from typing import Iterable, List, Optional

from .models import ScrapeResult
from .scraper_logging import get_logger
from .storage import PendingSource, ResultStore, normalize_url

logger = get_logger(__name__)


def dedupe(urls: Iterable[str]) -> List[str]:
    """Normalize, drop empties and keep the first occurrence of each URL."""
    seen = set()
    out: List[str] = []
    for raw in urls:
        url = normalize_url(raw)
        if url and url not in seen:
            seen.add(url)
            out.append(url)
    return out


class WorkQueue:
    """Backlog of profile URLs computed from the pending list and the results.

    Queue membership is a set difference: a URL is pending until a record
    for it has been durably appended to the result store. The pending list
    is reconciled on every load, so a crash between `append` and
    `remove_completed` only delays the removal to the next run.
    """

    def __init__(self, results: ResultStore, pending: PendingSource):
        self.results = results
        self.pending = pending
        self._lock = threading.Lock()
        self.results.ensure_initialized()

    def load(self, direct_urls: Optional[Iterable[str]] = None) -> List[str]:
        """Return the ordered backlog for this run.

        Direct URLs are used as given (normalized) with no filtering. Without
        them the pending list is read, deduplicated, filtered against the
        result store and rewritten to the survivors. Raises `SourceNotFound`
        if the pending list does not exist.
        """
        direct = [u for u in (direct_urls or []) if normalize_url(u)]
        if direct:
            return [normalize_url(u) for u in direct]

        with self._lock:
            raw = self.pending.read_urls()
            logger.info("Running dedup", source=str(self.pending.path), rows=len(raw))
            done = self.results.completed_urls()
            backlog = [u for u in dedupe(raw) if u not in done]
            if raw:
                self.pending.keep_only(backlog)
        logger.info("Backlog loaded", pending=len(backlog), already_done=len(done))
        return backlog

    def append(self, result: ScrapeResult) -> None:
        with self._lock:
            self.results.append(result.to_row())

    def remove_completed(self, url: str) -> None:
        with self._lock:
            self.pending.remove(url)
