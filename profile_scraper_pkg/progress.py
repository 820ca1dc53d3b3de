import time
from typing import Callable, Optional

from .models import RunSummary
from .scraper_logging import get_logger, log_event

logger = get_logger(__name__)


class ScrapeProgressReporter:
    """Observational progress notifications for a run.

    Purely informational: nothing here feeds back into control flow.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, event: Callable[..., None] = log_event):
        self.clock = clock
        self.event = event

    def report_start(self, total_urls: int) -> None:
        if total_urls == 0:
            return
        logger.info(f"--- Total of {total_urls} profile URLs to scrape ---")

    def report_iteration_start(self, index: int, total: int, url: str, worker: Optional[str] = None) -> None:
        self.event("outgoing", f"Starting {index + 1}/{total}", url=url, worker=worker)

    def report_success(self, index: int, total: int, started_at: float) -> None:
        elapsed = self.clock() - started_at
        self.event("success", f"Saved! Time taken: {elapsed:.2f}s ({index + 1}/{total})")

    def report_skipped(self, index: int, total: int, url: str) -> None:
        self.event("error", f"Unfetchable, left pending ({index + 1}/{total})", url=url)

    def report_completion(self, start_time: float, summary: Optional[RunSummary] = None) -> None:
        elapsed = self.clock() - start_time
        fields = summary.model_dump() if summary else {}
        logger.info(f"Done. Total time - {elapsed:.2f} seconds", **fields)
