import asyncio
from typing import Callable, Hashable, Iterable, List, Optional, Tuple

from .blocked_page import BlockedPageDetector
from .cancellation import CancelToken
from .captcha_mitigation import CaptchaMitigator
from .errors import ScrapeAborted, ScrapeCancelled
from .extraction import FieldExtractor, ProfileParser
from .identity import IdentityPool
from .models import MitigationStatus, RunSummary, ScrapeFailure, ScrapeResult, ScraperSettings
from .progress import ScrapeProgressReporter
from .scraper_logging import get_logger, log_event, save_debug_html
from .session import BrowserSession
from .storage import BlockLog, PendingSource, ResultStore
from .work_queue import WorkQueue

logger = get_logger(__name__)

SessionFactory = Callable[[ScraperSettings, IdentityPool, Hashable, CancelToken], BrowserSession]


class Orchestrator:
    """Drive the backlog through browser sessions and persist each outcome.

    Each worker owns one long-lived BrowserSession with its own sticky
    identity and pulls items from a shared in-memory backlog. Per item:
    fetch, clear any block through the mitigator (re-fetching from scratch on
    retry), extract, append the record, then drop the URL from the pending
    list. An item interrupted anywhere before the append stays pending.

    While any worker waits on a human to clear a CAPTCHA, the others start
    no fetch, write nothing and do not pace until the wait is over.
    """

    def __init__(
        self,
        settings: ScraperSettings,
        work_queue: WorkQueue,
        identity: IdentityPool,
        mitigator: CaptchaMitigator,
        extractor: FieldExtractor,
        token: CancelToken,
        reporter: Optional[ScrapeProgressReporter] = None,
        session_factory: SessionFactory = BrowserSession,
    ):
        self.settings = settings
        self.work_queue = work_queue
        self.identity = identity
        self.mitigator = mitigator
        self.extractor = extractor
        self.token = token
        self.reporter = reporter or ScrapeProgressReporter()
        self.session_factory = session_factory

    async def run(self, direct_urls: Optional[Iterable[str]] = None) -> RunSummary:
        started = self.reporter.clock()
        items = self.work_queue.load(direct_urls)
        summary = RunSummary(total=len(items))
        self.reporter.report_start(len(items))
        if not items:
            logger.info("Nothing to scrape")
            self.reporter.report_completion(started, summary)
            return summary

        backlog: "asyncio.Queue[Tuple[int, str]]" = asyncio.Queue()
        for item in enumerate(items):
            backlog.put_nowait(item)

        worker_count = min(self.settings.workers, len(items))
        results = await asyncio.gather(
            *(self._worker(f"worker-{n}", backlog, summary) for n in range(1, worker_count + 1)),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            raise self._primary_error(errors)

        self.reporter.report_completion(started, summary)
        return summary

    async def _worker(self, worker_id: str, backlog: "asyncio.Queue[Tuple[int, str]]", summary: RunSummary) -> None:
        session = self.session_factory(self.settings, self.identity, worker_id, self.token)
        handle = None
        try:
            handle = await session.build()
            while not backlog.empty():
                self.token.raise_if_cancelled()
                index, url = backlog.get_nowait()
                await self._process(session, handle, worker_id, index, url, summary)
                if not backlog.empty():
                    await self.token.wait_if_paused()
                    await self.token.sleep_between((self.settings.pace_min, self.settings.pace_max))
        except Exception as e:
            # Stop the other workers at their next sleep boundary.
            self.token.cancel(f"{worker_id}: {e}")
            raise
        finally:
            if handle is not None:
                await handle.close()

    async def _process(self, session: BrowserSession, handle, worker_id: str, index: int, url: str, summary: RunSummary) -> None:
        started = self.reporter.clock()
        self.reporter.report_iteration_start(index, summary.total, url, worker=worker_id)

        total_attempts = self.settings.captcha_retries
        attempts_remaining = total_attempts
        while True:
            await self.token.wait_if_paused()
            content = await session.fetch_with_retries(handle, url)
            if content is None:
                summary.skipped += 1
                self.reporter.report_skipped(index, summary.total, url)
                return
            outcome = await self.mitigator.handle(content, url, attempts_remaining, total_attempts)
            attempts_remaining = outcome.attempts_remaining
            if outcome.status == MitigationStatus.OK:
                break
            self._save_blocked_page(content)
            if outcome.status == MitigationStatus.ABORT:
                raise ScrapeAborted(url, total_attempts)
            logger.info("Re-fetching after manual unblock", url=url, attempts_remaining=attempts_remaining)

        result = self._extract(content, url)
        await self.token.wait_if_paused()
        self.work_queue.append(result)
        self.work_queue.remove_completed(url)

        if isinstance(result, ScrapeFailure):
            summary.failed += 1
            log_event("error", "Recorded with error", url=url, reason=result.reason)
        else:
            summary.completed += 1
        self.reporter.report_success(index, summary.total, started)

    def _extract(self, content: str, url: str) -> ScrapeResult:
        try:
            return self.extractor.parse(content, url)
        except Exception as e:
            logger.exception("Extractor raised", url=url)
            return ScrapeFailure(url=url, reason=f"Scraping Error - {e}")

    def _save_blocked_page(self, content: str) -> None:
        if not self.settings.debug:
            return
        path = save_debug_html(content, "blocked", self.settings.debug_dir)
        if path:
            logger.info("Saved blocked page", path=path)

    @staticmethod
    def _primary_error(errors: List[BaseException]) -> BaseException:
        # The abort or failure that stopped the run outranks the cancellations it caused.
        for err in errors:
            if not isinstance(err, ScrapeCancelled):
                return err
        return errors[0]


def build_orchestrator(
    settings: ScraperSettings,
    token: CancelToken,
    human_channel: Optional[Callable[[str], object]] = None,
) -> Orchestrator:
    """Wire the default collaborators for a run from `settings`."""
    work_queue = WorkQueue(ResultStore(settings.results_file), PendingSource(settings.input_file))
    detector = BlockedPageDetector(
        on_blocked=lambda url, _content: log_event("blocked", "Block page detected", url=url),
        block_log=BlockLog(settings.block_log_file),
    )
    mitigator = CaptchaMitigator(detector, token, wait_seconds=settings.captcha_wait, human_channel=human_channel)
    identity = IdentityPool(user_agents=settings.user_agents, proxies=settings.proxies)
    return Orchestrator(settings, work_queue, identity, mitigator, ProfileParser(), token)
