"""Exception hierarchy for the scraper.

Recoverable conditions (a page that cannot be fetched, a page that cannot be
parsed) are handled inside the run and never surface as exceptions. The
classes here are the unrecoverable ones: each terminates the run after the
browser has been released.
"""


class ScraperError(Exception):
    """Base class for all fatal scraper errors."""


class SourceNotFound(ScraperError):
    """The pending list (or another input file) does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Input file '{path}' not found")
        self.path = path


class StoreWriteError(ScraperError):
    """A durable store could not be written; resuming would be unsafe."""


class BrowserLaunchError(ScraperError):
    """No browser could be started or attached for a session."""


class ScrapeAborted(ScraperError):
    """A URL stayed blocked through its whole CAPTCHA mitigation budget."""

    def __init__(self, url: str, attempts: int):
        super().__init__(f"{url} blocked {attempts} times; aborting run")
        self.url = url
        self.attempts = attempts


class ScrapeCancelled(ScraperError):
    """The run was cancelled (operator interrupt or another worker aborting)."""


class SourceUnreadable(ScraperError):
    """An input or store file exists but cannot be read or decoded."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Could not read '{path}': {reason}")
        self.path = path
        self.reason = reason
