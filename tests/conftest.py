"""
Shared fixtures for scraper tests.

No browser is started anywhere in this suite: sessions and pages are fakes,
and every wait goes through a token that records the requested duration
instead of sleeping.
"""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from profile_scraper_pkg.cancellation import CancelToken
from profile_scraper_pkg.models import ScraperSettings


class RecordingToken(CancelToken):
    """CancelToken that records wait durations and returns immediately."""

    def __init__(self) -> None:
        super().__init__()
        self.waits: List[float] = []

    async def _wait(self, seconds: float) -> None:
        self.waits.append(seconds)
        await asyncio.sleep(0)


class FakePage:
    """Minimal stand-in for a Playwright page."""

    def __init__(self, html: str = "<html><body></body></html>", goto_errors: Optional[List[Exception]] = None):
        self.html = html
        self.goto_errors = list(goto_errors or [])
        self.url = "about:blank"
        self.goto_calls: List[str] = []
        self.scrolls: List[int] = []
        self.viewports: List[Dict[str, int]] = []
        self.closed = False

    async def goto(self, url, timeout=None, wait_until=None):
        self.goto_calls.append(url)
        if self.goto_errors:
            raise self.goto_errors.pop(0)
        self.url = url

    async def wait_for_load_state(self, state, timeout=None):
        return None

    async def content(self):
        return self.html

    async def evaluate(self, script, arg=None):
        self.scrolls.append(arg)

    async def set_viewport_size(self, size):
        self.viewports.append(size)

    async def close(self):
        self.closed = True


class FakeHandle:
    def __init__(self, session_id):
        self.session_id = session_id
        self.page = FakePage()
        self.closed = False

    async def close(self):
        self.closed = True


class FakeSession:
    """BrowserSession double driven by a per-URL script of fetch results.

    `pages` maps a URL to a list of results returned by successive fetches;
    the last entry repeats. A result of None means "unfetchable".
    """

    pages: Dict[str, List[Optional[str]]] = {}
    instances: List["FakeSession"] = []

    def __init__(self, settings, identity, session_id, token):
        self.settings = settings
        self.session_id = session_id
        self.token = token
        self.proxy = identity.select_proxy(session_id)
        self.fetched: List[str] = []
        self.handles: List[FakeHandle] = []
        FakeSession.instances.append(self)

    async def build(self):
        handle = FakeHandle(self.session_id)
        self.handles.append(handle)
        return handle

    async def fetch_with_retries(self, handle, url, max_attempts=None):
        self.token.raise_if_cancelled()
        self.fetched.append(url)
        script = FakeSession.pages.get(url, ["<html><body><h1>Jane Doe</h1></body></html>"])
        result = script.pop(0) if len(script) > 1 else script[0]
        await asyncio.sleep(0)
        return result


@pytest.fixture
def token() -> RecordingToken:
    return RecordingToken()


@pytest.fixture
def fake_sessions():
    """Reset FakeSession class state around a test."""
    FakeSession.pages = {}
    FakeSession.instances = []
    yield FakeSession
    FakeSession.pages = {}
    FakeSession.instances = []


@pytest.fixture
def settings(tmp_path: Path) -> ScraperSettings:
    """Settings with all waits zeroed and files under tmp_path."""
    return ScraperSettings(
        input_file=str(tmp_path / "profiles_list.csv"),
        results_file=str(tmp_path / "profiles.csv"),
        block_log_file=str(tmp_path / "blocked_urls.csv"),
        retries=0,
        captcha_retries=2,
        captcha_wait=0,
        pace_min=0,
        pace_max=0,
        workers=1,
        proxies=[],
        debug=False,
        debug_dir=str(tmp_path / "debug"),
    )
