"""Tests for the human-assisted CAPTCHA mitigation state machine."""

import pytest

from profile_scraper_pkg.blocked_page import BlockedPageDetector
from profile_scraper_pkg.captcha_mitigation import CaptchaMitigator
from profile_scraper_pkg.errors import ScrapeCancelled
from profile_scraper_pkg.models import MitigationStatus

BLOCKED = "<p>Please complete the security verification</p>"
CLEAN = "<h1>Jane Doe</h1>"


@pytest.fixture
def opened():
    return []


@pytest.fixture
def mitigator(token, opened) -> CaptchaMitigator:
    return CaptchaMitigator(BlockedPageDetector(), token, wait_seconds=30, human_channel=opened.append)


class TestCaptchaMitigator:
    @pytest.mark.asyncio
    async def test_clean_page_is_ok_without_waiting(self, mitigator, token, opened) -> None:
        # Given: A page with no block signals
        # When: The mitigator handles it
        outcome = await mitigator.handle(CLEAN, "https://a.com", 2, 2)
        # Then: OK, budget untouched, nobody is bothered
        assert outcome.status == MitigationStatus.OK
        assert outcome.attempts_remaining == 2
        assert token.waits == []
        assert opened == []

    @pytest.mark.asyncio
    async def test_budget_of_two_retries_then_aborts(self, mitigator, token, opened) -> None:
        # Given: A budget of 2 and a page that stays blocked
        first = await mitigator.handle(BLOCKED, "https://a.com", 2, 2)
        second = await mitigator.handle(BLOCKED, "https://a.com", first.attempts_remaining, 2)

        # Then: retry, then abort, with one human wait per attempt
        assert (first.status, first.attempts_remaining) == (MitigationStatus.RETRY, 1)
        assert (second.status, second.attempts_remaining) == (MitigationStatus.ABORT, 0)
        assert token.waits == [30, 30]
        assert opened == ["https://a.com", "https://a.com"]

    @pytest.mark.asyncio
    async def test_budget_of_one_aborts_immediately(self, mitigator) -> None:
        outcome = await mitigator.handle(BLOCKED, "https://a.com", 1, 1)
        assert outcome.status == MitigationStatus.ABORT

    @pytest.mark.asyncio
    async def test_channel_failure_does_not_stop_the_wait(self, token) -> None:
        def broken(url):
            raise RuntimeError("no display")

        mitigator = CaptchaMitigator(BlockedPageDetector(), token, wait_seconds=5, human_channel=broken)
        outcome = await mitigator.handle(BLOCKED, "https://a.com", 3, 3)
        assert outcome.status == MitigationStatus.RETRY
        assert token.waits == [5]

    @pytest.mark.asyncio
    async def test_cancelled_token_interrupts_wait(self, mitigator, token) -> None:
        token.cancel("stop")
        with pytest.raises(ScrapeCancelled):
            await mitigator.handle(BLOCKED, "https://a.com", 2, 2)
