"""Tests for profile field extraction."""

from profile_scraper_pkg.extraction import ProfileParser
from profile_scraper_pkg.models import ScrapeFailure, ScrapeSuccess

PROFILE_HTML = """
<html><body>
  <h1 class="accountant-name">Jane Doe, CPA</h1>
  <div class="professional-title">Certified QuickBooks ProAdvisor</div>
  <div class="contact-info">
    <a href="mailto:jane@doeaccounting.com?subject=Hi">Email</a>
    <p>Or write to office@doeaccounting.com</p>
  </div>
  <a href="https://www.facebook.com/doeaccounting">Facebook</a>
  <a href="https://linkedin.com/in/janedoe">LinkedIn</a>
  <a href="https://notfacebook.com/x">Lookalike</a>
  <a class="website-link" href="https://doeaccounting.com">doeaccounting.com</a>
  <a href="https://doeaccounting.com/about">Visit our site</a>
  <a href="https://proadvisor.intuit.com/app/x">Visit ProAdvisor</a>
</body></html>
"""


class TestProfileParser:
    def test_extracts_all_fields(self) -> None:
        # Given: A complete profile page
        # When: It is parsed
        result = ProfileParser().parse(PROFILE_HTML, "https://a.com")

        # Then: Every field is filled, deduplicated, in page order
        assert isinstance(result, ScrapeSuccess)
        profile = result.profile
        assert profile.name == "Jane Doe, CPA"
        assert profile.title == "Certified QuickBooks ProAdvisor"
        assert profile.emails == ["jane@doeaccounting.com", "office@doeaccounting.com"]
        assert profile.social_links == ["https://www.facebook.com/doeaccounting", "https://linkedin.com/in/janedoe"]
        assert profile.website == ["https://doeaccounting.com", "https://doeaccounting.com/about"]

    def test_sparse_page_gives_empty_fields(self) -> None:
        result = ProfileParser().parse("<html><body><p>Nothing here</p></body></html>", "https://a.com")
        assert isinstance(result, ScrapeSuccess)
        assert result.profile.name is None
        assert result.profile.emails == []
        assert result.to_row() == ["", "", "", "", "https://a.com", "", ""]

    def test_internal_error_becomes_failure(self) -> None:
        class BrokenParser(ProfileParser):
            def _websites(self, soup):
                raise ValueError("bad markup")

        # Given: A parser whose field lookup fails
        # When: A page is parsed
        result = BrokenParser().parse(PROFILE_HTML, "https://a.com")
        # Then: A failure record, not an exception
        assert isinstance(result, ScrapeFailure)
        assert result.reason == "Scraping Error - bad markup"
