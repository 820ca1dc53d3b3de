"""
Tests for the durable work queue and the file stores behind it.

Covers backlog computation (pending minus completed), pending-list rewrites,
idempotent removal, resume behaviour and both pending-list formats.
"""

from pathlib import Path

import pytest

from profile_scraper_pkg.errors import SourceNotFound, SourceUnreadable
from profile_scraper_pkg.models import ProfileFields, ScrapeFailure, ScrapeSuccess
from profile_scraper_pkg.storage import BlockLog, PendingSource, ResultStore, normalize_url
from profile_scraper_pkg.work_queue import WorkQueue, dedupe


def _queue(tmp_path: Path, pending_text: str = None, pending_name: str = "profiles_list.csv") -> WorkQueue:
    pending = tmp_path / pending_name
    if pending_text is not None:
        pending.write_text(pending_text, encoding="utf-8")
    return WorkQueue(ResultStore(str(tmp_path / "profiles.csv")), PendingSource(str(pending)))


def _result_urls(tmp_path: Path):
    return ResultStore(str(tmp_path / "profiles.csv")).completed_urls()


class TestNormalize:
    def test_adds_https_scheme(self) -> None:
        # Given: A bare host/path
        # When: normalize_url is called
        # Then: https:// is prefixed
        assert normalize_url("  example.com/a ") == "https://example.com/a"

    def test_keeps_existing_scheme_case_insensitive(self) -> None:
        assert normalize_url("HTTP://example.com") == "HTTP://example.com"
        assert normalize_url("http://example.com") == "http://example.com"

    def test_empty_stays_empty(self) -> None:
        assert normalize_url("   ") == ""
        assert normalize_url(None) == ""

    def test_dedupe_keeps_first_occurrence(self) -> None:
        assert dedupe(["b.com", "a.com", "https://b.com", "", "a.com"]) == ["https://b.com", "https://a.com"]


class TestLoad:
    def test_backlog_excludes_completed(self, tmp_path: Path) -> None:
        """Pending minus completed, in pending order."""
        # Given: Three pending URLs, one already in the results file
        queue = _queue(tmp_path, "url\nhttps://a.com\nhttps://b.com\nhttps://c.com\n")
        queue.append(ScrapeFailure(url="https://b.com", reason="x"))

        # When: The backlog is loaded
        backlog = queue.load()

        # Then: Only the unfinished URLs remain, and the pending file is rewritten to match
        assert backlog == ["https://a.com", "https://c.com"]
        assert PendingSource(str(tmp_path / "profiles_list.csv")).read_urls() == ["https://a.com", "https://c.com"]

    def test_duplicates_collapse_and_are_removed_from_file(self, tmp_path: Path) -> None:
        queue = _queue(tmp_path, "url\na.com\nhttps://a.com\nb.com\n")

        assert queue.load() == ["https://a.com", "https://b.com"]
        assert PendingSource(str(tmp_path / "profiles_list.csv")).read_urls() == ["a.com", "b.com"]

    def test_load_is_idempotent(self, tmp_path: Path) -> None:
        queue = _queue(tmp_path, "url\na.com\nb.com\n")
        first = queue.load()
        second = queue.load()
        assert first == second

    def test_missing_pending_raises(self, tmp_path: Path) -> None:
        # Given: No pending file
        queue = _queue(tmp_path)
        # When/Then: SourceNotFound names the path
        with pytest.raises(SourceNotFound) as exc_info:
            queue.load()
        assert "profiles_list.csv" in str(exc_info.value)

    def test_empty_pending_gives_empty_backlog(self, tmp_path: Path) -> None:
        queue = _queue(tmp_path, "")
        assert queue.load() == []
        assert (tmp_path / "profiles_list.csv").read_text() == ""

    def test_results_file_created_with_header(self, tmp_path: Path) -> None:
        _queue(tmp_path, "")
        header = (tmp_path / "profiles.csv").read_text().splitlines()[0]
        assert header == "name,title,emails,social_links,profile_url,website,error"

    def test_direct_urls_bypass_pending(self, tmp_path: Path) -> None:
        # Given: Direct URLs and no pending file
        queue = _queue(tmp_path)
        queue.append(ScrapeFailure(url="https://a.com", reason="x"))
        # When: load is given the URLs
        backlog = queue.load(["a.com", " ", "b.com"])
        # Then: They are used as given, normalized, without completion filtering
        assert backlog == ["https://a.com", "https://b.com"]


class TestPendingFormats:
    def test_plain_lines(self, tmp_path: Path) -> None:
        queue = _queue(tmp_path, "a.com\n\nb.com\n", pending_name="profiles_list.txt")
        assert queue.load() == ["https://a.com", "https://b.com"]
        assert (tmp_path / "profiles_list.txt").read_text() == "a.com\nb.com\n"

    def test_link_column_used_when_no_url_column(self, tmp_path: Path) -> None:
        queue = _queue(tmp_path, "name,link\nAnn,a.com\nBob,b.com\n")
        assert queue.load() == ["https://a.com", "https://b.com"]

    def test_extra_columns_survive_rewrite(self, tmp_path: Path) -> None:
        queue = _queue(tmp_path, "name,url\nAnn,a.com\nBob,b.com\n")
        queue.load()
        queue.remove_completed("https://a.com")
        assert (tmp_path / "profiles_list.csv").read_text() == "name,url\nBob,b.com\n"

    def test_csv_without_url_column_is_left_alone(self, tmp_path: Path) -> None:
        text = "name,phone\nAnn,123\n"
        queue = _queue(tmp_path, text)
        assert queue.load() == []
        assert (tmp_path / "profiles_list.csv").read_text() == text

    def test_header_detected_without_csv_suffix(self, tmp_path: Path) -> None:
        queue = _queue(tmp_path, "site;owner\na.com;Ann\n", pending_name="pending.txt")
        assert queue.load() == ["https://a.com"]

    def test_headerless_csv_is_read_as_url_list(self, tmp_path: Path) -> None:
        # Given: A .csv pending file holding bare URLs, no header row
        queue = _queue(tmp_path, "https://a.com\nhttps://b.com\nhttps://a.com\n")

        # When: The backlog is loaded
        backlog = queue.load()

        # Then: Every URL is queued, including the first line, and the file stays line-oriented
        assert backlog == ["https://a.com", "https://b.com"]
        assert (tmp_path / "profiles_list.csv").read_text() == "https://a.com\nhttps://b.com\n"

    def test_headerless_csv_removal_keeps_other_lines(self, tmp_path: Path) -> None:
        queue = _queue(tmp_path, "a.com\nb.com\n")
        queue.load()
        queue.remove_completed("https://a.com")
        assert (tmp_path / "profiles_list.csv").read_text() == "b.com\n"


class TestUnreadableFiles:
    def test_undecodable_pending_list_is_fatal(self, tmp_path: Path) -> None:
        # Given: A pending list that is not valid UTF-8
        (tmp_path / "list.txt").write_bytes(b"https://caf\xe9.com\n")
        queue = WorkQueue(ResultStore(str(tmp_path / "profiles.csv")), PendingSource(str(tmp_path / "list.txt")))

        # When/Then: Loading raises the scraper's own error naming the file
        with pytest.raises(SourceUnreadable) as exc_info:
            queue.load()
        assert exc_info.value.path.endswith("list.txt")

    def test_undecodable_results_file_is_fatal(self, tmp_path: Path) -> None:
        (tmp_path / "profiles.csv").write_bytes(b"name,profile_url\n\xff\xfe,https://a.com\n")
        queue = _queue(tmp_path, "url\na.com\n")
        with pytest.raises(SourceUnreadable):
            queue.load()

    def test_remove_on_undecodable_pending_is_fatal(self, tmp_path: Path) -> None:
        (tmp_path / "profiles_list.csv").write_bytes(b"url\n\xe9.com\n")
        queue = _queue(tmp_path)
        with pytest.raises(SourceUnreadable):
            queue.remove_completed("https://a.com")


class TestCompletion:
    def test_append_then_remove(self, tmp_path: Path) -> None:
        # Given: A loaded backlog
        queue = _queue(tmp_path, "url\na.com\nb.com\n")
        queue.load()

        # When: One URL completes
        queue.append(ScrapeSuccess(url="https://a.com", profile=ProfileFields(name="Ann", emails=["a@x.com", "b@x.com"])))
        queue.remove_completed("https://a.com")

        # Then: It is in the results and gone from the pending list
        assert _result_urls(tmp_path) == {"https://a.com"}
        assert PendingSource(str(tmp_path / "profiles_list.csv")).read_urls() == ["b.com"]
        row = (tmp_path / "profiles.csv").read_text().splitlines()[1]
        assert row == "Ann,,a@x.com; b@x.com,,https://a.com,,"

    def test_remove_is_idempotent(self, tmp_path: Path) -> None:
        queue = _queue(tmp_path, "url\na.com\n")
        queue.remove_completed("https://a.com")
        queue.remove_completed("https://a.com")
        queue.remove_completed("https://never-there.com")
        assert PendingSource(str(tmp_path / "profiles_list.csv")).read_urls() == []

    def test_remove_without_pending_file_is_noop(self, tmp_path: Path) -> None:
        queue = _queue(tmp_path)
        queue.remove_completed("https://a.com")
        assert not (tmp_path / "profiles_list.csv").exists()

    def test_crash_between_append_and_remove_resumes_cleanly(self, tmp_path: Path) -> None:
        # Given: A record was appended but the pending row was never removed
        queue = _queue(tmp_path, "url\na.com\nb.com\n")
        queue.append(ScrapeFailure(url="https://a.com", reason="Scraping Error - boom"))

        # When: A new run loads the queue
        backlog = _queue(tmp_path).load()

        # Then: The finished URL is not retried and the pending file is reconciled
        assert backlog == ["https://b.com"]
        assert PendingSource(str(tmp_path / "profiles_list.csv")).read_urls() == ["b.com"]

    def test_failure_row_has_only_url_and_error(self) -> None:
        row = ScrapeFailure(url="https://a.com", reason="Scraping Error - boom").to_row()
        assert row == ["", "", "", "", "https://a.com", "", "Scraping Error - boom"]


class TestBlockLog:
    def test_repeated_urls_are_logged_again(self, tmp_path: Path) -> None:
        log = BlockLog(str(tmp_path / "blocked.csv"))
        log.append("https://a.com")
        log.append("https://a.com")
        assert log.urls() == ["https://a.com", "https://a.com"]
        assert (tmp_path / "blocked.csv").read_text().splitlines()[0] == "observed_at,url"
