"""Tests for argument handling and exit codes of the scraper CLI."""

import sys

import pytest

import scraper
from profile_scraper_pkg.errors import (
    BrowserLaunchError,
    ScrapeAborted,
    ScrapeCancelled,
    SourceNotFound,
    SourceUnreadable,
)
from profile_scraper_pkg.models import RunSummary


def _run_main(monkeypatch, argv, outcome):
    async def fake_run(settings, urls):
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    monkeypatch.setattr(scraper, "run_scraper", fake_run)
    monkeypatch.setattr(sys, "argv", ["scraper.py", *argv])
    with pytest.raises(SystemExit) as exc_info:
        scraper.main()
    return exc_info.value.code


class TestSettingsFromArgs:
    def test_flags_override_defaults(self) -> None:
        args = scraper.build_parser().parse_args([
            "--input", "in.csv", "--output", "out.csv", "--workers", "2",
            "--proxy", "http://p1:1", "--proxy", "http://p2:1", "--headless", "false",
            "--pace-min", "1", "--pace-max", "2",
        ])
        settings = scraper.settings_from_args(args)
        assert settings.input_file == "in.csv"
        assert settings.results_file == "out.csv"
        assert settings.workers == 2
        assert settings.proxies == ["http://p1:1", "http://p2:1"]
        assert settings.headless is False

    def test_invalid_pacing_rejected(self) -> None:
        args = scraper.build_parser().parse_args(["--pace-min", "5", "--pace-max", "1"])
        with pytest.raises(ValueError):
            scraper.settings_from_args(args)


class TestExitCodes:
    def test_success_exits_zero(self, monkeypatch, tmp_path) -> None:
        code = _run_main(monkeypatch, ["--output", str(tmp_path / "out.csv")], RunSummary(total=1, completed=1))
        assert code == 0

    @pytest.mark.parametrize(
        "error",
        [
            ScrapeAborted("https://a.com", 3),
            SourceNotFound("profiles_list.csv"),
            SourceUnreadable("profiles_list.csv", "invalid utf-8"),
            BrowserLaunchError("no chromium"),
        ],
    )
    def test_fatal_errors_exit_one(self, monkeypatch, error) -> None:
        assert _run_main(monkeypatch, [], error) == 1

    def test_cancelled_run_exits_130(self, monkeypatch) -> None:
        assert _run_main(monkeypatch, [], ScrapeCancelled("interrupted by user")) == 130
