#!/usr/bin/env python3
"""
Profile Scraper - CLI

Scrapes accountant profile pages listed in a pending file (or given on the
command line) and appends one record per profile to a results CSV. A run
can be interrupted and resumed: anything already in the results file is
skipped, and the pending file shrinks as profiles are saved.

Usage:
    python scraper.py [URL ...] [OPTIONS]

Example:
    python scraper.py --input profiles_list.csv --output profiles.csv
    python scraper.py https://proadvisor.intuit.com/app/accountant/search?... --debug
    python scraper.py --workers 2 --proxy http://p1:8080 --proxy http://p2:8080
"""

import argparse
import asyncio
import signal
import sys

from profile_scraper_pkg import config
from profile_scraper_pkg.cancellation import CancelToken
from profile_scraper_pkg.errors import ScrapeCancelled, ScraperError
from profile_scraper_pkg.models import RunSummary, ScraperSettings
from profile_scraper_pkg.orchestrator import build_orchestrator
from profile_scraper_pkg.scraper_logging import configure_logging


def _bool_arg(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Profile Scraper - Resumable scraping of accountant profile pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --input profiles_list.csv --output profiles.csv
  %(prog)s https://proadvisor.intuit.com/app/accountant/search/... --debug
  %(prog)s --workers 2 --proxy http://p1:8080 --proxy http://p2:8080
  %(prog)s --use-cdp --cdp-url http://localhost:9222
        """
    )

    parser.add_argument(
        "urls",
        nargs="*",
        help="Profile URLs to scrape directly; the pending file is ignored when given"
    )
    parser.add_argument(
        "--input",
        "-i",
        default=config.INPUT_FILE,
        help=f"Pending URL list, CSV or one URL per line (default: {config.INPUT_FILE})"
    )
    parser.add_argument(
        "--output",
        "-o",
        default=config.RESULTS_FILE,
        help=f"Results CSV, appended to (default: {config.RESULTS_FILE})"
    )
    parser.add_argument(
        "--block-log",
        default=config.BLOCK_LOG_FILE,
        help=f"CSV log of URLs that hit a block page (default: {config.BLOCK_LOG_FILE})"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=config.WORKERS,
        help="Concurrent browser sessions, 1-3 (default: %(default)s)"
    )
    parser.add_argument(
        "--headless",
        type=_bool_arg,
        default=config.HEADLESS,
        help="Run browser in headless mode (default: %(default)s)"
    )
    parser.add_argument(
        "--proxy",
        action="append",
        default=None,
        help="Proxy URL; repeat for a pool. Each worker keeps one proxy for the whole run"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=config.TIMEOUT_SEC,
        help="Navigation timeout in seconds (default: %(default)s)"
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=config.RETRIES,
        help="Extra navigation attempts per URL (default: %(default)s)"
    )
    parser.add_argument(
        "--captcha-retries",
        type=int,
        default=config.CAPTCHA_RETRIES,
        help="Block-page mitigation attempts per URL before aborting (default: %(default)s)"
    )
    parser.add_argument(
        "--captcha-wait",
        type=float,
        default=config.CAPTCHA_WAIT_SEC,
        help="Seconds to wait for a CAPTCHA to be solved by hand (default: %(default)s)"
    )
    parser.add_argument(
        "--pace-min",
        type=float,
        default=config.PACE_MIN_SEC,
        help="Minimum pause between profiles, seconds (default: %(default)s)"
    )
    parser.add_argument(
        "--pace-max",
        type=float,
        default=config.PACE_MAX_SEC,
        help="Maximum pause between profiles, seconds (default: %(default)s)"
    )
    parser.add_argument(
        "--use-cdp",
        action="store_true",
        default=config.USE_CDP,
        help="Attach to a running Chrome over the DevTools Protocol instead of launching one"
    )
    parser.add_argument(
        "--cdp-url",
        default=config.CDP_URL,
        help="CDP endpoint URL (default: %(default)s)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=config.DEBUG,
        help="Save blocked pages as HTML for inspection"
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        help="Log level (default: %(default)s)"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines"
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> ScraperSettings:
    overrides = dict(
        input_file=args.input,
        results_file=args.output,
        block_log_file=args.block_log,
        headless=args.headless,
        timeout=args.timeout,
        retries=args.retries,
        captcha_retries=args.captcha_retries,
        captcha_wait=args.captcha_wait,
        pace_min=args.pace_min,
        pace_max=args.pace_max,
        workers=args.workers,
        use_cdp=args.use_cdp,
        cdp_url=args.cdp_url,
        debug=args.debug,
    )
    if args.proxy:
        overrides["proxies"] = args.proxy
    return ScraperSettings(**overrides)


async def run_scraper(settings: ScraperSettings, urls) -> RunSummary:
    """Run one scrape with Ctrl+C wired to cooperative cancellation."""
    token = CancelToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel, "interrupted by user")
    except NotImplementedError:
        # Windows event loops; KeyboardInterrupt still reaches main().
        pass
    return await build_orchestrator(settings, token).run(urls)


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    try:
        settings = settings_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    configure_logging(args.log_level, json_format=args.json_logs)

    try:
        summary = asyncio.run(run_scraper(settings, args.urls))
    except (KeyboardInterrupt, ScrapeCancelled):
        print("\n⚠️ Interrupted by user. Progress has been saved.")
        sys.exit(130)
    except ScraperError as e:
        print(f"❌ Fatal error: {e}")
        sys.exit(1)

    print(
        f"\n📊 Done: {summary.completed} saved, {summary.failed} with errors, "
        f"{summary.skipped} left pending (of {summary.total})"
    )
    print(f"📁 Results: {settings.results_file}")
    sys.exit(0)


if __name__ == "__main__":
    main()
