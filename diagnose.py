#!/usr/bin/env python3
"""
Diagnostic tool for the Profile Scraper
Fetches one URL the same way a run does and reports whether it was blocked
and what the parser finds, without touching the pending or results files.
"""

import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path

from profile_scraper_pkg.blocked_page import BlockedPageDetector
from profile_scraper_pkg.cancellation import CancelToken
from profile_scraper_pkg.errors import ScrapeCancelled, ScraperError
from profile_scraper_pkg.extraction import ProfileParser
from profile_scraper_pkg.identity import IdentityPool
from profile_scraper_pkg.models import ScrapeSuccess, ScraperSettings
from profile_scraper_pkg.scraper_logging import configure_logging, save_debug_html
from profile_scraper_pkg.session import BrowserSession
from profile_scraper_pkg.storage import normalize_url


async def diagnose_url(url: str, output_dir: str = "/tmp", settings: ScraperSettings = None) -> dict:
    """
    Fetch a single profile URL and report what a run would see.

    Args:
        url: Profile URL to diagnose
        output_dir: Directory to save the page HTML and the report (default: /tmp)
        settings: Run settings; defaults come from the environment

    Returns:
        The diagnostic report as a dict
    """
    settings = settings or ScraperSettings(debug_dir=output_dir)
    url = normalize_url(url)

    print("\n" + "=" * 80)
    print("Profile Scraper Diagnostic Tool")
    print("=" * 80)
    print(f"\nTarget URL: {url}")
    print(f"Output directory: {output_dir}")
    print(f"Timestamp: {datetime.now().isoformat()}")
    print("\n" + "=" * 80 + "\n")

    results = {
        "url": url,
        "timestamp": datetime.now().isoformat(),
        "steps": [],
    }

    identity = IdentityPool(user_agents=settings.user_agents, proxies=settings.proxies)
    # No session id: a one-off check draws a fresh proxy instead of a sticky one.
    session = BrowserSession(settings, identity, None, CancelToken())
    results["proxy"] = session.proxy

    handle = await session.build()
    try:
        step = {"step": 1, "action": "Fetch page"}
        print("Step 1: Fetching page...")
        content = await session.fetch_with_retries(handle, url)
        if content is None:
            step["status"] = "unfetchable"
            print(f"  ❌ Could not load page after {settings.max_fetch_attempts} attempt(s)")
            results["steps"].append(step)
            return _write_report(results, output_dir)
        step["status"] = "loaded"
        step["final_url"] = handle.page.url
        step["html_length"] = len(content)
        html_file = save_debug_html(content, "diagnose", output_dir)
        step["html"] = html_file
        print(f"  ✅ Loaded {len(content)} characters")
        print(f"  💾 HTML: {html_file}")
        results["steps"].append(step)

        step = {"step": 2, "action": "Check for block page"}
        print("\nStep 2: Checking for block page...")
        blocked = BlockedPageDetector().is_blocked(content, url=url)
        step["blocked"] = blocked
        print("  🚫 Block page detected" if blocked else "  ✅ No block signals")
        results["steps"].append(step)

        step = {"step": 3, "action": "Parse profile fields"}
        print("\nStep 3: Parsing profile fields...")
        result = ProfileParser().parse(content, url)
        if isinstance(result, ScrapeSuccess):
            step["status"] = "parsed"
            step["fields"] = result.profile.model_dump()
            print(f"  ✅ Name: {result.profile.name or '-'}")
            print(f"     Title: {result.profile.title or '-'}")
            print(f"     Emails: {len(result.profile.emails)}, social links: {len(result.profile.social_links)}, "
                  f"websites: {len(result.profile.website)}")
        else:
            step["status"] = "error"
            step["error"] = result.reason
            print(f"  ❌ {result.reason}")
        results["steps"].append(step)
    finally:
        await handle.close()

    return _write_report(results, output_dir)


def _write_report(results: dict, output_dir: str) -> dict:
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    result_file = output_path / f"diagnostic_{int(datetime.now().timestamp())}.json"
    with open(result_file, "w", encoding="utf-8") as f:
        json.dump(results, f, indent=2)

    print("\n" + "=" * 80)
    print("Diagnostic complete!")
    print(f"Results saved to: {result_file}")
    print("=" * 80 + "\n")
    return results


async def main():
    if len(sys.argv) < 2:
        print("Usage: python3 diagnose.py <profile_url> [output_dir]")
        print("\nExample:")
        print("  python3 diagnose.py https://proadvisor.intuit.com/app/accountant/search/...")
        print("  python3 diagnose.py https://proadvisor.intuit.com/app/accountant/search/... /tmp/diagnostics")
        sys.exit(1)

    url = sys.argv[1]
    output_dir = sys.argv[2] if len(sys.argv) > 2 else "/tmp"
    configure_logging("INFO")

    try:
        await diagnose_url(url, output_dir)
    except ScrapeCancelled:
        print("\n\nDiagnostic interrupted by user")
        sys.exit(130)
    except ScraperError as e:
        print(f"\n\n❌ Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n\nDiagnostic interrupted by user")
        sys.exit(130)
