#!/usr/bin/env python3
"""
Collect profile URLs from a saved search-results page.

Keeps only cards carrying a QuickBooks Desktop/Pro/Premier/Enterprise badge
and appends their profile URLs to the pending list the scraper consumes.

Usage:
    python harvest_listings.py <saved_search.html> [pending.csv] [--base-url URL]
"""

import argparse
import sys

from profile_scraper_pkg import config
from profile_scraper_pkg.errors import ScraperError
from profile_scraper_pkg.listings import DEFAULT_BASE_URL, ListingHarvester, append_to_pending
from profile_scraper_pkg.scraper_logging import configure_logging


def main():
    parser = argparse.ArgumentParser(description="Harvest profile URLs from a saved search-results page")
    parser.add_argument("html_file", help="Saved search-results HTML")
    parser.add_argument(
        "output",
        nargs="?",
        default=config.INPUT_FILE,
        help=f"Pending list to append to (default: {config.INPUT_FILE})"
    )
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="Base for relative profile links")
    args = parser.parse_args()

    configure_logging(config.LOG_LEVEL)
    try:
        urls = ListingHarvester(base_url=args.base_url).harvest_file(args.html_file)
        added = append_to_pending(urls, args.output)
    except ScraperError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    print(f"✅ Added {added} profile URL(s) to {args.output}")


if __name__ == "__main__":
    main()
