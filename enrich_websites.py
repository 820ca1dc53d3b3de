#!/usr/bin/env python3
"""
Fill missing emails and social links in a results CSV from each firm's website.

Rows that already have both are left alone; the file is rewritten in place.

Usage:
    python enrich_websites.py <results.csv> [--concurrency N] [--timeout SEC]
"""

import argparse
import asyncio
import sys

from profile_scraper_pkg import config
from profile_scraper_pkg.errors import ScraperError
from profile_scraper_pkg.scraper_logging import configure_logging
from profile_scraper_pkg.website_enrichment import WebsiteEnricher


def main():
    parser = argparse.ArgumentParser(description="Enrich a results CSV with emails and social links from firm websites")
    parser.add_argument("csv_file", help="CSV with a site/website/url column")
    parser.add_argument(
        "--concurrency",
        "-t",
        type=int,
        default=config.ENRICH_CONCURRENCY,
        help="Sites fetched in parallel (default: %(default)s)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=config.ENRICH_TIMEOUT_SEC,
        help="HTTP timeout in seconds (default: %(default)s)"
    )
    args = parser.parse_args()

    configure_logging(config.LOG_LEVEL)
    enricher = WebsiteEnricher(concurrency=args.concurrency, timeout=args.timeout)
    try:
        summary = asyncio.run(enricher.run(args.csv_file))
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted by user. The CSV was not modified.")
        sys.exit(130)
    except ScraperError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    print(f"✅ Updated {summary.updated} of {summary.rows} rows ({summary.scraped} sites checked)")


if __name__ == "__main__":
    main()
