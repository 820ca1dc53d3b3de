import os
from typing import List


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ["1", "true", "yes"]


def _env_list(name: str) -> List[str]:
    raw = os.environ.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


INPUT_FILE = os.environ.get("SCRAPER_INPUT_FILE", "profiles_list.csv")
RESULTS_FILE = os.environ.get("SCRAPER_RESULTS_FILE", "profiles.csv")
BLOCK_LOG_FILE = os.environ.get("SCRAPER_BLOCK_LOG_FILE", "blocked_urls.csv")

HEADLESS = _env_bool("SCRAPER_HEADLESS", "true")
TIMEOUT_SEC = float(os.environ.get("SCRAPER_TIMEOUT", "30"))
RETRIES = int(os.environ.get("SCRAPER_RETRIES", "2"))
CAPTCHA_RETRIES = int(os.environ.get("SCRAPER_CAPTCHA_RETRIES", "3"))
CAPTCHA_WAIT_SEC = float(os.environ.get("SCRAPER_CAPTCHA_WAIT", "30"))
PACE_MIN_SEC = float(os.environ.get("SCRAPER_PACE_MIN", "4"))
PACE_MAX_SEC = float(os.environ.get("SCRAPER_PACE_MAX", "9"))
WORKERS = int(os.environ.get("SCRAPER_WORKERS", "1"))
PROXIES = _env_list("SCRAPER_PROXIES")
ACCEPT_LANGUAGE = os.environ.get("SCRAPER_ACCEPT_LANGUAGE", "en-US,en;q=0.9")

USE_CDP = _env_bool("SCRAPER_USE_CDP", "false")
CDP_URL = os.environ.get("SCRAPER_CDP_URL", "http://127.0.0.1:9222")

DEBUG = _env_bool("SCRAPER_DEBUG", "false")
DEBUG_DIR = os.environ.get("SCRAPER_DEBUG_DIR", "/tmp")
LOG_LEVEL = os.environ.get("SCRAPER_LOG_LEVEL", "INFO")

ENRICH_CONCURRENCY = int(os.environ.get("SCRAPER_ENRICH_CONCURRENCY", "4"))
ENRICH_TIMEOUT_SEC = float(os.environ.get("SCRAPER_ENRICH_TIMEOUT", "10"))

# Columns that may carry the profile URL in a tabular pending list, by priority.
URL_COLUMNS = ("url", "link", "site")

RESULT_HEADERS = ["name", "title", "emails", "social_links", "profile_url", "website", "error"]
BLOCK_LOG_HEADERS = ["observed_at", "url"]

BLOCKED_SELECTORS = [
    "#qba-matchmaking-ui-search-captcha",
    "h2.captcha-title",
    ".g-recaptcha",
    "form[action*='captcha']",
]
BLOCKED_PATTERN = r"captcha|verify you are human|unusual traffic|security verification"

SOCIAL_DOMAINS = [
    "facebook.com",
    "twitter.com",
    "x.com",
    "linkedin.com",
    "instagram.com",
    "youtube.com",
    "pinterest.com",
    "tiktok.com",
]

WEBSITE_SELECTORS = [
    "a[class*='website']",
    "a[class*='url']",
    "div[class*='website'] a",
]
# Anchor texts that mark an outbound website link.
WEBSITE_LINK_TEXTS = ["Website", "Visit"]

WEBSITE_EXCLUDED_DOMAINS = [
    "facebook.com",
    "twitter.com",
    "linkedin.com",
    "instagram.com",
    "proadvisor.intuit.com",
    "intuit.com",
]


def user_agents():
    """Return a curated pool of desktop and mobile user agents.

    Rotating across a small, realistic set of user agents reduces the chance
    of fingerprinting correlating all sessions to a single static UA.
    """
    return [
        # Chrome (macOS)
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_6) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 12_6) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.6074.119 Safari/537.36",
        # Chrome (Windows)
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/118.0.5993.117 Safari/537.36",
        # Firefox
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:124.0) Gecko/20100101 Firefox/124.0",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 13.6; rv:122.0) Gecko/20100101 Firefox/122.0",
        # Safari
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_4) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/16.4 Safari/605.1.15",
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/605.1.15",
        # Android Chrome
        "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36",
        "Mozilla/5.0 (Linux; Android 13; SM-S918B) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.6045.117 Mobile Safari/537.36",
        # Edge (Windows)
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
    ]

