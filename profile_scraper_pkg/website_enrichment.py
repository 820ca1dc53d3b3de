"""Fill gaps in a results CSV from each firm's own website.

Rows whose email or social-link cell is empty get their website fetched
(home page first, then the usual about/contact pages) until the missing
values are found. Found emails are validated and checked against a
blacklist of placeholder and tracking domains; a cell never grows past
`MAX_VALUES` entries. The CSV is rewritten atomically at the end.
"""
import asyncio
import csv
import io
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import httpx
from bs4 import BeautifulSoup

from . import config
from .errors import ScraperError, SourceNotFound
from .extraction import EMAIL_RE, unique_values
from .models import EnrichmentSummary
from .scraper_logging import get_logger, log_event
from .storage import atomic_write_text, read_text

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

BLACKLIST_DOMAINS = (
    "example.com",
    "example.org",
    "example.net",
    "test.com",
    "test.org",
    "test.net",
    "domain.com",
    "localhost",
    "localdomain",
    "sentry.io",
    "wixpress.com",
    "wix.com",
    "no-reply.com",
    "noreply.com",
    "invalid.com",
)

PAGES_TO_CHECK = ("", "/about", "/contact", "/contact-us", "/about-us", "/contactus", "/aboutus", "/team", "/teams")

SITE_COLUMNS = ("site", "website", "url")
EMAIL_COLUMNS = ("emails", "email")
SOCIAL_COLUMNS = ("social_links", "socials")

SOCIAL_PATTERNS = ("facebook.com", "linkedin.com", "fb.com", "fb.me", "lnkd.in")
SKIPPED_SITE_DOMAINS = ("intuit.com",)
MAX_VALUES = 3

EMAIL_PRIORITY_SELECTORS = [
    "div[class*='contact']",
    "section[class*='contact']",
    "div[class*='email']",
    "span[class*='email']",
    "p[class*='email']",
    "div#contact",
    "footer",
    "div[class*='footer']",
]

VALID_EMAIL_RE = re.compile(r"^[\w+\-.]+@[a-z\d\-]+(\.[a-z\d\-]+)*\.[a-z]+$", re.I)
_SITE_SCHEME_RE = re.compile(r"^https?:(//|\\\\)(www\.)?", re.I)


def site_root(site: str) -> str:
    """Reduce a website cell to `https://<host>`, dropping www and any path."""
    host = _SITE_SCHEME_RE.sub("", site.strip())
    host = host.split("/")[0]
    return f"https://{host}"


def _is_junk_email(email: str) -> bool:
    return "example." in email or "@2x." in email or "sentry.io" in email


def is_acceptable_email(email: str) -> bool:
    return bool(VALID_EMAIL_RE.match(email)) and not any(d in email.lower() for d in BLACKLIST_DOMAINS)


def parse_email(soup: BeautifulSoup) -> Optional[str]:
    """Best single contact email on a page: mailto links, then contact areas, then anywhere."""
    mailtos = unique_values(
        a["href"][len("mailto:"):].split("?")[0].strip() for a in soup.select("a[href^='mailto:']")
    )
    for email in mailtos:
        if VALID_EMAIL_RE.match(email):
            return email

    for sel in EMAIL_PRIORITY_SELECTORS:
        for element in soup.select(sel):
            emails = [e for e in EMAIL_RE.findall(element.get_text(" ")) if not _is_junk_email(e)]
            if emails:
                return emails[0]

    emails = [e for e in EMAIL_RE.findall(soup.get_text(" ")) if not _is_junk_email(e)]
    return emails[0] if emails else None


def parse_socials(soup: BeautifulSoup) -> List[str]:
    found = []
    for a in soup.select("a[href]"):
        href = a["href"].strip()
        if not any(p in href for p in SOCIAL_PATTERNS):
            continue
        if href.startswith("//"):
            href = f"https:{href}"
        elif not href.startswith("http"):
            href = f"https://{href}"
        if "sharer" in href or "share.php" in href:
            continue
        found.append(href)
    return unique_values(found)


def _split_cell(cell: Optional[str]) -> List[str]:
    return [v.strip() for v in (cell or "").split(";") if v.strip()]


def _find_column(headers: Sequence[str], candidates: Sequence[str]) -> Optional[str]:
    lowered = {h.strip().lower(): h for h in headers}
    for candidate in candidates:
        if candidate in lowered:
            return lowered[candidate]
    return None


class WebsiteEnricher:
    """Concurrent website lookups that complete missing email/social cells.

    At most `concurrency` sites are fetched at once. A site that times out,
    refuses the connection or answers with an error status is skipped
    page by page; nothing here fails the run except an unreadable CSV or
    one without a website column.
    """

    def __init__(
        self,
        concurrency: int = config.ENRICH_CONCURRENCY,
        timeout: float = config.ENRICH_TIMEOUT_SEC,
        user_agent: str = USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.concurrency = max(1, concurrency)
        self.timeout = timeout
        self.user_agent = user_agent
        self.transport = transport

    async def run(self, csv_path: str) -> EnrichmentSummary:
        path = Path(csv_path)
        if not path.exists():
            raise SourceNotFound(csv_path)

        reader = csv.DictReader(io.StringIO(read_text(path)))
        headers = list(reader.fieldnames or [])
        rows = list(reader)

        site_col = _find_column(headers, SITE_COLUMNS)
        if site_col is None:
            raise ScraperError(f"'{csv_path}' must have a site, website or url column")
        email_col = _find_column(headers, EMAIL_COLUMNS) or "emails"
        social_col = _find_column(headers, SOCIAL_COLUMNS) or "social_links"
        for col in (email_col, social_col):
            if col not in headers:
                headers.append(col)

        logger.info("Processing rows", rows=len(rows), headers=headers)
        semaphore = asyncio.Semaphore(self.concurrency)
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
            max_redirects=3,
            transport=self.transport,
        ) as client:
            outcomes = await asyncio.gather(*(
                self._enrich_row(client, semaphore, index, len(rows), row, site_col, email_col, social_col)
                for index, row in enumerate(rows)
            ))

        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=headers, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)
        atomic_write_text(path, buf.getvalue())

        summary = EnrichmentSummary(
            rows=len(rows),
            scraped=sum(1 for o in outcomes if o is not None),
            updated=sum(1 for o in outcomes if o),
        )
        logger.info("CSV updated", path=str(path), **summary.model_dump())
        return summary

    async def _enrich_row(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        index: int,
        total: int,
        row: Dict[str, str],
        site_col: str,
        email_col: str,
        social_col: str,
    ) -> Optional[bool]:
        """Return None when the row was not scraped, else whether it changed."""
        sites = _split_cell(row.get(site_col))
        if not sites:
            return None
        needs_email = not _split_cell(row.get(email_col))
        needs_socials = not _split_cell(row.get(social_col))
        if not (needs_email or needs_socials):
            return None

        root = site_root(sites[0])
        if any(d in root for d in SKIPPED_SITE_DOMAINS):
            logger.info("Skipping blocked domain", site=root)
            return None

        log_event("outgoing", f"Processing row {index + 1}/{total}", site=root, email=needs_email, socials=needs_socials)
        async with semaphore:
            found = await self.scrape_site(client, root, needs_email, needs_socials)

        updated = False
        email = found.get("email")
        if email:
            if is_acceptable_email(email):
                updated |= self._merge(row, email_col, [email], "email")
            else:
                logger.info("Ignored email", email=email, site=root)
        if found.get("socials"):
            updated |= self._merge(row, social_col, found["socials"], "socials")
        return updated

    @staticmethod
    def _merge(row: Dict[str, str], column: str, values: List[str], label: str) -> bool:
        merged = unique_values(_split_cell(row.get(column)) + values)
        if len(merged) > MAX_VALUES:
            logger.warning(f"Too many {label}, skipping further adds", count=len(merged))
            return False
        row[column] = "; ".join(merged)
        log_event("success", f"Added {label}", values="; ".join(values))
        return True

    async def scrape_site(self, client: httpx.AsyncClient, root: str, needs_email: bool, needs_socials: bool) -> Dict:
        result: Dict = {}
        for page_path in PAGES_TO_CHECK:
            if (not needs_email or "email" in result) and (not needs_socials or "socials" in result):
                break
            response = await self._fetch(client, f"{root}{page_path}")
            if response is None or response.status_code >= 400 or not response.text:
                continue
            soup = BeautifulSoup(response.text, "html.parser")
            if needs_email and "email" not in result:
                email = parse_email(soup)
                if email:
                    result["email"] = email
            if needs_socials and "socials" not in result:
                socials = parse_socials(soup)
                if socials:
                    result["socials"] = socials
        return result

    @staticmethod
    async def _fetch(client: httpx.AsyncClient, url: str) -> Optional[httpx.Response]:
        try:
            return await client.get(url)
        except httpx.TimeoutException:
            logger.info("Timeout", url=url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug("Fetch failed", url=url, error=str(e))
        return None
