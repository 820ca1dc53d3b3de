import re
from typing import List, Optional, Protocol, Sequence
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from . import config
from .models import ProfileFields, ScrapeFailure, ScrapeResult, ScrapeSuccess

NAME_SELECTORS = [
    "h1.accountant-name",
    "h1[class*='name']",
    "div.profile-name h1",
    "div[class*='accountant'] h1",
    "h2.accountant-name",
    "span.accountant-name",
    "div.name-container",
    "[data-testid='accountant-name']",
    "h1",
    ".profile-header h1",
]

TITLE_SELECTORS = [
    "div.title",
    "span.title",
    "p.designation",
    "div.professional-title",
    "span.job-title",
    "div[class*='title']",
    "span[class*='designation']",
    "[data-testid='professional-title']",
]

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
CONTACT_SELECTORS = ["div[class*='contact']", "section[class*='contact']"]


class FieldExtractor(Protocol):
    def parse(self, content: str, url: str) -> ScrapeResult: ...


def unique_values(values) -> List[str]:
    seen = set()
    out = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


class ProfileParser:
    """Turn a rendered profile page into a ScrapeResult.

    Name and title come from the first selector that yields non-empty text;
    emails, social links and website links are collected from the whole
    page and deduplicated in page order. Never raises: any internal error
    becomes a ScrapeFailure so the run records it and moves on.
    """

    def __init__(
        self,
        social_domains: Sequence[str] = config.SOCIAL_DOMAINS,
        website_selectors: Sequence[str] = config.WEBSITE_SELECTORS,
        website_link_texts: Sequence[str] = config.WEBSITE_LINK_TEXTS,
        excluded_domains: Sequence[str] = config.WEBSITE_EXCLUDED_DOMAINS,
    ):
        self.social_domains = [d.lower() for d in social_domains]
        self.website_selectors = list(website_selectors)
        self.website_link_texts = list(website_link_texts)
        self.excluded_domains = list(excluded_domains)

    def parse(self, content: str, url: str) -> ScrapeResult:
        try:
            soup = BeautifulSoup(content, "html.parser")
            fields = ProfileFields(
                name=self._text_by_selectors(soup, NAME_SELECTORS),
                title=self._text_by_selectors(soup, TITLE_SELECTORS),
                emails=self._emails(soup),
                social_links=self._social_links(soup),
                website=self._websites(soup),
            )
            return ScrapeSuccess(url=url, profile=fields)
        except Exception as e:
            return ScrapeFailure(url=url, reason=f"Scraping Error - {e}")

    @staticmethod
    def _text_by_selectors(soup: BeautifulSoup, selectors: Sequence[str]) -> Optional[str]:
        for sel in selectors:
            element = soup.select_one(sel)
            if element is None:
                continue
            text = element.get_text(" ", strip=True)
            if text:
                return text
        return None

    @staticmethod
    def _emails(soup: BeautifulSoup) -> List[str]:
        emails = []
        for link in soup.select("a[href^='mailto:']"):
            emails.append(link["href"][len("mailto:"):].split("?")[0].strip())
        emails += EMAIL_RE.findall(soup.get_text(" "))
        for sel in CONTACT_SELECTORS:
            for section in soup.select(sel):
                emails += EMAIL_RE.findall(section.get_text(" "))
        return unique_values(emails)

    def _is_social(self, link: str) -> bool:
        try:
            host = (urlparse(link).hostname or "").lower()
        except ValueError:
            return False
        if not host:
            return False
        return any(host == d or host.endswith(f".{d}") for d in self.social_domains)

    def _social_links(self, soup: BeautifulSoup) -> List[str]:
        links = [a["href"].strip() for a in soup.select("a[href]")]
        return unique_values(link for link in links if self._is_social(link))

    def _websites(self, soup: BeautifulSoup) -> List[str]:
        candidates = []
        for sel in self.website_selectors:
            candidates += [a.get("href", "") for a in soup.select(sel) if a.name == "a"]
        for a in soup.select("a[href]"):
            text = a.get_text(" ", strip=True)
            if any(label in text for label in self.website_link_texts):
                candidates.append(a["href"])
        return unique_values(
            u.strip() for u in candidates
            if u.strip().startswith("http") and not any(d in u for d in self.excluded_domains)
        )
