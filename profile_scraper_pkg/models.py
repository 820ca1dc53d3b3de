from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from . import config


class ScraperSettings(BaseModel):
    """Tunables for one scraping run.

    Defaults come from environment variables read in `config`, so a run can
    be reconfigured without touching code; the CLI overrides individual
    fields on top of those defaults.
    """
    input_file: str = config.INPUT_FILE
    results_file: str = config.RESULTS_FILE
    block_log_file: str = config.BLOCK_LOG_FILE
    headless: bool = config.HEADLESS
    timeout: float = Field(default=config.TIMEOUT_SEC, gt=0)
    retries: int = Field(default=config.RETRIES, ge=0)
    captcha_retries: int = Field(default=config.CAPTCHA_RETRIES, ge=1)
    captcha_wait: float = Field(default=config.CAPTCHA_WAIT_SEC, ge=0)
    pace_min: float = Field(default=config.PACE_MIN_SEC, ge=0)
    pace_max: float = Field(default=config.PACE_MAX_SEC, ge=0)
    workers: int = Field(default=config.WORKERS, ge=1, le=3)
    proxies: List[str] = Field(default_factory=lambda: list(config.PROXIES))
    user_agents: List[str] = Field(default_factory=config.user_agents)
    accept_language: str = config.ACCEPT_LANGUAGE
    use_cdp: bool = config.USE_CDP
    cdp_url: str = config.CDP_URL
    debug: bool = config.DEBUG
    debug_dir: str = config.DEBUG_DIR

    @model_validator(mode="after")
    def _check_pacing(self) -> "ScraperSettings":
        if self.pace_max < self.pace_min:
            raise ValueError("pace_max must be greater than or equal to pace_min")
        return self

    @property
    def max_fetch_attempts(self) -> int:
        return self.retries + 1


class ProfileFields(BaseModel):
    """Structured fields extracted from one profile page."""
    name: Optional[str] = None
    title: Optional[str] = None
    emails: List[str] = Field(default_factory=list)
    social_links: List[str] = Field(default_factory=list)
    website: List[str] = Field(default_factory=list)


class ScrapeSuccess(BaseModel):
    """A profile that was fetched and parsed."""
    kind: Literal["success"] = "success"
    url: str
    profile: ProfileFields

    def to_row(self) -> List[str]:
        f = self.profile
        return [
            f.name or "",
            f.title or "",
            "; ".join(f.emails),
            "; ".join(f.social_links),
            self.url,
            "; ".join(f.website),
            "",
        ]


class ScrapeFailure(BaseModel):
    """A profile that completed with an error.

    The row is still durably written so the URL is never retried by later
    runs; only the error column is populated.
    """
    kind: Literal["failure"] = "failure"
    url: str
    reason: str

    def to_row(self) -> List[str]:
        return ["", "", "", "", self.url, "", self.reason]


ScrapeResult = Union[ScrapeSuccess, ScrapeFailure]


class MitigationStatus(str, Enum):
    CHECKING = "checking"
    AWAITING_HUMAN = "awaiting_human"
    RETRY = "retry"
    ABORT = "abort"
    OK = "ok"


class MitigationOutcome(BaseModel):
    """Terminal decision of one CAPTCHA mitigation pass.

    `attempts_remaining` is threaded back by the caller into the next call;
    the mitigator keeps no state of its own between calls.
    """
    status: MitigationStatus
    attempts_remaining: int


class RunSummary(BaseModel):
    total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0


class EnrichmentSummary(BaseModel):
    rows: int = 0
    scraped: int = 0
    updated: int = 0
