"""Data models for the chapter pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True)
class ChapterTask:
    """One chapter to fetch.  Identity is the sequence number."""

    number: int
    url: str
    known_title: Optional[str] = None

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError(f"chapter number must be positive, got {self.number}")


# ---------------------------------------------------------------------------
# Per-attempt fetch results
# ---------------------------------------------------------------------------

@dataclass
class FetchSuccess:
    raw_html: str

    kind = "success"
    ok = True

    @property
    def message(self) -> str:
        return ""


@dataclass
class BotChallenge:
    """The site served a human-verification page instead of the chapter."""

    snapshot: str = ""

    kind = "bot_challenge"
    ok = False

    @property
    def message(self) -> str:
        return "bot challenge still present after dwell"


@dataclass
class ContentNotFound:
    message: str = "no content selector matched"

    kind = "content_not_found"
    ok = False


@dataclass
class TransientError:
    message: str

    kind = "transient_error"
    ok = False


FetchResult = Union[FetchSuccess, BotChallenge, ContentNotFound, TransientError]


# ---------------------------------------------------------------------------
# Retry controller outcomes
# ---------------------------------------------------------------------------

@dataclass
class Fetched:
    task: ChapterTask
    raw_html: str
    attempts: int


@dataclass
class PermanentFailure:
    """Attempt budget exhausted; terminal for the task within this run."""

    task: ChapterTask
    last_result: FetchResult
    attempts: int

    @property
    def kind(self) -> str:
        return self.last_result.kind

    @property
    def message(self) -> str:
        return self.last_result.message


FetchOutcome = Union[Fetched, PermanentFailure]


# ---------------------------------------------------------------------------
# Extraction / persisted artifacts
# ---------------------------------------------------------------------------

@dataclass
class ExtractedChapter:
    """Title and unsanitized body container chosen by the extractor."""

    title: str
    body_html: str
    selector: str


@dataclass
class ChapterArtifact:
    """A cleaned chapter ready to be rendered to disk."""

    number: int
    title: str
    body_html: str
    extracted_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc).replace(microsecond=0)
    )


class ErrorCategory(str, Enum):
    SCRAPE_FAILURE = "ScrapeFailure"
    CONTENT_MISSING = "ContentMissing"
    BOT_CHALLENGE_RESIDUAL = "BotChallengeResidual"


@dataclass
class ErrorRecord:
    number: int
    category: ErrorCategory
    message: str
    path: str = ""
