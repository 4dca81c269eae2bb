"""Bounded retry with increasing, jittered delay around a chapter fetcher."""

from __future__ import annotations

import random
import time
from typing import Optional

from novelshelf.config import settings
from novelshelf.scraper.fetcher import ChapterFetcher, FetchBudget
from novelshelf.scraper.models import (
    BotChallenge,
    ChapterTask,
    Fetched,
    FetchOutcome,
    FetchResult,
    PermanentFailure,
)


def backoff_delay(
    attempt: int,
    base_delay: float,
    jitter: float,
    result: Optional[FetchResult] = None,
    challenge_backoff: float = 0.0,
) -> float:
    """Seconds to wait after failed *attempt* (1-based) before the next one.

    ``attempt * base_delay`` plus up to *jitter* seconds of noise; a
    :class:`BotChallenge` adds *challenge_backoff* on top.
    """
    delay = attempt * base_delay + random.uniform(0, jitter)
    if isinstance(result, BotChallenge):
        delay += challenge_backoff
    return delay


def fetch_with_retry(
    task: ChapterTask,
    fetcher: ChapterFetcher,
    max_attempts: Optional[int] = None,
    budget: Optional[FetchBudget] = None,
    base_delay: Optional[float] = None,
    jitter: Optional[float] = None,
    challenge_backoff: Optional[float] = None,
) -> FetchOutcome:
    """Fetch *task* up to *max_attempts* times.

    Every non-success result (bot challenge, content not found, transient
    error) is retried under the same budget.  Returns :class:`Fetched` on the
    first success, or :class:`PermanentFailure` carrying the last result once
    the budget is exhausted.  Never raises.
    """
    max_attempts = max(1, settings.max_attempts if max_attempts is None else max_attempts)
    base_delay = settings.retry_base_delay if base_delay is None else base_delay
    jitter = settings.retry_jitter if jitter is None else jitter
    challenge_backoff = (
        settings.challenge_backoff if challenge_backoff is None else challenge_backoff
    )
    budget = budget or FetchBudget.from_settings()

    result: Optional[FetchResult] = None
    for attempt in range(1, max_attempts + 1):
        print(f"[RETRY] chapter {task.number}: attempt {attempt}/{max_attempts} ({fetcher.name})")
        result = fetcher.fetch(task, budget)
        if result.ok:
            return Fetched(task=task, raw_html=result.raw_html, attempts=attempt)

        print(f"[RETRY] chapter {task.number}: ✗ {result.kind}: {result.message}")
        if attempt < max_attempts:
            delay = backoff_delay(attempt, base_delay, jitter, result, challenge_backoff)
            print(f"[RETRY] chapter {task.number}: waiting {delay:.0f}s before retry …")
            time.sleep(delay)

    print(f"[RETRY] chapter {task.number}: ✗ giving up after {max_attempts} attempt(s)")
    return PermanentFailure(task=task, last_result=result, attempts=max_attempts)
