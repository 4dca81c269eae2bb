"""Tests for the bounded retry controller.

``time.sleep`` is patched so backoff delays are recorded instead of waited.
"""

from __future__ import annotations

from typing import Optional
from unittest.mock import patch

import pytest

from novelshelf.scraper.fetcher import ChapterFetcher, FetchBudget
from novelshelf.scraper.models import (
    BotChallenge,
    ChapterTask,
    ContentNotFound,
    Fetched,
    FetchResult,
    FetchSuccess,
    PermanentFailure,
    TransientError,
)
from novelshelf.scraper.retry import backoff_delay, fetch_with_retry

_TASK = ChapterTask(3, "https://novelbin.com/b/lotm/chapter-3-melissa")


class ScriptedFetcher(ChapterFetcher):
    """Returns the scripted results in order, repeating the last one."""

    def __init__(self, *results: FetchResult) -> None:
        self.results = list(results)
        self.calls = 0

    @property
    def name(self) -> str:
        return "scripted"

    def fetch(self, task: ChapterTask, budget: Optional[FetchBudget] = None) -> FetchResult:
        result = self.results[min(self.calls, len(self.results) - 1)]
        self.calls += 1
        return result


def _retry(fetcher: ChapterFetcher, **kwargs):
    options = dict(max_attempts=3, base_delay=5.0, jitter=0.0, challenge_backoff=10.0)
    options.update(kwargs)
    return fetch_with_retry(_TASK, fetcher, budget=FetchBudget(), **options)


class TestFetchWithRetry:
    def test_first_attempt_success(self) -> None:
        fetcher = ScriptedFetcher(FetchSuccess("<html>ok</html>"))
        with patch("novelshelf.scraper.retry.time.sleep") as mock_sleep:
            outcome = _retry(fetcher)

        assert isinstance(outcome, Fetched)
        assert outcome.attempts == 1
        assert outcome.raw_html == "<html>ok</html>"
        mock_sleep.assert_not_called()

    def test_transient_then_success(self) -> None:
        fetcher = ScriptedFetcher(TransientError("reset"), FetchSuccess("<html>ok</html>"))
        with patch("novelshelf.scraper.retry.time.sleep") as mock_sleep:
            outcome = _retry(fetcher)

        assert isinstance(outcome, Fetched)
        assert outcome.attempts == 2
        mock_sleep.assert_called_once_with(5.0)

    def test_budget_exhausted(self) -> None:
        fetcher = ScriptedFetcher(ContentNotFound("no selector"))
        with patch("novelshelf.scraper.retry.time.sleep") as mock_sleep:
            outcome = _retry(fetcher)

        assert isinstance(outcome, PermanentFailure)
        assert outcome.attempts == 3
        assert outcome.kind == "content_not_found"
        assert outcome.message == "no selector"
        assert fetcher.calls == 3
        # Increasing delay, and no sleep after the final attempt.
        assert [c.args[0] for c in mock_sleep.call_args_list] == [5.0, 10.0]

    def test_last_result_is_reported(self) -> None:
        fetcher = ScriptedFetcher(TransientError("reset"), BotChallenge("<html/>"))
        with patch("novelshelf.scraper.retry.time.sleep"):
            outcome = _retry(fetcher, max_attempts=2)

        assert isinstance(outcome, PermanentFailure)
        assert outcome.kind == "bot_challenge"

    def test_single_attempt_never_sleeps(self) -> None:
        fetcher = ScriptedFetcher(TransientError("reset"))
        with patch("novelshelf.scraper.retry.time.sleep") as mock_sleep:
            outcome = _retry(fetcher, max_attempts=1)

        assert isinstance(outcome, PermanentFailure)
        mock_sleep.assert_not_called()


class TestBackoffDelay:
    def test_grows_with_attempt(self) -> None:
        assert backoff_delay(1, 5.0, 0.0) == 5.0
        assert backoff_delay(2, 5.0, 0.0) == 10.0

    def test_jitter_is_bounded(self) -> None:
        for _ in range(20):
            assert 5.0 <= backoff_delay(1, 5.0, 3.0) <= 8.0

    @pytest.mark.parametrize(
        "result, expected",
        [(BotChallenge(), 25.0), (TransientError("x"), 5.0), (None, 5.0)],
    )
    def test_challenge_adds_backoff(self, result, expected: float) -> None:
        assert backoff_delay(1, 5.0, 0.0, result, challenge_backoff=20.0) == expected
