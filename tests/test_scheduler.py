"""Tests for the batch scheduler: skip/resume, sentinels and concurrency.

A scripted in-memory fetcher stands in for the browser; the scheduler's
inter-task delay is disabled with ``delay_range=(0, 0)`` and retry backoff is
patched out.
"""

from __future__ import annotations

import threading
from typing import Optional
from unittest.mock import patch

import pytest

from conftest import CHALLENGE_HTML, chapter_html
from novelshelf.pipeline.classifier import scan
from novelshelf.pipeline.scheduler import TaskStatus, run_batch
from novelshelf.pipeline.storage import ArtifactStore, parse_sentinel
from novelshelf.scraper.fetcher import ChapterFetcher, FetchBudget
from novelshelf.scraper.models import (
    ChapterTask,
    ContentNotFound,
    ErrorCategory,
    FetchResult,
    FetchSuccess,
)

_BASE = "https://novelbin.com/b/lotm"


class MapFetcher(ChapterFetcher):
    """Serves canned results per chapter number and records every call."""

    def __init__(self, results: dict[int, FetchResult]) -> None:
        self.results = results
        self.calls: list[int] = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "map"

    def fetch(self, task: ChapterTask, budget: Optional[FetchBudget] = None) -> FetchResult:
        with self._lock:
            self.calls.append(task.number)
        result = self.results[task.number]
        if isinstance(result, Exception):
            raise result
        return result


def _tasks(*numbers: int) -> list[ChapterTask]:
    return [ChapterTask(n, f"{_BASE}/chapter-{n}") for n in numbers]


def _ok(number: int) -> FetchSuccess:
    return FetchSuccess(chapter_html(number, f"Title {number}"))


@pytest.fixture()
def store(tmp_path) -> ArtifactStore:
    return ArtifactStore(tmp_path / "raw", tmp_path / "clean")


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("novelshelf.scraper.retry.time.sleep"):
        yield


def _run(tasks, store, fetcher, **kwargs):
    kwargs.setdefault("max_attempts", 2)
    kwargs.setdefault("delay_range", (0, 0))
    return run_batch(tasks, store, fetcher, **kwargs)


# ---------------------------------------------------------------------------
# Single batch
# ---------------------------------------------------------------------------

class TestRunBatch:
    def test_one_failure_does_not_abort_the_batch(self, store) -> None:
        fetcher = MapFetcher({1: _ok(1), 2: ContentNotFound("no selector"), 3: _ok(3)})
        report = _run(_tasks(1, 2, 3), store, fetcher)

        assert report.succeeded == 2
        assert report.failed_numbers == [2]
        assert [r.number for r in report.results] == [1, 2, 3]

        assert store.clean_path(1).exists()
        assert store.clean_path(3).exists()
        assert not store.clean_path(2).exists()
        sentinel = parse_sentinel(store.read_raw(2))
        assert sentinel is not None
        assert sentinel.kind == "content_not_found"
        assert fetcher.calls.count(2) == 2

    def test_navigation_links_follow_sequence(self, store) -> None:
        fetcher = MapFetcher({1: _ok(1), 2: ContentNotFound("x"), 3: _ok(3)})
        _run(_tasks(1, 2, 3), store, fetcher)

        first = store.read_clean(1)
        last = store.read_clean(3)
        assert 'rel="prev"' not in first
        assert 'href="chapter_0002.html"' in first
        assert 'href="chapter_0002.html"' in last
        assert 'rel="next"' not in last

    def test_total_drives_next_link(self, store) -> None:
        fetcher = MapFetcher({3: _ok(3)})
        _run(_tasks(3), store, fetcher, total=10)
        assert 'href="chapter_0004.html"' in store.read_clean(3)

    def test_challenge_html_becomes_sentinel(self, store) -> None:
        fetcher = MapFetcher({1: FetchSuccess(CHALLENGE_HTML)})
        report = _run(_tasks(1), store, fetcher)

        assert report.failed_numbers == [1]
        assert parse_sentinel(store.read_raw(1)).kind == "bot_challenge"

    def test_threshold_applies_after_sanitizing(self, store) -> None:
        # 5 story paragraphs (499 chars) plus filler lines the sanitizer strips.
        filler = "<p>Read at novelbin</p>" * 10
        container = '<div id="chr-content">{body}' + filler + "</div>"
        raw = chapter_html(1, paragraphs=5, container=container)
        fetcher = MapFetcher({1: FetchSuccess(raw)})
        report = _run(_tasks(1), store, fetcher)

        assert report.failed_numbers == [1]
        assert fetcher.calls == [1]
        assert not store.clean_path(1).exists()
        assert parse_sentinel(store.read_raw(1)).kind == "content_not_found"
        assert scan(store, min_content_chars=500)[0].category is ErrorCategory.CONTENT_MISSING

    def test_unexpected_exception_is_contained(self, store) -> None:
        fetcher = MapFetcher({1: RuntimeError("boom"), 2: _ok(2)})
        report = _run(_tasks(1, 2), store, fetcher)

        assert report.failed_numbers == [1]
        assert report.succeeded == 1
        assert parse_sentinel(store.read_raw(1)).kind == "transient_error"

    def test_concurrent_workers_keep_results_ordered(self, store) -> None:
        numbers = range(1, 7)
        fetcher = MapFetcher({n: _ok(n) for n in numbers})
        report = _run(_tasks(*numbers), store, fetcher, max_workers=3)

        assert [r.number for r in report.results] == list(numbers)
        assert report.succeeded == 6
        assert sorted(fetcher.calls) == list(numbers)


# ---------------------------------------------------------------------------
# Resume / remediation
# ---------------------------------------------------------------------------

class TestResume:
    def test_second_run_only_refetches_failures(self, store) -> None:
        fetcher = MapFetcher({1: _ok(1), 2: ContentNotFound("x"), 3: _ok(3)})
        _run(_tasks(1, 2, 3), store, fetcher)

        fetcher.calls.clear()
        fetcher.results[2] = _ok(2)
        report = _run(_tasks(1, 2, 3), store, fetcher)

        assert fetcher.calls == [2]
        assert report.skipped == 2
        assert report.failed == 0
        assert store.clean_path(2).exists()

    def test_rerun_leaves_clean_pages_identical(self, store) -> None:
        fetcher = MapFetcher({1: _ok(1), 2: _ok(2)})
        _run(_tasks(1, 2), store, fetcher)
        before = {n: store.read_clean(n) for n in store.clean_numbers()}

        _run(_tasks(1, 2), store, fetcher)
        after = {n: store.read_clean(n) for n in store.clean_numbers()}

        assert after == before
        assert len(fetcher.calls) == 2

    def test_valid_raw_is_recleaned_without_fetching(self, store) -> None:
        store.write_raw(1, chapter_html(1, "Crimson"))
        fetcher = MapFetcher({})
        report = _run(_tasks(1), store, fetcher)

        assert fetcher.calls == []
        assert report.results[0].status is TaskStatus.CACHED
        assert store.clean_path(1).exists()

    def test_force_refetches(self, store) -> None:
        fetcher = MapFetcher({1: _ok(1)})
        _run(_tasks(1), store, fetcher)
        _run(_tasks(1), store, fetcher, force=True)
        assert fetcher.calls == [1, 1]

    def test_only_restricts_the_run(self, store) -> None:
        fetcher = MapFetcher({2: _ok(2)})
        report = _run(_tasks(1, 2, 3), store, fetcher, only=[2])

        assert fetcher.calls == [2]
        assert [r.number for r in report.results] == [2]

    def test_unreadable_raw_is_refetched(self, store) -> None:
        store.raw_path(1).parent.mkdir(parents=True, exist_ok=True)
        store.raw_path(1).write_bytes(b"\xff\xfe")
        assert store.has_valid_raw(1) is False

        fetcher = MapFetcher({1: _ok(1), 2: _ok(2)})
        report = _run(_tasks(1, 2), store, fetcher)

        assert sorted(fetcher.calls) == [1, 2]
        assert report.succeeded == 2
        assert store.has_valid_raw(1) is True

    def test_unreadable_raw_next_to_clean_page_is_not_complete(self, store) -> None:
        store.write_clean(1, "<html>stale</html>")
        store.raw_path(1).parent.mkdir(parents=True, exist_ok=True)
        store.raw_path(1).write_bytes(b"\xff\xfe")
        assert store.is_complete(1) is False

        fetcher = MapFetcher({1: _ok(1)})
        _run(_tasks(1), store, fetcher)
        assert fetcher.calls == [1]
        assert "stale" not in store.read_clean(1)

    def test_clean_page_with_sentinel_raw_is_not_complete(self, store) -> None:
        store.write_clean(1, "<html>stale</html>")
        store.raw_path(1).parent.mkdir(parents=True, exist_ok=True)
        store.raw_path(1).write_text("<!-- ERROR: timed out -->", encoding="utf-8")
        fetcher = MapFetcher({1: _ok(1)})
        _run(_tasks(1), store, fetcher)

        assert fetcher.calls == [1]
        assert "stale" not in store.read_clean(1)
