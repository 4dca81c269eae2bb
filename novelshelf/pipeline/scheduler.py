"""Batch scheduler: drives the per-chapter fetch → extract → persist pipeline.

Tasks run on a small ``ThreadPoolExecutor``.  Each worker owns exactly one
sequence number at a time and touches only that chapter's files, so the
filesystem is the only shared state.  Re-running is safe: chapters with a
valid clean page are skipped, which makes the scheduler resumable after an
interruption.
"""

from __future__ import annotations

import random
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence

from bs4 import BeautifulSoup

from novelshelf.config import MAX_WORKER_CAP, settings
from novelshelf.errors import ContentNotFoundError, ExtractionError
from novelshelf.pipeline.render import render_chapter_page
from novelshelf.pipeline.storage import ArtifactStore
from novelshelf.scraper.extractor import extract_chapter, text_length
from novelshelf.scraper.fetcher import ChapterFetcher, FetchBudget
from novelshelf.scraper.models import ChapterArtifact, ChapterTask, PermanentFailure
from novelshelf.scraper.retry import fetch_with_retry
from novelshelf.scraper.sanitizer import sanitize


class TaskStatus(str, Enum):
    SUCCEEDED = "succeeded"
    CACHED = "cached"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TaskResult:
    number: int
    status: TaskStatus
    title: str = ""
    message: str = ""


@dataclass
class BatchReport:
    """Settled results of one batch; all counts derive from ``results``."""

    results: list[TaskResult] = field(default_factory=list)

    def _count(self, *statuses: TaskStatus) -> int:
        return sum(1 for r in self.results if r.status in statuses)

    @property
    def succeeded(self) -> int:
        return self._count(TaskStatus.SUCCEEDED, TaskStatus.CACHED)

    @property
    def skipped(self) -> int:
        return self._count(TaskStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(TaskStatus.FAILED)

    @property
    def failed_numbers(self) -> list[int]:
        return [r.number for r in self.results if r.status is TaskStatus.FAILED]


# ---------------------------------------------------------------------------
# Per-chapter steps
# ---------------------------------------------------------------------------

def clean_chapter(
    raw_html: str,
    task: ChapterTask,
    min_content_chars: Optional[int] = None,
    min_block_chars: Optional[int] = None,
) -> ChapterArtifact:
    """Extract and sanitize one chapter.

    The sanitized body must still hold *min_content_chars* characters of
    text, the same rule the error scan applies to clean pages.

    Raises:
        ExtractionError: If no content survives extraction and sanitizing.
    """
    threshold = settings.min_content_chars if min_content_chars is None else min_content_chars
    extracted = extract_chapter(raw_html, task.number, task.known_title, min_chars=threshold)
    body = sanitize(extracted.body_html, min_block_chars)
    if not body:
        raise ExtractionError(f"chapter {task.number}: body empty after sanitizing")
    length = text_length(BeautifulSoup(body, "html.parser"))
    if length < threshold:
        raise ContentNotFoundError(
            f"chapter {task.number}: only {length} characters left after sanitizing "
            f"(minimum {threshold})"
        )
    return ChapterArtifact(number=task.number, title=extracted.title, body_html=body)


def persist_clean(
    store: ArtifactStore, task: ChapterTask, raw_html: str, total: int
) -> TaskResult:
    """Clean *raw_html* and write the chapter page; sentinel on failure."""
    try:
        artifact = clean_chapter(raw_html, task)
    except ExtractionError as exc:
        store.write_sentinel(task.number, task.url, exc.kind, str(exc))
        print(f"[BATCH] chapter {task.number}: ✗ {exc}")
        return TaskResult(task.number, TaskStatus.FAILED, message=str(exc))
    store.write_clean(task.number, render_chapter_page(artifact, total))
    return TaskResult(task.number, TaskStatus.SUCCEEDED, title=artifact.title)


def process_task(
    task: ChapterTask,
    store: ArtifactStore,
    fetcher: ChapterFetcher,
    total: int,
    budget: Optional[FetchBudget] = None,
    max_attempts: Optional[int] = None,
) -> TaskResult:
    """Fetch, persist raw, then clean one chapter."""
    outcome = fetch_with_retry(task, fetcher, max_attempts=max_attempts, budget=budget)
    if isinstance(outcome, PermanentFailure):
        store.write_sentinel(task.number, task.url, outcome.kind, outcome.message)
        return TaskResult(task.number, TaskStatus.FAILED, message=outcome.message)

    store.write_raw(task.number, outcome.raw_html)
    result = persist_clean(store, task, outcome.raw_html, total)
    if result.status is TaskStatus.SUCCEEDED:
        print(f"[BATCH] chapter {task.number}: ✓ {result.title!r}")
    return result


def settle_from_disk(
    store: ArtifactStore, task: ChapterTask, total: int
) -> Optional[TaskResult]:
    """Resolve *task* from existing artifacts, or ``None`` if it must be fetched."""
    if store.is_complete(task.number):
        print(f"[BATCH] chapter {task.number}: already complete, skipping")
        return TaskResult(task.number, TaskStatus.SKIPPED)
    if store.has_valid_raw(task.number):
        print(f"[BATCH] chapter {task.number}: cleaning from raw cache")
        result = persist_clean(store, task, store.read_raw(task.number), total)
        if result.status is TaskStatus.SUCCEEDED:
            result.status = TaskStatus.CACHED
        return result
    return None


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------

def run_batch(
    tasks: Sequence[ChapterTask],
    store: ArtifactStore,
    fetcher: ChapterFetcher,
    total: Optional[int] = None,
    max_workers: Optional[int] = None,
    only: Optional[Iterable[int]] = None,
    force: bool = False,
    budget: Optional[FetchBudget] = None,
    max_attempts: Optional[int] = None,
    delay_range: Optional[tuple[float, float]] = None,
) -> BatchReport:
    """Run every task and return the settled, number-sorted results.

    Args:
        tasks: Ordered tasks with unique sequence numbers.
        store: Artifact store for this novel.
        fetcher: Fetch worker shared by all threads (stateless per call).
        total: Known chapter total for navigation links; defaults to the
            highest task number.
        max_workers: Concurrent chapters (clamped to 1..4).
        only: Restrict the run to these sequence numbers (remediation).
        force: Re-fetch even when a valid artifact already exists.
        delay_range: ``(min, max)`` seconds slept before each dispatched
            task after the first.

    No per-task failure aborts the batch; failures become sentinel artifacts
    and ``FAILED`` results.
    """
    wanted = set(only) if only is not None else None
    selected = [t for t in tasks if wanted is None or t.number in wanted]
    total = total if total is not None else max((t.number for t in tasks), default=0)
    workers = max(1, min(max_workers or settings.worker_count, MAX_WORKER_CAP))
    low, high = delay_range or (settings.task_delay_min, settings.task_delay_max)

    report = BatchReport()
    pending: list[ChapterTask] = []
    for task in selected:
        result = None
        if not force:
            try:
                result = settle_from_disk(store, task, total)
            except Exception as exc:
                print(f"[BATCH] chapter {task.number}: ⚠️ cached artifacts unusable ({exc}), re-fetching")
        if result is None:
            pending.append(task)
        else:
            report.results.append(result)

    print(f"[BATCH] {len(pending)} chapter(s) to fetch with {workers} worker(s)")

    def _run(index: int, task: ChapterTask) -> TaskResult:
        if index > 0 and high > 0:
            time.sleep(random.uniform(low, max(low, high)))
        return process_task(task, store, fetcher, total, budget, max_attempts)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        future_to_task = {
            pool.submit(_run, i, task): task for i, task in enumerate(pending)
        }
        for future in as_completed(future_to_task):
            task = future_to_task[future]
            try:
                report.results.append(future.result())
            except Exception as exc:
                print(f"[BATCH] chapter {task.number}: ✗ unexpected error: {exc}")
                try:
                    store.write_sentinel(task.number, task.url, "transient_error", str(exc))
                except OSError as write_exc:
                    print(f"[BATCH] chapter {task.number}: could not write sentinel: {write_exc}")
                report.results.append(
                    TaskResult(task.number, TaskStatus.FAILED, message=str(exc))
                )

    report.results.sort(key=lambda r: r.number)
    print(
        f"[BATCH] done: {report.succeeded} succeeded, "
        f"{report.skipped} skipped, {report.failed} failed"
    )
    return report
