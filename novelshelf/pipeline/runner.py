"""Whole-novel runs: batch → index, clean rebuilds, and remediation passes.

Typical flow::

    novel = load_novel("lord-of-the-mysteries.json")
    summary = run_novel(novel)              # full (resumable) run
    records = scan(novel.store())           # find bad chapters
    run_novel(novel, only=remediation_numbers(records), force=True)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from novelshelf.pipeline.manifest import NovelConfig
from novelshelf.pipeline.render import IndexEntry, read_chapter_page, render_index
from novelshelf.pipeline.scheduler import BatchReport, persist_clean, run_batch
from novelshelf.pipeline.storage import ArtifactStore
from novelshelf.scraper.fetcher import ChapterFetcher, build_fetcher


@dataclass
class RunSummary:
    report: BatchReport
    index_path: Path
    indexed: int


def build_index(novel: NovelConfig, store: Optional[ArtifactStore] = None) -> tuple[Path, int]:
    """Write the index over every valid clean page currently on disk."""
    store = store or novel.store()
    entries = []
    for number, path in store.iter_clean():
        if not store.is_complete(number):
            continue
        try:
            artifact = read_chapter_page(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            print(f"[CLEAN] chapter {number}: ⚠️ unreadable clean page skipped ({exc})")
            continue
        entries.append(IndexEntry(number=number, title=artifact.title))
    path = store.write_index(render_index(novel.title, entries))
    print(f"[CLEAN] index with {len(entries)} chapter(s): {path}")
    return path, len(entries)


def run_novel(
    novel: NovelConfig,
    fetcher: Optional[ChapterFetcher] = None,
    chapter_range: Optional[tuple[int, int]] = None,
    only: Optional[Iterable[int]] = None,
    force: bool = False,
    max_workers: Optional[int] = None,
    **batch_options,
) -> RunSummary:
    """Run the batch for *novel*, then rebuild the index once.

    A full run and a targeted remediation run (``only=..., force=True``) go
    through the same scheduler.
    """
    store = novel.store()
    fetcher = fetcher or build_fetcher(site_url=novel.base_url)
    tasks = novel.tasks(chapter_range=chapter_range, only=only)
    print(f"[BATCH] {novel.title}: {len(tasks)} chapter(s) selected")
    report = run_batch(
        tasks,
        store,
        fetcher,
        total=novel.total,
        max_workers=max_workers,
        force=force,
        **batch_options,
    )
    index_path, indexed = build_index(novel, store)
    return RunSummary(report=report, index_path=index_path, indexed=indexed)


def rebuild_clean(novel: NovelConfig) -> RunSummary:
    """Re-render every clean page from the raw cache without fetching."""
    store = novel.store()
    report = BatchReport()
    raw_numbers = set(store.raw_numbers())
    for task in novel.tasks():
        if task.number not in raw_numbers or not store.has_valid_raw(task.number):
            continue
        raw = store.read_raw(task.number)
        report.results.append(persist_clean(store, task, raw, novel.total))
    print(f"[CLEAN] rebuilt {report.succeeded} page(s), {report.failed} failed")
    index_path, indexed = build_index(novel, store)
    return RunSummary(report=report, index_path=index_path, indexed=indexed)
