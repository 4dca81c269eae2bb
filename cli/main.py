"""novelshelf CLI: entry-point for all pipeline operations.

Usage:
    python cli/main.py --help

Commands:
    scrape    → fetch, clean and index a manifest's chapters (resumable)
    report    → scan artifacts and list chapters needing a re-fetch
    retry     → re-fetch only the chapters flagged by ``report``
    clean     → rebuild clean pages and the index from the raw cache
    pdf       → print all clean chapters into one PDF
    manifest  → build / inspect chapter manifests
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from novelshelf.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from typing import Optional

import typer

from cli.commands.manifest import manifest_app
from novelshelf.errors import NovelShelfError
from novelshelf.pipeline.classifier import (
    group_by_category,
    read_retry_list,
    remediation_numbers,
    scan,
    write_retry_list,
)
from novelshelf.pipeline.manifest import NovelConfig, load_novel
from novelshelf.pipeline.runner import RunSummary, rebuild_clean, run_novel
from novelshelf.scraper.fetcher import build_fetcher

app = typer.Typer(
    name="novelshelf",
    help="Batch scraper and cleaner for web-novel chapters.",
    no_args_is_help=True,
)
app.add_typer(manifest_app, name="manifest")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load(manifest: Path) -> NovelConfig:
    try:
        return load_novel(manifest)
    except NovelShelfError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)


def _echo_summary(tag: str, summary: RunSummary) -> None:
    report = summary.report
    typer.echo(f"[{tag}] Succeeded: {report.succeeded}")
    typer.echo(f"[{tag}] Skipped  : {report.skipped}")
    typer.echo(f"[{tag}] Failed   : {report.failed}")
    if report.failed_numbers:
        typer.echo(f"[{tag}] Failed chapters: {', '.join(map(str, report.failed_numbers))}")
    typer.echo(f"[{tag}] Index    : {summary.index_path} ({summary.indexed} chapters)")


# ---------------------------------------------------------------------------
# Scrape / retry / clean
# ---------------------------------------------------------------------------

@app.command("scrape")
def scrape(
    manifest: Path = typer.Argument(..., help="Manifest JSON file."),
    start: Optional[int] = typer.Option(None, "--start", help="First chapter number."),
    end: Optional[int] = typer.Option(None, "--end", help="Last chapter number (inclusive)."),
    workers: Optional[int] = typer.Option(None, "--workers", help="Concurrent chapters (1-4)."),
    force: bool = typer.Option(False, "--force", help="Re-fetch chapters that already exist."),
    http: bool = typer.Option(False, "--http", help="Plain HTTP instead of a headless browser."),
) -> None:
    """Fetch, clean and index the manifest's chapters."""
    novel = _load(manifest)
    chapter_range = None
    if start is not None or end is not None:
        chapter_range = (start or 1, end or novel.total)

    typer.echo(f"[scrape] {novel.title}: chapters {chapter_range or 'all'} …")
    fetcher = build_fetcher("http" if http else None, site_url=novel.base_url)
    summary = run_novel(
        novel, fetcher=fetcher, chapter_range=chapter_range, force=force, max_workers=workers
    )
    _echo_summary("scrape", summary)


@app.command("retry")
def retry(
    manifest: Path = typer.Argument(..., help="Manifest JSON file."),
    from_list: Optional[Path] = typer.Option(
        None, "--from-list", help="Retry list written by 'report --write-retry-list'."
    ),
    workers: Optional[int] = typer.Option(None, "--workers", help="Concurrent chapters (1-4)."),
    http: bool = typer.Option(False, "--http", help="Plain HTTP instead of a headless browser."),
) -> None:
    """Re-fetch only the chapters flagged by the error scan."""
    novel = _load(manifest)
    if from_list is not None:
        numbers = read_retry_list(from_list)
    else:
        numbers = remediation_numbers(scan(novel.store()))

    if not numbers:
        typer.echo("✅ Nothing to retry.")
        return

    typer.echo(f"🔁 Retrying {len(numbers)} chapter(s): {', '.join(map(str, numbers))}")
    fetcher = build_fetcher("http" if http else None, site_url=novel.base_url)
    summary = run_novel(novel, fetcher=fetcher, only=numbers, force=True, max_workers=workers)
    _echo_summary("retry", summary)


@app.command("clean")
def clean(
    manifest: Path = typer.Argument(..., help="Manifest JSON file."),
) -> None:
    """Rebuild clean pages and the index from the raw cache (no network)."""
    novel = _load(manifest)
    summary = rebuild_clean(novel)
    _echo_summary("clean", summary)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@app.command("report")
def report(
    manifest: Path = typer.Argument(..., help="Manifest JSON file."),
    write_list: bool = typer.Option(
        False, "--write-retry-list", help="Write retry_chapters.txt next to the raw files."
    ),
) -> None:
    """Scan artifacts for failed, challenged or truncated chapters."""
    novel = _load(manifest)
    store = novel.store()
    records = scan(store)

    if not records:
        typer.echo("✅ No bad chapters found.")
        return

    for category, group in group_by_category(records).items():
        typer.echo(f"❌ {category.value} ({len(group)}):")
        for record in group:
            typer.echo(f"   Chapter {record.number}: {record.message}")

    numbers = remediation_numbers(records)
    typer.echo(f"Chapters to retry: {', '.join(map(str, numbers))}")
    if write_list:
        path = write_retry_list(records, store.raw_dir / "retry_chapters.txt")
        typer.echo(f"📝 Retry list: {path}")
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------

@app.command("pdf")
def pdf(
    manifest: Path = typer.Argument(..., help="Manifest JSON file."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="PDF path to write."),
) -> None:
    """Print every clean chapter into a single PDF."""
    from novelshelf.pipeline.pdf import export_pdf

    novel = _load(manifest)
    target = output or novel.clean_dir.parent / f"{novel.novel_id.replace('-', '_')}_complete.pdf"
    try:
        path = export_pdf(novel.store(), target, novel.title)
    except ValueError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)
    typer.echo(f"📕 PDF written: {path}")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
