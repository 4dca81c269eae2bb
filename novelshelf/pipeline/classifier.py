"""Error classifier: scans persisted artifacts for chapters needing a re-fetch.

Rules, checked per artifact in this order:

1. Sentinel marker: category taken from the recorded failure kind.
2. Bot-challenge signature, checked in clean pages too, since a challenge
   page mistaken for content can survive cleaning.
3. Visible text below the minimum content threshold.

The resulting, number-sorted list is the only input a remediation pass needs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from bs4 import BeautifulSoup

from novelshelf.config import settings
from novelshelf.pipeline.storage import ArtifactStore, parse_sentinel
from novelshelf.scraper.challenge import html_has_challenge
from novelshelf.scraper.models import ErrorCategory, ErrorRecord

SENTINEL_CATEGORIES = {
    "content_not_found": ErrorCategory.CONTENT_MISSING,
    "bot_challenge": ErrorCategory.BOT_CHALLENGE_RESIDUAL,
}


def _scoped(html_text: str, selector: Optional[str] = None) -> tuple[str, str]:
    """Return ``(markup, visible_text)`` of the *selector* node, or of the whole page."""
    soup = BeautifulSoup(html_text, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    node = soup.select_one(selector) if selector else soup
    if node is None:
        return "", ""
    return str(node), " ".join(node.get_text(" ").split())


def classify_artifact(
    number: int,
    text: str,
    min_content_chars: int,
    content_selector: Optional[str] = None,
    path: str = "",
) -> Optional[ErrorRecord]:
    """Return an :class:`ErrorRecord` if the artifact *text* is bad, else ``None``.

    With *content_selector* (clean pages) the challenge and length checks only
    look inside that container; the page ``<title>`` is the chapter title there.
    """
    sentinel = parse_sentinel(text)
    if sentinel is not None:
        category = SENTINEL_CATEGORIES.get(sentinel.kind, ErrorCategory.SCRAPE_FAILURE)
        return ErrorRecord(number, category, sentinel.message or "scrape error marker", path)

    markup, visible = _scoped(text, content_selector)
    if html_has_challenge(text if content_selector is None else markup):
        return ErrorRecord(
            number, ErrorCategory.BOT_CHALLENGE_RESIDUAL, "bot-challenge signature present", path
        )

    length = len(visible)
    if length < min_content_chars:
        return ErrorRecord(
            number,
            ErrorCategory.CONTENT_MISSING,
            f"only {length} characters of text (minimum {min_content_chars})",
            path,
        )
    return None


def _classify_file(
    number: int, path: Path, threshold: int, content_selector: Optional[str] = None
) -> Optional[ErrorRecord]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return ErrorRecord(
            number, ErrorCategory.SCRAPE_FAILURE, f"unreadable artifact: {exc}", str(path)
        )
    return classify_artifact(number, text, threshold, content_selector, path=str(path))


def scan(store: ArtifactStore, min_content_chars: Optional[int] = None) -> list[ErrorRecord]:
    """Scan raw and clean artifacts; one record per flagged chapter, sorted."""
    threshold = settings.min_content_chars if min_content_chars is None else min_content_chars
    found: dict[int, ErrorRecord] = {}

    for number, path in store.iter_raw():
        record = _classify_file(number, path, threshold)
        if record is not None:
            found.setdefault(number, record)

    for number, path in store.iter_clean():
        if number in found:
            continue
        record = _classify_file(number, path, threshold, content_selector="div.chapter-content")
        if record is not None:
            found[number] = record

    records = [found[n] for n in sorted(found)]
    print(f"[SCAN] {len(records)} chapter(s) flagged")
    return records


def group_by_category(records: Iterable[ErrorRecord]) -> dict[ErrorCategory, list[ErrorRecord]]:
    """Group *records* by category, preserving number order within each group."""
    groups: dict[ErrorCategory, list[ErrorRecord]] = {}
    for record in sorted(records, key=lambda r: r.number):
        groups.setdefault(record.category, []).append(record)
    return groups


def remediation_numbers(records: Iterable[ErrorRecord]) -> list[int]:
    return sorted({r.number for r in records})


def write_retry_list(records: Iterable[ErrorRecord], path: Path | str) -> Path:
    """Persist the remediation numbers, one per line."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    numbers = remediation_numbers(records)
    path.write_text("".join(f"{n}\n" for n in numbers), encoding="utf-8")
    return path


def read_retry_list(path: Path | str) -> list[int]:
    """Read numbers written by :func:`write_retry_list`; blank lines ignored."""
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    return sorted({int(line.strip()) for line in lines if line.strip()})
