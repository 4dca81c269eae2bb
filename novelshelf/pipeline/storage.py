"""Filesystem artifact store: one raw and one clean file per chapter.

The filesystem is the source of truth.  Every write is a whole-file
replacement (temp file + ``os.replace``) keyed by sequence number, so
concurrent workers owning distinct chapters never see partial files.
"""

from __future__ import annotations

import html
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

SENTINEL_ATTR = 'data-scrape-status="error"'
LEGACY_SENTINEL = "<!-- ERROR:"

_FILE_RE = re.compile(r"^chapter_(\d+)\.html$")
_KIND_RE = re.compile(r'data-failure-kind="([^"]*)"')
_MESSAGE_RE = re.compile(r'<p class="scrape-error">(.*?)</p>', re.DOTALL)
_LEGACY_MESSAGE_RE = re.compile(r"<!-- ERROR:(.*?)-->", re.DOTALL)


def chapter_filename(number: int) -> str:
    return f"chapter_{number:04d}.html"


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".html")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


# ---------------------------------------------------------------------------
# Sentinel error artifacts
# ---------------------------------------------------------------------------

@dataclass
class SentinelInfo:
    kind: str
    message: str


def render_sentinel(number: int, url: str, kind: str, message: str) -> str:
    """Build the sentinel document written in place of a failed chapter."""
    stamp = datetime.now(timezone.utc).replace(microsecond=0).isoformat()
    return (
        "<!DOCTYPE html>\n"
        f'<html {SENTINEL_ATTR} data-failure-kind="{html.escape(kind)}">\n'
        '<head><meta charset="UTF-8">'
        f"<title>ERROR - Chapter {number}</title></head>\n"
        "<body>\n"
        f"<h1>ERROR: Failed to scrape chapter {number}</h1>\n"
        f'<p class="scrape-error">{html.escape(message)}</p>\n'
        f"<p><strong>URL:</strong> {html.escape(url)}</p>\n"
        f"<p><strong>Time:</strong> {stamp}</p>\n"
        "</body>\n</html>\n"
    )


def parse_sentinel(text: str) -> Optional[SentinelInfo]:
    """Return :class:`SentinelInfo` if *text* is a sentinel, else ``None``."""
    if SENTINEL_ATTR in text[:512]:
        kind = _KIND_RE.search(text)
        message = _MESSAGE_RE.search(text)
        return SentinelInfo(
            kind=html.unescape(kind.group(1)) if kind else "",
            message=html.unescape(message.group(1)) if message else "",
        )
    if text.lstrip().startswith(LEGACY_SENTINEL):
        message = _LEGACY_MESSAGE_RE.search(text)
        return SentinelInfo(kind="", message=message.group(1).strip() if message else "")
    return None


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class ArtifactStore:
    """Raw and clean chapter files of one novel."""

    def __init__(self, raw_dir: Path, clean_dir: Path) -> None:
        self.raw_dir = Path(raw_dir)
        self.clean_dir = Path(clean_dir)

    @property
    def index_path(self) -> Path:
        return self.clean_dir / "index.html"

    def raw_path(self, number: int) -> Path:
        return self.raw_dir / chapter_filename(number)

    def clean_path(self, number: int) -> Path:
        return self.clean_dir / chapter_filename(number)

    # -- reads ----------------------------------------------------------

    def read_raw(self, number: int) -> Optional[str]:
        path = self.raw_path(number)
        return path.read_text(encoding="utf-8") if path.exists() else None

    def read_clean(self, number: int) -> Optional[str]:
        path = self.clean_path(number)
        return path.read_text(encoding="utf-8") if path.exists() else None

    def _raw_or_invalid(self, number: int) -> tuple[bool, Optional[str]]:
        # (readable, text); an undecodable raw file counts as invalid.
        try:
            return True, self.read_raw(number)
        except (OSError, UnicodeDecodeError) as exc:
            print(f"[BATCH] chapter {number}: ⚠️ unreadable raw artifact ({exc})")
            return False, None

    def has_valid_raw(self, number: int) -> bool:
        """A readable raw cache exists and is not a sentinel."""
        readable, text = self._raw_or_invalid(number)
        return readable and text is not None and parse_sentinel(text) is None

    def is_complete(self, number: int) -> bool:
        """Clean page present and the raw artifact is not an error marker."""
        if not self.clean_path(number).exists():
            return False
        readable, raw = self._raw_or_invalid(number)
        return readable and (raw is None or parse_sentinel(raw) is None)

    def raw_numbers(self) -> list[int]:
        return _numbers_in(self.raw_dir)

    def clean_numbers(self) -> list[int]:
        return _numbers_in(self.clean_dir)

    def iter_raw(self) -> Iterator[tuple[int, Path]]:
        for number in self.raw_numbers():
            yield number, self.raw_path(number)

    def iter_clean(self) -> Iterator[tuple[int, Path]]:
        for number in self.clean_numbers():
            yield number, self.clean_path(number)

    # -- writes ---------------------------------------------------------

    def write_raw(self, number: int, raw_html: str) -> Path:
        path = self.raw_path(number)
        _atomic_write(path, raw_html)
        return path

    def write_sentinel(self, number: int, url: str, kind: str, message: str) -> Path:
        """Replace the raw artifact with a sentinel and drop any stale clean page."""
        path = self.raw_path(number)
        _atomic_write(path, render_sentinel(number, url, kind, message))
        self.clean_path(number).unlink(missing_ok=True)
        return path

    def write_clean(self, number: int, page_html: str) -> Path:
        path = self.clean_path(number)
        _atomic_write(path, page_html)
        return path

    def write_index(self, index_html: str) -> Path:
        _atomic_write(self.index_path, index_html)
        return self.index_path


def _numbers_in(directory: Path) -> list[int]:
    if not directory.exists():
        return []
    numbers = []
    for entry in directory.iterdir():
        match = _FILE_RE.match(entry.name)
        if match:
            numbers.append(int(match.group(1)))
    return sorted(numbers)
