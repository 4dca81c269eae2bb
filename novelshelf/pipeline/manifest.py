"""Chapter manifests: the ordered, read-only input that drives a run.

A manifest is a JSON file::

    {
      "novel_id": "lord-of-the-mysteries",
      "title": "Lord of the Mysteries",
      "base_url": "https://novelbin.com/b/lord-of-the-mysteries",
      "chapters": [{"number": 1, "title": "Crimson", "url": "https://..."}],
      "title_overrides": {"12": "Chapter Twelve (fixed)"}
    }

Instead of ``chapters``, a manifest may give ``url_template`` (containing
``{n}``) and ``total_chapters``.  One parameterised pipeline serves every
novel; per-novel differences live only in this file.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from novelshelf.config import settings
from novelshelf.errors import ManifestError
from novelshelf.pipeline.storage import ArtifactStore
from novelshelf.scraper.models import ChapterTask


@dataclass
class ChapterEntry:
    number: int
    title: str
    url: str

    def to_dict(self) -> dict:
        return {"number": self.number, "title": self.title, "url": self.url}


@dataclass
class NovelConfig:
    novel_id: str
    title: str
    base_url: str
    chapters: list[ChapterEntry]
    raw_dir: Path
    clean_dir: Path
    title_overrides: dict[int, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        """The known chapter total used for next-link arithmetic."""
        return max((c.number for c in self.chapters), default=0)

    def store(self) -> ArtifactStore:
        return ArtifactStore(self.raw_dir, self.clean_dir)

    def known_title(self, number: int) -> Optional[str]:
        if number in self.title_overrides:
            return self.title_overrides[number]
        for entry in self.chapters:
            if entry.number == number:
                return entry.title or None
        return None

    def tasks(
        self,
        chapter_range: Optional[tuple[int, int]] = None,
        only: Optional[Iterable[int]] = None,
    ) -> list[ChapterTask]:
        """Ordered tasks, optionally limited to an inclusive range or a number set."""
        wanted = set(only) if only is not None else None
        tasks = []
        for entry in self.chapters:
            if chapter_range is not None and not (
                chapter_range[0] <= entry.number <= chapter_range[1]
            ):
                continue
            if wanted is not None and entry.number not in wanted:
                continue
            tasks.append(
                ChapterTask(
                    number=entry.number,
                    url=entry.url,
                    known_title=self.known_title(entry.number),
                )
            )
        return tasks


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _entries_from_template(data: dict) -> list[ChapterEntry]:
    template = data["url_template"]
    if "{n}" not in template:
        raise ManifestError("url_template must contain '{n}'")
    try:
        total = int(data["total_chapters"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ManifestError("url_template requires an integer total_chapters") from exc
    return [
        ChapterEntry(number=n, title="", url=template.replace("{n}", str(n)))
        for n in range(1, total + 1)
    ]


def _entries_from_list(raw: list) -> list[ChapterEntry]:
    entries = []
    for i, item in enumerate(raw):
        try:
            entries.append(
                ChapterEntry(
                    number=int(item["number"]),
                    title=str(item.get("title") or ""),
                    url=str(item["url"]),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ManifestError(f"chapter entry #{i} is malformed: {item!r}") from exc
    return entries


def parse_manifest(data: dict, output_root: Optional[Path] = None) -> NovelConfig:
    """Build a :class:`NovelConfig` from decoded manifest JSON."""
    if not isinstance(data, dict) or not data.get("novel_id"):
        raise ManifestError("manifest must be an object with a 'novel_id'")

    if "chapters" in data:
        entries = _entries_from_list(data["chapters"])
    elif "url_template" in data:
        entries = _entries_from_template(data)
    else:
        raise ManifestError("manifest needs either 'chapters' or 'url_template'")

    seen: set[int] = set()
    for entry in entries:
        if entry.number < 1:
            raise ManifestError(f"chapter number must be positive, got {entry.number}")
        if entry.number in seen:
            raise ManifestError(f"duplicate chapter number {entry.number}")
        seen.add(entry.number)
    entries.sort(key=lambda e: e.number)

    try:
        overrides = {int(k): str(v) for k, v in (data.get("title_overrides") or {}).items()}
    except (AttributeError, ValueError) as exc:
        raise ManifestError("title_overrides must map chapter numbers to titles") from exc

    novel_id = str(data["novel_id"])
    root = output_root / novel_id if output_root is not None else settings.novel_dir(novel_id)
    return NovelConfig(
        novel_id=novel_id,
        title=str(data.get("title") or novel_id.replace("-", " ").title()),
        base_url=str(data.get("base_url") or ""),
        chapters=entries,
        raw_dir=Path(data["raw_dir"]) if data.get("raw_dir") else root / "raw",
        clean_dir=Path(data["clean_dir"]) if data.get("clean_dir") else root / "clean",
        title_overrides=overrides,
    )


def load_novel(path: Path | str, output_root: Optional[Path] = None) -> NovelConfig:
    """Read and validate the manifest at *path*."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ManifestError(f"manifest not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ManifestError(f"manifest {path} is not valid JSON: {exc}") from exc
    return parse_manifest(data, output_root)


# ---------------------------------------------------------------------------
# Chapter-list conversion
# ---------------------------------------------------------------------------

_CHAPTER_NUM = re.compile(r"chapter\s*(\d+)", re.IGNORECASE)


def slugify(title: str) -> str:
    slug = re.sub(r"['\"“”’]", "", title.lower())
    slug = re.sub(r"[^a-z0-9\s-]", "", slug).strip()
    return re.sub(r"\s+", "-", slug)


def clean_list_title(line: str, number: int) -> str:
    """Strip the ``Chapter N`` label and repeated numbers from a list line."""
    title = _CHAPTER_NUM.sub("", line, count=1)
    title = re.sub(rf"\b{number}\b", "", title)
    return re.sub(r"^[-:–\s]+", "", title).strip()


def parse_chapter_list(text: str, base_url: str) -> list[ChapterEntry]:
    """Turn a pasted table of contents into manifest entries.

    Lines without a ``Chapter N`` label, or with nothing left after removing
    it, are skipped.  URLs follow ``{base_url}/chapter-{n}-{slug}``.
    """
    base = base_url.rstrip("/")
    entries: dict[int, ChapterEntry] = {}
    for line in text.splitlines():
        line = line.strip()
        match = _CHAPTER_NUM.search(line)
        if not match:
            continue
        number = int(match.group(1))
        title = clean_list_title(line, number)
        if not title:
            continue
        entries[number] = ChapterEntry(
            number=number, title=title, url=f"{base}/chapter-{number}-{slugify(title)}"
        )
    return [entries[n] for n in sorted(entries)]


def write_manifest(
    path: Path | str,
    novel_id: str,
    base_url: str,
    chapters: list[ChapterEntry],
    title: str = "",
) -> Path:
    """Write a manifest JSON for *chapters*."""
    path = Path(path)
    payload = {
        "novel_id": novel_id,
        "title": title or novel_id.replace("-", " ").title(),
        "base_url": base_url,
        "total_chapters": len(chapters),
        "chapters": [c.to_dict() for c in chapters],
    }
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path
