"""Offline-readable HTML for clean chapter pages and the index page."""

from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from bs4 import BeautifulSoup

from novelshelf.pipeline.storage import chapter_filename
from novelshelf.scraper.models import ChapterArtifact

_PAGE_STYLE = """
body { font-family: Georgia, 'Times New Roman', serif; line-height: 1.8;
       max-width: 800px; margin: 0 auto; padding: 40px 20px;
       background: #f9f9f9; color: #333; }
.chapter-container { background: #fff; padding: 40px; border-radius: 10px;
                     box-shadow: 0 5px 15px rgba(0,0,0,0.1); }
h1.chapter-title { text-align: center; color: #2c3e50; margin-bottom: 20px; }
.chapter-info { text-align: center; color: #7f8c8d; font-style: italic; font-size: 14px; }
.chapter-content { font-size: 18px; text-align: justify; margin-top: 30px; }
.chapter-content p { margin-bottom: 1.5em; text-indent: 2em; }
.navigation { margin-top: 40px; padding-top: 20px; border-top: 1px solid #ddd; text-align: center; }
.nav-button { display: inline-block; padding: 10px 20px; margin: 0 10px; border-radius: 5px;
              background: #3498db; color: #fff; text-decoration: none; font-weight: bold; }
.nav-button.disabled { background: #95a5a6; cursor: not-allowed; }
"""

_INDEX_STYLE = """
body { font-family: 'Segoe UI', Tahoma, sans-serif; max-width: 1000px; margin: 0 auto;
       padding: 30px 20px; background: #f4f4f8; color: #2c3e50; }
header { text-align: center; margin-bottom: 30px; }
.chapter-list { list-style: none; padding: 0; }
.chapter-list li { background: #fff; margin: 6px 0; padding: 10px 16px; border-radius: 6px; }
.chapter-list a { color: #2c3e50; text-decoration: none; }
.chapter-number { color: #3498db; font-weight: bold; margin-right: 10px; }
footer { text-align: center; color: #95a5a6; font-size: 14px; margin-top: 30px; }
"""


# ---------------------------------------------------------------------------
# Chapter page
# ---------------------------------------------------------------------------

def nav_links(number: int, total: int) -> tuple[Optional[str], Optional[str]]:
    """Return ``(previous, next)`` file names; ``None`` where there is none.

    Derived purely from sequence arithmetic: previous iff ``number > 1``,
    next iff ``number + 1 <= total``.
    """
    prev_link = chapter_filename(number - 1) if number > 1 else None
    next_link = chapter_filename(number + 1) if number + 1 <= total else None
    return prev_link, next_link


def _nav_button(target: Optional[str], label: str, rel: str) -> str:
    if target is None:
        return f'<span class="nav-button disabled" data-nav="{rel}">{label}</span>'
    return f'<a href="{target}" class="nav-button" rel="{rel}" data-nav="{rel}">{label}</a>'


def render_chapter_page(artifact: ChapterArtifact, total: int) -> str:
    """Render *artifact* as a self-contained page with prev/next navigation."""
    title = html.escape(artifact.title)
    prev_link, next_link = nav_links(artifact.number, total)
    stamp = artifact.extracted_at.isoformat()
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<meta name="chapter-number" content="{artifact.number}">
<meta name="extracted-at" content="{stamp}">
<title>{title}</title>
<style>{_PAGE_STYLE}</style>
</head>
<body>
<div class="chapter-container">
<h1 class="chapter-title">{title}</h1>
<div class="chapter-info">Chapter {artifact.number} | {artifact.extracted_at:%Y-%m-%d}</div>
<div class="chapter-content">
{artifact.body_html}
</div>
<div class="navigation">
{_nav_button(prev_link, "&larr; Previous Chapter", "prev")}
<a href="index.html" class="nav-button" data-nav="index">Index</a>
{_nav_button(next_link, "Next Chapter &rarr;", "next")}
</div>
</div>
</body>
</html>
"""


def read_chapter_page(page_html: str) -> ChapterArtifact:
    """Parse a page written by :func:`render_chapter_page` back into an artifact."""
    soup = BeautifulSoup(page_html, "html.parser")
    number_meta = soup.find("meta", attrs={"name": "chapter-number"})
    stamp_meta = soup.find("meta", attrs={"name": "extracted-at"})
    heading = soup.select_one("h1.chapter-title")
    content = soup.select_one("div.chapter-content")
    extracted_at = (
        datetime.fromisoformat(stamp_meta["content"])
        if stamp_meta is not None
        else datetime.now(timezone.utc)
    )
    return ChapterArtifact(
        number=int(number_meta["content"]) if number_meta is not None else 0,
        title=heading.get_text(strip=True) if heading is not None else "",
        body_html=content.decode_contents().strip() if content is not None else "",
        extracted_at=extracted_at,
    )


# ---------------------------------------------------------------------------
# Index page
# ---------------------------------------------------------------------------

@dataclass
class IndexEntry:
    number: int
    title: str

    @property
    def href(self) -> str:
        return chapter_filename(self.number)


def render_index(novel_title: str, entries: Iterable[IndexEntry]) -> str:
    """Render the index of all successfully cleaned chapters, sorted by number."""
    ordered = sorted(entries, key=lambda e: e.number)
    items = "\n".join(
        f'<li><a href="{e.href}"><span class="chapter-number">{e.number}</span>'
        f'<span class="chapter-name">{html.escape(e.title)}</span></a></li>'
        for e in ordered
    )
    start = (
        f'<p><a href="{ordered[0].href}">Start reading</a></p>' if ordered else ""
    )
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    title = html.escape(novel_title)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{title} - Chapter Index</title>
<style>{_INDEX_STYLE}</style>
</head>
<body>
<header>
<h1>{title}</h1>
<p class="subtitle">{len(ordered)} chapters</p>
{start}
</header>
<ul class="chapter-list">
{items}
</ul>
<footer>
<p>Offline reading copy. All rights belong to the original author.</p>
<p>Generated on {generated}</p>
</footer>
</body>
</html>
"""
