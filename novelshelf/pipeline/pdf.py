"""Combined PDF of all clean chapters, printed by headless Chromium."""

from __future__ import annotations

import html
from pathlib import Path
from typing import Iterable

from playwright.sync_api import sync_playwright

from novelshelf.pipeline.render import read_chapter_page
from novelshelf.pipeline.storage import ArtifactStore
from novelshelf.scraper.models import ChapterArtifact

_BOOK_STYLE = """
body { font-family: Georgia, serif; line-height: 1.7; color: #222; }
.cover { text-align: center; padding-top: 35%; page-break-after: always; }
.chapter { page-break-before: always; }
.chapter h2 { text-align: center; margin-bottom: 1.5em; }
.chapter p { text-indent: 2em; margin: 0 0 0.8em; }
"""


def build_book_html(title: str, chapters: Iterable[ChapterArtifact]) -> str:
    """Concatenate chapter bodies, in number order, into one printable page."""
    sections = "\n".join(
        f'<section class="chapter" id="chapter-{c.number}">'
        f"<h2>{html.escape(c.title)}</h2>\n{c.body_html}\n</section>"
        for c in sorted(chapters, key=lambda c: c.number)
    )
    name = html.escape(title)
    return (
        '<!DOCTYPE html>\n<html lang="en"><head><meta charset="UTF-8">'
        f"<title>{name}</title><style>{_BOOK_STYLE}</style></head>\n"
        f'<body><div class="cover"><h1>{name}</h1></div>\n{sections}\n</body></html>\n'
    )


def load_clean_chapters(store: ArtifactStore) -> list[ChapterArtifact]:
    return [
        read_chapter_page(path.read_text(encoding="utf-8"))
        for number, path in store.iter_clean()
        if store.is_complete(number)
    ]


def export_pdf(store: ArtifactStore, output_path: Path | str, title: str) -> Path:
    """Print every valid clean chapter into a single A4 PDF at *output_path*."""
    output_path = Path(output_path)
    chapters = load_clean_chapters(store)
    if not chapters:
        raise ValueError(f"no clean chapters in {store.clean_dir}")

    print(f"[PDF] combining {len(chapters)} chapter(s) …")
    book = build_book_html(title, chapters)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=True)
        try:
            page = browser.new_page()
            page.set_content(book, wait_until="load")
            page.pdf(
                path=str(output_path),
                format="A4",
                print_background=True,
                margin={"top": "20mm", "bottom": "20mm", "left": "18mm", "right": "18mm"},
            )
        finally:
            browser.close()
    print(f"[PDF] ✓ {output_path}")
    return output_path
