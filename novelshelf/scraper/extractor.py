"""Content extraction: turns raw chapter HTML into a title and body container."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from bs4 import BeautifulSoup, Tag

from novelshelf.config import settings
from novelshelf.errors import BotChallengeError, ContentNotFoundError
from novelshelf.scraper.challenge import html_has_challenge
from novelshelf.scraper.models import ExtractedChapter

# Site-specific chapter containers, highest priority first.
CONTENT_SELECTORS: tuple[str, ...] = (
    "#chr-content",
    ".chr-c",
    ".chapter-content",
    ".content-area",
    ".reading-content",
    ".text-left",
    ".entry-content",
    ".novel-content",
    ".chapter-text",
    ".chapter-body",
    "#novel-content",
    "#chapter-content",
    "article",
)

TITLE_SELECTORS: tuple[str, ...] = (
    "h3.chr-title",
    ".chr-title",
    ".chapter-title",
    ".chapter__title",
)

HEADING_SELECTORS: tuple[str, ...] = ("h1", "h2")

TITLE_SEPARATOR = " - "

_WS = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _normalise(text: Optional[str]) -> str:
    return _WS.sub(" ", text or "").strip()


def generic_title(number: int) -> str:
    return f"Chapter {number}"


def text_length(node: Tag) -> int:
    """Length of the visible, whitespace-normalised text under *node*."""
    return len(_normalise(node.get_text(" ")))


def _first_text(soup: BeautifulSoup, selectors: Sequence[str]) -> str:
    for selector in selectors:
        node = soup.select_one(selector)
        if node is not None:
            text = _normalise(node.get_text(" "))
            if text:
                return text
    return ""


def _page_title_prefix(soup: BeautifulSoup) -> str:
    if soup.title is None or soup.title.string is None:
        return ""
    return _normalise(soup.title.string.split(TITLE_SEPARATOR)[0])


def resolve_title(
    soup: BeautifulSoup,
    number: int,
    known_title: Optional[str] = None,
) -> str:
    """Resolve the chapter title; the first non-empty candidate wins.

    Order: *known_title* (unless it is the generic ``Chapter {n}``) →
    site-specific title element → generic heading → ``<title>`` prefix before
    the first ``" - "`` → ``Chapter {n}``.
    """
    known = _normalise(known_title)
    if known and known != generic_title(number):
        return known
    return (
        _first_text(soup, TITLE_SELECTORS)
        or _first_text(soup, HEADING_SELECTORS)
        or _page_title_prefix(soup)
        or generic_title(number)
    )


def select_body(
    soup: BeautifulSoup,
    selectors: Sequence[str] = CONTENT_SELECTORS,
    min_chars: Optional[int] = None,
) -> tuple[Tag, str]:
    """Return ``(container, selector)`` for the first qualifying candidate.

    A candidate qualifies when its text is longer than *min_chars*.  Priority
    order decides, not length.  Falls back to ``<body>``.

    Raises:
        ContentNotFoundError: If neither a candidate nor the body qualifies.
    """
    threshold = settings.min_content_chars if min_chars is None else min_chars
    for selector in selectors:
        node = soup.select_one(selector)
        if node is not None and text_length(node) > threshold:
            return node, selector

    body = soup.body
    if body is not None and text_length(body) > threshold:
        return body, "body"
    raise ContentNotFoundError(
        f"no container with more than {threshold} characters of text"
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_chapter(
    raw_html: str,
    number: int,
    known_title: Optional[str] = None,
    selectors: Sequence[str] = CONTENT_SELECTORS,
    min_chars: Optional[int] = None,
) -> ExtractedChapter:
    """Extract the title and body container of chapter *number*.

    The body HTML is returned unsanitized; pass it through
    :func:`novelshelf.scraper.sanitizer.sanitize` before persisting.

    Raises:
        BotChallengeError: If *raw_html* is a challenge interstitial, even
            when a content selector would otherwise match.
        ContentNotFoundError: If no container holds enough text.
    """
    if html_has_challenge(raw_html):
        raise BotChallengeError(f"chapter {number}: bot-challenge page, not content")

    soup = BeautifulSoup(raw_html, "html.parser")
    try:
        container, selector = select_body(soup, selectors, min_chars)
    except ContentNotFoundError as exc:
        raise ContentNotFoundError(f"chapter {number}: {exc}") from exc

    return ExtractedChapter(
        title=resolve_title(soup, number, known_title),
        body_html=container.decode_contents(),
        selector=selector,
    )
