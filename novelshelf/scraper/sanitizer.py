"""Structural removal of scripts, ads, comment sections and empty blocks.

Every rule parses, queries, removes and re-serialises through BeautifulSoup;
no markup is spliced with regular expressions, so the output fragment is
always well formed.  Applying :func:`sanitize` twice removes nothing more the
second time.
"""

from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from novelshelf.config import settings

STRIP_TAGS = ("script", "style", "iframe", "noscript", "ins", "object", "embed")

# Matched against each class token and the id of every element.
BOILERPLATE_TOKEN = re.compile(
    r"""^(?:
        ads? | ad[-_].* | .*[-_]ads? | adsbygoogle | advert.* | banners? |
        sponsor.* | promo.* | pubfuture | pf-.* |
        comments? | comment[-_].* | fb-comment.* | disqus.* |
        social[-_]?share.* | share[-_]?buttons? | sharing |
        nav | navigation | next[-_]prev | chapter[-_](?:nav|controls) |
        sidebar | widget | related[-_]posts | author[-_]box |
        post[-_](?:tags|meta|footer) | rate[-_]box
    )$""",
    re.IGNORECASE | re.VERBOSE,
)

AD_IMAGE_SRC = re.compile(
    r"(?:^|[/_.\-])(?:ads?|adserver|banners?|doubleclick|sponsor\w*)(?:[/_.\-]|$)",
    re.IGNORECASE,
)
AD_IMAGE_ALT = re.compile(r"\b(?:ad|ads|advertisement|banner|sponsored)\b", re.IGNORECASE)

BLOCK_TAGS = ("p", "div")


def _tokens(tag: Tag) -> list[str]:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    ident = tag.get("id")
    return list(classes) + ([ident] if isinstance(ident, str) and ident else [])


def is_boilerplate(tag: Tag) -> bool:
    """Return ``True`` if *tag*'s id or any class names an ad/nav/comment block."""
    return any(BOILERPLATE_TOKEN.match(token) for token in _tokens(tag))


def is_ad_image(tag: Tag) -> bool:
    src = tag.get("src") or ""
    alt = tag.get("alt") or ""
    return bool(AD_IMAGE_SRC.search(src) or AD_IMAGE_ALT.search(alt))


def _remove_comments(soup: BeautifulSoup) -> None:
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()


def _remove_short_blocks(soup: BeautifulSoup, min_chars: int) -> None:
    # Innermost first: a parent is judged after its short children are gone.
    for tag in reversed(soup.find_all(BLOCK_TAGS)):
        if tag.find("img") is not None:
            continue
        if len(tag.get_text(strip=True)) < min_chars:
            tag.decompose()


def _collapse_whitespace(soup: BeautifulSoup) -> None:
    # Gaps left by removed nodes become a single newline, so output is a fixed point.
    soup.smooth()
    for text in soup.find_all(string=True):
        if not text.strip() and "\n" in text and text != "\n":
            text.replace_with(NavigableString("\n"))


def sanitize(body_html: str, min_block_chars: Optional[int] = None) -> str:
    """Return *body_html* with boilerplate removed, as a fragment string."""
    min_chars = settings.min_block_chars if min_block_chars is None else min_block_chars
    soup = BeautifulSoup(body_html, "html.parser")

    for tag in soup.find_all(STRIP_TAGS):
        tag.decompose()
    _remove_comments(soup)

    for tag in soup.find_all(True):
        if tag.decomposed:
            continue
        if is_boilerplate(tag):
            tag.decompose()

    for img in soup.find_all("img"):
        if is_ad_image(img):
            img.decompose()

    _remove_short_blocks(soup, min_chars)
    _collapse_whitespace(soup)
    return soup.decode().strip()
