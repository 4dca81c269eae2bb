"""Scraper package: chapter fetch, retry, extraction & sanitizing."""

from novelshelf.scraper.extractor import extract_chapter
from novelshelf.scraper.fetcher import (
    BrowserFetcher,
    ChapterFetcher,
    FetchBudget,
    HttpFetcher,
    build_fetcher,
)
from novelshelf.scraper.models import ChapterArtifact, ChapterTask
from novelshelf.scraper.retry import fetch_with_retry
from novelshelf.scraper.sanitizer import sanitize

__all__ = [
    "BrowserFetcher",
    "ChapterArtifact",
    "ChapterFetcher",
    "ChapterTask",
    "FetchBudget",
    "HttpFetcher",
    "build_fetcher",
    "extract_chapter",
    "fetch_with_retry",
    "sanitize",
]
