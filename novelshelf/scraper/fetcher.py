"""Chapter fetch workers.

Two implementations share the :class:`ChapterFetcher` interface
``fetch(task, budget) -> FetchResult``:

* :class:`BrowserFetcher`: drives a fresh headless Chromium session per
  attempt (Playwright sync API), detects bot challenges, and waits for the
  chapter container to materialise.
* :class:`HttpFetcher`: plain ``httpx`` GET for sites that need neither
  JavaScript nor a challenge dwell.

Neither raises: every failure mode is classified and returned as a value.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx
from bs4 import BeautifulSoup
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from novelshelf.config import Settings, settings
from novelshelf.scraper.challenge import (
    CHALLENGE_SELECTORS,
    html_has_challenge,
    looks_like_challenge,
)
from novelshelf.scraper.extractor import CONTENT_SELECTORS, text_length
from novelshelf.scraper.models import (
    BotChallenge,
    ChapterTask,
    ContentNotFound,
    FetchResult,
    FetchSuccess,
    TransientError,
)
from novelshelf.scraper.stealth import DEFAULT_STEALTH, StealthConfig

# Interval between content-selector polls, in milliseconds.
POLL_INTERVAL_MS = 500

# Any block with this much text counts as content when no selector matched.
_FALLBACK_SCRIPT = """
(minChars) => Array.from(document.querySelectorAll('div, p, article, section'))
    .some(el => (el.innerText || '').trim().length > minChars)
"""


@dataclass
class FetchBudget:
    """Time limits (seconds) for one fetch attempt."""

    navigation: float = 60.0
    content: float = 30.0
    fallback: float = 10.0
    challenge_dwell: float = 10.0

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> "FetchBudget":
        return cls(
            navigation=cfg.navigation_timeout,
            content=cfg.content_timeout,
            fallback=cfg.fallback_timeout,
            challenge_dwell=cfg.challenge_dwell,
        )


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class ChapterFetcher(ABC):
    """Fetches one chapter page and classifies the result."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable fetcher name."""

    @abstractmethod
    def fetch(self, task: ChapterTask, budget: Optional[FetchBudget] = None) -> FetchResult:
        """Return a :data:`FetchResult`.  Must not raise."""


# ---------------------------------------------------------------------------
# Browser fetcher
# ---------------------------------------------------------------------------

class BrowserFetcher(ChapterFetcher):
    """Headless Chromium with a randomised stealth profile per attempt."""

    def __init__(
        self,
        stealth: StealthConfig = DEFAULT_STEALTH,
        selectors: Sequence[str] = CONTENT_SELECTORS,
        headless: Optional[bool] = None,
        min_content_chars: Optional[int] = None,
        site_url: str = "",
    ) -> None:
        self.stealth = stealth
        self.selectors = tuple(selectors)
        self.headless = settings.headless if headless is None else headless
        self.min_content_chars = (
            settings.min_content_chars if min_content_chars is None else min_content_chars
        )
        self.site_url = site_url

    @property
    def name(self) -> str:
        return "browser"

    def fetch(self, task: ChapterTask, budget: Optional[FetchBudget] = None) -> FetchResult:
        budget = budget or FetchBudget.from_settings()
        profile = self.stealth.pick(site_url=self.site_url)
        try:
            with sync_playwright() as pw:
                browser = pw.chromium.launch(
                    headless=self.headless, args=list(self.stealth.launch_args)
                )
                try:
                    context = browser.new_context(**profile.context_options())
                    context.add_init_script(profile.init_script)
                    page = context.new_page()
                    page.set_default_timeout(budget.navigation * 1000)
                    return self._fetch_with_page(page, task, budget, referrer=profile.referrer)
                finally:
                    try:
                        browser.close()
                    except Exception as exc:
                        print(f"[FETCH] chapter {task.number}: browser close failed: {exc}")
        except Exception as exc:
            return TransientError(f"{type(exc).__name__}: {exc}")

    # ------------------------------------------------------------------
    # Page-level steps (operate on a Playwright ``Page``)
    # ------------------------------------------------------------------

    def _fetch_with_page(
        self, page: Any, task: ChapterTask, budget: FetchBudget, referrer: str = ""
    ) -> FetchResult:
        self._navigate(page, task.url, budget, referrer)

        if self._has_challenge(page):
            print(
                f"[FETCH] chapter {task.number}: ⚠️ bot challenge, "
                f"dwelling {budget.challenge_dwell:.0f}s …"
            )
            page.wait_for_timeout(budget.challenge_dwell * 1000)
            if self._has_challenge(page):
                return BotChallenge(snapshot=_safe_content(page))

        selector = self._wait_for_content(page, budget)
        if selector is None:
            return ContentNotFound(
                f"no content selector matched within {budget.content + budget.fallback:.0f}s"
            )

        html = page.content()
        if html_has_challenge(html):
            return BotChallenge(snapshot=html)
        print(f"[FETCH] chapter {task.number}: ✓ content via {selector}")
        return FetchSuccess(raw_html=html)

    def _navigate(self, page: Any, url: str, budget: FetchBudget, referrer: str) -> None:
        timeout_ms = budget.navigation * 1000
        try:
            page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms, referer=referrer or None)
        except PlaywrightTimeoutError:
            print(f"[FETCH] {url}: DOM-ready timed out, retrying with networkidle …")
            page.goto(url, wait_until="networkidle", timeout=timeout_ms, referer=referrer or None)

    def _has_challenge(self, page: Any) -> bool:
        title = page.title() or ""
        body = page.inner_text("body") if page.query_selector("body") is not None else ""
        has_form = any(page.query_selector(sel) is not None for sel in CHALLENGE_SELECTORS)
        return looks_like_challenge(title, body or "", has_form)

    def _wait_for_content(self, page: Any, budget: FetchBudget) -> Optional[str]:
        """Poll for the first candidate selector holding text.

        Returns the matching selector, ``"text-length"`` for the fallback
        heuristic, or ``None`` when nothing qualified within the budget.
        """
        deadline = time.monotonic() + budget.content
        while True:
            for selector in self.selectors:
                node = page.query_selector(selector)
                if node is not None and (node.inner_text() or "").strip():
                    return selector
            if time.monotonic() >= deadline:
                break
            page.wait_for_timeout(POLL_INTERVAL_MS)

        try:
            page.wait_for_function(
                _FALLBACK_SCRIPT, arg=self.min_content_chars, timeout=budget.fallback * 1000
            )
        except PlaywrightTimeoutError:
            return None
        return "text-length"


def _safe_content(page: Any) -> str:
    try:
        return page.content()
    except Exception:
        return ""


# ---------------------------------------------------------------------------
# HTTP fetcher
# ---------------------------------------------------------------------------

class HttpFetcher(ChapterFetcher):
    """Single ``httpx`` GET with the same classification as the browser path."""

    def __init__(
        self,
        stealth: StealthConfig = DEFAULT_STEALTH,
        selectors: Sequence[str] = CONTENT_SELECTORS,
        min_content_chars: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.stealth = stealth
        self.selectors = tuple(selectors)
        self.min_content_chars = (
            settings.min_content_chars if min_content_chars is None else min_content_chars
        )
        self.timeout = settings.request_timeout if timeout is None else timeout

    @property
    def name(self) -> str:
        return "http"

    def fetch(self, task: ChapterTask, budget: Optional[FetchBudget] = None) -> FetchResult:
        """GET *task.url*; the request timeout is capped by ``budget.navigation``."""
        profile = self.stealth.pick()
        headers = {"User-Agent": profile.user_agent, **profile.headers()}
        timeout = self.timeout if budget is None else min(self.timeout, budget.navigation)
        try:
            with httpx.Client(headers=headers, timeout=timeout, follow_redirects=True) as client:
                response = client.get(task.url)
        except httpx.HTTPError as exc:
            return TransientError(f"{type(exc).__name__}: {exc}")

        html = response.text
        if html_has_challenge(html):
            return BotChallenge(snapshot=html)
        if response.status_code >= 400:
            return TransientError(f"HTTP {response.status_code} for {task.url}")
        if not self._has_content(html):
            return ContentNotFound(f"no content selector matched in {len(html)} bytes")
        print(f"[FETCH] chapter {task.number}: ✓ HTTP {response.status_code}")
        return FetchSuccess(raw_html=html)

    def _has_content(self, html: str) -> bool:
        soup = BeautifulSoup(html, "html.parser")
        for selector in self.selectors:
            node = soup.select_one(selector)
            if node is not None and text_length(node) > 0:
                return True
        return any(
            text_length(node) > self.min_content_chars
            for node in soup.find_all(["div", "p", "article", "section"])
        )


def build_fetcher(mode: Optional[str] = None, site_url: str = "") -> ChapterFetcher:
    """Return the fetcher for *mode* (``browser`` or ``http``)."""
    mode = (mode or settings.fetch_mode).lower()
    if mode == "http":
        return HttpFetcher()
    if mode == "browser":
        return BrowserFetcher(site_url=site_url)
    raise ValueError(f"unknown fetch mode {mode!r}; use 'browser' or 'http'")
