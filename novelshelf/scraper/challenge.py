"""Bot-challenge (human verification interstitial) detection heuristics.

Shared by the fetch worker (live page), the extractor (raw HTML) and the
error classifier (persisted artifacts), so a challenge page is recognised the
same way at every stage.
"""

from __future__ import annotations

import re

# Titles served by challenge interstitials.
CHALLENGE_TITLES = (
    "just a moment",
    "attention required",
    "security check",
)

# Textual signatures found in challenge page markup or visible text.
CHALLENGE_SIGNATURES = (
    "verifying you are human",
    "needs to review the security of your connection",
    "cf-turnstile-response",
    "cf_challenge_response",
    "enable javascript and cookies to continue",
    "checking your browser",
    "ddos protection by",
    "waiting for novelbin.com to respond",
)

# Elements whose presence alone marks a challenge page.
CHALLENGE_SELECTORS = (
    "#challenge-form",
    "#challenge-running",
    ".cf-turnstile",
)

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)


def title_is_challenge(title: str) -> bool:
    """Return ``True`` if a page *title* is a known challenge title."""
    lowered = title.strip().lower()
    return any(lowered.startswith(t) for t in CHALLENGE_TITLES)


def find_signature(text: str) -> str | None:
    """Return the first challenge signature found in *text*, if any."""
    lowered = text.lower()
    for signature in CHALLENGE_SIGNATURES:
        if signature in lowered:
            return signature
    return None


def looks_like_challenge(title: str, body_text: str, has_challenge_form: bool) -> bool:
    """Classify a rendered page from its title, visible text and form presence."""
    if has_challenge_form or title_is_challenge(title):
        return True
    return find_signature(body_text) is not None


def html_has_challenge(html: str) -> bool:
    """Return ``True`` if raw or cleaned *html* carries a challenge signature.

    Checks the ``<title>`` element, the challenge form ids and the textual
    signatures.  Used on HTML that has already left the browser.
    """
    match = _TITLE_RE.search(html)
    if match and title_is_challenge(match.group(1)):
        return True
    lowered = html.lower()
    if 'id="challenge-form"' in lowered or "id='challenge-form'" in lowered:
        return True
    return find_signature(lowered) is not None
