"""Best-effort browser fingerprint randomisation.

A :class:`StealthConfig` is a pluggable set of candidates (user agents,
viewports, referrers).  Each fetch attempt draws one :class:`StealthProfile`
from it.  Failing to evade a challenge is not an error here; the fetch worker
reports it as an ordinary ``BotChallenge`` result.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36 Edg/118.0.2088.76",
]

VIEWPORTS = [
    {"width": 1920, "height": 1080},
    {"width": 1366, "height": 768},
    {"width": 1536, "height": 864},
    {"width": 1440, "height": 900},
]

REFERRERS = [
    "https://www.google.com/",
    "https://www.bing.com/",
    "https://duckduckgo.com/",
]

# Navigator overrides injected before any page script runs.
NAVIGATOR_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'hardwareConcurrency', { get: () => 8 });
window.chrome = window.chrome || { runtime: {} };
"""

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-infobars",
    "--disable-notifications",
    "--disable-popup-blocking",
]


@dataclass
class StealthProfile:
    """One concrete fingerprint used for a single browser session."""

    user_agent: str
    viewport: Dict[str, int]
    referrer: str
    accept_language: str = "en-US,en;q=0.9"
    locale: str = "en-US"
    timezone_id: str = "America/New_York"
    init_script: str = NAVIGATOR_INIT_SCRIPT

    def headers(self) -> Dict[str, str]:
        """Extra HTTP headers mimicking organic navigation."""
        return {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": self.accept_language,
            "Referer": self.referrer,
            "Upgrade-Insecure-Requests": "1",
            "Cache-Control": "no-cache",
        }

    def context_options(self) -> Dict[str, object]:
        """Keyword arguments for ``Browser.new_context``."""
        return {
            "user_agent": self.user_agent,
            "viewport": dict(self.viewport),
            "locale": self.locale,
            "timezone_id": self.timezone_id,
            "extra_http_headers": self.headers(),
        }


@dataclass
class StealthConfig:
    user_agents: List[str] = field(default_factory=lambda: list(USER_AGENTS))
    viewports: List[Dict[str, int]] = field(default_factory=lambda: list(VIEWPORTS))
    referrers: List[str] = field(default_factory=lambda: list(REFERRERS))
    launch_args: List[str] = field(default_factory=lambda: list(LAUNCH_ARGS))
    init_script: str = NAVIGATOR_INIT_SCRIPT

    def pick(self, rng: Optional[random.Random] = None, site_url: str = "") -> StealthProfile:
        """Draw a random profile.  *site_url* joins the referrer candidates."""
        rng = rng or random
        referrers = list(self.referrers)
        if site_url:
            referrers.append(site_url)
        return StealthProfile(
            user_agent=rng.choice(self.user_agents),
            viewport=rng.choice(self.viewports),
            referrer=rng.choice(referrers),
            init_script=self.init_script,
        )


DEFAULT_STEALTH = StealthConfig()
