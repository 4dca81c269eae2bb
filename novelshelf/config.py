"""Centralised settings for novelshelf.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from this package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

MAX_WORKER_CAP = 4


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    output_root: Path = field(
        default_factory=lambda: Path(os.environ.get("NOVELSHELF_OUTPUT", "novels"))
    )

    # ------------------------------------------------------------------
    # Fetch worker
    # ------------------------------------------------------------------
    fetch_mode: str = field(
        default_factory=lambda: os.environ.get("FETCH_MODE", "browser")
    )
    headless: bool = field(
        default_factory=lambda: _env_bool("BROWSER_HEADLESS", "true")
    )
    navigation_timeout: float = field(
        default_factory=lambda: float(os.environ.get("NAVIGATION_TIMEOUT", "60.0"))
    )
    content_timeout: float = field(
        default_factory=lambda: float(os.environ.get("CONTENT_TIMEOUT", "30.0"))
    )
    fallback_timeout: float = field(
        default_factory=lambda: float(os.environ.get("FALLBACK_TIMEOUT", "10.0"))
    )
    challenge_dwell: float = field(
        default_factory=lambda: float(os.environ.get("CHALLENGE_DWELL", "10.0"))
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )

    # ------------------------------------------------------------------
    # Retry / backoff
    # ------------------------------------------------------------------
    max_attempts: int = field(
        default_factory=lambda: int(os.environ.get("MAX_ATTEMPTS", "3"))
    )
    retry_base_delay: float = field(
        default_factory=lambda: float(os.environ.get("RETRY_BASE_DELAY", "5.0"))
    )
    retry_jitter: float = field(
        default_factory=lambda: float(os.environ.get("RETRY_JITTER", "3.0"))
    )
    challenge_backoff: float = field(
        default_factory=lambda: float(os.environ.get("CHALLENGE_BACKOFF", "15.0"))
    )

    # ------------------------------------------------------------------
    # Batch scheduler
    # ------------------------------------------------------------------
    max_workers: int = field(
        default_factory=lambda: int(os.environ.get("MAX_WORKERS", "1"))
    )
    task_delay_min: float = field(
        default_factory=lambda: float(os.environ.get("TASK_DELAY_MIN", "2.0"))
    )
    task_delay_max: float = field(
        default_factory=lambda: float(os.environ.get("TASK_DELAY_MAX", "5.0"))
    )

    # ------------------------------------------------------------------
    # Extraction thresholds
    # ------------------------------------------------------------------
    min_content_chars: int = field(
        default_factory=lambda: int(os.environ.get("MIN_CONTENT_CHARS", "500"))
    )
    min_block_chars: int = field(
        default_factory=lambda: int(os.environ.get("MIN_BLOCK_CHARS", "20"))
    )

    @property
    def worker_count(self) -> int:
        """``max_workers`` clamped to the supported 1..4 range."""
        return max(1, min(self.max_workers, MAX_WORKER_CAP))

    def novel_dir(self, novel_id: str) -> Path:
        """Directory holding the raw and clean artifacts of one novel."""
        return self.output_root / novel_id


# Module-level singleton, import this everywhere:
#   from novelshelf.config import settings
settings = Settings()
