"""Exceptions raised at the library seams.

The fetch worker and retry controller never raise; they return classified
results.  These exceptions cover the places that do: manifest loading and
content extraction.
"""

from __future__ import annotations


class NovelShelfError(Exception):
    """Base class for all novelshelf errors."""


class ManifestError(NovelShelfError):
    """The chapter manifest is missing, malformed or inconsistent."""


class ExtractionError(NovelShelfError):
    """Raw HTML could not be turned into a chapter."""

    #: Failure kind recorded in the sentinel artifact.
    kind = "extraction_error"


class ContentNotFoundError(ExtractionError):
    """No candidate container held enough text to be the chapter body."""

    kind = "content_not_found"


class BotChallengeError(ExtractionError):
    """The HTML is a bot-challenge interstitial, not chapter content."""

    kind = "bot_challenge"
