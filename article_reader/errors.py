"""Exception hierarchy raised by the article pipeline."""

from __future__ import annotations

import re
from typing import Optional

RESTRICTED = "restricted"
NOT_PROVISIONED = "not-provisioned"

_BLOCKED_STATUS_PATTERN = re.compile(r"(?<![\w.])(?:403|500)(?![\w.])")


class ArticleReaderError(Exception):
    """Base class for every failure surfaced by the pipeline."""


class InvalidUrlError(ArticleReaderError, ValueError):
    """The input is not an absolute http(s) URL."""

    def __init__(self, message: str = "Invalid URL format") -> None:
        super().__init__(message)


class FetchError(ArticleReaderError):
    """Raised when no fetch strategy produced the page HTML."""


class FetchFailedError(FetchError):
    """Plain HTTP request failed at the transport or status level."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def blocked(self) -> bool:
        """Whether this failure looks like the site refusing automated access."""
        return is_blocked(self.status_code, str(self))


class AutomationUnavailableError(FetchError):
    """The site blocked the plain request and no browser can be used."""

    def __init__(self, message: str, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class BrowserAutomationFailedError(FetchError):
    """Escalation to the browser was attempted and failed."""

    def __init__(self, message: str, plain_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.plain_error = plain_error


class LikelyAntiBotError(FetchError):
    """The browser also hit a 500, read as deliberate site-level blocking.

    This is an approximation: a genuine transient server error on both
    attempts is indistinguishable from anti-bot protection here.
    """

    def __init__(self, message: str, plain_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.plain_error = plain_error


class RenderError(ArticleReaderError):
    """The browser session could not produce page HTML."""


class NoResponseError(RenderError):
    def __init__(self, message: str = "No response received from page") -> None:
        super().__init__(message)


class HttpStatusError(RenderError):
    """Navigation ended on an error status that is not a challenge page."""

    def __init__(self, status_code: int, status_text: str, snippet: str) -> None:
        super().__init__(
            f"HTTP {status_code}: {status_text}. Page content: {snippet}"
        )
        self.status_code = status_code
        self.snippet = snippet


class ChallengeTimeoutError(RenderError):
    def __init__(self, snippet: str) -> None:
        super().__init__(
            "Anti-bot challenge detected but did not complete in time. The site "
            "may require manual verification. Page content: " + snippet
        )
        self.snippet = snippet


class ExtractionFailedError(ArticleReaderError):
    def __init__(
        self, message: str = "Could not extract article content from this URL"
    ) -> None:
        super().__init__(message)


def is_blocked(status_code: Optional[int], message: str) -> bool:
    """Classify a failed fetch as a block (403/500) rather than a plain error."""
    if status_code in (403, 500):
        return True
    return "forbidden" in message.lower() or bool(_BLOCKED_STATUS_PATTERN.search(message))
