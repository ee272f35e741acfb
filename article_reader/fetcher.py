"""Retrieve page HTML, escalating to a headless browser when blocked."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional
from urllib.parse import urlparse

import requests

from .browser import BrowserRenderer
from .config import PLAIN_FETCH_HEADERS, ReaderConfig
from .errors import (
    NOT_PROVISIONED,
    RESTRICTED,
    AutomationUnavailableError,
    BrowserAutomationFailedError,
    FetchFailedError,
    LikelyAntiBotError,
    RenderError,
)
from .models import FetchResult, FetchStrategy
from .utils import validate_url

logger = logging.getLogger("article_reader")

_SERVER_ERROR_PATTERN = re.compile(r"(?<![\w.])500(?![\w.])")


def _is_server_error_pattern(exc: Exception) -> bool:
    """A 500 status, or a standalone 500 in a driver message without one."""
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        return status_code == 500
    return bool(_SERVER_ERROR_PATTERN.search(str(exc)))


class FetchOrchestrator:
    """Plain GET first, then at most one browser render if the site blocks it.

    ``renderer`` is None when no browser has been provisioned for this
    process; ``config.browser_allowed`` is False when the runtime forbids one.
    """

    def __init__(
        self,
        config: Optional[ReaderConfig] = None,
        renderer: Optional[BrowserRenderer] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or ReaderConfig()
        self.renderer = renderer
        self.session = session or requests.Session()

    @property
    def automation_available(self) -> bool:
        return (
            self.renderer is not None
            and self.config.browser_enabled
            and self.config.browser_allowed
        )

    async def fetch(self, url: str) -> FetchResult:
        """Return the page HTML using the cheapest strategy that succeeds."""
        url = validate_url(url)
        try:
            return await self._fetch_plain(url)
        except FetchFailedError as exc:
            if not exc.blocked:
                raise
            plain_error = exc

        host = urlparse(url).hostname or url
        if not self.automation_available:
            raise self._unavailable(plain_error) from plain_error

        logger.info(
            "Regular fetch failed (%s) for %s, trying browser automation...",
            plain_error.status_code or "unknown",
            host,
        )
        try:
            rendered = await self.renderer.render(url)
        except RenderError as render_exc:
            if _is_server_error_pattern(render_exc):
                raise LikelyAntiBotError(
                    "Site returned a 500 error, likely due to anti-bot protection. "
                    "Try: 1) Wait a few minutes and try again, 2) Use a different "
                    "article URL, or 3) Access the article in a regular browser first "
                    f"to verify it's publicly accessible. Original error: {plain_error}",
                    plain_error=plain_error,
                ) from render_exc
            raise BrowserAutomationFailedError(
                f"Failed to fetch URL with browser automation: {render_exc}. "
                f"Original error: {plain_error}",
                plain_error=plain_error,
            ) from render_exc

        return FetchResult(
            html=rendered.html,
            status_code=rendered.status_code,
            strategy_used=FetchStrategy.BROWSER_AUTOMATION,
            blocked=True,
            final_url=rendered.final_url,
        )

    async def _fetch_plain(self, url: str) -> FetchResult:
        try:
            response = await asyncio.to_thread(
                self.session.get,
                url,
                headers=dict(PLAIN_FETCH_HEADERS),
                timeout=self.config.request_timeout,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise FetchFailedError(f"Failed to fetch URL: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise FetchFailedError(
                f"Failed to fetch URL: {response.status_code} {response.reason or ''}".rstrip(),
                status_code=response.status_code,
            )
        return FetchResult(
            html=response.text,
            status_code=response.status_code,
            strategy_used=FetchStrategy.PLAIN,
            blocked=False,
            final_url=response.url or url,
        )

    def _unavailable(self, plain_error: FetchFailedError) -> AutomationUnavailableError:
        if not self.config.browser_allowed:
            return AutomationUnavailableError(
                f"{plain_error}. This site blocked automated "
                "requests and requires browser automation, which is not available "
                "in restricted environments such as serverless functions. Run the "
                "reader on a regular host instead, or use a different article URL.",
                reason=RESTRICTED,
            )
        return AutomationUnavailableError(
            f"{plain_error}. This site blocked automated "
            "requests and requires browser automation, which is disabled or not "
            "provisioned for this reader. "
            "Install the browser with: playwright install chromium",
            reason=NOT_PROVISIONED,
        )
