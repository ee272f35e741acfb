"""Headless-browser rendering for pages that refuse plain HTTP clients.

The renderer drives a single Playwright Chromium session per call:

1. launch with automation fingerprints suppressed and a desktop profile,
2. navigate and classify the response,
3. wait out an anti-bot challenge page if one is shown,
4. dismiss sign-up modals and wait for article-shaped content,
5. capture the live DOM.

Steps 4 and the content wait are best-effort. The browser is closed on every
exit path.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from playwright.async_api import (
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import BROWSER_EXTRA_HEADERS, USER_AGENT, VIEWPORT, ReaderConfig
from .errors import (
    ChallengeTimeoutError,
    HttpStatusError,
    NoResponseError,
    RenderError,
)
from .models import ChallengeState, RenderedPage
from .utils import snippet

logger = logging.getLogger("article_reader")

LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--window-size=1920,1080",
    "--disable-features=VizDisplayCompositor",
)
CONSTRAINED_LAUNCH_ARGS = ("--single-process", "--no-zygote", "--disable-extensions")

STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
if (window.navigator.permissions && window.navigator.permissions.query) {
  const originalQuery = window.navigator.permissions.query.bind(window.navigator.permissions);
  window.navigator.permissions.query = (parameters) => (
    parameters.name === 'notifications'
      ? Promise.resolve({ state: Notification.permission })
      : originalQuery(parameters)
  );
}
"""

ARTICLE_PROBE_SELECTOR = 'article, main, [role="main"], .content, .post, .article'
CONTENT_READY_SELECTOR = 'article, [role="article"], .postArticle, .postArticle-content'
VERIFY_CONTROL_SELECTOR = (
    'input[type="checkbox"], button:has-text("Verify"), '
    "button:has-text(\"I'm not a robot\"), [class*=\"challenge\"]"
)
MODAL_CLOSE_SELECTORS = (
    'button[aria-label="Close"]',
    'button[data-action="close"]',
    ".overlay button",
    '[data-testid="close-button"]',
    'button[class*="close"]',
    'button[class*="dismiss"]',
    ".overlay-close",
    '[aria-label*="close" i]',
    '[aria-label*="dismiss" i]',
)

# Markers that identify a challenge interstitial on first load.
CHALLENGE_MARKERS = ("cloudflare", "checking your browser", "ddos protection", "ray id")
CHALLENGE_TITLE_MARKERS = ("just a moment",)
# Narrower set used while polling; footers of real pages often mention the provider.
ACTIVE_CHALLENGE_MARKERS = (
    "checking your browser",
    "ddos protection by cloudflare",
    "challenges.cloudflare.com",
    "verify you are human",
)

PROBE_SCRIPT = (
    "() => ({"
    " text: document.body ? document.body.innerText : '',"
    " title: document.title || '',"
    f" hasContent: document.querySelector('{ARTICLE_PROBE_SELECTOR}') !== null,"
    " url: window.location.href"
    " })"
)
SCROLL_SCRIPT = "(y) => window.scrollTo(0, y)"
BODY_CLICK_SCRIPT = "() => { if (document.body) { document.body.click(); } }"


@dataclass
class PageProbe:
    """Snapshot of the page used to classify challenge progress."""

    text: str
    title: str
    has_content: bool
    url: str

    @property
    def is_challenge(self) -> bool:
        text = self.text.lower()
        title = self.title.lower()
        return any(marker in text for marker in CHALLENGE_MARKERS) or any(
            marker in title for marker in CHALLENGE_TITLE_MARKERS
        )

    @property
    def still_challenged(self) -> bool:
        text = self.text.lower()
        title = self.title.lower()
        return any(marker in text for marker in ACTIVE_CHALLENGE_MARKERS) or any(
            marker in title for marker in CHALLENGE_TITLE_MARKERS
        )


async def probe_page(page: Any) -> PageProbe:
    data = await page.evaluate(PROBE_SCRIPT) or {}
    return PageProbe(
        text=data.get("text") or "",
        title=data.get("title") or "",
        has_content=bool(data.get("hasContent")),
        url=data.get("url") or "",
    )


class BrowserRenderer:
    """Render a URL in a stealth-configured Chromium and return its HTML."""

    def __init__(self, config: Optional[ReaderConfig] = None) -> None:
        self.config = config or ReaderConfig()

    async def render(self, url: str) -> RenderedPage:
        """Load ``url`` in a fresh browser session and capture the rendered DOM."""
        timeout = self.config.effective_navigation_timeout
        wait_until = self.config.wait_until
        try:
            async with async_playwright() as playwright:
                browser = await self._launch(playwright)
                try:
                    page = await self._new_page(browser)
                    return await self._drive(page, url)
                finally:
                    await self._close(browser)
        except RenderError:
            raise
        except PlaywrightError as exc:
            logger.error(
                "Browser automation error for %s (timeout=%.0fs, wait_until=%s, constrained=%s): %s",
                url,
                timeout,
                wait_until,
                self.config.constrained,
                exc,
            )
            raise RenderError(f"Browser automation failed: {exc}") from exc

    async def _launch(self, playwright: Any) -> Any:
        args = list(LAUNCH_ARGS)
        options = {"headless": True}
        if self.config.constrained:
            args.extend(CONSTRAINED_LAUNCH_ARGS)
            if self.config.chrome_executable:
                options["executable_path"] = self.config.chrome_executable
        return await playwright.chromium.launch(args=args, **options)

    async def _new_page(self, browser: Any) -> Any:
        context = await browser.new_context(
            viewport=dict(VIEWPORT),
            device_scale_factor=1,
            user_agent=USER_AGENT,
            extra_http_headers=dict(BROWSER_EXTRA_HEADERS),
            locale="en-US",
        )
        await context.add_init_script(STEALTH_INIT_SCRIPT)
        return await context.new_page()

    async def _close(self, browser: Any) -> None:
        try:
            await browser.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Error closing browser: %s", exc)

    async def _drive(self, page: Any, url: str) -> RenderedPage:
        config = self.config
        logger.info("Loading %s in headless browser", url)
        response = await page.goto(
            url,
            wait_until=config.wait_until,
            timeout=config.effective_navigation_timeout * 1000,
        )
        if response is None:
            raise NoResponseError()
        status = response.status

        await asyncio.sleep(config.settle_delay)
        probe = await probe_page(page)
        if probe.is_challenge:
            logger.info("Anti-bot challenge detected on %s, waiting for it to complete", url)
            state, probe = await self._resolve_challenge(page, url)
            if state is ChallengeState.TIMED_OUT:
                logger.warning("Challenge on %s did not complete in time", url)
                raise ChallengeTimeoutError(snippet(probe.text))
            logger.info("Challenge on %s appears to have completed", url)
            await asyncio.sleep(config.post_challenge_delay)
            # The challenge response status no longer describes the page we capture.
            if status >= 400:
                status = 200
        elif status >= 400:
            raise HttpStatusError(status, response.status_text or "", snippet(probe.text))

        await asyncio.sleep(config.settle_delay)
        await self._dismiss_modals(page)
        await self._wait_for_content(page)
        await asyncio.sleep(config.capture_delay)
        html = await page.content()
        return RenderedPage(html=html, status_code=status, final_url=page.url or url)

    async def _simulate_interaction(self, page: Any) -> None:
        """Move the cursor, scroll, and try the verification control once."""
        pause = self.config.interaction_delay
        await page.mouse.move(100, 100)
        await asyncio.sleep(pause)
        await page.mouse.move(200, 200)
        await asyncio.sleep(pause)
        await page.evaluate(SCROLL_SCRIPT, 300)
        await asyncio.sleep(pause * 2)
        await page.evaluate(SCROLL_SCRIPT, 0)
        await asyncio.sleep(pause)
        try:
            control = await page.query_selector(VERIFY_CONTROL_SELECTOR)
            if control is not None:
                await control.click()
                await asyncio.sleep(pause * 2)
        except PlaywrightError as exc:
            logger.debug("No clickable verification control: %s", exc)

    async def _resolve_challenge(self, page: Any, url: str) -> Tuple[ChallengeState, PageProbe]:
        """Poll until the challenge clears or the time budget runs out."""
        config = self.config
        state = ChallengeState.IN_PROGRESS
        await self._simulate_interaction(page)

        started = time.monotonic()
        probe = await probe_page(page)
        while state is ChallengeState.IN_PROGRESS:
            if time.monotonic() - started >= config.challenge_budget:
                state = ChallengeState.TIMED_OUT
                break
            await asyncio.sleep(config.challenge_poll_interval)
            probe = await probe_page(page)
            if not probe.still_challenged and (probe.has_content or probe.url != url):
                state = ChallengeState.PASSED
                break
            await page.mouse.move(random.uniform(0, 500), random.uniform(0, 500))

        if state is ChallengeState.TIMED_OUT:
            probe = await probe_page(page)
            if not probe.still_challenged:
                state = ChallengeState.PASSED
        return state, probe

    async def _dismiss_modals(self, page: Any) -> None:
        """Close sign-up overlays; failures are logged and ignored."""
        pause = self.config.interaction_delay
        try:
            await asyncio.sleep(pause * 2)
            closed = False
            for selector in MODAL_CLOSE_SELECTORS:
                try:
                    button = await page.query_selector(selector)
                    if button is None or not await button.is_visible():
                        continue
                    logger.info("Found visible modal close button with selector: %s", selector)
                    await button.click(delay=100)
                    await asyncio.sleep(pause * 2)
                    closed = True
                    break
                except PlaywrightError as exc:
                    logger.debug("Modal selector %s failed: %s", selector, exc)

            if not closed:
                logger.debug("No visible modal close button, pressing Escape")
                await page.keyboard.press("Escape")
                await asyncio.sleep(pause)

            try:
                await page.evaluate(BODY_CLICK_SCRIPT)
                await asyncio.sleep(pause)
            except PlaywrightError as exc:
                logger.debug("Body click failed: %s", exc)

            await page.evaluate(SCROLL_SCRIPT, 300)
            await asyncio.sleep(pause)
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error handling modal: %s", exc)

    async def _wait_for_content(self, page: Any) -> None:
        try:
            await page.wait_for_selector(
                CONTENT_READY_SELECTOR, timeout=self.config.content_wait * 1000
            )
        except PlaywrightTimeoutError:
            logger.info("Article selector not found, continuing with page content")
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Waiting for article content failed, using available content: %s", exc)
