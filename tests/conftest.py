"""Shared fixtures and fakes for the article reader tests."""

from typing import Any, Dict, List, Optional

import pytest
import requests

from article_reader.config import ReaderConfig
from article_reader.models import RenderedPage

ARTICLE_PARAGRAPHS = [
    "The city council met on Tuesday evening to debate the new transit plan, "
    "which would add three bus rapid transit corridors and extend service hours "
    "on the busiest routes through the downtown core.",
    "Supporters argued that the plan would reduce congestion and give residents "
    "without cars a reliable way to reach jobs, while critics worried about the "
    "cost of the dedicated lanes and the loss of parking along main streets.",
    "After nearly four hours of public comment the council voted six to three to "
    "move the proposal forward to a final budget review scheduled for next month, "
    "when detailed cost estimates are expected from the transit authority.",
]


def article_html(extra_body: str = "", head: str = "") -> str:
    """Build a realistic article page with optional extra body markup."""
    paragraphs = "".join(f"<p>{text}</p>" for text in ARTICLE_PARAGRAPHS)
    return (
        "<html><head><title>Council advances transit plan</title>"
        '<meta name="author" content="Jane Reporter">'
        '<meta name="description" content="The council voted to move the plan forward.">'
        '<meta property="og:site_name" content="City Gazette">'
        f"{head}</head><body>"
        '<nav><a href="/">Home</a></nav>'
        f"<article><h1>Council advances transit plan</h1>{paragraphs}{extra_body}</article>"
        "<footer>Copyright City Gazette</footer>"
        "</body></html>"
    )


@pytest.fixture
def fast_config() -> ReaderConfig:
    """Config with every delay collapsed so browser tests run instantly."""
    return ReaderConfig(
        restricted=False,
        constrained=False,
        challenge_budget=5.0,
        challenge_poll_interval=0,
        settle_delay=0,
        post_challenge_delay=0,
        content_wait=0.01,
        capture_delay=0,
        interaction_delay=0,
    )


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "", reason: str = "OK", url: str = ""):
        self.status_code = status_code
        self.text = text
        self.reason = reason
        self.url = url


class FakeSession:
    """Stand-in for ``requests.Session`` recording every GET."""

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[Exception] = None):
        self.response = response or FakeResponse()
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        if not self.response.url:
            self.response.url = url
        return self.response


class FakeRenderer:
    """Records render calls and returns or raises a canned outcome."""

    def __init__(self, page: Optional[RenderedPage] = None, error: Optional[Exception] = None):
        self.page = page
        self.error = error
        self.calls: List[str] = []

    async def render(self, url: str) -> RenderedPage:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.page


@pytest.fixture
def fake_session_factory():
    def _create(status_code: int = 200, text: str = "", reason: str = "OK", error=None):
        return FakeSession(FakeResponse(status_code, text, reason), error=error)

    return _create


@pytest.fixture
def connection_error():
    return requests.ConnectionError("Connection refused")
