"""Configuration objects and constants for the article reader."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Sent with the plain GET; mirrors what a desktop Chrome sends on a fresh tab.
PLAIN_FETCH_HEADERS: Dict[str, str] = {
    "User-Agent": USER_AGENT,
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
    "Referer": "https://www.google.com/",
}

BROWSER_EXTRA_HEADERS: Dict[str, str] = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8"
    ),
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}

VIEWPORT = {"width": 1920, "height": 1080}

SERVERLESS_MARKERS = ("AWS_LAMBDA_FUNCTION_NAME", "NETLIFY", "VERCEL", "NETLIFY_DEV")
# NETLIFY_DEV disables the browser but runs locally, so it keeps full timeouts.
CONSTRAINED_MARKERS = ("AWS_LAMBDA_FUNCTION_NAME", "NETLIFY", "VERCEL")

DEFAULT_NAVIGATION_TIMEOUT = 30.0
CONSTRAINED_NAVIGATION_TIMEOUT = 20.0

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() in _TRUTHY


def _env_float(environ: Mapping[str, str], name: str) -> Optional[float]:
    raw = environ.get(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def detect_restricted_environment(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return True when running inside a serverless function runtime."""
    env = os.environ if environ is None else environ
    return any(env.get(marker) for marker in SERVERLESS_MARKERS)


def detect_constrained_environment(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return True when execution time and memory are capped by the host."""
    env = os.environ if environ is None else environ
    return any(env.get(marker) for marker in CONSTRAINED_MARKERS)


@dataclass
class ReaderConfig:
    """Top-level settings that control fetching, rendering, and extraction."""

    request_timeout: float = 30.0
    navigation_timeout: Optional[float] = None
    browser_enabled: bool = True
    restricted: bool = field(default_factory=detect_restricted_environment)
    constrained: bool = field(default_factory=detect_constrained_environment)
    force_browser: bool = False
    chrome_executable: Optional[str] = None
    challenge_budget: float = 30.0
    challenge_poll_interval: float = 2.0
    settle_delay: float = 2.0
    post_challenge_delay: float = 3.0
    content_wait: float = 10.0
    capture_delay: float = 1.0
    interaction_delay: float = 0.5
    min_content_chars: int = 200

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ReaderConfig":
        """Build a config from environment variables, then apply overrides."""
        env = os.environ if environ is None else environ
        values = {
            "restricted": detect_restricted_environment(env),
            "constrained": detect_constrained_environment(env),
            "browser_enabled": not _env_flag(env, "ARTICLE_READER_DISABLE_BROWSER"),
            "force_browser": _env_flag(env, "ARTICLE_READER_FORCE_BROWSER"),
            "chrome_executable": env.get("CHROME_BIN") or None,
        }
        request_timeout = _env_float(env, "ARTICLE_READER_REQUEST_TIMEOUT")
        if request_timeout is not None:
            values["request_timeout"] = request_timeout
        navigation_timeout = _env_float(env, "ARTICLE_READER_NAVIGATION_TIMEOUT")
        if navigation_timeout is not None:
            values["navigation_timeout"] = navigation_timeout
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def browser_allowed(self) -> bool:
        """Whether the runtime permits launching a headless browser at all."""
        return not self.restricted or self.force_browser

    @property
    def effective_navigation_timeout(self) -> float:
        if self.navigation_timeout is not None:
            return self.navigation_timeout
        if self.constrained:
            return CONSTRAINED_NAVIGATION_TIMEOUT
        return DEFAULT_NAVIGATION_TIMEOUT

    @property
    def wait_until(self) -> str:
        """Playwright load state to wait for after navigation."""
        return "domcontentloaded" if self.constrained else "networkidle"
