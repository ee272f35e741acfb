"""Utility helpers for URL validation, identifier parsing, and text handling."""

from __future__ import annotations

import hashlib
import re
from typing import Optional
from urllib.parse import parse_qs, unquote, urlparse

from .errors import InvalidUrlError
from .models import FALLBACK_ID_PREFIX

VIDEO_HOSTS = ("youtube.com", "youtu.be", "youtube-nocookie.com")
SOCIAL_HOSTS = ("twitter.com", "x.com")
WIDGET_SCRIPT_HOSTS = ("platform.twitter.com", "platform.x.com")

VIDEO_EMBED_URL = "https://www.youtube.com/embed/{video_id}"
VIDEO_FRAME_ALLOW = (
    "accelerometer; autoplay; clipboard-write; encrypted-media; gyroscope; "
    "picture-in-picture"
)
POST_FALLBACK_URL = "https://twitter.com/x/status/{post_id}"

# Watch and short links as they appear anywhere in serialized HTML.
VIDEO_URL_PATTERN = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([a-zA-Z0-9_-]{11})")
STATUS_PATTERN = re.compile(r"/(?:status|statuses)/(\d+)")
_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+")
_WHITESPACE = re.compile(r"\s+")


def validate_url(url: str) -> str:
    """Return the URL unchanged if it is an absolute http(s) URL."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError()
    candidate = url.strip()
    try:
        parsed = urlparse(candidate)
    except ValueError as exc:
        raise InvalidUrlError() from exc
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidUrlError()
    return candidate


def host_matches(url: Optional[str], hosts) -> bool:
    """Check whether the URL's hostname is one of ``hosts`` or a subdomain."""
    if not url:
        return False
    if url.startswith("//"):
        url = "https:" + url
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return any(hostname == host or hostname.endswith("." + host) for host in hosts)


def is_video_url(url: Optional[str]) -> bool:
    return host_matches(url, VIDEO_HOSTS)


def is_social_url(url: Optional[str]) -> bool:
    return host_matches(url, SOCIAL_HOSTS)


def is_widget_script_url(url: Optional[str]) -> bool:
    return host_matches(url, WIDGET_SCRIPT_HOSTS)


def _leading_id(value: str) -> Optional[str]:
    match = _ID_PATTERN.match(value)
    return match.group(0) if match else None


def extract_video_id(value: Optional[str]) -> Optional[str]:
    """Normalize a watch URL, short link, embed URL, or bare id to a video id."""
    if not value:
        return None
    value = value.strip()
    if "youtube.com/watch" in value or "youtube-nocookie.com/watch" in value:
        query = urlparse(value if "//" in value else "https://" + value).query
        ids = parse_qs(query).get("v")
        return _leading_id(ids[0]) if ids else None
    if "youtu.be/" in value:
        return _leading_id(value.split("youtu.be/", 1)[1])
    if is_video_url(value if "//" in value else "https://" + value):
        for marker in ("/embed/", "/shorts/", "/v/"):
            if marker in value:
                return _leading_id(value.split(marker, 1)[1])
        return None
    if "/" in value or "." in value:
        return None
    return _leading_id(value)


def extract_oembed_video_id(href: Optional[str]) -> Optional[str]:
    """Pull a video id out of an oEmbed endpoint or embed URL."""
    if not href:
        return None
    if "youtube.com/embed/" in href:
        return extract_video_id(href)
    target = parse_qs(urlparse(href).query).get("url")
    if target:
        return extract_video_id(unquote(target[0]))
    return None


def extract_post_id(url: Optional[str]) -> Optional[str]:
    """Return the numeric post id from a status URL or widget frame URL."""
    if not url:
        return None
    match = STATUS_PATTERN.search(url)
    if match:
        return match.group(1)
    ids = parse_qs(urlparse(url).query).get("id")
    if ids and ids[0].isdigit():
        return ids[0]
    return None


def video_embed_url(video_id: str) -> str:
    return VIDEO_EMBED_URL.format(video_id=video_id)


def fallback_id(text: str) -> str:
    """Derive a stable id from the leading text of an element."""
    leading = _WHITESPACE.sub("", (text or "")[:100])[:50]
    digest = hashlib.sha1(leading.encode("utf-8")).hexdigest()[:16]
    return FALLBACK_ID_PREFIX + digest


def snippet(text: Optional[str], limit: int = 200) -> str:
    """Collapse whitespace and trim text for inclusion in error messages."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()[:limit]
