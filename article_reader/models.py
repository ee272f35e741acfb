"""Data models used throughout the article pipeline."""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

FALLBACK_ID_PREFIX = "hash_"


class EmbedKind(str, Enum):
    """Rich-media families the detector knows how to recover."""

    VIDEO = "video"
    SOCIAL_POST = "social-post"


class FetchStrategy(str, Enum):
    PLAIN = "plain"
    BROWSER_AUTOMATION = "browser-automation"


class ChallengeState(str, Enum):
    """Progress of an anti-bot challenge during one page load."""

    NOT_PRESENT = "not-present"
    IN_PROGRESS = "in-progress"
    PASSED = "passed"
    TIMED_OUT = "timed-out"


@dataclass(frozen=True)
class EmbedDescriptor:
    """One detected embed, with markup copied out of the source document."""

    kind: EmbedKind
    canonical_id: str
    markup: str
    synthesized: bool = False
    source_element: Optional[weakref.ref] = field(
        default=None, repr=False, compare=False
    )

    @property
    def element(self) -> Any:
        """The originating tag, or None once its document has been discarded."""
        if self.source_element is None:
            return None
        return self.source_element()

    @property
    def has_fallback_id(self) -> bool:
        return self.canonical_id.startswith(FALLBACK_ID_PREFIX)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a successful fetch attempt."""

    html: str
    status_code: int
    strategy_used: FetchStrategy
    blocked: bool = False
    final_url: Optional[str] = None


@dataclass(frozen=True)
class RenderedPage:
    """HTML captured from a browser session plus its navigation status."""

    html: str
    status_code: int
    final_url: str


@dataclass(frozen=True)
class ExtractedArticle:
    """Distilled article as returned by the readability collaborator."""

    title: Optional[str]
    content: str
    excerpt: Optional[str]
    byline: Optional[str]
    site_name: Optional[str]


@dataclass(frozen=True)
class ArticleResult:
    """Final article returned to callers of the pipeline."""

    title: Optional[str]
    content: str
    excerpt: Optional[str]
    byline: Optional[str]
    site_name: Optional[str]

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Serialize using the JSON field names exposed over HTTP and MCP."""
        return {
            "title": self.title,
            "content": self.content,
            "excerpt": self.excerpt,
            "byline": self.byline,
            "siteName": self.site_name,
        }
