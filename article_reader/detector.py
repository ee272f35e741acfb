"""Detection of video and social-post embeds in a parsed page.

Readability-style distillation drops iframes, widget blockquotes, and the
scripts that hydrate them. The detector runs before distillation and records
every embed it can recognize so the reconciler can put them back.

Each strategy is a plain function ``(soup, state) -> candidates``. The
detector threads a :class:`DetectionState` through them in order and merges
the candidates into it; a canonical id claimed by an earlier strategy is never
replaced by a later one.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, Tag

from .models import EmbedDescriptor, EmbedKind
from .utils import (
    VIDEO_FRAME_ALLOW,
    VIDEO_URL_PATTERN,
    extract_oembed_video_id,
    extract_post_id,
    extract_video_id,
    fallback_id,
    is_social_url,
    is_video_url,
    is_widget_script_url,
    video_embed_url,
)

logger = logging.getLogger("article_reader")

VIDEO_WRAPPER_CLASSES = frozenset(
    {
        "youtube",
        "video",
        "embed",
        "video-embed",
        "video-wrapper",
        "video-container",
        "embed-container",
        "embed-responsive",
    }
)
VIDEO_ID_ATTRIBUTES = ("data-youtube-id", "data-youtube-url", "data-yt-id")
SOCIAL_EMBED_CLASS = "twitter-tweet"
SOCIAL_WRAPPER_CLASSES = frozenset({"twitter-tweet", "twitter-container"})


@dataclass(frozen=True)
class DetectionState:
    """Embeds accepted so far plus the canonical ids claimed per kind."""

    embeds: Tuple[EmbedDescriptor, ...] = ()
    seen_ids: Dict[EmbedKind, FrozenSet[str]] = field(default_factory=dict)

    def has(self, kind: EmbedKind, canonical_id: str) -> bool:
        return canonical_id in self.seen_ids.get(kind, frozenset())

    def merge(self, candidates: Iterable[EmbedDescriptor]) -> "DetectionState":
        """Return a new state with every candidate whose id is still unclaimed."""
        embeds = list(self.embeds)
        seen = {kind: set(ids) for kind, ids in self.seen_ids.items()}
        for candidate in candidates:
            claimed = seen.setdefault(candidate.kind, set())
            if candidate.canonical_id in claimed:
                continue
            claimed.add(candidate.canonical_id)
            embeds.append(candidate)
        return DetectionState(
            embeds=tuple(embeds),
            seen_ids={kind: frozenset(ids) for kind, ids in seen.items()},
        )


Strategy = Callable[[BeautifulSoup, DetectionState], List[EmbedDescriptor]]


def _classes(tag: Optional[Tag]) -> FrozenSet[str]:
    if tag is None:
        return frozenset()
    value = tag.get("class") or []
    if isinstance(value, str):
        value = value.split()
    return frozenset(value)


def _container(tag: Tag) -> Optional[Tag]:
    parent = tag.parent
    if not isinstance(parent, Tag) or isinstance(parent, BeautifulSoup):
        return None
    return parent


def _is_video_wrapper(tag: Optional[Tag]) -> bool:
    if tag is None:
        return False
    if _classes(tag) & VIDEO_WRAPPER_CLASSES:
        return True
    return any(tag.has_attr(attr) for attr in VIDEO_ID_ATTRIBUTES)


def _is_social_wrapper(tag: Optional[Tag]) -> bool:
    return tag is not None and tag.name == "div" and bool(_classes(tag) & SOCIAL_WRAPPER_CLASSES)


def _frame_source(frame: Tag) -> Optional[str]:
    return frame.get("src") or frame.get("data-src")


def _video_frame_count(tag: Tag) -> int:
    return sum(1 for f in tag.find_all("iframe") if is_video_url(_frame_source(f)))


def _copied(kind: EmbedKind, canonical_id: str, element: Tag, markup: Optional[str] = None) -> EmbedDescriptor:
    return EmbedDescriptor(
        kind=kind,
        canonical_id=canonical_id,
        markup=markup if markup is not None else str(element),
        synthesized=False,
        source_element=weakref.ref(element),
    )


def video_frame_markup(video_id: str) -> str:
    """Standard embeddable player frame for a video id."""
    return (
        f'<iframe src="{video_embed_url(video_id)}" frameborder="0" '
        f'allow="{VIDEO_FRAME_ALLOW}" allowfullscreen></iframe>'
    )


def _synthesized_video(video_id: str, element: Optional[Tag] = None) -> EmbedDescriptor:
    return EmbedDescriptor(
        kind=EmbedKind.VIDEO,
        canonical_id=video_id,
        markup=video_frame_markup(video_id),
        synthesized=True,
        source_element=weakref.ref(element) if element is not None else None,
    )


# --------------------------------------------------------------------------
# Video strategies
# --------------------------------------------------------------------------


def find_video_frames(soup: BeautifulSoup, state: DetectionState) -> List[EmbedDescriptor]:
    """Iframes pointing at a video host, promoted to their wrapper when marked."""
    found: List[EmbedDescriptor] = []
    for frame in soup.find_all("iframe"):
        src = _frame_source(frame)
        if not is_video_url(src):
            continue
        video_id = extract_video_id(src) or fallback_id(src)
        parent = _container(frame)
        # A wrapper shared by several players would carry every frame.
        if _is_video_wrapper(parent) and _video_frame_count(parent) == 1:
            element = parent
        else:
            element = frame
        found.append(_copied(EmbedKind.VIDEO, video_id, element))
    return found


def find_video_containers(soup: BeautifulSoup, state: DetectionState) -> List[EmbedDescriptor]:
    """Placeholders carrying a video id attribute but no player frame yet."""
    found: List[EmbedDescriptor] = []
    selector = ", ".join(f"[{attr}]" for attr in VIDEO_ID_ATTRIBUTES)
    for container in soup.select(selector):
        if container.name == "iframe":
            continue
        if any(is_video_url(_frame_source(f)) for f in container.find_all("iframe")):
            continue
        raw = next(
            (container.get(attr) for attr in VIDEO_ID_ATTRIBUTES if container.get(attr)),
            None,
        )
        video_id = extract_video_id(raw)
        if video_id:
            found.append(_synthesized_video(video_id, container))
    return found


def find_video_links(soup: BeautifulSoup, state: DetectionState) -> List[EmbedDescriptor]:
    """Watch and share links, copied with their wrapper or turned into frames."""
    found: List[EmbedDescriptor] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if "youtube.com/watch" not in href and "youtu.be/" not in href:
            continue
        if not is_video_url(href):
            continue
        video_id = extract_video_id(href)
        if not video_id or state.has(EmbedKind.VIDEO, video_id):
            continue
        parent = _container(anchor)
        if _is_video_wrapper(parent):
            found.append(_copied(EmbedKind.VIDEO, video_id, parent))
        else:
            found.append(_synthesized_video(video_id, anchor))
    return found


def find_video_oembed(soup: BeautifulSoup, state: DetectionState) -> List[EmbedDescriptor]:
    """oEmbed discovery links and plain links to an embed URL."""
    found: List[EmbedDescriptor] = []
    candidates = soup.select(
        'link[type="application/json+oembed"], a[href*="youtube.com/embed/"]'
    )
    for link in candidates:
        href = link.get("href")
        if not is_video_url(href):
            continue
        video_id = extract_oembed_video_id(href)
        if video_id:
            found.append(_synthesized_video(video_id, link))
    return found


def sweep_video_ids(soup: BeautifulSoup, state: DetectionState) -> List[EmbedDescriptor]:
    """Regex sweep of the serialized page for ids hidden in scripts or data."""
    found: List[EmbedDescriptor] = []
    pending = set()
    for match in VIDEO_URL_PATTERN.finditer(str(soup)):
        video_id = match.group(1)
        if state.has(EmbedKind.VIDEO, video_id) or video_id in pending:
            continue
        pending.add(video_id)
        found.append(_synthesized_video(video_id))
    return found


# --------------------------------------------------------------------------
# Social-post strategies
# --------------------------------------------------------------------------


def _quote_post_id(quote: Tag) -> Optional[str]:
    for anchor in quote.find_all("a", href=True):
        if not is_social_url(anchor["href"]):
            continue
        post_id = extract_post_id(anchor["href"])
        if post_id:
            return post_id
    return None


def _is_widget_script(tag: Tag) -> bool:
    return tag.name == "script" and is_widget_script_url(tag.get("src"))


def _find_widget_script(quote: Tag) -> Optional[Tag]:
    """Locate the loader script that belongs to a quote, if the page has one."""
    for sibling in quote.find_previous_siblings(True):
        if _is_widget_script(sibling):
            return sibling
    for sibling in quote.find_next_siblings(True):
        if _is_widget_script(sibling):
            return sibling
    parent = _container(quote)
    if parent is not None:
        return parent.find("script", src=is_widget_script_url)
    return None


def _nearest_sibling_quote(script: Tag) -> Optional[Tag]:
    """The closest sibling blockquote, kept only if it is a widget quote."""
    quote = script.find_previous_sibling("blockquote")
    if quote is None:
        quote = script.find_next_sibling("blockquote")
    if quote is None or SOCIAL_EMBED_CLASS not in _classes(quote):
        return None
    return quote


def find_social_quotes(soup: BeautifulSoup, state: DetectionState) -> List[EmbedDescriptor]:
    """Widget blockquotes, bundled with their loader script when one is near."""
    found: List[EmbedDescriptor] = []
    claimed = set()
    for quote in soup.select(f'blockquote[class*="{SOCIAL_EMBED_CLASS}"]'):
        post_id = _quote_post_id(quote) or fallback_id(quote.get_text())
        if state.has(EmbedKind.SOCIAL_POST, post_id) or post_id in claimed:
            continue
        parent = _container(quote)
        element = parent if _is_social_wrapper(parent) else quote
        markup = str(element)
        script = _find_widget_script(quote)
        if script is not None and str(script) not in markup:
            markup += str(script)
        claimed.add(post_id)
        found.append(_copied(EmbedKind.SOCIAL_POST, post_id, element, markup))
    return found


def find_social_frames(soup: BeautifulSoup, state: DetectionState) -> List[EmbedDescriptor]:
    """Already-hydrated post frames served from the social host."""
    found: List[EmbedDescriptor] = []
    for frame in soup.find_all("iframe"):
        src = _frame_source(frame)
        if not is_social_url(src):
            continue
        post_id = extract_post_id(src) or fallback_id(src)
        parent = _container(frame)
        element = parent if _is_social_wrapper(parent) else frame
        found.append(_copied(EmbedKind.SOCIAL_POST, post_id, element))
    return found


def find_social_scripts(soup: BeautifulSoup, state: DetectionState) -> List[EmbedDescriptor]:
    """Loader scripts paired with a neighbouring widget quote not yet claimed."""
    found: List[EmbedDescriptor] = []
    for script in soup.find_all("script", src=is_widget_script_url):
        quote = _nearest_sibling_quote(script)
        if quote is None:
            continue
        post_id = _quote_post_id(quote) or fallback_id(quote.get_text())
        if state.has(EmbedKind.SOCIAL_POST, post_id):
            continue
        found.append(
            _copied(EmbedKind.SOCIAL_POST, post_id, quote, str(quote) + str(script))
        )
    return found


DEFAULT_STRATEGIES: Tuple[Strategy, ...] = (
    find_video_frames,
    find_video_containers,
    find_video_links,
    find_video_oembed,
    sweep_video_ids,
    find_social_quotes,
    find_social_frames,
    find_social_scripts,
)


class EmbedDetector:
    """Run every detection strategy over one parsed document."""

    def __init__(self, strategies: Sequence[Strategy] = DEFAULT_STRATEGIES) -> None:
        self.strategies = tuple(strategies)

    def detect(self, document: Union[BeautifulSoup, str]) -> List[EmbedDescriptor]:
        """Return deduplicated embeds in strategy discovery order."""
        soup = document if isinstance(document, BeautifulSoup) else BeautifulSoup(document, "html.parser")
        state = DetectionState()
        for strategy in self.strategies:
            state = state.merge(strategy(soup, state))

        embeds = list(state.embeds)
        videos = sum(1 for e in embeds if e.kind is EmbedKind.VIDEO)
        logger.info(
            "Detected %d embed(s): %d video, %d social-post",
            len(embeds),
            videos,
            len(embeds) - videos,
        )
        return embeds


def detect_embeds(document: Union[BeautifulSoup, str]) -> List[EmbedDescriptor]:
    """Convenience wrapper around :class:`EmbedDetector` with default strategies."""
    return EmbedDetector().detect(document)
