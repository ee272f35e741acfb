"""Re-insert detected embeds into distilled article HTML."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from .detector import SOCIAL_EMBED_CLASS
from .models import EmbedDescriptor, EmbedKind
from .utils import (
    POST_FALLBACK_URL,
    VIDEO_FRAME_ALLOW,
    extract_post_id,
    extract_video_id,
    is_social_url,
    is_video_url,
    video_embed_url,
)

logger = logging.getLogger("article_reader")

WRAPPER_CLASS = "embed-wrapper"
VIDEO_WRAPPER_STYLE = (
    "margin: 2em 0; position: relative; padding-bottom: 56.25%; height: 0; "
    "overflow: hidden; max-width: 100%; background: #000; border-radius: 8px;"
)
VIDEO_FRAME_STYLE = (
    "position: absolute; top: 0; left: 0; width: 100%; height: 100%; border: none;"
)
FALLBACK_WRAPPER_STYLE = "margin: 2em 0; text-align: center;"
SOCIAL_WRAPPER_STYLE = "margin: 2em 0; max-width: 100%;"
SOCIAL_QUOTE_STYLE = "margin: 0 auto; max-width: 550px;"
SOCIAL_FRAME_STYLE = "max-width: 100%; margin: 0 auto; display: block;"


def _fragment(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


def _new_frame(soup: BeautifulSoup, video_id: str) -> Tag:
    return soup.new_tag(
        "iframe",
        attrs={
            "src": video_embed_url(video_id),
            "frameborder": "0",
            "allow": VIDEO_FRAME_ALLOW,
            "allowfullscreen": "",
        },
    )


def _add_class(tag: Tag, name: str) -> None:
    classes = list(tag.get("class") or [])
    if name not in classes:
        classes.append(name)
    tag["class"] = classes


def _matching_frame(captured: BeautifulSoup, embed: EmbedDescriptor) -> Optional[Tag]:
    """The frame playing this embed's video; any frame only for hash ids."""
    frames = captured.find_all("iframe")
    for frame in frames:
        src = frame.get("src") or frame.get("data-src")
        if is_video_url(src) and extract_video_id(src) == embed.canonical_id:
            return frame
    if embed.has_fallback_id:
        video_frames = [f for f in frames if is_video_url(f.get("src") or f.get("data-src"))]
        return (video_frames or frames or [None])[0]
    return None


def _video_block(soup: BeautifulSoup, embed: EmbedDescriptor) -> Tag:
    wrapper = soup.new_tag("div", attrs={"class": f"{WRAPPER_CLASS} embed-{embed.kind.value}"})
    captured = _fragment(embed.markup)
    frame = _matching_frame(captured, embed)

    if frame is None and not embed.has_fallback_id:
        frame = _new_frame(soup, embed.canonical_id)

    if frame is None:
        wrapper["style"] = FALLBACK_WRAPPER_STYLE
        for child in list(captured.contents):
            wrapper.append(child.extract())
        return wrapper

    if frame.get("data-src") and not frame.get("src"):
        frame["src"] = frame["data-src"]
    wrapper["style"] = VIDEO_WRAPPER_STYLE
    frame["style"] = VIDEO_FRAME_STYLE
    wrapper.append(frame.extract())
    return wrapper


def _has_social_link(quote: Tag) -> bool:
    return quote.find("a", href=lambda href: bool(href) and is_social_url(href)) is not None


def _normalize_quote(soup: BeautifulSoup, quote: Tag, embed: EmbedDescriptor) -> None:
    _add_class(quote, SOCIAL_EMBED_CLASS)
    quote["style"] = SOCIAL_QUOTE_STYLE
    if not _has_social_link(quote) and not embed.has_fallback_id:
        link = soup.new_tag("a", href=POST_FALLBACK_URL.format(post_id=embed.canonical_id))
        link.string = "View on Twitter"
        quote.append(link)


def _social_block(soup: BeautifulSoup, embed: EmbedDescriptor) -> Tag:
    wrapper = soup.new_tag(
        "div",
        attrs={"class": f"{WRAPPER_CLASS} embed-{embed.kind.value}", "style": SOCIAL_WRAPPER_STYLE},
    )
    captured = _fragment(embed.markup)
    for child in list(captured.contents):
        child = child.extract()
        if isinstance(child, Tag):
            # Loader scripts are dropped; the presentation layer re-attaches them.
            if child.name == "script":
                continue
            if child.name == "blockquote":
                _normalize_quote(soup, child, embed)
            elif child.name == "div":
                nested = child.find("blockquote")
                if nested is not None:
                    _normalize_quote(soup, nested, embed)
            for frame in ([child] if child.name == "iframe" else child.find_all("iframe")):
                frame["style"] = SOCIAL_FRAME_STYLE
            for script in child.find_all("script"):
                script.decompose()
        wrapper.append(child)
    return wrapper


def _strip_distilled_copies(soup: BeautifulSoup, embeds: Sequence[EmbedDescriptor]) -> None:
    """Drop embeds the distiller kept in place so each appears exactly once."""
    video_ids = {e.canonical_id for e in embeds if e.kind is EmbedKind.VIDEO}
    post_ids = {e.canonical_id for e in embeds if e.kind is EmbedKind.SOCIAL_POST}
    for frame in soup.find_all("iframe"):
        src = frame.get("src") or frame.get("data-src")
        if is_video_url(src) and extract_video_id(src) in video_ids:
            frame.decompose()
    for quote in soup.select(f'blockquote[class*="{SOCIAL_EMBED_CLASS}"]'):
        if _quote_ids(quote) & post_ids:
            quote.decompose()


def _quote_ids(quote: Tag) -> set:
    return {
        post_id
        for post_id in (extract_post_id(a["href"]) for a in quote.find_all("a", href=True))
        if post_id
    }


def build_embed_block(soup: BeautifulSoup, embed: EmbedDescriptor) -> Optional[Tag]:
    """Create the normalized wrapper element for one embed."""
    if embed.kind is EmbedKind.VIDEO:
        return _video_block(soup, embed)
    if embed.kind is EmbedKind.SOCIAL_POST:
        return _social_block(soup, embed)
    return None


def reconcile(content_html: str, embeds: Sequence[EmbedDescriptor]) -> str:
    """Append every embed, in detection order, to the end of the content.

    Embeds are not restored to their original position in the article.
    """
    if not embeds:
        return content_html

    soup = _fragment(content_html)
    _strip_distilled_copies(soup, embeds)
    appended: List[str] = []
    for embed in embeds:
        block = build_embed_block(soup, embed)
        if block is None:
            continue
        logger.debug("Adding embed: %s - %s", embed.kind.value, embed.canonical_id)
        soup.append(block)
        appended.append(embed.canonical_id)
    logger.info("Re-inserted %d embed(s) into article content", len(appended))
    return soup.decode()
