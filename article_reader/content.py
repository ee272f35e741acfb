"""Article distillation and metadata parsing utilities."""

from __future__ import annotations

from typing import Iterable, Optional

from bs4 import BeautifulSoup
from readability import Document
from readability.readability import Unparseable

from .errors import ExtractionFailedError
from .models import ExtractedArticle

_NO_TITLE = "[no-title]"


def _clean_content(soup: BeautifulSoup, strip_chrome: bool = False) -> BeautifulSoup:
    """Remove noisy tags while keeping relevant article markup."""
    for tag in soup(["script", "style", "noscript", "form"]):
        tag.decompose()
    if strip_chrome:
        for tag in soup(["header", "footer", "nav", "aside"]):
            tag.decompose()
    return soup


def _plain_text(soup: BeautifulSoup) -> str:
    return " ".join(soup.stripped_strings)


def _iter_primary_candidates(soup_full: BeautifulSoup) -> Iterable[BeautifulSoup]:
    """Yield progressively broader content scopes to fall back on."""
    for selector in ("main", "article"):
        candidate = soup_full.select_one(selector)
        if candidate:
            yield BeautifulSoup(str(candidate), "html.parser")
    if soup_full.body:
        yield BeautifulSoup(str(soup_full.body), "html.parser")


def _meta_content(soup: BeautifulSoup, *keys: str) -> Optional[str]:
    """Return the first non-empty meta content matching a name or property."""
    for key in keys:
        tag = soup.find("meta", attrs={"name": key}) or soup.find(
            "meta", attrs={"property": key}
        )
        if tag and tag.get("content") and tag["content"].strip():
            return tag["content"].strip()
    return None


def _first_paragraph(summary: BeautifulSoup) -> Optional[str]:
    for paragraph in summary.find_all("p"):
        text = " ".join(paragraph.stripped_strings)
        if text:
            return text
    return None


def _clean_title(value: Optional[str]) -> Optional[str]:
    if not value or value.strip() == _NO_TITLE:
        return None
    return value.strip()


def extract_article(html: str, base_url: str, min_content_chars: int = 200) -> ExtractedArticle:
    """Distill the main article body and its metadata from raw page HTML."""
    if not html or not html.strip():
        raise ExtractionFailedError()
    try:
        document = Document(html, url=base_url)
        summary_html = document.summary(html_partial=True)
    except Unparseable as exc:
        raise ExtractionFailedError() from exc

    soup_full = BeautifulSoup(html, "html.parser")
    summary = _clean_content(BeautifulSoup(summary_html, "html.parser"))
    plain_text = _plain_text(summary)

    if len(plain_text) < min_content_chars:
        for candidate in _iter_primary_candidates(soup_full):
            candidate = _clean_content(candidate, strip_chrome=True)
            candidate_plain = _plain_text(candidate)
            if len(candidate_plain) >= min_content_chars:
                summary = candidate
                plain_text = candidate_plain
                break

    if not plain_text:
        raise ExtractionFailedError()

    title = _clean_title(_meta_content(soup_full, "og:title")) or _clean_title(
        document.short_title()
    )
    if not title and soup_full.title and soup_full.title.string:
        title = soup_full.title.string.strip()

    excerpt = _meta_content(soup_full, "description", "og:description", "twitter:description")
    if not excerpt:
        excerpt = _first_paragraph(summary)

    return ExtractedArticle(
        title=title or None,
        content=summary.decode(),
        excerpt=excerpt,
        byline=_meta_content(soup_full, "author", "article:author", "parsely-author"),
        site_name=_meta_content(soup_full, "og:site_name", "application-name"),
    )
