"""High-level orchestration for fetching a page and producing an article."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from bs4 import BeautifulSoup

from .browser import BrowserRenderer
from .config import ReaderConfig
from .content import extract_article
from .detector import EmbedDetector
from .fetcher import FetchOrchestrator
from .models import ArticleResult, ExtractedArticle
from .reconciler import reconcile
from .utils import validate_url

logger = logging.getLogger("article_reader")

Extractor = Callable[[str, str, int], ExtractedArticle]


def build_fetcher(config: ReaderConfig) -> FetchOrchestrator:
    """Create a fetcher, provisioning a browser only where one may run."""
    renderer = None
    if config.browser_enabled and config.browser_allowed:
        renderer = BrowserRenderer(config)
    elif config.restricted:
        logger.info("Restricted environment detected - browser automation disabled")
    return FetchOrchestrator(config=config, renderer=renderer)


class ArticlePipeline:
    """Fetch, detect embeds, distill, and reconcile one article per call."""

    def __init__(
        self,
        config: Optional[ReaderConfig] = None,
        fetcher: Optional[FetchOrchestrator] = None,
        detector: Optional[EmbedDetector] = None,
        extractor: Extractor = extract_article,
    ) -> None:
        self.config = config or ReaderConfig.from_env()
        self.fetcher = fetcher or build_fetcher(self.config)
        self.detector = detector or EmbedDetector()
        self.extractor = extractor

    async def parse(self, url: str) -> ArticleResult:
        """Run the full pipeline for ``url``."""
        start = time.perf_counter()
        url = validate_url(url)
        fetched = await self.fetcher.fetch(url)
        base_url = fetched.final_url or url
        logger.debug(
            "Fetched %s via %s (status %d, %d chars)",
            base_url,
            fetched.strategy_used.value,
            fetched.status_code,
            len(fetched.html),
        )

        # Descriptors keep weak references into this tree; it is dropped below.
        document = BeautifulSoup(fetched.html, "html.parser")
        embeds = self.detector.detect(document)
        article = self.extractor(fetched.html, base_url, self.config.min_content_chars)
        content = reconcile(article.content, embeds)
        del document

        logger.info(
            "Parsed %s in %.2fs (%d embed(s))",
            base_url,
            time.perf_counter() - start,
            len(embeds),
        )
        return ArticleResult(
            title=article.title,
            content=content,
            excerpt=article.excerpt,
            byline=article.byline,
            site_name=article.site_name,
        )


async def parse_article(url: str, config: Optional[ReaderConfig] = None) -> ArticleResult:
    """Parse an article from a URL, keeping its video and social-post embeds."""
    return await ArticlePipeline(config).parse(url)
