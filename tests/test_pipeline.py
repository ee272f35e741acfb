"""End-to-end tests for the article pipeline with network access faked out."""

import pytest
from bs4 import BeautifulSoup

from article_reader.config import ReaderConfig
from article_reader.content import extract_article
from article_reader.errors import (
    RESTRICTED,
    AutomationUnavailableError,
    ExtractionFailedError,
    InvalidUrlError,
)
from article_reader.fetcher import FetchOrchestrator
from article_reader.models import RenderedPage
from article_reader.pipeline import ArticlePipeline, build_fetcher
from conftest import FakeRenderer, article_html

URL = "https://news.example.com/story"


def _pipeline(session, renderer=None, **config_kwargs) -> ArticlePipeline:
    config_kwargs.setdefault("restricted", False)
    config_kwargs.setdefault("constrained", False)
    config = ReaderConfig(**config_kwargs)
    return ArticlePipeline(config, fetcher=FetchOrchestrator(config, renderer, session))


class TestArticlePipeline:
    @pytest.mark.asyncio
    async def test_video_embed_survives_distillation(self, fake_session_factory):
        html = article_html(
            extra_body='<iframe src="https://www.youtube.com/embed/abc12345678" allowfullscreen></iframe>'
        )
        pipeline = _pipeline(fake_session_factory(200, html))

        article = await pipeline.parse(URL)

        soup = BeautifulSoup(article.content, "html.parser")
        wrappers = soup.select("div.embed-wrapper.embed-video")
        assert len(wrappers) == 1
        assert wrappers[0].find("iframe")["src"].endswith("/embed/abc12345678")
        assert len(soup.find_all("iframe")) == 1
        assert article.title == "Council advances transit plan"
        assert article.site_name == "City Gazette"

    @pytest.mark.asyncio
    async def test_social_post_survives_distillation(self, fake_session_factory):
        html = article_html(
            extra_body=(
                '<blockquote class="twitter-tweet"><p>Vote tonight</p>'
                '<a href="https://twitter.com/reporter/status/1234567890">June 1</a></blockquote>'
                '<script async src="https://platform.twitter.com/widgets.js"></script>'
            )
        )
        pipeline = _pipeline(fake_session_factory(200, html))

        article = await pipeline.parse(URL)

        soup = BeautifulSoup(article.content, "html.parser")
        wrappers = soup.select("div.embed-wrapper.embed-social-post")
        assert len(wrappers) == 1
        assert len(soup.select('blockquote[class*="twitter-tweet"]')) == 1
        assert soup.find("script") is None

    @pytest.mark.asyncio
    async def test_pull_quote_near_loader_script_is_left_alone(self, fake_session_factory):
        html = article_html(
            extra_body=(
                "<blockquote><p>A pull quote from the mayor.</p></blockquote>"
                "<p>More reporting.</p>"
                '<script async src="https://platform.twitter.com/widgets.js"></script>'
            )
        )
        pipeline = _pipeline(fake_session_factory(200, html))

        article = await pipeline.parse(URL)

        assert "embed-social-post" not in article.content
        assert "twitter-tweet" not in article.content

    @pytest.mark.asyncio
    async def test_page_without_embeds_matches_plain_extraction(self, fake_session_factory):
        html = article_html()
        pipeline = _pipeline(fake_session_factory(200, html))

        article = await pipeline.parse(URL)

        assert article.content == extract_article(html, URL).content
        assert "embed-wrapper" not in article.content

    @pytest.mark.asyncio
    async def test_blocked_site_in_restricted_environment(self, fake_session_factory):
        renderer = FakeRenderer(page=RenderedPage(article_html(), 200, URL))
        pipeline = _pipeline(fake_session_factory(403, reason="Forbidden"), renderer, restricted=True)

        with pytest.raises(AutomationUnavailableError) as excinfo:
            await pipeline.parse(URL)

        assert excinfo.value.reason == RESTRICTED
        assert "restricted environments" in str(excinfo.value)
        assert renderer.calls == []

    @pytest.mark.asyncio
    async def test_blocked_site_is_rendered_then_parsed(self, fake_session_factory):
        rendered = article_html(
            extra_body='<div data-youtube-id="Render12345"></div>'
        )
        renderer = FakeRenderer(page=RenderedPage(rendered, 200, URL + "?from=redirect"))
        pipeline = _pipeline(fake_session_factory(403, reason="Forbidden"), renderer)

        article = await pipeline.parse(URL)

        assert renderer.calls == [URL]
        assert "/embed/Render12345" in article.content

    @pytest.mark.asyncio
    async def test_empty_page_fails_extraction(self, fake_session_factory):
        pipeline = _pipeline(fake_session_factory(200, "<html><body></body></html>"))

        with pytest.raises(ExtractionFailedError):
            await pipeline.parse(URL)

    @pytest.mark.asyncio
    async def test_invalid_url_is_rejected(self, fake_session_factory):
        session = fake_session_factory(200, article_html())

        with pytest.raises(InvalidUrlError, match="Invalid URL format"):
            await _pipeline(session).parse("not a url")

        assert session.calls == []

    @pytest.mark.asyncio
    async def test_custom_extractor_receives_final_url(self, fake_session_factory):
        seen = {}

        def extractor(html, base_url, min_chars):
            seen["base_url"] = base_url
            seen["min_chars"] = min_chars
            return extract_article(html, base_url, min_chars)

        session = fake_session_factory(200, article_html())
        session.response.url = "https://news.example.com/story/amp"
        config = ReaderConfig(restricted=False, constrained=False, min_content_chars=50)
        pipeline = ArticlePipeline(
            config, fetcher=FetchOrchestrator(config, None, session), extractor=extractor
        )

        await pipeline.parse(URL)

        assert seen == {"base_url": "https://news.example.com/story/amp", "min_chars": 50}


class TestBuildFetcher:
    def test_browser_provisioned_on_regular_hosts(self):
        fetcher = build_fetcher(ReaderConfig(restricted=False, constrained=False))

        assert fetcher.renderer is not None
        assert fetcher.automation_available is True

    def test_no_browser_in_restricted_environment(self):
        fetcher = build_fetcher(ReaderConfig(restricted=True, constrained=True))

        assert fetcher.renderer is None
        assert fetcher.automation_available is False

    def test_disabled_browser_is_not_provisioned(self):
        fetcher = build_fetcher(ReaderConfig(restricted=False, constrained=False, browser_enabled=False))

        assert fetcher.renderer is None
