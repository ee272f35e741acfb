"""Tests for re-inserting detected embeds into distilled content."""

from bs4 import BeautifulSoup

from article_reader.detector import video_frame_markup
from article_reader.models import EmbedDescriptor, EmbedKind
from article_reader.reconciler import (
    FALLBACK_WRAPPER_STYLE,
    SOCIAL_QUOTE_STYLE,
    VIDEO_FRAME_STYLE,
    VIDEO_WRAPPER_STYLE,
    reconcile,
)
from article_reader.utils import fallback_id

CONTENT = "<div><p>First paragraph.</p><p>Second paragraph.</p></div>"


def _video(video_id: str, markup: str = None, synthesized: bool = False) -> EmbedDescriptor:
    return EmbedDescriptor(
        kind=EmbedKind.VIDEO,
        canonical_id=video_id,
        markup=markup if markup is not None else video_frame_markup(video_id),
        synthesized=synthesized,
    )


def _post(post_id: str, markup: str) -> EmbedDescriptor:
    return EmbedDescriptor(kind=EmbedKind.SOCIAL_POST, canonical_id=post_id, markup=markup)


def _wrappers(html: str, kind: str):
    return BeautifulSoup(html, "html.parser").select(f"div.embed-wrapper.embed-{kind}")


class TestReconcile:
    def test_no_embeds_returns_content_untouched(self):
        assert reconcile(CONTENT, []) == CONTENT

    def test_video_frame_is_wrapped_responsively(self):
        result = reconcile(CONTENT, [_video("abc12345678")])

        wrappers = _wrappers(result, "video")
        assert len(wrappers) == 1
        assert wrappers[0]["style"] == VIDEO_WRAPPER_STYLE
        frame = wrappers[0].find("iframe")
        assert frame["src"] == "https://www.youtube.com/embed/abc12345678"
        assert frame["style"] == VIDEO_FRAME_STYLE
        assert "First paragraph." in result

    def test_lazy_frame_gets_src_from_data_src(self):
        markup = '<div class="video"><iframe data-src="https://www.youtube.com/embed/Lazy0000000"></iframe></div>'

        result = reconcile(CONTENT, [_video("Lazy0000000", markup)])

        frame = _wrappers(result, "video")[0].find("iframe")
        assert frame["src"] == "https://www.youtube.com/embed/Lazy0000000"

    def test_copied_wrapper_without_frame_gets_synthesized_player(self):
        markup = '<div class="embed"><a href="https://www.youtube.com/watch?v=Wrapped1234">Video</a></div>'

        result = reconcile(CONTENT, [_video("Wrapped1234", markup)])

        frame = _wrappers(result, "video")[0].find("iframe")
        assert frame["src"].endswith("/embed/Wrapped1234")

    def test_each_video_uses_its_own_frame_from_shared_markup(self):
        shared = (
            '<div class="video-container">'
            '<iframe src="https://www.youtube.com/embed/AAAAAAAAAAA"></iframe>'
            '<iframe src="https://www.youtube.com/embed/BBBBBBBBBBB"></iframe>'
            "</div>"
        )

        result = reconcile(CONTENT, [_video("AAAAAAAAAAA", shared), _video("BBBBBBBBBBB", shared)])

        sources = [w.find("iframe")["src"] for w in _wrappers(result, "video")]
        assert sources == [
            "https://www.youtube.com/embed/AAAAAAAAAAA",
            "https://www.youtube.com/embed/BBBBBBBBBBB",
        ]

    def test_unrelated_frame_is_not_borrowed(self):
        markup = '<div class="embed"><iframe src="https://www.youtube.com/embed/Other000000"></iframe></div>'

        result = reconcile(CONTENT, [_video("Mine0000000", markup)])

        frame = _wrappers(result, "video")[0].find("iframe")
        assert frame["src"] == "https://www.youtube.com/embed/Mine0000000"

    def test_frameless_fallback_is_centered(self):
        embed = _video(fallback_id("opaque player"), '<div class="video"><p>Player unavailable</p></div>')

        result = reconcile(CONTENT, [embed])

        wrapper = _wrappers(result, "video")[0]
        assert wrapper["style"] == FALLBACK_WRAPPER_STYLE
        assert wrapper.find("iframe") is None
        assert "Player unavailable" in wrapper.get_text()

    def test_social_post_is_normalized_and_script_dropped(self):
        markup = (
            '<blockquote><p>Big vote tonight</p>'
            '<a href="https://twitter.com/reporter/status/1234567890">June 1</a></blockquote>'
            '<script async src="https://platform.twitter.com/widgets.js"></script>'
        )

        result = reconcile(CONTENT, [_post("1234567890", markup)])

        wrapper = _wrappers(result, "social-post")[0]
        quote = wrapper.find("blockquote")
        assert "twitter-tweet" in quote["class"]
        assert quote["style"] == SOCIAL_QUOTE_STYLE
        assert wrapper.find("script") is None
        assert "View on Twitter" not in wrapper.get_text()

    def test_nested_scripts_inside_wrappers_are_dropped(self):
        markup = (
            '<div class="twitter-container"><blockquote class="twitter-tweet"><p>Text</p></blockquote>'
            '<script src="https://platform.twitter.com/widgets.js"></script></div>'
        )

        result = reconcile(CONTENT, [_post("77", markup)])

        wrapper = _wrappers(result, "social-post")[0]
        assert wrapper.find("script") is None
        assert wrapper.find("blockquote")["style"] == SOCIAL_QUOTE_STYLE

    def test_fallback_link_added_only_for_real_post_ids(self):
        quote = '<blockquote class="twitter-tweet"><p>No link here</p></blockquote>'

        with_id = reconcile(CONTENT, [_post("42", quote)])
        hashed = reconcile(CONTENT, [_post(fallback_id("No link here"), quote)])

        link = _wrappers(with_id, "social-post")[0].find("a")
        assert link["href"] == "https://twitter.com/x/status/42"
        assert link.get_text() == "View on Twitter"
        assert _wrappers(hashed, "social-post")[0].find("a") is None

    def test_embeds_are_appended_in_detection_order(self):
        embeds = [
            _video("First000000"),
            _post("10", '<blockquote class="twitter-tweet"><a href="https://x.com/a/status/10">a</a></blockquote>'),
            _video("Second00000"),
        ]

        result = reconcile(CONTENT, embeds)

        soup = BeautifulSoup(result, "html.parser")
        blocks = soup.select("div.embed-wrapper")
        assert [b["class"][1] for b in blocks] == ["embed-video", "embed-social-post", "embed-video"]
        assert blocks[0].find("iframe")["src"].endswith("First000000")
        assert blocks[2].find("iframe")["src"].endswith("Second00000")
        assert soup.contents[-1] is blocks[2]

    def test_distilled_copy_is_removed_so_embed_appears_once(self):
        content = (
            "<div><p>Text</p>"
            '<iframe src="https://www.youtube.com/embed/abc12345678"></iframe></div>'
        )

        result = reconcile(content, [_video("abc12345678")])

        frames = BeautifulSoup(result, "html.parser").find_all("iframe")
        assert len(frames) == 1
        assert frames[0].find_parent("div", class_="embed-wrapper") is not None

    def test_distilled_social_quote_copy_is_removed(self):
        quote = '<blockquote class="twitter-tweet"><a href="https://twitter.com/u/status/99">p</a></blockquote>'
        content = f"<div><p>Text</p>{quote}</div>"

        result = reconcile(content, [_post("99", quote)])

        quotes = BeautifulSoup(result, "html.parser").find_all("blockquote")
        assert len(quotes) == 1
