"""Tests for URL classification and normalization."""

import pytest

from nuggets.utils.url_utils import (
    detect_provider_from_url,
    get_primary_url,
    is_image_url,
    is_youtube_url,
    normalize_image_url,
    separate_image_urls,
    should_auto_generate_title,
    should_fetch_metadata,
)


class TestNormalizeImageUrl:
    def test_drops_query_fragment_and_case(self):
        url = "HTTPS://Example.com/Path/IMG.png?x=1#frag"
        assert normalize_image_url(url) == "https://example.com/path/img.png"

    def test_root_path(self):
        assert normalize_image_url("https://example.com") == "https://example.com/"

    def test_default_port_dropped_custom_port_kept(self):
        assert normalize_image_url("https://example.com:443/a") == "https://example.com/a"
        assert normalize_image_url("http://example.com:8080/a") == "http://example.com:8080/a"

    def test_unparseable_input_is_trimmed_and_lowercased(self):
        assert normalize_image_url("  Some Text/IMG.PNG ") == "some text/img.png"

    @pytest.mark.parametrize("value", [None, "", 42])
    def test_empty_or_non_string(self, value):
        assert normalize_image_url(value) == ""

    def test_malformed_port_does_not_raise(self):
        assert normalize_image_url("http://example.com:abc/x") == "http://example.com:abc/x"

    @pytest.mark.parametrize(
        "url",
        [
            "https://Example.com/a/B.jpg?w=100",
            "http://[::1]:8080/x",
            "https://user:pw@example.com/a",
            "  not a url  ",
            "ftp://files.example.com/Doc.PDF",
        ],
    )
    def test_idempotent(self, url):
        once = normalize_image_url(url)
        assert normalize_image_url(once) == once


class TestDetectProviderFromUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/a.jpg",
            "https://example.com/a.PNG",
            "https://example.com/a.gif?size=2",
            "https://example.com/a.webp",
        ],
    )
    def test_images(self, url):
        assert detect_provider_from_url(url) == "image"

    @pytest.mark.parametrize(
        "url",
        ["https://www.youtube.com/watch?v=abc123", "https://youtu.be/abc123", "https://m.youtube.com/watch?v=x"],
    )
    def test_youtube(self, url):
        assert detect_provider_from_url(url) == "youtube"

    @pytest.mark.parametrize(
        "url", ["https://example.com/v.mp4", "https://example.com/v.webm", "https://example.com/v.ogg"]
    )
    def test_video(self, url):
        assert detect_provider_from_url(url) == "video"

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/report.pdf",
            "https://example.com/report.docx",
            "https://example.com/sheet.xlsx",
            "https://example.com/deck.pptx",
        ],
    )
    def test_documents(self, url):
        assert detect_provider_from_url(url) == "document"

    @pytest.mark.parametrize("url", ["https://example.com/article", "not a url", "", None])
    def test_unknown_is_link(self, url):
        assert detect_provider_from_url(url) == "link"

    def test_youtube_lookalike_host_is_not_youtube(self):
        assert is_youtube_url("https://notyoutube.com/watch?v=1") is False


class TestIsImageUrl:
    def test_twitter_media_path(self):
        assert is_image_url("https://pbs.twimg.com/media/GAbc123?format=jpg&name=large")

    def test_linkedin_image_path(self):
        assert is_image_url("https://media.licdn.com/dms/image/v2/abc/feedshare")

    def test_reddit_and_imgur_hosts(self):
        assert is_image_url("https://i.redd.it/abc123")
        assert is_image_url("https://i.imgur.com/abc123")

    def test_cdn_host_needs_second_signal(self):
        assert is_image_url("https://cdn.example.com/assets/hero")
        assert is_image_url("https://images.ctfassets.net/space/asset/?fm=webp&q=80")
        assert not is_image_url("https://cdn.example.com/page.html")

    def test_format_query_on_media_path(self):
        assert is_image_url("https://example.com/media/abc?format=png")
        assert not is_image_url("https://example.com/blog?format=png")


class TestPrimaryUrlAndSeparation:
    def test_first_non_image_url_wins(self):
        urls = ["https://a.com/x.png", "  ", " https://example.com/post ", "https://b.com"]
        assert get_primary_url(urls) == "https://example.com/post"

    def test_only_images_gives_none(self):
        assert get_primary_url(["https://a.com/x.png"]) is None
        assert get_primary_url([]) is None
        assert get_primary_url(None) is None

    def test_separate_image_urls_preserves_order(self):
        images, links = separate_image_urls(
            ["https://a.com/1.jpg", "https://example.com/post", "https://a.com/2.png"]
        )
        assert images == ["https://a.com/1.jpg", "https://a.com/2.png"]
        assert links == ["https://example.com/post"]


class TestFetchAndTitleRules:
    def test_should_fetch_metadata_only_for_youtube(self):
        assert should_fetch_metadata("https://www.youtube.com/watch?v=abc")
        assert not should_fetch_metadata("https://example.com/post")
        assert not should_fetch_metadata("https://www.youtube.com/thumb.jpg")
        assert not should_fetch_metadata(None)

    def test_should_auto_generate_title(self):
        assert should_auto_generate_title("social")
        assert should_auto_generate_title("video")
        assert should_auto_generate_title("https://vimeo.com/123")
        assert should_auto_generate_title("https://www.reddit.com/r/python")
        assert not should_auto_generate_title("https://example.com/post")
        assert not should_auto_generate_title(None)
