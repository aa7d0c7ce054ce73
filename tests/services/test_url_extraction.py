"""Tests for the all-URL extractor."""

from nuggets.models.media import ArticleSnapshot
from nuggets.services.url_extraction import (
    extract_all_urls,
    filter_existing_external_links,
    get_source_label,
    get_url_counts_by_source,
)


def _article_with_all_sources() -> dict:
    return {
        "primaryMedia": {"type": "link", "url": "https://example.com/primary"},
        "supportingMedia": [{"type": "image", "url": "https://res.cloudinary.com/demo/a.jpg"}],
        "media": {
            "type": "link",
            "url": "https://example.com/legacy",
            "previewMetadata": {"url": "https://example.com/preview"},
        },
        "images": ["https://example.com/image.png"],
    }


def test_extracts_one_url_per_source():
    urls = extract_all_urls(_article_with_all_sources())

    assert [u.source for u in urls] == [
        "primaryMedia",
        "supportingMedia",
        "media",
        "media.previewMetadata",
        "images",
    ]
    assert [u.source_label for u in urls] == [
        "Primary Media",
        "Supporting Media #1 (Uploaded)",
        "Media URL",
        "Preview Metadata",
        "Image #1",
    ]
    assert urls[1].is_cloudinary is True


def test_same_url_in_primary_and_images_is_reported_once():
    article = {
        "primaryMedia": {"url": "https://example.com/pic.jpg"},
        "images": ["HTTPS://EXAMPLE.COM/pic.jpg?w=200"],
    }

    urls = extract_all_urls(article)

    assert len(urls) == 1
    assert urls[0].source == "primaryMedia"


def test_accepts_snapshot_model_and_none():
    snapshot = ArticleSnapshot.model_validate(_article_with_all_sources())
    assert len(extract_all_urls(snapshot)) == 5
    assert extract_all_urls(None) == []
    assert extract_all_urls({"images": None, "media": None}) == []


def test_payload_is_camel_case():
    payload = extract_all_urls({"images": [" https://a.com/1.jpg "]})[0].to_payload()
    assert payload == {
        "url": "https://a.com/1.jpg",
        "source": "images",
        "sourceLabel": "Image #1",
        "isCloudinary": False,
        "index": 0,
    }


def test_filter_existing_external_links():
    urls = extract_all_urls(_article_with_all_sources())
    remaining = filter_existing_external_links(
        urls,
        [{"url": "https://EXAMPLE.com/legacy?utm=1", "isPrimary": True}, "https://example.com/primary"],
    )
    assert {u.source for u in remaining} == {"supportingMedia", "media.previewMetadata", "images"}
    assert filter_existing_external_links(urls, None) == urls


def test_counts_by_source_include_every_key():
    counts = get_url_counts_by_source(extract_all_urls({"images": ["https://a.com/1.jpg"]}))
    assert counts == {
        "primaryMedia": 0,
        "supportingMedia": 0,
        "media": 0,
        "media.previewMetadata": 0,
        "images": 1,
    }


def test_source_labels():
    assert get_source_label("images", 2, is_cloudinary=True) == "Image #3 (Uploaded)"
    assert get_source_label("media.previewMetadata", is_cloudinary=True) == "Preview Metadata"
