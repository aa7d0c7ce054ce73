"""Tests for create/edit image deduplication."""

import pytest

from nuggets.models.media import MediaDescriptor
from nuggets.services.image_dedup import (
    dedupe_images_for_create,
    dedupe_images_for_edit,
    detect_duplicate_images,
)


class TestDetectDuplicateImages:
    def test_classifies_case_and_query_duplicates(self):
        report = detect_duplicate_images(
            [
                "https://a.com/X.jpg",
                "https://a.com/x.jpg",
                "https://a.com/X.jpg?w=1",
                "https://a.com/X.jpg",
            ]
        )

        assert [(d.original, d.type) for d in report.duplicates] == [
            ("https://a.com/x.jpg", "case-insensitive"),
            ("https://a.com/X.jpg?w=1", "query-params"),
        ]
        assert report.duplicate_types == ["case-insensitive", "query-params"]
        assert len(report.normalized_pairs) == 4

    def test_entry_can_be_reported_under_both_types(self):
        report = detect_duplicate_images(
            ["https://a.com/x.jpg", "https://A.com/x.jpg?w=1", "https://a.com/X.jpg?w=1"]
        )

        assert [(d.original, d.type) for d in report.duplicates] == [
            ("https://A.com/x.jpg?w=1", "query-params"),
            ("https://a.com/X.jpg?w=1", "case-insensitive"),
            ("https://a.com/X.jpg?w=1", "query-params"),
        ]

    def test_plain_url_after_query_variant_is_not_a_query_duplicate(self):
        report = detect_duplicate_images(["https://a.com/x.jpg?w=1", "https://a.com/x.jpg"])

        assert report.duplicates == []

    def test_ignores_blank_and_non_strings(self):
        report = detect_duplicate_images(["", None, "  "])
        assert report.duplicates == []
        assert report.normalized_pairs == []


class TestDedupeImagesForCreate:
    def test_keeps_first_occurrence_and_order(self):
        result = dedupe_images_for_create(
            [
                "https://a.com/X.jpg",
                "https://a.com/x.JPG",
                " ",
                "https://a.com/X.jpg?w=1",
                " https://b.com/y.png ",
            ]
        )

        assert result.deduplicated == ["https://a.com/X.jpg", "https://b.com/y.png"]
        assert result.removed == ["https://a.com/x.JPG", "https://a.com/X.jpg?w=1"]
        assert all(log.reason == "duplicate" for log in result.logs)

    @pytest.mark.parametrize(
        "url",
        ["https://cdn.example.com/a/b.png", "https://Example.com/Photo.JPG", "https://x.io/p.webp"],
    )
    def test_case_and_query_insensitive(self, url):
        assert len(dedupe_images_for_create([url, url.upper()]).deduplicated) == 1
        assert len(dedupe_images_for_create([url, url + "?x=1"]).deduplicated) == 1

    def test_empty_input(self):
        result = dedupe_images_for_create(None)
        assert result.deduplicated == []
        assert result.removed == []


class TestDedupeImagesForEdit:
    def test_no_overlap_keeps_everything(self):
        existing = ["https://a.com/1.jpg", "https://a.com/2.jpg"]
        new = ["https://b.com/3.jpg", "https://b.com/4.jpg"]

        result = dedupe_images_for_edit(existing, new)

        assert sorted(result.deduplicated) == sorted(existing + new)
        assert len(result.deduplicated) == len(existing) + len(new)
        assert result.deduplicated[:2] == existing

    def test_new_duplicate_of_existing_is_dropped(self):
        result = dedupe_images_for_edit(["https://a.com/1.jpg"], ["HTTPS://A.COM/1.JPG?v=2"])

        assert result.deduplicated == ["https://a.com/1.jpg"]
        assert result.removed == ["HTTPS://A.COM/1.JPG?v=2"]

    def test_image_in_supporting_media_is_moved(self):
        supporting = [
            MediaDescriptor(type="image", url="https://c.com/Shot.png"),
            {"type": "link", "url": "https://c.com/other.png"},
        ]
        result = dedupe_images_for_edit(
            ["https://a.com/1.jpg"],
            ["https://c.com/shot.png", "https://c.com/other.png"],
            supporting,
        )

        assert result.moved_to_supporting == ["https://c.com/shot.png"]
        assert "https://c.com/shot.png" not in result.deduplicated
        # Non-image supporting entries never trigger promotion
        assert "https://c.com/other.png" in result.deduplicated

    def test_existing_image_is_never_moved(self):
        supporting = [{"type": "image", "url": "https://a.com/1.jpg"}]
        result = dedupe_images_for_edit(["https://a.com/1.jpg"], [], supporting)

        assert result.deduplicated == ["https://a.com/1.jpg"]
        assert result.moved_to_supporting == []

    def test_explicitly_deleted_images_are_removed(self):
        result = dedupe_images_for_edit(
            ["https://a.com/1.jpg", "https://a.com/2.jpg"],
            [],
            explicitly_deleted=["https://A.com/2.jpg"],
        )

        assert result.deduplicated == ["https://a.com/1.jpg"]
        assert [(log.action, log.reason) for log in result.logs if log.action == "removed"] == [
            ("removed", "explicitly-deleted")
        ]
