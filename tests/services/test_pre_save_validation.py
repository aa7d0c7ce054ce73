"""Tests for pre-save validation."""

from nuggets.services.pre_save_validation import format_validation_result, validate_before_save


def _codes(issues):
    return [issue.code for issue in issues]


def _check(result, name):
    return next(check for check in result.integrity_checks if check.name == name)


class TestRequiredFields:
    def test_valid_create_payload(self):
        result = validate_before_save(None, {"tags": ["Tech"], "content": "Hello"}, "create")

        assert result.is_valid
        assert result.errors == []
        assert _check(result, "hasAtLeastOneTag").passed
        assert _check(result, "hasContent").passed

    def test_missing_tags_and_content(self):
        result = validate_before_save(None, {"tags": ["  "], "content": " "}, "create")

        assert not result.is_valid
        assert _codes(result.errors) == ["TAGS_REQUIRED", "CONTENT_REQUIRED"]
        assert _check(result, "hasContent").details == (
            "content=False, media=False, images=False, supporting=False"
        )

    def test_images_count_as_content(self):
        result = validate_before_save(None, {"tags": ["x"], "images": ["https://a.com/1.jpg"]}, "create")
        assert result.is_valid


class TestExternalLinks:
    def test_multiple_primary_links(self):
        result = validate_before_save(
            None,
            {
                "tags": ["x"],
                "content": "c",
                "externalLinks": [
                    {"url": "https://a.com", "isPrimary": True},
                    {"url": "https://b.com", "isPrimary": True},
                ],
            },
            "create",
        )
        assert "MULTIPLE_PRIMARY_LINKS" in _codes(result.errors)

    def test_no_primary_link_warns(self):
        result = validate_before_save(
            None,
            {"tags": ["x"], "content": "c", "externalLinks": [{"url": "https://a.com"}]},
            "create",
        )
        assert result.is_valid
        assert _codes(result.warnings) == ["NO_PRIMARY_LINK"]

    def test_invalid_url(self):
        result = validate_before_save(
            None,
            {"tags": ["x"], "content": "c", "externalLinks": [{"url": "not a url", "isPrimary": True}]},
            "create",
        )
        assert _codes(result.errors) == ["INVALID_URL"]
        assert result.errors[0].message == "Invalid URL: not a url"


class TestDisplayImageIndex:
    def test_out_of_bounds(self):
        result = validate_before_save(
            None,
            {"tags": ["x"], "images": ["https://a.com/1.jpg"], "displayImageIndex": 1},
            "create",
        )
        assert _codes(result.errors) == ["INVALID_DISPLAY_INDEX"]

    def test_in_bounds(self):
        result = validate_before_save(
            None,
            {
                "tags": ["x"],
                "images": ["https://a.com/1.jpg"],
                "primaryMedia": {"url": "https://a.com/p"},
                "displayImageIndex": 1,
            },
            "create",
        )
        assert result.is_valid


class TestEditMode:
    original = {
        "images": ["https://a.com/1.jpg", "https://a.com/2.jpg"],
        "primaryMedia": {"type": "link", "url": "https://example.com/post"},
        "externalLinks": [{"url": "https://example.com/post", "isPrimary": True}],
    }

    def test_image_reduction_warns(self):
        result = validate_before_save(
            self.original,
            {"tags": ["x"], "content": "c", "images": ["https://a.com/1.jpg"], "primaryMedia": None},
            "edit",
        )

        assert "IMAGES_REDUCED" in _codes(result.warnings)
        assert "EXTERNAL_LINKS_REDUCED" in _codes(result.warnings)
        check = _check(result, "imagesPreserved")
        assert not check.passed
        assert check.details == "Original: 3, New: 2"

    def test_absent_fields_mean_unchanged(self):
        result = validate_before_save(
            self.original,
            {
                "tags": ["x"],
                "content": "c",
                "externalLinks": [{"url": "https://example.com/post", "isPrimary": True}],
                "primaryMedia": {"url": "https://example.com/post"},
            },
            "edit",
        )

        assert result.warnings == []
        assert _check(result, "imagesPreserved").passed

    def test_urls_preserved_check_uses_normalized_urls(self):
        result = validate_before_save(
            self.original,
            {
                "tags": ["x"],
                "images": ["HTTPS://A.COM/1.jpg?w=1"],
                "primaryMedia": {"url": "https://example.com/post"},
            },
            "edit",
        )

        check = _check(result, "urlsPreserved")
        assert not check.passed
        assert check.details == "Removed URLs: https://a.com/2.jpg"


def test_format_validation_result():
    result = validate_before_save(
        None, {"tags": [], "content": "c", "externalLinks": [{"url": "https://a.com"}]}, "create"
    )
    assert format_validation_result(result) == (
        "Errors:\n"
        "  - At least one tag is required\n"
        "Warnings:\n"
        '  - Consider setting a primary link for the card "Link" button'
    )
