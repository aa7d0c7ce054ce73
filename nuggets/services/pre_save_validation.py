"""Safety checks run on an article payload right before it is persisted.

Errors block the save, warnings need user confirmation, and integrity checks
form an audit trail of what the save would change.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from pydantic import Field, field_validator

from nuggets.models.media import (
    ArticleSnapshot,
    ExternalLink,
    MediaDescriptor,
    NormalizationMode,
    PayloadModel,
)
from nuggets.utils.url_utils import normalize_image_url

_HOST_REQUIRED_SCHEMES = {"http", "https", "ftp", "ws", "wss"}


class ValidationIssue(PayloadModel):
    field: str
    code: str
    message: str


class IntegrityCheck(PayloadModel):
    name: str
    passed: bool
    details: str | None = None


class PreSaveValidationResult(PayloadModel):
    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    integrity_checks: list[IntegrityCheck] = Field(default_factory=list)


class SaveCandidate(PayloadModel):
    """The fields of a save payload that validation looks at.

    In edit mode an absent field means "unchanged" and is compared using the
    stored article's value; ``model_fields_set`` tells absent from null.
    """

    title: str | None = None
    content: str | None = None
    tags: list[Any] | None = None
    media: MediaDescriptor | None = None
    primary_media: MediaDescriptor | None = None
    supporting_media: list[MediaDescriptor] | None = None
    images: list[str] | None = None
    external_links: list[ExternalLink] | None = None
    display_image_index: int | None = None

    @field_validator("images", mode="before")
    @classmethod
    def _string_images(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [item for item in value if isinstance(item, str)]
        return value


def _is_valid_url(url: str) -> bool:
    try:
        parsed = urlsplit(url.strip())
        parsed.port  # noqa: B018 - raises on a malformed port
    except ValueError:
        return False
    if not parsed.scheme:
        return False
    if parsed.scheme.lower() in _HOST_REQUIRED_SCHEMES:
        return bool(parsed.hostname)
    return bool(parsed.netloc or parsed.path)


def _has_url(media: MediaDescriptor | None) -> bool:
    return bool(media is not None and media.url)


def _is_image_media(media: MediaDescriptor | None) -> bool:
    return _has_url(media) and media.type == "image"


def count_all_images(article: ArticleSnapshot) -> int:
    count = 0
    if _has_url(article.primary_media):
        count += 1
    count += len(article.supporting_media)
    if _is_image_media(article.media):
        count += 1
    count += len(article.images)
    return count


def _urls_of(
    primary_media: MediaDescriptor | None,
    supporting_media: list[Any] | None,
    media: MediaDescriptor | None,
    images: list[Any] | None,
) -> list[str]:
    urls: list[str] = []
    if _has_url(primary_media):
        urls.append(primary_media.url)
    urls.extend(item.url for item in supporting_media or [] if item is not None and item.url)
    if _has_url(media):
        urls.append(media.url)
    urls.extend(image for image in images or [] if isinstance(image, str))
    return urls


def _new_image_count(original: ArticleSnapshot, candidate: SaveCandidate) -> int:
    provided = candidate.model_fields_set

    images = len(candidate.images or []) if "images" in provided else len(original.images)
    supporting = (
        len(candidate.supporting_media or [])
        if "supporting_media" in provided
        else len(original.supporting_media)
    )
    # An explicit null primaryMedia means "leave it alone"
    if "primary_media" in provided and candidate.primary_media is None:
        primary = int(_has_url(original.primary_media))
    else:
        primary = int(_has_url(candidate.primary_media))
    legacy = (
        int(_is_image_media(candidate.media))
        if "media" in provided
        else int(_is_image_media(original.media))
    )
    return images + supporting + primary + legacy


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count > 1 else ''}"


def validate_before_save(
    original: ArticleSnapshot | Mapping[str, Any] | None,
    payload: SaveCandidate | Mapping[str, Any],
    mode: NormalizationMode,
) -> PreSaveValidationResult:
    """Validate an article payload before persisting it.

    Args:
        original: Stored article (edit mode), or None.
        payload: Data about to be saved.
        mode: ``create`` or ``edit``; edit mode adds data-loss warnings.
    """
    if not isinstance(payload, SaveCandidate):
        payload = SaveCandidate.model_validate(payload)
    if original is not None and not isinstance(original, ArticleSnapshot):
        original = ArticleSnapshot.model_validate(original)

    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    checks: list[IntegrityCheck] = []

    has_tags = any(isinstance(tag, str) and tag.strip() for tag in payload.tags or [])
    if not has_tags:
        errors.append(
            ValidationIssue(field="tags", code="TAGS_REQUIRED", message="At least one tag is required")
        )
    checks.append(IntegrityCheck(name="hasAtLeastOneTag", passed=has_tags))

    has_content = bool(payload.content and payload.content.strip())
    has_media = _has_url(payload.media) or _has_url(payload.primary_media)
    has_images = bool(payload.images)
    has_supporting = bool(payload.supporting_media)
    has_any_content = has_content or has_media or has_images or has_supporting
    if not has_any_content:
        errors.append(
            ValidationIssue(
                field="content",
                code="CONTENT_REQUIRED",
                message="Please provide content, a URL, or images",
            )
        )
    checks.append(
        IntegrityCheck(
            name="hasContent",
            passed=has_any_content,
            details=(
                f"content={has_content}, media={has_media}, "
                f"images={has_images}, supporting={has_supporting}"
            ),
        )
    )

    if payload.external_links:
        primary_links = [link for link in payload.external_links if link.is_primary]
        if len(primary_links) > 1:
            errors.append(
                ValidationIssue(
                    field="externalLinks",
                    code="MULTIPLE_PRIMARY_LINKS",
                    message="Only one external link can be marked as primary",
                )
            )
        if not primary_links:
            warnings.append(
                ValidationIssue(
                    field="externalLinks",
                    code="NO_PRIMARY_LINK",
                    message='Consider setting a primary link for the card "Link" button',
                )
            )
        for link in payload.external_links:
            if link.url and not _is_valid_url(link.url):
                errors.append(
                    ValidationIssue(
                        field="externalLinks",
                        code="INVALID_URL",
                        message=f"Invalid URL: {link.url}",
                    )
                )

    if payload.display_image_index is not None:
        total_media = (
            len(payload.images or [])
            + len(payload.supporting_media or [])
            + int(_has_url(payload.primary_media))
            + int(_has_url(payload.media))
        )
        if not 0 <= payload.display_image_index < total_media:
            errors.append(
                ValidationIssue(
                    field="displayImageIndex",
                    code="INVALID_DISPLAY_INDEX",
                    message=(
                        f"Display image index {payload.display_image_index} is out of bounds "
                        f"(total media: {total_media})"
                    ),
                )
            )

    if mode == "edit" and original is not None:
        original_images = count_all_images(original)
        new_images = _new_image_count(original, payload)
        if original_images > 0 and new_images < original_images:
            warnings.append(
                ValidationIssue(
                    field="images",
                    code="IMAGES_REDUCED",
                    message=(
                        f"{_plural(original_images - new_images, 'image')} will be removed. "
                        "This cannot be undone."
                    ),
                )
            )
        checks.append(
            IntegrityCheck(
                name="imagesPreserved",
                passed=new_images >= original_images,
                details=f"Original: {original_images}, New: {new_images}",
            )
        )

        original_links = len(original.external_links)
        new_links = len(payload.external_links or [])
        if original_links > 0 and new_links < original_links:
            warnings.append(
                ValidationIssue(
                    field="externalLinks",
                    code="EXTERNAL_LINKS_REDUCED",
                    message=f"{_plural(original_links - new_links, 'external link')} will be removed.",
                )
            )

        new_keys = {
            normalize_image_url(url)
            for url in _urls_of(
                payload.primary_media, payload.supporting_media, payload.media, payload.images
            )
        }
        removed = [
            url
            for url in _urls_of(
                original.primary_media, original.supporting_media, original.media, original.images
            )
            if normalize_image_url(url) not in new_keys
        ]
        checks.append(
            IntegrityCheck(
                name="urlsPreserved",
                passed=not removed,
                details=f"Removed URLs: {', '.join(removed)}" if removed else None,
            )
        )

    return PreSaveValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        integrity_checks=checks,
    )


def format_validation_result(result: PreSaveValidationResult) -> str:
    lines: list[str] = []
    if result.errors:
        lines.append("Errors:")
        lines.extend(f"  - {error.message}" for error in result.errors)
    if result.warnings:
        lines.append("Warnings:")
        lines.extend(f"  - {warning.message}" for warning in result.warnings)
    return "\n".join(lines)
