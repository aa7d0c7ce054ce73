"""Audit records for image deduplication during article normalization.

Audit events are emitted as structured log records
(``operation="image_dedup_audit"``) so they land in the structured JSONL
stream, where ``scripts/summarize_image_dedup_logs.py`` picks them up.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from nuggets.core.logging import get_logger
from nuggets.models.media import ArticleInput, NormalizationMode
from nuggets.services.image_dedup import ImageDedupResult, detect_duplicate_images
from nuggets.utils.url_utils import normalize_image_url

logger = get_logger(__name__)

AUDIT_OPERATION = "image_dedup_audit"
_PREVIEW_LIMIT = 3


@dataclass
class DedupAudit:
    mode: NormalizationMode
    article_id: str | None
    total_input_images: int
    total_output_images: int
    duplicates_detected: int
    images_removed: int
    moved_to_supporting_media: int
    duplicate_types: list[str] = field(default_factory=list)
    normalized_pairs: list[dict[str, str]] = field(default_factory=list)
    events: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(
            self.duplicates_detected
            or self.images_removed
            or self.moved_to_supporting_media
            or self.total_input_images != self.total_output_images
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _preview(urls: list[str]) -> str:
    shown = ", ".join(urls[:_PREVIEW_LIMIT])
    return f"{shown}..." if len(urls) > _PREVIEW_LIMIT else shown


def _keys(urls: list[str]) -> set[str]:
    return {normalize_image_url(url) for url in urls if isinstance(url, str) and url.strip()}


def build_dedup_audit(
    *,
    mode: NormalizationMode,
    data: ArticleInput,
    raw_input_images: list[str],
    pasted_images: list[str],
    final_images: list[str],
    dedup_result: ImageDedupResult,
) -> DedupAudit:
    """Summarize what deduplication did to one submission."""
    report = detect_duplicate_images(raw_input_images)
    audit = DedupAudit(
        mode=mode,
        article_id=data.article_id,
        total_input_images=len(raw_input_images),
        total_output_images=len(final_images),
        duplicates_detected=len(report.duplicates),
        images_removed=len(dedup_result.removed),
        moved_to_supporting_media=len(dedup_result.moved_to_supporting),
        duplicate_types=report.duplicate_types,
        normalized_pairs=[
            {"original": pair.original, "normalized": pair.normalized}
            for pair in report.normalized_pairs
        ],
    )

    final_keys = _keys(final_images)
    uploaded_keys = _keys(data.uploaded_image_urls)

    if mode == "edit":
        existing_keys = _keys(data.existing_images)
        kept = [img for img in final_images if normalize_image_url(img) in existing_keys]
        if kept:
            audit.events.append(f"{len(kept)} existing image(s) implicitly kept: {_preview(kept)}")

        overridden = [
            img
            for img in data.existing_images
            if normalize_image_url(img) in uploaded_keys and normalize_image_url(img) not in final_keys
        ]
        if overridden:
            audit.events.append(
                f"{len(overridden)} legacy image(s) overridden by uploaded images: {_preview(overridden)}"
            )

        if dedup_result.moved_to_supporting:
            audit.events.append(
                f"{len(dedup_result.moved_to_supporting)} image(s) kept out of images "
                "(already in supportingMedia)"
            )
    else:
        pasted_duplicates = [img for img in pasted_images if normalize_image_url(img) in uploaded_keys]
        if pasted_duplicates:
            audit.events.append(
                f"{len(pasted_duplicates)} pasted URL(s) duplicate uploaded image(s): "
                f"{_preview(pasted_duplicates)}"
            )

        masonry_keys = {
            normalize_image_url(item.url)
            for item in data.masonry_media_items
            if item.type == "image" and item.url
        }
        via_masonry = [img for img in raw_input_images if normalize_image_url(img) in masonry_keys]
        if via_masonry:
            audit.events.append(
                f"{len(via_masonry)} image(s) appear via both URL and masonry: {_preview(via_masonry)}"
            )

        if audit.duplicates_detected:
            audit.events.append(
                f"Deduplication prevented {audit.duplicates_detected} duplicate image(s) "
                "from being stored"
            )

    return audit


def emit_dedup_audit(audit: DedupAudit) -> None:
    """Log the audit record when deduplication changed anything."""
    if not audit.has_changes:
        return
    logger.warning(
        "[IMAGE_DEDUP_AUDIT] mode=%s input=%d output=%d duplicates=%d removed=%d moved=%d",
        audit.mode,
        audit.total_input_images,
        audit.total_output_images,
        audit.duplicates_detected,
        audit.images_removed,
        audit.moved_to_supporting_media,
        extra={
            "operation": AUDIT_OPERATION,
            "item_id": audit.article_id,
            "context_data": audit.to_dict(),
        },
    )
