"""Article input normalization shared by the create and edit flows.

Takes the raw form submission (title, content, tags, pasted URLs, uploads,
masonry choices) and produces the canonical payload the storage layer
persists. The only await points are calls to the media enrichment
collaborator; everything else is a deterministic transformation.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from nuggets.core.logging import get_logger
from nuggets.core.settings import get_settings
from nuggets.models.media import (
    ArticleInput,
    MasonryMediaItem,
    MediaDescriptor,
    NormalizationMode,
    NormalizedArticleInput,
    PreviewMetadata,
)
from nuggets.services.dedup_audit import build_dedup_audit, emit_dedup_audit
from nuggets.services.image_dedup import (
    ImageDedupResult,
    dedupe_images_for_create,
    dedupe_images_for_edit,
)
from nuggets.utils.dates import to_iso_utc
from nuggets.utils.tags import filter_tag_names, normalize_tags
from nuggets.utils.url_utils import (
    detect_provider_from_url,
    get_primary_url,
    normalize_image_url,
    separate_image_urls,
)

logger = get_logger(__name__)

EnrichMediaItem = Callable[[MediaDescriptor], Awaitable[MediaDescriptor]]

SUPPORTING_SLOT_PREFIX = "supporting-"


def calculate_read_time(content: str, words_per_minute: int | None = None) -> int:
    """Minutes to read ``content``; never less than one."""
    rate = words_per_minute or get_settings().read_time_words_per_minute
    word_count = len((content or "").split())
    return max(1, math.ceil(word_count / rate))


def generate_excerpt(content: str, title: str, max_length: int | None = None) -> str:
    limit = max_length or get_settings().excerpt_max_length
    text = (content or "").strip() or title or ""
    return text[:limit] + "..." if len(text) > limit else text


def _minimal_preview(url: str, media_type: str | None) -> PreviewMetadata:
    return PreviewMetadata(
        url=url,
        image_url=url if media_type == "image" else None,
        media_type=media_type or "image",
    )


def _ensure_preview(media: MediaDescriptor) -> MediaDescriptor:
    """Masonry tiles always carry preview metadata."""
    if media.show_in_masonry and media.preview_metadata is None and media.url:
        logger.warning(
            "Masonry item missing previewMetadata, synthesizing minimal metadata",
            extra={
                "operation": "normalize_supporting_media",
                "context_data": {"url": media.url, "type": media.type},
            },
        )
        media.preview_metadata = _minimal_preview(media.url, media.type)
    return media


async def _enrich(media: MediaDescriptor, enrich: EnrichMediaItem | None) -> MediaDescriptor:
    if enrich is None:
        return media
    return await enrich(media)


def _masonry_base(item: MasonryMediaItem, *, force_image: bool = False) -> MediaDescriptor:
    media_type = "image" if force_image else item.type
    return MediaDescriptor(
        type=media_type,
        url=item.url,
        thumbnail=item.thumbnail or (item.url if media_type == "image" else None),
        preview_metadata=item.preview_metadata,
        show_in_masonry=item.show_in_masonry,
        masonry_title=item.masonry_title,
    )


async def build_supporting_media_create(
    data: ArticleInput, enrich: EnrichMediaItem | None
) -> list[MediaDescriptor] | None:
    """Selected non-primary masonry tiles, enriched concurrently."""
    selected = [
        item
        for item in data.masonry_media_items
        if item.source != "primary" and item.show_in_masonry is True
    ]
    if not selected:
        return None

    enriched = await asyncio.gather(*(_enrich(_masonry_base(item), enrich) for item in selected))
    return [_ensure_preview(media) for media in enriched]


async def build_supporting_media_edit(
    data: ArticleInput, enrich: EnrichMediaItem | None
) -> list[MediaDescriptor] | None:
    """Existing supporting media plus newly selected masonry tiles.

    Stored supporting media keeps its slot; the masonry tile with id
    ``supporting-<index>`` overrides its visibility and title. Selected
    legacy-image and supporting tiles not already stored are appended.
    """
    items_by_id = {item.id: item for item in data.masonry_media_items}

    async def _existing(index: int, media: MediaDescriptor) -> MediaDescriptor:
        enriched = await _enrich(media.model_copy(deep=True), enrich)
        item = items_by_id.get(f"{SUPPORTING_SLOT_PREFIX}{index}")
        if item is not None:
            enriched.show_in_masonry = item.show_in_masonry
            enriched.masonry_title = item.masonry_title
        return _ensure_preview(enriched)

    async def _added(item: MasonryMediaItem) -> MediaDescriptor:
        base = _masonry_base(item, force_image=item.source == "legacy-image")
        return _ensure_preview(await _enrich(base, enrich))

    stored_keys = {
        normalize_image_url(media.url) for media in data.existing_supporting_media if media.url
    }
    added_items: list[MasonryMediaItem] = []
    for item in data.masonry_media_items:
        if item.source not in ("legacy-image", "supporting") or item.show_in_masonry is not True:
            continue
        key = normalize_image_url(item.url)
        if key in stored_keys:
            continue
        stored_keys.add(key)
        added_items.append(item)

    results = await asyncio.gather(
        *(_existing(index, media) for index, media in enumerate(data.existing_supporting_media)),
        *(_added(item) for item in added_items),
    )
    return list(results) or None


def _find_primary_item(data: ArticleInput, mode: NormalizationMode) -> MasonryMediaItem | None:
    items = data.masonry_media_items
    primary = next((item for item in items if item.source == "primary"), None)
    if mode == "edit":
        legacy = next((item for item in items if item.source == "legacy-media"), None)
        return legacy or primary
    return primary


def _from_link_metadata(data: ArticleInput, primary_url: str | None) -> MediaDescriptor:
    media = data.link_metadata.model_copy(deep=True)
    preview = media.preview_metadata
    if preview is not None:
        preview.url = preview.url or primary_url or ""
        # An explicit domain label beats scraped metadata
        preview.site_name = data.custom_domain or preview.site_name
    else:
        media.preview_metadata = PreviewMetadata(
            url=primary_url or "",
            title=data.title,
            site_name=data.custom_domain or None,
        )
    return media


def _from_url(url: str, data: ArticleInput) -> MediaDescriptor:
    return MediaDescriptor(
        type=detect_provider_from_url(url),
        url=url,
        preview_metadata=PreviewMetadata(url=url, title=data.title, site_name=data.custom_domain or None),
    )


def _from_custom_domain(domain: str, data: ArticleInput) -> MediaDescriptor:
    domain = domain.strip()
    url = domain if "://" in domain else f"https://{domain}"
    return MediaDescriptor(
        type="link",
        url=url,
        preview_metadata=PreviewMetadata(url=url, title=data.title, site_name=domain),
    )


def _from_masonry_item(item: MasonryMediaItem) -> MediaDescriptor:
    return MediaDescriptor(
        type=item.type,
        url=item.url,
        thumbnail=item.thumbnail,
        preview_metadata=item.preview_metadata or _minimal_preview(item.url, item.type),
    )


async def resolve_primary_media(
    data: ArticleInput,
    *,
    mode: NormalizationMode,
    primary_url: str | None,
    enrich: EnrichMediaItem | None,
) -> MediaDescriptor | None:
    """Pick the single primary media item and apply masonry defaults.

    Priority: link metadata, then the primary URL, then (edit mode, when the
    only URLs left are images) the stored media, then a source badge built
    from the custom domain, then the primary masonry tile.
    """
    primary_item = _find_primary_item(data, mode)
    from_storage = False

    if data.link_metadata is not None and (mode == "create" or primary_url):
        media = _from_link_metadata(data, primary_url)
    elif primary_url:
        media = _from_url(primary_url, data)
    elif mode == "edit" and data.urls and data.existing_media is not None:
        media = await _enrich(data.existing_media.model_copy(deep=True), enrich)
        from_storage = True
    elif data.custom_domain and data.custom_domain.strip():
        media = _from_custom_domain(data.custom_domain, data)
    elif primary_item is not None and primary_item.url:
        media = _from_masonry_item(primary_item)
    else:
        return None

    if primary_item is not None:
        media.show_in_masonry = (
            True if primary_item.show_in_masonry is None else primary_item.show_in_masonry
        )
        media.masonry_title = primary_item.masonry_title
    elif not (from_storage and media.show_in_masonry is not None):
        media.show_in_masonry = True

    return media


def _restore_existing_images(
    existing_images: list[str], images: list[str], explicitly_deleted: list[str]
) -> list[str]:
    """Put back existing images lost by deduplication (edit mode)."""
    # Guards against future changes to the edit dedup engine
    deleted = {normalize_image_url(url) for url in explicitly_deleted}
    expected = {
        normalize_image_url(img): img
        for img in reversed(existing_images)
        if isinstance(img, str) and img.strip() and normalize_image_url(img) not in deleted
    }
    present = {normalize_image_url(img) for img in images}
    if len(present & expected.keys()) >= len(expected):
        return images

    logger.warning(
        "Image deduplication dropped existing images, restoring them",
        extra={
            "operation": "image_dedup_fallback",
            "context_data": {"expected": len(expected), "after": len(images)},
        },
    )
    restored = [img.strip() for key, img in reversed(expected.items()) if key not in present]
    return restored + images


def _merge_media_ids(data: ArticleInput, mode: NormalizationMode) -> list[str] | None:
    ids = list(data.media_ids) if mode == "create" else [*data.existing_media_ids, *data.media_ids]
    merged = list(dict.fromkeys(ids))
    return merged or None


async def normalize_article_input(
    data: ArticleInput | Mapping[str, Any],
    *,
    mode: NormalizationMode,
    enrich_media_item_if_needed: EnrichMediaItem | None = None,
) -> NormalizedArticleInput:
    """Normalize one create/edit submission into the persisted article shape.

    Exceptions raised by ``enrich_media_item_if_needed`` propagate to the
    caller; the collaborator is expected to return the draft unchanged when
    it cannot enrich it.
    """
    if not isinstance(data, ArticleInput):
        data = ArticleInput.model_validate(data)

    read_time = calculate_read_time(data.content)
    excerpt = generate_excerpt(data.content, data.title)

    categories = filter_tag_names(data.categories)
    tags = normalize_tags(categories)
    has_empty_tags_error = mode == "create" and not tags
    if mode == "edit" and not tags:
        logger.warning(
            "Edit would leave the article without tags",
            extra={"operation": "normalize_article_input", "item_id": data.article_id},
        )

    separated_images, _ = separate_image_urls(data.urls)
    new_images = [*separated_images, *data.uploaded_image_urls]

    supporting_media: list[MediaDescriptor] | None
    dedup_result: ImageDedupResult
    if mode == "create":
        supporting_media = await build_supporting_media_create(data, enrich_media_item_if_needed)
        raw_input_images = new_images
        dedup_result = dedupe_images_for_create(new_images)
        images = dedup_result.deduplicated
    else:
        supporting_media = await build_supporting_media_edit(data, enrich_media_item_if_needed)
        raw_input_images = [*data.existing_images, *new_images]
        dedup_result = dedupe_images_for_edit(
            data.existing_images,
            new_images,
            supporting_media,
            data.explicitly_deleted_images,
        )
        images = _restore_existing_images(
            data.existing_images, dedup_result.deduplicated, data.explicitly_deleted_images
        )

    emit_dedup_audit(
        build_dedup_audit(
            mode=mode,
            data=data,
            raw_input_images=raw_input_images,
            pasted_images=separated_images,
            final_images=images,
            dedup_result=dedup_result,
        )
    )

    primary_url = get_primary_url(data.urls) or data.detected_link or None
    media = await resolve_primary_media(
        data, mode=mode, primary_url=primary_url, enrich=enrich_media_item_if_needed
    )

    custom_created_at = None
    if data.is_admin and data.custom_created_at:
        custom_created_at = to_iso_utc(data.custom_created_at)
        if custom_created_at is None:
            logger.warning("Ignoring unparseable customCreatedAt %r", data.custom_created_at)

    return NormalizedArticleInput(
        title=data.title.strip(),
        content=data.content.strip(),
        excerpt=excerpt,
        read_time=read_time,
        categories=categories,
        tags=tags,
        visibility=data.visibility,
        images=images or None,
        media_ids=_merge_media_ids(data, mode),
        documents=data.uploaded_docs or None,
        media=media,
        supporting_media=supporting_media,
        source_type="link" if primary_url or separated_images else "text",
        custom_created_at=custom_created_at,
        primary_url=primary_url,
        has_empty_tags_error=has_empty_tags_error,
    )
