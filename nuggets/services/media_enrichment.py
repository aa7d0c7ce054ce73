"""Default media enrichment collaborator.

``MediaEnricher`` is passed to ``normalize_article_input`` as
``enrich_media_item_if_needed``. It attaches preview metadata to media drafts
that are worth an unfurl (YouTube via oEmbed) and returns every other draft
unchanged. Failures are logged and swallowed, so the enricher never raises.
"""

from __future__ import annotations

from typing import Any

from nuggets.core.logging import get_logger
from nuggets.core.settings import get_settings
from nuggets.models.media import MediaDescriptor, PreviewMetadata
from nuggets.services.http import EnrichmentError, HttpService, get_http_service
from nuggets.utils.error_logger import log_error
from nuggets.utils.url_utils import is_youtube_url, should_fetch_metadata

logger = get_logger(__name__)


def preview_from_oembed(url: str, payload: dict[str, Any]) -> PreviewMetadata:
    """Map an oEmbed response onto preview metadata."""
    return PreviewMetadata(
        url=url,
        title=payload.get("title"),
        description=payload.get("author_name"),
        image_url=payload.get("thumbnail_url"),
        site_name=payload.get("provider_name"),
        provider_name=payload.get("provider_name"),
        media_type="youtube" if is_youtube_url(url) else payload.get("type"),
    )


class MediaEnricher:
    """Callable enrichment collaborator: ``await enricher(draft)``."""

    def __init__(self, http_service: HttpService | None = None, oembed_endpoint: str | None = None):
        self.http_service = http_service or get_http_service()
        self.oembed_endpoint = oembed_endpoint or get_settings().youtube_oembed_endpoint

    async def __call__(self, media: MediaDescriptor) -> MediaDescriptor:
        if media.preview_metadata is not None and media.preview_metadata.title:
            return media
        if not should_fetch_metadata(media.url):
            return media

        try:
            payload = await self.http_service.fetch_json(
                self.oembed_endpoint, params={"url": media.url, "format": "json"}
            )
        except EnrichmentError as e:
            log_error(
                "media_enrichment",
                e,
                operation="fetch_oembed",
                context={"url": media.url, "type": media.type},
            )
            return media

        enriched = media.model_copy(deep=True)
        fetched = preview_from_oembed(media.url, payload)
        if enriched.preview_metadata is not None:
            # Keep anything the caller already knew
            fetched = fetched.model_copy(
                update=enriched.preview_metadata.model_dump(exclude_none=True)
            )
        enriched.preview_metadata = fetched
        if not enriched.thumbnail and fetched.image_url:
            enriched.thumbnail = fetched.image_url

        logger.info(
            "Enriched media preview for %s",
            media.url,
            extra={"operation": "enrich_media", "context_data": {"url": media.url, "type": media.type}},
        )
        return enriched
