"""Read-only diagnostics behind the "Detected Links" panels."""

from typing import Any

from fastapi import APIRouter
from pydantic import Field

from nuggets.models.media import PayloadModel
from nuggets.services.image_dedup import detect_duplicate_images
from nuggets.services.url_extraction import (
    extract_all_urls,
    filter_existing_external_links,
    get_url_counts_by_source,
)

router = APIRouter(prefix="/diagnostics", tags=["diagnostics"])


class UrlDiagnosticsRequest(PayloadModel):
    article: dict[str, Any] = Field(default_factory=dict)
    exclude_external_links: bool = True


class ImageDuplicatesRequest(PayloadModel):
    images: list[Any] = Field(default_factory=list)


@router.post("/urls", summary="List every media URL an article carries")
async def article_urls(payload: UrlDiagnosticsRequest) -> dict:
    urls = extract_all_urls(payload.article)
    if payload.exclude_external_links:
        external_links = payload.article.get("externalLinks") or payload.article.get(
            "external_links"
        )
        urls = filter_existing_external_links(urls, external_links)
    return {
        "urls": [item.to_payload() for item in urls],
        "countsBySource": get_url_counts_by_source(urls),
        "total": len(urls),
    }


@router.post("/images/duplicates", summary="Explain duplicate image URLs")
async def image_duplicates(payload: ImageDuplicatesRequest) -> dict:
    report = detect_duplicate_images(payload.images)
    return {
        "duplicates": [
            {"original": d.original, "normalized": d.normalized, "type": d.type}
            for d in report.duplicates
        ],
        "normalizedPairs": [
            {"original": p.original, "normalized": p.normalized} for p in report.normalized_pairs
        ],
        "duplicateTypes": report.duplicate_types,
    }
