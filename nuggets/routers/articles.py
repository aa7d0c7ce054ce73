"""Article normalization and pre-save validation endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import Field

from nuggets.models.media import ArticleInput, NormalizationMode, PayloadModel
from nuggets.services.article_normalization import EnrichMediaItem, normalize_article_input
from nuggets.services.media_enrichment import MediaEnricher
from nuggets.services.pre_save_validation import validate_before_save

router = APIRouter(prefix="/articles", tags=["articles"])


class NormalizeRequest(PayloadModel):
    mode: NormalizationMode = "create"
    article: ArticleInput


class ValidateRequest(PayloadModel):
    mode: NormalizationMode = "create"
    original: dict[str, Any] | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


def get_media_enricher() -> EnrichMediaItem:
    return MediaEnricher()


@router.post("/normalize", summary="Normalize a create/edit submission")
async def normalize_article(
    request: NormalizeRequest,
    enricher: Annotated[EnrichMediaItem, Depends(get_media_enricher)],
) -> dict:
    """Run the normalization pipeline and return the storage payload."""
    normalized = await normalize_article_input(
        request.article,
        mode=request.mode,
        enrich_media_item_if_needed=enricher,
    )
    return normalized.to_payload()


@router.post("/validate", summary="Pre-save validation")
async def validate_article(request: ValidateRequest) -> dict:
    result = validate_before_save(request.original, request.payload, request.mode)
    return result.model_dump(by_alias=True, mode="json")
