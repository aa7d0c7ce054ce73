"""
Payload models for nugget media and article normalization.

Field names are snake_case in Python; JSON payloads use the camelCase names
the frontend sends and the document store keeps (``showInMasonry``,
``previewMetadata`` ...). Unknown keys are preserved so scraped metadata and
legacy document fields survive a round trip.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MediaType = Literal["image", "video", "document", "link", "text", "youtube"]
MasonrySource = Literal["primary", "supporting", "legacy-image", "legacy-media"]
NormalizationMode = Literal["create", "edit"]
SourceType = Literal["link", "text"]

MASONRY_TITLE_MAX_LENGTH = 80


def clean_masonry_title(value: str | None) -> str | None:
    """Single-line, length-capped tile title; blank becomes None."""
    if value is None:
        return None
    collapsed = " ".join(value.split())
    return collapsed[:MASONRY_TITLE_MAX_LENGTH] or None


class PayloadModel(BaseModel):
    """Base model for camelCase JSON payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_payload(self) -> dict[str, Any]:
        """Dump to the JSON shape used on the wire, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class PreviewMetadata(PayloadModel):
    """Unfurl result for a URL."""

    url: str | None = None
    title: str | None = None
    description: str | None = None
    image_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("imageUrl", "image_url", "image"),
        serialization_alias="imageUrl",
    )
    site_name: str | None = None
    favicon: str | None = None
    provider_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("providerName", "provider_name", "provider"),
        serialization_alias="providerName",
    )
    media_type: str | None = None


class MediaDescriptor(PayloadModel):
    """One media attachment on a nugget."""

    type: MediaType = "link"
    url: str | None = None
    thumbnail: str | None = Field(
        default=None,
        validation_alias=AliasChoices("thumbnail", "thumbnail_url", "thumbnailUrl"),
    )
    preview_metadata: PreviewMetadata | None = None
    show_in_masonry: bool | None = None
    masonry_title: str | None = None

    @field_validator("masonry_title")
    @classmethod
    def _single_line_title(cls, value: str | None) -> str | None:
        return clean_masonry_title(value)


class MasonryMediaItem(PayloadModel):
    """The UI's working representation of one masonry tile."""

    id: str
    type: MediaType = "image"
    url: str
    thumbnail: str | None = None
    source: MasonrySource
    show_in_masonry: bool | None = None
    masonry_title: str | None = None
    preview_metadata: PreviewMetadata | None = None

    @field_validator("masonry_title")
    @classmethod
    def _single_line_title(cls, value: str | None) -> str | None:
        return clean_masonry_title(value)


class DocumentDescriptor(PayloadModel):
    """Uploaded document reference."""

    url: str | None = None
    name: str | None = None
    type: str | None = None
    size: int | None = None


class ExternalLink(PayloadModel):
    """Link promoted to the card's "Link" button."""

    url: str
    is_primary: bool = False
    label: str | None = None


class ArticleInput(PayloadModel):
    """Raw material submitted by the create/edit form."""

    title: str = ""
    content: str = ""
    categories: list[Any] = Field(
        default_factory=list,
        validation_alias=AliasChoices("categories", "tags"),
    )
    visibility: Literal["public", "private"] = "public"
    urls: list[str] = Field(default_factory=list)
    detected_link: str | None = None
    link_metadata: MediaDescriptor | None = None
    image_urls: list[str] = Field(default_factory=list)
    uploaded_image_urls: list[str] = Field(default_factory=list)
    media_ids: list[str] = Field(default_factory=list)
    uploaded_docs: list[DocumentDescriptor] | None = None
    custom_domain: str | None = None
    masonry_media_items: list[MasonryMediaItem] = Field(default_factory=list)
    custom_created_at: str | None = None
    is_admin: bool = False

    # Edit mode only
    article_id: str | None = None
    existing_images: list[str] = Field(default_factory=list)
    existing_media_ids: list[str] = Field(default_factory=list)
    existing_supporting_media: list[MediaDescriptor] = Field(default_factory=list)
    existing_media: MediaDescriptor | None = None
    explicitly_deleted_images: list[str] = Field(default_factory=list)


class NormalizedArticleInput(PayloadModel):
    """Canonical article payload handed to the storage layer."""

    title: str
    content: str
    excerpt: str
    read_time: int
    categories: list[str]
    tags: list[str]
    visibility: Literal["public", "private"]
    images: list[str] | None = None
    media_ids: list[str] | None = None
    documents: list[DocumentDescriptor] | None = None
    media: MediaDescriptor | None = None
    supporting_media: list[MediaDescriptor] | None = None
    source_type: SourceType = Field(alias="source_type")
    custom_created_at: str | None = None
    primary_url: str | None = None
    has_empty_tags_error: bool = False

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        # ``media: null`` is meaningful (pure text nugget), so keep it
        payload.setdefault("media", None)
        return payload


class ArticleSnapshot(PayloadModel):
    """Previously persisted article, in any of its historical shapes."""

    id: str | None = None
    title: str | None = None
    content: str | None = None
    tags: list[Any] = Field(default_factory=list)
    primary_media: MediaDescriptor | None = None
    supporting_media: list[MediaDescriptor | None] = Field(default_factory=list)
    media: MediaDescriptor | None = None
    images: list[Any] = Field(default_factory=list)
    external_links: list[ExternalLink] = Field(default_factory=list)

    @field_validator("tags", "images", "supporting_media", "external_links", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value
