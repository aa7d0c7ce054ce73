"""Collect every media URL an article carries, across all historical shapes.

Articles have expressed "this nugget has media" several ways over time:
``primaryMedia``, ``supportingMedia[]``, the legacy ``media`` field (and its
``previewMetadata.url``) and the legacy ``images[]`` array. Each field gets a
small adapter that yields ``MediaCandidate`` values; everything downstream
works on that flat list.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel

from nuggets.utils.url_utils import normalize_image_url

ExtractedUrlSource = Literal[
    "primaryMedia",
    "supportingMedia",
    "media",
    "media.previewMetadata",
    "images",
]

URL_SOURCES: tuple[ExtractedUrlSource, ...] = (
    "primaryMedia",
    "supportingMedia",
    "media",
    "media.previewMetadata",
    "images",
)


@dataclass(frozen=True)
class MediaCandidate:
    url: str
    source: ExtractedUrlSource
    type: str | None = None
    index: int | None = None
    raw: Any = None


@dataclass(frozen=True)
class ExtractedUrl:
    url: str
    source: ExtractedUrlSource
    source_label: str
    is_cloudinary: bool
    index: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "url": self.url,
            "source": self.source,
            "sourceLabel": self.source_label,
            "isCloudinary": self.is_cloudinary,
        }
        if self.index is not None:
            payload["index"] = self.index
        return payload


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True)
    if isinstance(value, Mapping):
        return value
    return None


def _get(data: Mapping[str, Any] | None, *keys: str) -> Any:
    if not data:
        return None
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _url_of(media: Any) -> str | None:
    url = _get(_as_mapping(media), "url")
    return url if isinstance(url, str) else None


def _primary_media(article: Mapping[str, Any]) -> Iterator[MediaCandidate]:
    media = _get(article, "primaryMedia", "primary_media")
    url = _url_of(media)
    if url:
        yield MediaCandidate(
            url=url, source="primaryMedia", type=_get(_as_mapping(media), "type"), raw=media
        )


def _supporting_media(article: Mapping[str, Any]) -> Iterator[MediaCandidate]:
    items = _get(article, "supportingMedia", "supporting_media")
    if not isinstance(items, list):
        return
    for index, media in enumerate(items):
        url = _url_of(media)
        if url:
            yield MediaCandidate(
                url=url,
                source="supportingMedia",
                type=_get(_as_mapping(media), "type"),
                index=index,
                raw=media,
            )


def _legacy_media(article: Mapping[str, Any]) -> Iterator[MediaCandidate]:
    media = _get(article, "media")
    url = _url_of(media)
    if url:
        yield MediaCandidate(url=url, source="media", type=_get(_as_mapping(media), "type"), raw=media)


def _legacy_preview_metadata(article: Mapping[str, Any]) -> Iterator[MediaCandidate]:
    media = _as_mapping(_get(article, "media"))
    preview = _get(media, "previewMetadata", "preview_metadata")
    url = _url_of(preview)
    if url:
        yield MediaCandidate(url=url, source="media.previewMetadata", type="link", raw=preview)


def _legacy_images(article: Mapping[str, Any]) -> Iterator[MediaCandidate]:
    images = _get(article, "images")
    if not isinstance(images, list):
        return
    for index, url in enumerate(images):
        if isinstance(url, str):
            yield MediaCandidate(url=url, source="images", type="image", index=index, raw=url)


# Priority order: the first source to produce a URL owns its label
MEDIA_SOURCE_ADAPTERS: tuple[Callable[[Mapping[str, Any]], Iterator[MediaCandidate]], ...] = (
    _primary_media,
    _supporting_media,
    _legacy_media,
    _legacy_preview_metadata,
    _legacy_images,
)


def iter_media_candidates(article: Any) -> Iterator[MediaCandidate]:
    """Yield every media URL on ``article`` in source-priority order (with repeats)."""
    data = _as_mapping(article)
    if data is None:
        return
    for adapter in MEDIA_SOURCE_ADAPTERS:
        yield from adapter(data)


def is_cloudinary_url(url: str | None) -> bool:
    return bool(url) and "cloudinary.com" in url


def get_source_label(source: ExtractedUrlSource, index: int | None = None, is_cloudinary: bool = False) -> str:
    suffix = " (Uploaded)" if is_cloudinary else ""
    position = (index or 0) + 1
    if source == "primaryMedia":
        return f"Primary Media{suffix}"
    if source == "supportingMedia":
        return f"Supporting Media #{position}{suffix}"
    if source == "media":
        return f"Media URL{suffix}"
    if source == "media.previewMetadata":
        return "Preview Metadata"
    if source == "images":
        return f"Image #{position}{suffix}"
    return "Unknown Source"


def extract_all_urls(article: Any) -> list[ExtractedUrl]:
    """Flat, deduplicated list of the article's media URLs.

    Accepts an ``ArticleSnapshot`` or a raw document mapping; ``None`` gives
    an empty list. Duplicates are detected with ``normalize_image_url``.
    """
    extracted: list[ExtractedUrl] = []
    seen: set[str] = set()

    for candidate in iter_media_candidates(article):
        url = candidate.url.strip()
        if not url:
            continue
        key = normalize_image_url(url)
        if key in seen:
            continue
        seen.add(key)

        cloudinary = is_cloudinary_url(url)
        extracted.append(
            ExtractedUrl(
                url=url,
                source=candidate.source,
                source_label=get_source_label(candidate.source, candidate.index, cloudinary),
                is_cloudinary=cloudinary,
                index=candidate.index,
            )
        )

    return extracted


def filter_existing_external_links(
    extracted_urls: list[ExtractedUrl],
    external_links: Iterable[Any] | None,
) -> list[ExtractedUrl]:
    """Drop extracted URLs the user already promoted to external links."""
    if not external_links:
        return list(extracted_urls)

    known: set[str] = set()
    for link in external_links:
        url = link if isinstance(link, str) else _url_of(link)
        if url:
            known.add(normalize_image_url(url))

    return [item for item in extracted_urls if normalize_image_url(item.url) not in known]


def get_url_counts_by_source(extracted_urls: Iterable[ExtractedUrl]) -> dict[str, int]:
    counts = dict.fromkeys(URL_SOURCES, 0)
    for item in extracted_urls:
        counts[item.source] += 1
    return counts
