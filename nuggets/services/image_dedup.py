"""Image URL deduplication for the create and edit flows.

Rules:
- URLs are compared by ``normalize_image_url`` (case, query string and
  fragment are ignored); the first occurrence keeps its original casing.
- Nothing is dropped without a log entry saying why.
- Edit mode never drops an existing image unless it duplicates another one
  or the caller lists it as explicitly deleted.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from nuggets.core.logging import get_logger
from nuggets.utils.url_utils import normalize_image_url

logger = get_logger(__name__)

DuplicateType = Literal["case-insensitive", "query-params"]


@dataclass(frozen=True)
class DuplicateImage:
    original: str
    normalized: str
    type: DuplicateType


@dataclass(frozen=True)
class NormalizedPair:
    original: str
    normalized: str


@dataclass
class DuplicateReport:
    duplicates: list[DuplicateImage] = field(default_factory=list)
    normalized_pairs: list[NormalizedPair] = field(default_factory=list)

    @property
    def duplicate_types(self) -> list[str]:
        return sorted({duplicate.type for duplicate in self.duplicates})


@dataclass(frozen=True)
class DedupLogEntry:
    action: Literal["removed", "preserved", "moved"]
    reason: str
    url: str | None = None


@dataclass
class ImageDedupResult:
    deduplicated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    moved_to_supporting: list[str] = field(default_factory=list)
    logs: list[DedupLogEntry] = field(default_factory=list)


def _valid_images(images: Iterable[Any] | None) -> list[str]:
    return [img.strip() for img in images or [] if isinstance(img, str) and img.strip()]


def _media_attr(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def detect_duplicate_images(images: Iterable[Any] | None) -> DuplicateReport:
    """Explain why image URLs collide, without changing anything.

    A later entry that matches an earlier one ignoring case is a
    ``case-insensitive`` duplicate. An entry carrying a query string or
    fragment whose base URL matches a different earlier entry is a
    ``query-params`` duplicate. Both checks run independently, so one entry
    can be reported under each type. Exact repeats are not reported.
    """
    report = DuplicateReport()
    seen_lower: dict[str, set[str]] = {}
    seen_normalized: dict[str, set[str]] = {}

    for trimmed in _valid_images(images):
        lowered = trimmed.lower()
        normalized = normalize_image_url(trimmed)
        report.normalized_pairs.append(NormalizedPair(original=trimmed, normalized=normalized))

        if lowered in seen_lower and trimmed not in seen_lower[lowered]:
            report.duplicates.append(
                DuplicateImage(original=trimmed, normalized=lowered, type="case-insensitive")
            )
        seen_lower.setdefault(lowered, set()).add(trimmed)

        base_matches = seen_normalized.setdefault(normalized, set())
        if normalized != lowered and base_matches - {trimmed}:
            report.duplicates.append(
                DuplicateImage(original=trimmed, normalized=normalized, type="query-params")
            )
        base_matches.add(trimmed)

    return report


def dedupe_images_for_create(images: Iterable[Any] | None) -> ImageDedupResult:
    """Drop blank entries and normalized duplicates, keeping first-seen order."""
    candidates = list(images or [])
    result = ImageDedupResult()
    kept: dict[str, str] = {}

    for img in _valid_images(candidates):
        key = normalize_image_url(img)
        if key in kept:
            result.removed.append(img)
            result.logs.append(DedupLogEntry(action="removed", reason="duplicate", url=img))
            continue
        kept[key] = img

    result.deduplicated = list(kept.values())
    _log_summary("create", before=len(candidates), result=result)
    return result


def dedupe_images_for_edit(
    existing_images: Iterable[Any] | None,
    new_images: Iterable[Any] | None,
    supporting_media: Iterable[Any] | None = None,
    explicitly_deleted: Iterable[str] | None = None,
) -> ImageDedupResult:
    """Merge persisted images with newly added ones.

    Existing images come first and are kept unless they repeat each other or
    appear in ``explicitly_deleted``. A new image that matches an
    ``image``-type entry of ``supporting_media`` is reported in
    ``moved_to_supporting`` instead of being listed again; non-image
    supporting entries never cause this.
    """
    existing = _valid_images(existing_images)
    added = _valid_images(new_images)
    deleted_keys = {normalize_image_url(url) for url in explicitly_deleted or [] if url}
    promoted_keys = {
        normalize_image_url(_media_attr(item, "url"))
        for item in supporting_media or []
        if item is not None and _media_attr(item, "type") == "image" and _media_attr(item, "url")
    }

    result = ImageDedupResult()
    kept: dict[str, str] = {}
    moved_keys: set[str] = set()

    def _drop(img: str, reason: str) -> None:
        result.removed.append(img)
        result.logs.append(DedupLogEntry(action="removed", reason=reason, url=img))

    for img in existing:
        key = normalize_image_url(img)
        if key in deleted_keys:
            _drop(img, "explicitly-deleted")
        elif key in kept:
            _drop(img, "duplicate")
        else:
            kept[key] = img
            result.logs.append(DedupLogEntry(action="preserved", reason="existing", url=img))

    for img in added:
        key = normalize_image_url(img)
        if key in deleted_keys:
            _drop(img, "explicitly-deleted")
        elif key in kept or key in moved_keys:
            _drop(img, "duplicate")
        elif key in promoted_keys:
            moved_keys.add(key)
            result.moved_to_supporting.append(img)
            result.logs.append(DedupLogEntry(action="moved", reason="in-supporting-media", url=img))
        else:
            kept[key] = img
            result.logs.append(DedupLogEntry(action="preserved", reason="new", url=img))

    result.deduplicated = list(kept.values())
    _log_summary("edit", before=len(existing) + len(added), result=result)
    return result


def _log_summary(mode: str, *, before: int, result: ImageDedupResult) -> None:
    after = len(result.deduplicated)
    if not result.removed and not result.moved_to_supporting and after == 0:
        return
    action = "removed" if result.removed else "preserved"
    logger.debug(
        "[IMAGE_DEDUP] mode=%s action=%s before=%d after=%d removed=%d moved=%d",
        mode,
        action,
        before,
        after,
        len(result.removed),
        len(result.moved_to_supporting),
    )
