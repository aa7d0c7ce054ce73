"""Tag name normalization shared by the article pipeline and the tag service."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

_WHITESPACE_RE = re.compile(r"\s+")


class TagNameError(ValueError):
    """Raised when a tag name is empty after normalization."""


def filter_tag_names(tags: Iterable[Any] | None) -> list[str]:
    """Trimmed, non-empty string entries in input order (no deduplication)."""
    if tags is None or isinstance(tags, (str, bytes)):
        return []
    return [tag.strip() for tag in tags if isinstance(tag, str) and tag.strip()]


def normalize_tags(tags: Iterable[Any] | None) -> list[str]:
    """Valid tags deduplicated case-insensitively, first casing wins."""
    unique: dict[str, str] = {}
    for tag in filter_tag_names(tags):
        unique.setdefault(tag.lower(), tag)
    return list(unique.values())


def validate_tags_not_empty(tags: Iterable[Any] | None) -> bool:
    return len(normalize_tags(tags)) > 0


def normalize_tag_name(name: str | None) -> tuple[str, str]:
    """Return ``(raw_name, canonical_name)`` for a free-text tag name.

    Whitespace is trimmed and internal runs collapse to one space; the
    canonical name is the lowercase form of that.

    Raises:
        TagNameError: If nothing is left after normalization.
    """
    raw_name = _WHITESPACE_RE.sub(" ", name or "").strip()
    if not raw_name:
        raise TagNameError("Tag name cannot be empty after normalization")
    return raw_name, raw_name.lower()
