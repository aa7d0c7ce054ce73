"""Read-only assessment of how far articles have moved to ``externalLinks``.

Bucket A: ``externalLinks`` populated (migrated).
Bucket B: no ``externalLinks`` but a legacy ``media.url`` or
``media.previewMetadata.url`` (recoverable).
Bucket C: no link data anywhere (lost).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from nuggets.services.url_extraction import iter_media_candidates

Bucket = Literal["A", "B", "C"]
UNTITLED = "(no title)"


@dataclass
class ArticleAssessment:
    id: str
    title: str
    bucket: Bucket
    has_external_links: bool
    external_links_count: int
    has_media_url: bool
    has_preview_metadata_url: bool
    media_url: str | None = None
    preview_metadata_url: str | None = None

    @property
    def legacy_url(self) -> str | None:
        return self.media_url or self.preview_metadata_url


@dataclass
class AssessmentSummary:
    total: int = 0
    bucket_a: int = 0
    bucket_b: int = 0
    bucket_c: int = 0
    bucket_a_percent: float = 0.0
    bucket_b_percent: float = 0.0
    bucket_c_percent: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "bucketA": self.bucket_a,
            "bucketB": self.bucket_b,
            "bucketC": self.bucket_c,
            "bucketAPercent": self.bucket_a_percent,
            "bucketBPercent": self.bucket_b_percent,
            "bucketCPercent": self.bucket_c_percent,
        }


@dataclass
class AssessmentResult:
    bucket_a: list[ArticleAssessment] = field(default_factory=list)
    bucket_b: list[ArticleAssessment] = field(default_factory=list)
    bucket_c: list[ArticleAssessment] = field(default_factory=list)
    summary: AssessmentSummary = field(default_factory=AssessmentSummary)

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucketA": [asdict(item) for item in self.bucket_a],
            "bucketB": [asdict(item) for item in self.bucket_b],
            "bucketC": [asdict(item) for item in self.bucket_c],
            "summary": self.summary.to_dict(),
        }


def _percent(count: int, total: int) -> float:
    return round(count / total * 100, 2) if total else 0.0


def classify_article(article: Mapping[str, Any]) -> ArticleAssessment:
    """Place one stored article document into bucket A, B or C."""
    external_links = article.get("externalLinks") or article.get("external_links") or []
    links_count = len(external_links) if isinstance(external_links, list) else 0

    legacy = {candidate.source: candidate.url for candidate in iter_media_candidates(article)}
    media_url = legacy.get("media") or None
    preview_url = legacy.get("media.previewMetadata") or None

    if links_count:
        bucket: Bucket = "A"
    elif media_url or preview_url:
        bucket = "B"
    else:
        bucket = "C"

    return ArticleAssessment(
        id=str(article.get("id") or article.get("_id") or ""),
        title=article.get("title") or UNTITLED,
        bucket=bucket,
        has_external_links=links_count > 0,
        external_links_count=links_count,
        has_media_url=bool(media_url),
        has_preview_metadata_url=bool(preview_url),
        media_url=media_url,
        preview_metadata_url=preview_url,
    )


def assess_articles(articles: Iterable[Mapping[str, Any]]) -> AssessmentResult:
    result = AssessmentResult()
    buckets = {"A": result.bucket_a, "B": result.bucket_b, "C": result.bucket_c}
    for article in articles:
        assessment = classify_article(article)
        buckets[assessment.bucket].append(assessment)

    total = len(result.bucket_a) + len(result.bucket_b) + len(result.bucket_c)
    result.summary = AssessmentSummary(
        total=total,
        bucket_a=len(result.bucket_a),
        bucket_b=len(result.bucket_b),
        bucket_c=len(result.bucket_c),
        bucket_a_percent=_percent(len(result.bucket_a), total),
        bucket_b_percent=_percent(len(result.bucket_b), total),
        bucket_c_percent=_percent(len(result.bucket_c), total),
    )
    return result
