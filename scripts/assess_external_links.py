#!/usr/bin/env python3
"""Assess how many articles already carry externalLinks.

Buckets:
    A: externalLinks populated (already migrated)
    B: legacy media.url / media.previewMetadata.url only (recoverable)
    C: no URLs anywhere (lost)

This is a READ-ONLY script.

Usage:
    python scripts/assess_external_links.py
    python scripts/assess_external_links.py --detailed
    python scripts/assess_external_links.py --export-ids reports/link-assessment
"""

import argparse
import json
import os
import sys
from pathlib import Path

# Add parent directory so we can import from nuggets
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from nuggets.core.db import get_db  # noqa: E402
from nuggets.core.logging import get_logger, setup_logging  # noqa: E402
from nuggets.models.schema import Article  # noqa: E402
from nuggets.services.link_assessment import AssessmentResult, assess_articles  # noqa: E402

setup_logging()
logger = get_logger(__name__)

SAMPLE_SIZE = 10


def _print_sample(label: str, items: list, describe) -> None:
    print(f"\n{label} (sample):")
    for item in items[:SAMPLE_SIZE]:
        print(f"  - {describe(item)}")
    if len(items) > SAMPLE_SIZE:
        print(f"  ... and {len(items) - SAMPLE_SIZE} more")


def print_report(result: AssessmentResult, detailed: bool = False) -> None:
    summary = result.summary
    print("\n" + "=" * 70)
    print("External Links Assessment")
    print("=" * 70)
    print(f"\nTotal Articles: {summary.total}")
    print(f"  Bucket A (Already Migrated): {summary.bucket_a:>6} ({summary.bucket_a_percent}%)")
    print(f"  Bucket B (Recoverable):      {summary.bucket_b:>6} ({summary.bucket_b_percent}%)")
    print(f"  Bucket C (Lost):             {summary.bucket_c:>6} ({summary.bucket_c_percent}%)")

    if detailed:
        _print_sample(
            "Bucket A",
            result.bucket_a,
            lambda a: f'{a.id} - "{a.title}" ({a.external_links_count} links)',
        )
        _print_sample(
            "Bucket B",
            result.bucket_b,
            lambda a: f'{a.id} - "{a.title}" legacy URL: {a.legacy_url or "(unknown)"}',
        )
        _print_sample("Bucket C", result.bucket_c, lambda a: f'{a.id} - "{a.title}"')

    print("\nRecommendations:")
    if summary.bucket_b:
        print(f"  {summary.bucket_b} articles can be recovered from legacy URL fields")
    if summary.bucket_c:
        print(f"  {summary.bucket_c} articles have no recoverable link data")
    if summary.total and summary.bucket_a == summary.total:
        print("  All articles already have externalLinks - no migration needed")
    print("=" * 70)


def export_ids(result: AssessmentResult, export_dir: Path) -> None:
    export_dir.mkdir(parents=True, exist_ok=True)
    files = {
        "bucket-a-ids.json": [{"id": a.id, "title": a.title} for a in result.bucket_a],
        "bucket-b-ids.json": [
            {"id": a.id, "title": a.title, "legacyUrl": a.legacy_url} for a in result.bucket_b
        ],
        "bucket-c-ids.json": [{"id": a.id, "title": a.title} for a in result.bucket_c],
        "assessment-summary.json": result.summary.to_dict(),
    }
    for name, data in files.items():
        (export_dir / name).write_text(json.dumps(data, indent=2), encoding="utf-8")
    print(f"\nExported article IDs to: {export_dir}/")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Assess externalLinks migration state")
    parser.add_argument(
        "--detailed",
        action="store_true",
        help="Show a sample of articles per bucket",
    )
    parser.add_argument(
        "--export-ids",
        type=Path,
        metavar="DIR",
        help="Write bucket id lists and the summary as JSON into DIR",
    )
    args = parser.parse_args()

    with get_db() as db:
        snapshots = [article.to_snapshot() for article in db.query(Article).yield_per(500)]
    logger.info("Loaded %d articles", len(snapshots))

    result = assess_articles(snapshots)
    print_report(result, detailed=args.detailed)
    if args.export_ids:
        export_ids(result, args.export_ids)


if __name__ == "__main__":
    main()
