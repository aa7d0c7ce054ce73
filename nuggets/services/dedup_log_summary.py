"""Summaries and risk assessment over image dedup audit events.

Audit events are the ``operation="image_dedup_audit"`` records that
``emit_dedup_audit`` writes to the structured JSONL logs.
"""

from __future__ import annotations

import json
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from nuggets.core.logging import get_logger
from nuggets.services.dedup_audit import AUDIT_OPERATION

logger = get_logger(__name__)

HIGH_DUPLICATE_SHARE = 0.5
EDIT_REMOVAL_HIGH_RISK_SHARE = 0.1
MAX_LISTED_CASES = 10


@dataclass
class AuditEntry:
    timestamp: str
    mode: str
    article_id: str | None
    total_input_images: int
    total_output_images: int
    duplicates_detected: int
    images_removed: int
    moved_to_supporting_media: int
    duplicate_types: list[str] = field(default_factory=list)
    events: list[str] = field(default_factory=list)

    @classmethod
    def from_log_record(cls, record: dict[str, Any]) -> AuditEntry | None:
        context = record.get("context_data")
        if record.get("operation") != AUDIT_OPERATION or not isinstance(context, dict):
            return None
        mode = context.get("mode")
        if mode not in ("create", "edit"):
            return None
        return cls(
            timestamp=str(record.get("timestamp") or ""),
            mode=mode,
            article_id=context.get("article_id") or record.get("item_id"),
            total_input_images=int(context.get("total_input_images") or 0),
            total_output_images=int(context.get("total_output_images") or 0),
            duplicates_detected=int(context.get("duplicates_detected") or 0),
            images_removed=int(context.get("images_removed") or 0),
            moved_to_supporting_media=int(context.get("moved_to_supporting_media") or 0),
            duplicate_types=list(context.get("duplicate_types") or []),
            events=list(context.get("events") or []),
        )


def parse_audit_logs(log_dir: Path) -> list[AuditEntry]:
    """Read audit entries from every ``*.jsonl`` file under ``log_dir``."""
    entries: list[AuditEntry] = []
    for log_file in sorted(log_dir.glob("*.jsonl")):
        with open(log_file, encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.warning("Skipping malformed line %s:%d: %s", log_file, line_number, e)
                    continue
                if isinstance(record, dict):
                    entry = AuditEntry.from_log_record(record)
                    if entry is not None:
                        entries.append(entry)
    return entries


def _average(total: int, count: int) -> float:
    return total / count if count else 0.0


def _mode_stats(entries: list[AuditEntry]) -> dict[str, Any]:
    count = len(entries)
    totals = {
        "totalInputImages": sum(e.total_input_images for e in entries),
        "totalOutputImages": sum(e.total_output_images for e in entries),
        "totalDuplicates": sum(e.duplicates_detected for e in entries),
        "totalRemoved": sum(e.images_removed for e in entries),
        "totalMovedToSupporting": sum(e.moved_to_supporting_media for e in entries),
    }
    return {
        "count": count,
        **totals,
        "avgInputImages": _average(totals["totalInputImages"], count),
        "avgOutputImages": _average(totals["totalOutputImages"], count),
        "avgDuplicates": _average(totals["totalDuplicates"], count),
        "casesWithRemovals": sum(1 for e in entries if e.images_removed > 0),
        "casesWithMovedImages": sum(1 for e in entries if e.moved_to_supporting_media > 0),
    }


def calculate_grouped_stats(entries: list[AuditEntry]) -> dict[str, Any]:
    by_type: dict[str, dict[str, int]] = defaultdict(lambda: {"count": 0, "entries": 0})
    for entry in entries:
        for duplicate_type in entry.duplicate_types:
            by_type[duplicate_type]["count"] += entry.duplicates_detected
            by_type[duplicate_type]["entries"] += 1

    moved_entries = [e for e in entries if e.moved_to_supporting_media > 0]
    total_moved = sum(e.moved_to_supporting_media for e in entries)

    return {
        "byMode": {
            "create": _mode_stats([e for e in entries if e.mode == "create"]),
            "edit": _mode_stats([e for e in entries if e.mode == "edit"]),
        },
        "byDuplicateType": {
            name: {**stats, "avgPerEntry": _average(stats["count"], stats["entries"])}
            for name, stats in sorted(by_type.items())
        },
        "byRemovalPattern": {
            "removedWithoutReplacement": sum(
                1 for e in entries if e.images_removed > 0 and e.moved_to_supporting_media == 0
            ),
            "removedWithReplacement": sum(
                1 for e in entries if e.images_removed > 0 and e.moved_to_supporting_media > 0
            ),
            "movedToSupportingMedia": len(moved_entries),
            "preserved": sum(
                1 for e in entries if e.images_removed == 0 and e.moved_to_supporting_media == 0
            ),
        },
        "bySupportingMedia": {
            "totalMoved": total_moved,
            "entriesWithMoves": len(moved_entries),
            "avgMovedPerEntry": _average(total_moved, len(moved_entries)),
        },
    }


def assess_risks(entries: list[AuditEntry]) -> dict[str, Any]:
    """Flag edit-mode image loss and other patterns worth a look."""
    edit_entries = [e for e in entries if e.mode == "edit"]
    loss_cases = [
        {
            "articleId": e.article_id,
            "timestamp": e.timestamp,
            "inputImages": e.total_input_images,
            "outputImages": e.total_output_images,
            "removed": e.images_removed,
            "moved": e.moved_to_supporting_media,
        }
        for e in edit_entries
        if e.total_output_images < e.total_input_images and e.moved_to_supporting_media == 0
    ]
    removed_without_replacement = [
        e for e in entries if e.images_removed > 0 and e.moved_to_supporting_media == 0
    ]
    high_duplicate = [
        e
        for e in entries
        if e.duplicates_detected > 0
        and e.duplicates_detected >= e.total_input_images * HIGH_DUPLICATE_SHARE
    ]

    risks: list[str] = []
    if removed_without_replacement:
        risks.append(
            f"{len(removed_without_replacement)} entries had images removed without moving "
            "to supportingMedia"
        )
    if loss_cases:
        risks.append(f"{len(loss_cases)} EDIT mode entries lost images without replacement")
    if high_duplicate:
        risks.append(f"{len(high_duplicate)} entries have high duplicate concentration (50%+ of input)")

    if loss_cases or len(removed_without_replacement) > len(edit_entries) * EDIT_REMOVAL_HIGH_RISK_SHARE:
        overall = "high"
    elif removed_without_replacement or high_duplicate:
        overall = "medium"
    else:
        overall = "low"

    if not entries:
        recommendations = [
            "No audit data available. Keep audit logging on to collect baseline metrics.",
        ]
    elif overall == "high":
        recommendations = [
            "HIGH RISK: resolve image loss before changing dedup behavior",
            "Investigate EDIT mode image removal cases",
        ]
    elif overall == "medium":
        recommendations = [
            "MEDIUM RISK: review removal patterns before changing dedup behavior",
            "Check that supportingMedia promotion is working",
        ]
    else:
        recommendations = [
            "LOW RISK: deduplication and pruning look safe",
            "Keep monitoring after behavior changes",
        ]
    if loss_cases:
        recommendations.append(f"Focus on {len(loss_cases)} EDIT mode cases where images were lost")

    return {
        "overallRisk": overall,
        "editModeImageLoss": {"count": len(loss_cases), "cases": loss_cases},
        "behaviorChangeRisks": risks,
        "recommendations": recommendations,
    }


def build_summary_report(entries: Iterable[AuditEntry], source: str) -> dict[str, Any]:
    entries = list(entries)
    grouped = calculate_grouped_stats(entries)
    risk = assess_risks(entries)

    by_type = grouped["byDuplicateType"]
    most_common_type = max(by_type, key=lambda name: by_type[name]["count"]) if by_type else "none"
    patterns = grouped["byRemovalPattern"]
    most_common_pattern = max(patterns, key=patterns.get)

    edit = grouped["byMode"]["edit"]
    create = grouped["byMode"]["create"]
    timestamps = sorted(e.timestamp for e in entries if e.timestamp)

    return {
        "metadata": {
            "generatedAt": datetime.now(UTC).isoformat(),
            "source": source,
            "totalEntries": len(entries),
            "dateRange": {
                "earliest": timestamps[0] if timestamps else "N/A",
                "latest": timestamps[-1] if timestamps else "N/A",
            },
        },
        "groupedStats": grouped,
        "riskAssessment": risk,
        "patterns": {
            "mostCommonDuplicateType": most_common_type,
            "mostCommonRemovalPattern": most_common_pattern,
            "editModeRemovalRate": _average(edit["casesWithRemovals"], edit["count"]),
            "createModeDeduplicationRate": _average(
                create["totalDuplicates"], create["totalInputImages"]
            ),
        },
    }


def render_markdown(report: dict[str, Any]) -> str:
    meta = report["metadata"]
    grouped = report["groupedStats"]
    risk = report["riskAssessment"]
    patterns = report["patterns"]

    lines = [
        "# Image Deduplication Audit Summary",
        "",
        f"**Generated:** {meta['generatedAt']}",
        f"**Source:** {meta['source']}",
        f"**Total Entries:** {meta['totalEntries']}",
        f"**Date Range:** {meta['dateRange']['earliest']} to {meta['dateRange']['latest']}",
        "",
        "## By Mode",
    ]
    for mode in ("create", "edit"):
        stats = grouped["byMode"][mode]
        lines += [
            "",
            f"### {mode.upper()} Mode",
            f"- **Entries:** {stats['count']}",
            f"- **Total Input Images:** {stats['totalInputImages']}",
            f"- **Total Output Images:** {stats['totalOutputImages']}",
            f"- **Total Duplicates:** {stats['totalDuplicates']}",
            f"- **Total Removed:** {stats['totalRemoved']}",
            f"- **Total Moved to SupportingMedia:** {stats['totalMovedToSupporting']}",
            f"- **Average Input Images:** {stats['avgInputImages']:.2f}",
            f"- **Average Output Images:** {stats['avgOutputImages']:.2f}",
        ]

    lines += ["", "## By Duplicate Type", ""]
    if grouped["byDuplicateType"]:
        for name, stats in grouped["byDuplicateType"].items():
            lines.append(
                f"- **{name}**: {stats['count']} duplicates across {stats['entries']} entries "
                f"(avg: {stats['avgPerEntry']:.2f} per entry)"
            )
    else:
        lines.append("No duplicate types detected.")

    lines += ["", "## By Removal Pattern", ""]
    lines += [f"- **{name}:** {count}" for name, count in grouped["byRemovalPattern"].items()]

    lines += ["", "## Risk Assessment", "", f"**Overall Risk Level:** {risk['overallRisk'].upper()}", ""]
    loss = risk["editModeImageLoss"]
    if loss["count"]:
        lines.append(f"{loss['count']} EDIT mode cases lost images without replacement:")
        for case in loss["cases"][:MAX_LISTED_CASES]:
            lines.append(
                f"- {case['timestamp']} article {case['articleId'] or 'N/A'}: "
                f"{case['inputImages']} -> {case['outputImages']} "
                f"(removed {case['removed']}, moved {case['moved']})"
            )
        if loss["count"] > MAX_LISTED_CASES:
            lines.append(f"... and {loss['count'] - MAX_LISTED_CASES} more cases")
    else:
        lines.append("No image loss cases detected in EDIT mode.")

    lines += ["", "### Behavior Change Risks", ""]
    lines += [f"- {item}" for item in risk["behaviorChangeRisks"]] or ["None identified."]
    lines += ["", "### Recommendations", ""]
    lines += [f"- {item}" for item in risk["recommendations"]]

    lines += [
        "",
        "## Patterns",
        "",
        f"- **Most Common Duplicate Type:** {patterns['mostCommonDuplicateType']}",
        f"- **Most Common Removal Pattern:** {patterns['mostCommonRemovalPattern']}",
        f"- **EDIT Mode Removal Rate:** {patterns['editModeRemovalRate'] * 100:.2f}%",
        f"- **CREATE Mode Deduplication Rate:** {patterns['createModeDeduplicationRate'] * 100:.2f}%",
        "",
    ]
    return "\n".join(lines)
