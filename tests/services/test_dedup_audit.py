"""Tests for dedup audit records and their log summary."""

import json
import logging

import pytest

from nuggets.models.media import ArticleInput
from nuggets.services.dedup_audit import AUDIT_OPERATION, build_dedup_audit, emit_dedup_audit
from nuggets.services.dedup_log_summary import (
    AuditEntry,
    build_summary_report,
    parse_audit_logs,
    render_markdown,
)
from nuggets.services.image_dedup import dedupe_images_for_create, dedupe_images_for_edit


def test_create_audit_counts_and_events():
    data = ArticleInput.model_validate(
        {"uploadedImageUrls": ["https://a.com/1.jpg"], "urls": ["https://A.com/1.jpg"]}
    )
    raw = ["https://A.com/1.jpg", "https://a.com/1.jpg"]
    result = dedupe_images_for_create(raw)

    audit = build_dedup_audit(
        mode="create",
        data=data,
        raw_input_images=raw,
        pasted_images=["https://A.com/1.jpg"],
        final_images=result.deduplicated,
        dedup_result=result,
    )

    assert audit.total_input_images == 2
    assert audit.total_output_images == 1
    assert audit.duplicates_detected == 1
    assert audit.duplicate_types == ["case-insensitive"]
    assert audit.has_changes
    assert any("pasted URL(s) duplicate uploaded" in event for event in audit.events)


def test_edit_audit_reports_moved_images():
    data = ArticleInput.model_validate({"articleId": "a1", "existingImages": ["https://a.com/1.jpg"]})
    result = dedupe_images_for_edit(
        ["https://a.com/1.jpg"], ["https://s.com/s.png"], [{"type": "image", "url": "https://s.com/s.png"}]
    )

    audit = build_dedup_audit(
        mode="edit",
        data=data,
        raw_input_images=["https://a.com/1.jpg", "https://s.com/s.png"],
        pasted_images=[],
        final_images=result.deduplicated,
        dedup_result=result,
    )

    assert audit.article_id == "a1"
    assert audit.moved_to_supporting_media == 1
    assert audit.events[0].startswith("1 existing image(s) implicitly kept")


def test_emit_skips_unchanged_submissions(caplog):
    data = ArticleInput()
    result = dedupe_images_for_create(["https://a.com/1.jpg"])
    audit = build_dedup_audit(
        mode="create",
        data=data,
        raw_input_images=["https://a.com/1.jpg"],
        pasted_images=[],
        final_images=result.deduplicated,
        dedup_result=result,
    )

    with caplog.at_level(logging.WARNING, logger="nuggets.services.dedup_audit"):
        emit_dedup_audit(audit)

    assert caplog.records == []


def test_emit_logs_structured_record(caplog):
    raw = ["https://a.com/1.jpg", "https://a.com/1.jpg?v=2"]
    result = dedupe_images_for_create(raw)
    audit = build_dedup_audit(
        mode="create",
        data=ArticleInput(),
        raw_input_images=raw,
        pasted_images=[],
        final_images=result.deduplicated,
        dedup_result=result,
    )

    with caplog.at_level(logging.WARNING, logger="nuggets.services.dedup_audit"):
        emit_dedup_audit(audit)

    record = caplog.records[0]
    assert record.operation == AUDIT_OPERATION
    assert record.context_data["duplicate_types"] == ["query-params"]


def _log_line(mode: str, **context) -> str:
    base = {
        "mode": mode,
        "article_id": None,
        "total_input_images": 2,
        "total_output_images": 2,
        "duplicates_detected": 0,
        "images_removed": 0,
        "moved_to_supporting_media": 0,
        "duplicate_types": [],
        "events": [],
    }
    base.update(context)
    return json.dumps(
        {"timestamp": "2024-05-01T00:00:00+00:00", "operation": AUDIT_OPERATION, "context_data": base}
    )


@pytest.fixture
def audit_log_dir(tmp_path):
    lines = [
        _log_line("create", duplicates_detected=1, images_removed=1, total_output_images=1,
                  duplicate_types=["query-params"]),
        _log_line("edit", article_id="a1", images_removed=1, total_output_images=1),
        json.dumps({"operation": "tag_create", "context_data": {"mode": "create"}}),
        "not json",
        "",
    ]
    (tmp_path / "nuggets_structured_1.jsonl").write_text("\n".join(lines), encoding="utf-8")
    return tmp_path


def test_parse_audit_logs_keeps_only_audit_events(audit_log_dir):
    entries = parse_audit_logs(audit_log_dir)

    assert [e.mode for e in entries] == ["create", "edit"]
    assert entries[1].article_id == "a1"


def test_summary_flags_edit_mode_image_loss(audit_log_dir):
    report = build_summary_report(parse_audit_logs(audit_log_dir), source=str(audit_log_dir))

    assert report["metadata"]["totalEntries"] == 2
    assert report["groupedStats"]["byMode"]["edit"]["casesWithRemovals"] == 1
    assert report["groupedStats"]["byDuplicateType"]["query-params"]["count"] == 1
    assert report["riskAssessment"]["overallRisk"] == "high"
    assert report["riskAssessment"]["editModeImageLoss"]["cases"][0]["articleId"] == "a1"
    assert report["patterns"]["mostCommonDuplicateType"] == "query-params"
    assert report["patterns"]["createModeDeduplicationRate"] == 0.5

    markdown = render_markdown(report)
    assert "**Overall Risk Level:** HIGH" in markdown
    assert "query-params" in markdown


def test_summary_without_entries_is_low_risk():
    report = build_summary_report([], source="none")

    assert report["riskAssessment"]["overallRisk"] == "low"
    assert report["metadata"]["dateRange"]["earliest"] == "N/A"
    assert report["patterns"]["mostCommonDuplicateType"] == "none"


def test_audit_entry_ignores_other_operations():
    assert AuditEntry.from_log_record({"operation": "other", "context_data": {"mode": "edit"}}) is None
