#!/usr/bin/env python3
"""Summarize image dedup audit events from the structured JSONL logs.

Read-only: writes a JSON and a Markdown report and prints the risk summary.

Usage:
    python scripts/summarize_image_dedup_logs.py
    python scripts/summarize_image_dedup_logs.py --log-dir logs/structured --output-dir reports
"""

import argparse
import json
import os
import sys
from pathlib import Path

# Add parent directory so we can import from nuggets
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from nuggets.core.logging import get_logger, setup_logging  # noqa: E402
from nuggets.core.settings import get_settings  # noqa: E402
from nuggets.services.dedup_log_summary import (  # noqa: E402
    build_summary_report,
    parse_audit_logs,
    render_markdown,
)

setup_logging()
logger = get_logger(__name__)


def summarize(log_dir: Path, output_dir: Path) -> dict:
    entries = parse_audit_logs(log_dir)
    if entries:
        print(f"Parsed {len(entries)} audit entries from {log_dir}")
    else:
        print(f"No audit entries found in {log_dir}")

    report = build_summary_report(entries, source=str(log_dir))

    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / "image-dedup-summary.json"
    json_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    md_path = output_dir / "image-dedup-summary.md"
    md_path.write_text(render_markdown(report), encoding="utf-8")

    risk = report["riskAssessment"]
    print("=" * 80)
    print(f"Overall Risk Level: {risk['overallRisk'].upper()}")
    print(f"EDIT mode image loss cases: {risk['editModeImageLoss']['count']}")
    for item in risk["behaviorChangeRisks"]:
        print(f"  - {item}")
    print("Recommendations:")
    for item in risk["recommendations"]:
        print(f"  - {item}")
    print("=" * 80)
    print(f"Reports saved to:\n  - {json_path}\n  - {md_path}")
    return report


def main() -> None:
    """Main entry point."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Summarize image dedup audit logs")
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=settings.logs_dir / "structured",
        help="Directory holding structured JSONL logs",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("reports"),
        help="Where to write the reports (default: reports/)",
    )
    args = parser.parse_args()
    summarize(args.log_dir, args.output_dir)


if __name__ == "__main__":
    main()
