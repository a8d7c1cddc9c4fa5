"""
Extraction report (`migration_report.json`) and markdown summary.
"""
from __future__ import annotations

import json
import os
from datetime import datetime
from typing import Any, Dict, List

from .config import PRIORITIES

NEXT_STEPS: List[str] = [
    "Review generated SQL files for any issues",
    "Set up RDS PostgreSQL instance",
    "Apply DDL schema (alembic upgrade head)",
    "Test data import in development environment",
    "Run data validation (scripts/validate_migration.py)",
    "Schedule production migration window",
    "Point the application at RDS instead of Supabase",
]


def format_duration(seconds: float) -> str:
    total = int(round(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def priority_summary(tables: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, int]]:
    summary = {p: {"count": 0, "records": 0} for p in PRIORITIES}
    for stats in tables.values():
        bucket = summary.get(stats.get("priority"))
        if bucket is not None:
            bucket["count"] += 1
            bucket["records"] += stats.get("record_count", 0)
    return summary


def build_report(
    *,
    started_at: datetime,
    duration_seconds: float,
    tables: Dict[str, Dict[str, Any]],
    errors: List[Dict[str, Any]],
    warnings: List[str],
    dry_run: bool = False,
) -> Dict[str, Any]:
    total_records = sum(t.get("record_count", 0) for t in tables.values())
    return {
        "migration": {
            "timestamp": started_at.isoformat(),
            "duration_seconds": round(duration_seconds, 2),
            "duration_readable": format_duration(duration_seconds),
            "status": "SUCCESS" if not errors else "PARTIAL_FAILURE",
            "dry_run": dry_run,
        },
        "statistics": {
            "tables_processed": len(tables),
            "total_records": total_records,
            "records_per_second": round(total_records / max(duration_seconds, 1)),
            "errors_count": len(errors),
            "warnings_count": len(warnings),
        },
        "tables": tables,
        "errors": errors,
        "warnings": warnings,
        "priority_summary": priority_summary(tables),
        "next_steps": list(NEXT_STEPS),
    }


def render_summary_markdown(report: Dict[str, Any]) -> str:
    migration = report["migration"]
    stats = report["statistics"]
    lines = [
        "# AIedulog Database Migration Report",
        "",
        f"**Generated:** {migration['timestamp']}",
        f"**Duration:** {migration['duration_readable']}",
        f"**Status:** {migration['status']}",
        "",
        "## Summary",
        "",
        f"- **Tables Processed:** {stats['tables_processed']}",
        f"- **Total Records:** {stats['total_records']:,}",
        f"- **Average Speed:** {stats['records_per_second']:,} records/second",
        f"- **Errors:** {stats['errors_count']}",
        f"- **Warnings:** {stats['warnings_count']}",
        "",
        "## Tables by Priority",
        "",
    ]
    for priority, data in report["priority_summary"].items():
        lines.extend(
            [
                f"### {priority} Priority",
                f"- **Tables:** {data['count']}",
                f"- **Records:** {data['records']:,}",
                "",
            ]
        )

    lines.extend(
        [
            "## Table Details",
            "",
            "| Table | Records | Duration | Speed | Priority |",
            "|-------|---------|----------|-------|----------|",
        ]
    )
    for table, t in report["tables"].items():
        lines.append(
            f"| {table} | {t.get('record_count', 0):,} | {t.get('duration_seconds', 0)}s "
            f"| {t.get('avg_per_second', 0)}/sec | {t.get('priority', '')} |"
        )

    if report["errors"]:
        lines.extend(["", "## Errors", ""])
        for i, err in enumerate(report["errors"], 1):
            lines.append(f"{i}. **{err['table']}:** {err['error']} _({err['timestamp']})_")

    if report["warnings"]:
        lines.extend(["", "## Warnings", ""])
        for i, warning in enumerate(report["warnings"], 1):
            lines.append(f"{i}. {warning}")

    lines.extend(["", "## Next Steps", ""])
    for i, step in enumerate(report["next_steps"], 1):
        lines.append(f"{i}. {step}")

    lines.extend(
        [
            "",
            "## Files Generated",
            "",
            "- **Data Files:** `{table_name}.json` for each table",
            "- **SQL Inserts:** `{table_name}_inserts.sql` for each table",
            "- **Report:** `migration_report.json` (detailed)",
            "",
        ]
    )
    return "\n".join(lines)


def write_reports(output_dir: str, report: Dict[str, Any]) -> Dict[str, str]:
    report_path = os.path.join(output_dir, "migration_report.json")
    with open(report_path, "w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2, ensure_ascii=False)
    summary_path = os.path.join(output_dir, "MIGRATION_SUMMARY.md")
    with open(summary_path, "w", encoding="utf-8") as fh:
        fh.write(render_summary_markdown(report))
    return {"report": report_path, "summary": summary_path}
