"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from laterals.common.fs import write_json


def run_status(stats: dict[str, Any], validation_reports: dict[str, dict], *, strict: bool = False) -> str:
    error_count = sum(len(report.get("errors", [])) for report in validation_reports.values())
    if error_count > 0:
        return "partial"
    if strict and int(stats.get("skipped_count", 0)) > 0:
        return "partial"
    return "success"


def write_run_summary(
    out_dir: Path,
    run_id: str,
    generated_at: str,
    stats: dict[str, Any],
    validation_reports: dict[str, dict],
    outputs: dict[str, Path],
    *,
    strict: bool = False,
) -> Path:
    warning_count = sum(len(report.get("warnings", [])) for report in validation_reports.values())
    error_count = sum(len(report.get("errors", [])) for report in validation_reports.values())

    summary_path = out_dir / "reports" / "run_summary.json"
    payload = {
        "run_id": run_id,
        "generated_at": generated_at,
        "status": run_status(stats, validation_reports, strict=strict),
        "strict": strict,
        "totals": stats,
        "warning_count": warning_count,
        "error_count": error_count,
        "validation": {
            name: {
                "is_valid": report.get("is_valid", False),
                "statistics": report.get("statistics", {}),
            }
            for name, report in validation_reports.items()
        },
        "outputs": {name: path.name for name, path in outputs.items()},
    }
    write_json(summary_path, payload)
    return summary_path
