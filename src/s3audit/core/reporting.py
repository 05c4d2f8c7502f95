from __future__ import annotations

import csv
import io
import json
from typing import Any, Dict, List, Mapping

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import AuditReport, CheckResult, Severity, Status
from .registry import CheckRegistry

FORMATS = ("table", "csv", "json")
CSV_COLUMNS = ("bucket", "check", "verdict", "detail")

STATUS_STYLES = {
    Status.PASS: "green",
    Status.FAIL: "bold red",
    Status.WARN: "yellow",
    Status.SKIP: "dim",
    Status.ERROR: "bold magenta",
}
SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "dim",
}


def _result_dict(r: CheckResult) -> Dict[str, Any]:
    return {
        "check": r.check,
        "status": r.status.value,
        "reason": r.reason,
        "detail": r.detail,
        "duration_ms": r.duration_ms,
    }


def to_json(report: AuditReport) -> str:
    """Convert an audit report to JSON format.

    Args:
        report: Audit report to serialise

    Returns:
        Pretty-printed JSON string with one entry per bucket
    """
    return json.dumps({
        "buckets": [
            {
                "name": bucket_report.bucket.name,
                "region": bucket_report.bucket.region,
                "results": [_result_dict(r) for r in bucket_report.results],
            } for bucket_report in report.bucket_reports
        ],
        "summary": {status.value: count for status, count in sorted(report.status_counts().items())},
    }, indent=2, default=str)


def to_csv(report: AuditReport) -> str:
    """Convert an audit report to CSV, one row per check result.

    The ``verdict`` column holds the status and ``detail`` the reason.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for r in report.results():
        writer.writerow([r.bucket.name, r.check, r.status.value, r.reason])
    return buffer.getvalue()


def to_table(
    report: AuditReport,
    *,
    registry: CheckRegistry | None = None,
    color: bool = True,
) -> Table:
    """Build a rich table with one row per check result."""
    table = Table(
        title="S3 Audit Report",
        title_style="bold cyan" if color else "",
        show_lines=True,
        box=box.SQUARE,
    )
    table.add_column("Bucket", style="bold" if color else "")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Severity")
    table.add_column("Details", overflow="fold")

    for r in report.results():
        status_cell = Text(r.status.value)
        severity: Severity | None = None
        if registry is not None and r.check in registry:
            severity = registry.get(r.check).meta.severity
        severity_cell = Text(severity.value if severity else "-")
        if color:
            status_style = STATUS_STYLES.get(r.status)
            if status_style:
                status_cell.stylize(status_style)
            severity_style = SEVERITY_STYLES.get(severity) if severity else None
            if severity_style:
                severity_cell.stylize(severity_style)
        table.add_row(r.bucket.name, r.check, status_cell, severity_cell, Text(r.reason or "-"))
    return table


def render(
    report: AuditReport,
    fmt: str,
    *,
    registry: CheckRegistry | None = None,
    color: bool = True,
    width: int | None = None,
) -> str:
    """Render a report in one of FORMATS.

    Raises:
        ValueError: If ``fmt`` is not a known format
    """
    if fmt == "json":
        return to_json(report)
    if fmt == "csv":
        return to_csv(report)
    if fmt == "table":
        console = Console(
            file=io.StringIO(),
            force_terminal=color,
            no_color=not color,
            width=width,
            record=True,
        )
        console.print(to_table(report, registry=registry, color=color))
        return console.export_text(styles=color)
    raise ValueError(f"Unknown format '{fmt}', expected one of: {', '.join(FORMATS)}")


def parse_csv(text: str) -> List[Mapping[str, str]]:
    """Read rows written by to_csv back into dictionaries."""
    return list(csv.DictReader(io.StringIO(text)))
