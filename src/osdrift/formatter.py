"""Output formatters for drift reports."""

import csv
import io
import json
from collections.abc import Callable

from rich.console import Console
from rich.table import Table
from rich.text import Text

from osdrift.models import DiffResult, ProjectDrift
from osdrift.report import DriftReport

CSV_HEADER = ["project", "resource_type", "name", "id", "parent_sg", "status", "details"]

ID_WIDTH = 12
DETAILS_WIDTH = 50
TABLE_WIDTH = 200

STATUS_COLORS = {
    "missing_in_truth": "red",
    "missing_in_state": "yellow",
    "name_changed": "cyan",
    "secgroups_changed": "magenta",
    "rule_changed": "magenta",
}


def truncate(value: str, max_len: int) -> str:
    """Shorten ``value`` to ``max_len`` characters, ending in ``...``."""
    if len(value) <= max_len:
        return value
    return value[: max_len - 3] + "..."


def display_name(drift: DiffResult) -> str:
    if drift.resource_name:
        return drift.resource_name
    if drift.parent_group:
        return f"(rule in {drift.parent_group})"
    return "(unnamed)"


def no_drift_message(project_count: int) -> str:
    return f"No drift detected across {project_count} projects."


def format_table(report: DriftReport) -> str:
    """Format the report as a fixed-width table, returned as plain text."""
    summary = report.summary
    if not report.has_drift():
        return no_drift_message(summary.total_projects)

    table = Table(box=None, show_edge=False, pad_edge=False, header_style="bold")
    for column in ("PROJECT", "RESOURCE TYPE", "NAME", "ID", "STATUS", "DETAILS"):
        # PROJECT and NAME are never cropped; long values fold onto extra lines.
        if column in ("PROJECT", "NAME"):
            table.add_column(column, overflow="fold")
        else:
            table.add_column(column, no_wrap=True)

    for project in report.projects:
        for drift in project.drifts:
            table.add_row(
                Text(project.project_name),
                Text(drift.resource_kind.value),
                Text(display_name(drift)),
                Text(truncate(drift.resource_id, ID_WIDTH)),
                Text(drift.status.value, style=STATUS_COLORS.get(drift.status, "")),
                Text(truncate(drift.details, DETAILS_WIDTH)),
            )

    console = Console(record=True, width=TABLE_WIDTH, file=io.StringIO())
    console.print(table)
    console.print()
    console.print(
        Text(f"Summary: {summary.total_projects} projects, {summary.total_drift} drift items")
    )
    console.print(Text("By status: " + status_counts(report)))
    return console.export_text().rstrip() + "\n"


def format_json(report: DriftReport) -> str:
    """Format the report as JSON."""
    if not report.has_drift():
        data = DriftReport().to_dict()
        data["summary"]["total_projects"] = report.summary.total_projects
        return json.dumps(data, indent=2)
    return json.dumps(report.to_dict(), indent=2)


def format_csv(report: DriftReport) -> str:
    """Format the report as CSV, one row per drift item."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    if not report.has_drift():
        return buf.getvalue()

    for project in report.projects:
        for drift in project.drifts:
            writer.writerow(
                [
                    project.project_name,
                    drift.resource_kind.value,
                    drift.resource_name,
                    drift.resource_id,
                    drift.parent_group,
                    drift.status.value,
                    drift.details,
                ]
            )
    return buf.getvalue()


def _escape_md_cell(value: str) -> str:
    """Escape characters that break markdown table cells."""
    return value.replace("|", "\\|").replace("\n", " ")


def format_markdown(report: DriftReport) -> str:
    """Format the report as Markdown, one table per drifted project."""
    if not report.has_drift():
        return no_drift_message(report.summary.total_projects)
    sections = [markdown_section(p) for p in report.projects if p.drifts]
    return "\n".join([markdown_heading(report), *sections])


def markdown_heading(report: DriftReport) -> str:
    summary = report.summary
    drifted = sum(1 for p in report.projects if p.drifts)
    return (
        f"## Drift Report: {summary.total_drift} items in "
        f"{drifted}/{summary.total_projects} projects\n\n"
        f"By status: {status_counts(report)}\n"
    )


def markdown_section(project: ProjectDrift) -> str:
    """One project's drift items as a Markdown table under a project heading."""
    lines = [
        f"### {_escape_md_cell(project.project_name)}",
        "",
        "| Type | Name | ID | Status | Details |",
        "|------|------|----|--------|---------|",
    ]
    for drift in project.drifts:
        lines.append(
            f"| {drift.resource_kind.value} "
            f"| {_escape_md_cell(display_name(drift))} "
            f"| `{_escape_md_cell(drift.resource_id)}` "
            f"| {drift.status.value} "
            f"| {_escape_md_cell(drift.details)} |"
        )
    return "\n".join(lines) + "\n"


def status_counts(report: DriftReport) -> str:
    """``status=count`` pairs sorted by status name."""
    by_status = report.summary.by_status
    return ", ".join(f"{status}={by_status[status]}" for status in sorted(by_status))


FORMATTERS: dict[str, Callable[[DriftReport], str]] = {
    "table": format_table,
    "json": format_json,
    "csv": format_csv,
    "markdown": format_markdown,
}
