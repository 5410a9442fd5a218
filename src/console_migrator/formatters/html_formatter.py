"""Standalone HTML formatter for migration reports."""

from html import escape

from ..models import MigrationReport
from .base import BaseFormatter

_STYLE = """
body { font-family: -apple-system, Segoe UI, Arial, sans-serif; margin: 40px; color: #222; }
.header { background: #f5f5f5; padding: 20px; border-radius: 5px; }
.success { color: #28a745; }
.failed { color: #dc3545; }
.warning { color: #b8860b; }
table { width: 100%; border-collapse: collapse; margin: 20px 0; }
th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
th { background-color: #f2f2f2; }
td.num { text-align: right; }
"""


def _status_class(report: MigrationReport) -> str:
    if report.state == "COMPLETE" and (report.validation is None or report.validation.passed):
        return "success"
    if report.state == "FAILED":
        return "failed"
    return "warning"


def _rows(cells_list) -> str:
    return "\n".join(
        "<tr>" + "".join(cell for cell in cells) + "</tr>" for cells in cells_list
    )


class HtmlFormatter(BaseFormatter):
    """Single-file HTML page with summary, components, validation and files."""

    def format(self, report: MigrationReport) -> str:
        totals = report.totals()
        status = "DRY RUN" if report.dry_run else report.state

        summary = _rows(
            [
                (f"<td>{escape(label)}</td>", f"<td class='num'>{escape(str(value))}</td>")
                for label, value in [
                    ("Files processed", totals["files_processed"]),
                    ("Calls found", totals["calls_found"]),
                    ("Calls migrated", totals["calls_migrated"]),
                    ("Calls skipped", totals["calls_skipped"]),
                    ("Partial files", totals["partial_files"]),
                    ("Failed files", totals["failed_files"]),
                    ("Coverage", f"{report.coverage:.1f}%"),
                    ("Duration", f"{report.duration_seconds:.2f}s"),
                ]
            ]
        )

        components = _rows(
            [
                (
                    f"<td>{escape(name)}</td>",
                    f"<td class='num'>{len(records)}</td>",
                    f"<td class='num'>{sum(r.calls_migrated for r in records)}</td>",
                    f"<td class='num'>{sum(r.calls_skipped for r in records)}</td>",
                )
                for name, records in report.components.items()
                if records
            ]
        )

        checks = report.validation.checks if report.validation else {}
        validation = _rows(
            [
                (
                    f"<td>{name.capitalize()}</td>",
                    "<td class='{0}'>{1}</td>".format(
                        "success" if checks[name] else "failed",
                        "passed" if checks[name] else "failed",
                    )
                    if name in checks
                    else "<td>not run</td>",
                )
                for name in ("syntax", "imports", "equivalence", "performance")
            ]
        )

        files = _rows(
            [
                (
                    f"<td>{escape(r.path)}</td>",
                    f"<td>{escape(r.component.value)}</td>",
                    f"<td class='{'success' if r.success else 'failed'}'>{r.status.value}</td>",
                    f"<td class='num'>{r.calls_migrated}/{r.calls_found}</td>",
                    f"<td>{escape(r.error or '')}</td>",
                )
                for r in report.records
            ]
        )

        warnings = ""
        if report.validation and report.validation.warnings:
            items = "".join(f"<li>{escape(w)}</li>" for w in report.validation.warnings)
            warnings = f"<h2>Warnings</h2><ul class='warning'>{items}</ul>"

        recommendations = ""
        if report.recommendations:
            items = "".join(f"<li>{escape(r)}</li>" for r in report.recommendations)
            recommendations = f"<h2>Recommendations</h2><ul>{items}</ul>"

        error = f"<p class='failed'><strong>Error:</strong> {escape(report.error)}</p>" if report.error else ""

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Console Migration Report {escape(report.run_id)}</title>
<style>{_STYLE}</style>
</head>
<body>
<div class="header">
<h1>Console Migration Report</h1>
<p><strong>Run:</strong> {escape(report.run_id)}</p>
<p><strong>Date:</strong> {escape(report.timestamp)}</p>
<p><strong>Status:</strong> <span class="{_status_class(report)}">{escape(status)}</span></p>
{error}
</div>
<h2>Summary</h2>
<table><tr><th>Metric</th><th>Value</th></tr>
{summary}
</table>
<h2>Component Breakdown</h2>
<table><tr><th>Component</th><th>Files</th><th>Calls Migrated</th><th>Calls Skipped</th></tr>
{components}
</table>
<h2>Validation</h2>
<table><tr><th>Check</th><th>Result</th></tr>
{validation}
</table>
{warnings}
<h2>Files</h2>
<table><tr><th>File</th><th>Component</th><th>Status</th><th>Migrated</th><th>Error</th></tr>
{files}
</table>
{recommendations}
</body>
</html>
"""
