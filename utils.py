# utils.py
"""
Utility helpers: document IO, report generation, and console output.

- Documents are read and written in their legacy encoding with newline=""
  so that line endings survive byte-exact.
- Saves JSON, CSV, and HTML reports.
- Uses Rich for colorful, wrapped tables in the terminal.
"""

from datetime import datetime, timezone
from html import escape
from pathlib import Path
from typing import Dict, List, Mapping, Optional
import csv
import json
import os

from rich.console import Console
from rich.table import Table
from rich.text import Text

from config import (
    DEFAULT_ENCODING,
    DEFAULT_REPORT_DIR,
    LEVELS,
    OUTPUT_SUFFIX,
    PARAM_DESCRIPTIONS,
    SEVERITY_SCORES,
)
from models import AuditResult, ResourceRecord

_console = Console(markup=False)


def read_document(path: str, encoding: str = DEFAULT_ENCODING) -> str:
    """
    Read a configuration document as text, keeping its line endings.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Input XML file not found: {path}.")
    with open(path, "r", encoding=encoding, newline="") as fh:
        return fh.read()


def write_document(path: str, text: str, encoding: str = DEFAULT_ENCODING) -> str:
    with open(path, "w", encoding=encoding, newline="") as fh:
        fh.write(text)
    return path


def derive_output_path(path: str, suffix: str = OUTPUT_SUFFIX) -> str:
    """
    context.xml -> context.NEW.xml (in the same directory).
    """
    p = Path(path)
    stem = p.stem if p.suffix.lower() == ".xml" else p.name
    return str(p.with_name(f"{stem}{suffix}.xml"))


def ensure_reports_dir(path: str = DEFAULT_REPORT_DIR) -> str:
    os.makedirs(path, exist_ok=True)
    return path


def summarize(results: Mapping[int, AuditResult]) -> Dict[str, int]:
    """
    Totals per level across all resources, plus the number of compliant ones.
    """
    summary = {level: 0 for level in LEVELS}
    summary["ok"] = 0
    for result in results.values():
        for level, count in result.counts().items():
            summary[level] = summary.get(level, 0) + count
        if result.is_compliant:
            summary["ok"] += 1
    summary["resources"] = len(results)
    summary["findings_count"] = sum(len(r.issues) for r in results.values())
    return summary


def issues_to_table_rows(records: List[ResourceRecord],
                         results: Mapping[int, AuditResult]) -> List[List[str]]:
    rows: List[List[str]] = []
    for r in records:
        result = results.get(r.id, AuditResult())
        for issue in result.issues:
            rows.append([
                r.name,
                issue.param,
                issue.level,
                issue.original,
                result.suggestions.get(issue.param, ""),
                issue.message,
            ])
    return rows


def save_report(records: List[ResourceRecord], results: Mapping[int, AuditResult], mode: str,
                extra: Optional[dict] = None, out_dir: str = DEFAULT_REPORT_DIR) -> Dict[str, str]:
    """
    Save JSON, CSV, and HTML reports and return their paths.
    """
    out_dir = ensure_reports_dir(out_dir)
    now = datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None).isoformat() + "Z"
    summary = summarize(results)
    report = {
        "scan_time": now,
        "mode": mode,
        "summary": summary,
        "resources": [
            {
                "id": r.id,
                "name": r.name,
                "type": r.type,
                **results.get(r.id, AuditResult()).to_dict(),
            }
            for r in records
        ],
    }
    if extra:
        report["extra"] = extra

    base_ts = now.replace(":", "-")
    json_path = os.path.join(out_dir, f"audit-{base_ts}-{mode}.json")
    csv_path = os.path.join(out_dir, f"audit-{base_ts}-{mode}.csv")
    html_path = os.path.join(out_dir, f"audit-{base_ts}-{mode}.html")

    # JSON
    with open(json_path, "w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2)

    # CSV
    rows = issues_to_table_rows(records, results)
    fieldnames = ["resource", "param", "level", "severity", "original", "suggested", "message"]
    with open(csv_path, "w", encoding="utf-8", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=fieldnames)
        writer.writeheader()
        for resource, param, level, original, suggested, message in rows:
            writer.writerow({
                "resource": resource,
                "param": param,
                "level": level,
                "severity": SEVERITY_SCORES.get(level, 0),
                "original": original,
                "suggested": suggested,
                "message": message,
            })

    # HTML
    html_rows: List[str] = []
    html_rows.append("<!doctype html>")
    html_rows.append("<html><head><meta charset='utf-8'><title>JDBC Pool Audit</title>")
    html_rows.append("<style>body{font-family:Arial,Helvetica,sans-serif;margin:20px}table{border-collapse:collapse;width:100%}th,td{border:1px solid #ddd;padding:8px}th{background:#f2f2f2;text-align:left}tr:nth-child(even){background:#fafafa}.critical{color:#b91c1c}.warning{color:#b45309}.info{color:#0369a1}</style>")
    html_rows.append("</head><body>")
    html_rows.append(f"<h2>JDBC Pool Audit - {now} - mode: {escape(mode)}</h2>")
    html_rows.append(
        f"<p>Resources: {summary['resources']} | critical: {summary['critical']} | "
        f"warning: {summary['warning']} | info: {summary['info']} | OK: {summary['ok']}</p>"
    )
    if extra:
        html_rows.append("<div><strong>Metadata:</strong><ul>")
        for k, v in extra.items():
            html_rows.append(f"<li>{escape(str(k))}: {escape(str(v))}</li>")
        html_rows.append("</ul></div>")
    html_rows.append("<table><thead><tr><th>Resource</th><th>Parameter</th><th>Level</th><th>Original</th><th>Suggested</th><th>Message</th></tr></thead><tbody>")
    for resource, param, level, original, suggested, message in rows:
        html_rows.append(
            f"<tr><td>{escape(resource)}</td><td title='{escape(PARAM_DESCRIPTIONS.get(param, ''))}'>{escape(param)}</td>"
            f"<td class='{level}'>{level}</td><td>{escape(original)}</td><td>{escape(suggested)}</td>"
            f"<td>{escape(message)}</td></tr>"
        )
    html_rows.append("</tbody></table></body></html>")
    with open(html_path, "w", encoding="utf-8") as fh:
        fh.write("\n".join(html_rows))

    return {"json": json_path, "csv": csv_path, "html": html_path}

# --- Console printing with color/wrapping ---

def _rich_level_text(level: str):
    """
    Return a Rich Text object styled by severity.
    """
    sev = SEVERITY_SCORES.get(level, 0)
    if sev >= 8:
        return Text(level, style="bold red")
    if sev >= 5:
        return Text(level, style="bold yellow")
    return Text(level, style="cyan")


def print_summary_and_report_path(records: List[ResourceRecord], results: Mapping[int, AuditResult],
                                  report_paths: Optional[Dict[str, str]] = None, show_top: int = 10,
                                  print_full_table: bool = False, output_path: Optional[str] = None):
    """
    Print a compact summary and a colorful table of issues.
    """
    summary = summarize(results)
    _console.print("\nAudit summary:")
    _console.print(f"- Resources: {summary['resources']} (OK: {summary['ok']})")
    _console.print(
        f"- Issues: {summary['findings_count']} "
        f"(critical: {summary['critical']}, warning: {summary['warning']}, info: {summary['info']})"
    )
    rows = issues_to_table_rows(records, results)
    if rows:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Resource", style="cyan", overflow="fold")
        table.add_column("Parameter", style="magenta")
        table.add_column("Level")
        table.add_column("Original", overflow="fold")
        table.add_column("Suggested", style="green", overflow="fold")
        for r in (rows if print_full_table else rows[:show_top]):
            table.add_row(Text(r[0]), Text(r[1]), _rich_level_text(r[2]), Text(r[3]), Text(r[4]))
        _console.print(table)
        if not print_full_table and len(rows) > show_top:
            _console.print(f"({len(rows) - show_top} more; use --print-table to list all)")
    if report_paths:
        _console.print("\nSaved reports:")
        _console.print(f"- JSON: {report_paths.get('json')}")
        _console.print(f"- CSV:  {report_paths.get('csv')}")
        _console.print(f"- HTML: {report_paths.get('html')}")
    if output_path:
        _console.print(f"\nPatched document: {output_path}")
    _console.print("")
