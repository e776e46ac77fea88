"""Render rule results as HTML, Markdown/MDX and plain-text feedback.

Every function here is pure: callers pass the timestamp and decide where the
text ends up.
"""

from __future__ import annotations

from datetime import datetime
from html import escape
from pathlib import PurePath
from typing import Dict, List

from .result import Finding, RuleResult, group_by_review_label, summarize
from .severity import REVIEW_BUCKETS

IMPACT_COLORS = {
    "critical": "#e74c3c",
    "serious": "#e67e22",
    "moderate": "#f1c40f",
}
DEFAULT_IMPACT_COLOR = "#3498db"
PASS_COLOR = "#27ae60"

BUCKET_TITLES = {
    "critical": "Critical issues",
    "warning": "Warnings",
    "suggestion": "Suggestions",
    "info": "Info",
}

HTML_STYLE = (
    "body{font-family:Arial,sans-serif;line-height:1.6;margin:0;padding:20px;color:#333}"
    "h1{color:#2c3e50;border-bottom:1px solid #eee;padding-bottom:10px}"
    "h2{color:#3498db;margin-top:30px}"
    ".summary{background:#f8f9fa;padding:20px;border-radius:5px;margin:20px 0}"
    ".violation{background:#ffecec;padding:15px;margin:10px 0;border-left:5px solid #e74c3c;border-radius:3px}"
    ".impact-critical{border-left-color:#e74c3c}"
    ".impact-serious{border-left-color:#e67e22}"
    ".impact-moderate{border-left-color:#f1c40f}"
    ".impact-minor,.impact-info{border-left-color:#3498db}"
    ".node-info{background:#f5f5f5;padding:10px;margin:10px 0;font-family:monospace;white-space:pre-wrap}"
    ".help-info a{color:#3498db;text-decoration:none}"
    ".pass{color:green}"
    ".timestamp{color:#777;font-size:0.9em;margin-top:50px}"
)


def impact_color(severity: str) -> str:
    return IMPACT_COLORS.get(severity, DEFAULT_IMPACT_COLOR)


def _stamp(timestamp: datetime) -> str:
    return timestamp.strftime("%Y-%m-%d %H:%M:%S")


def render_html_report(result: RuleResult, source: str, timestamp: datetime) -> str:
    """Return a standalone HTML page describing ``result``."""

    summary = summarize(result)
    name = escape(PurePath(source).name)
    rows: List[str] = []
    rows.append("<!DOCTYPE html>")
    rows.append('<html lang="en">')
    rows.append("<head>")
    rows.append('<meta charset="UTF-8">')
    rows.append('<meta name="viewport" content="width=device-width, initial-scale=1.0">')
    rows.append(f"<title>Accessibility report - {name}</title>")
    rows.append(f"<style>{HTML_STYLE}</style>")
    rows.append("</head>")
    rows.append("<body>")
    rows.append("<h1>Accessibility report</h1>")
    rows.append(f"<p>Source file: {escape(source)}</p>")
    rows.append('<div class="summary">')
    rows.append("<h2>Summary</h2>")
    rows.append(f"<p>Checked at: {_stamp(timestamp)}</p>")
    rows.append(f"<p>Violations: {summary.total_violations}</p>")
    rows.append(f"<p>Passes: {summary.total_passes}</p>")
    if summary.total_violations == 0:
        rows.append('<p><strong class="pass">No accessibility issues were found for the checked rules.</strong></p>')
    else:
        rows.append("<p><strong>Accessibility issues were found. See the details below.</strong></p>")
    rows.append("</div>")

    rows.append("<h2>Violations</h2>")
    if not result.findings:
        rows.append("<p>No violations.</p>")
    for finding in result.findings:
        rows.extend(_html_finding(finding))

    rows.append("<h2>Passes</h2>")
    rows.append("<ul>")
    for item in result.passes:
        rows.append(f"<li>{escape(item.rule_id)}: {escape(item.description)}</li>")
    rows.append("</ul>")
    rows.append(f'<div class="timestamp">Generated at: {_stamp(timestamp)}</div>')
    rows.append("</body>")
    rows.append("</html>")
    return "\n".join(rows) + "\n"


def _html_finding(finding: Finding) -> List[str]:
    severity = finding.severity.value
    rows = [
        f'<div class="violation impact-{severity}">',
        f"<h3>{escape(finding.summary)} (impact: {severity})</h3>",
        f"<p>{escape(finding.description)}</p>",
        f"<p>Rule: {escape(finding.rule_id)}</p>",
        "<h4>Affected elements:</h4>",
    ]
    for location in finding.locations:
        rows.append('<div class="node-info">')
        rows.append(f"<p>HTML: {escape(location.snippet)}</p>")
        rows.append(f"<p>Location: {escape(str(location.selector_or_line))}</p>")
        rows.append(f"<p>How to fix: {escape(location.remediation)}</p>")
        rows.append("</div>")
    if finding.help_reference:
        rows.append('<div class="help-info">')
        rows.append(f'<a href="{escape(finding.help_reference)}" target="_blank">Learn more</a>')
        rows.append("</div>")
    rows.append("</div>")
    return rows


def render_markdown_report(result: RuleResult, source: str, timestamp: datetime) -> str:
    """Return the MDX flavoured Markdown report."""

    summary = summarize(result)
    violation_color = impact_color("critical") if summary.total_violations else PASS_COLOR
    parts: List[str] = [
        f"# {PurePath(source).name} accessibility report",
        "",
        f'<div style="background-color: #f8f9fa; padding: 12px; border-radius: 4px; margin: 12px 0; '
        f'border-left: 5px solid {DEFAULT_IMPACT_COLOR};">',
        '  <h2 style="margin: 0 0 8px 0;">Summary</h2>',
        '  <ul style="margin: 0; padding-left: 20px;">',
        f"    <li><strong>Checked file:</strong> `{source}`</li>",
        f"    <li><strong>Checked at:</strong> {_stamp(timestamp)}</li>",
        f'    <li><strong>Violations:</strong> <span style="color: {violation_color}; font-weight: bold;">'
        f"{summary.total_violations}</span></li>",
        f'    <li><strong>Passes:</strong> <span style="color: {PASS_COLOR}; font-weight: bold;">'
        f"{summary.total_passes}</span></li>",
        "  </ul>",
        "</div>",
    ]

    if result.findings:
        parts.append("")
        parts.append("## Violations")
        for number, finding in enumerate(result.findings, start=1):
            parts.extend(_markdown_finding(number, finding))

    if result.passes:
        parts.append("")
        parts.append("## Passes")
        for item in result.passes:
            parts.append(
                f'<div style="background-color: #f1fff1; border-left: 5px solid {PASS_COLOR}; '
                'padding: 8px 12px; margin: 6px 0; border-radius: 4px;">'
            )
            parts.append(f'  <p style="margin: 0;"><strong>{item.rule_id}:</strong> {escape(item.description)}</p>')
            parts.append("</div>")
    return "\n".join(parts) + "\n"


def _markdown_finding(number: int, finding: Finding) -> List[str]:
    color = impact_color(finding.severity.value)
    parts = [
        f'<div style="background-color: #fff8f8; border-left: 5px solid {color}; padding: 12px; '
        'margin: 8px 0; border-radius: 4px;">',
        f'  <h3 style="margin: 0 0 8px 0;">{number}. {finding.rule_id}</h3>',
        '  <ul style="margin: 0 0 8px 0; padding-left: 20px; line-height: 1.4;">',
        f"    <li><strong>Impact:</strong> {finding.severity.value}</li>",
        f"    <li><strong>Description:</strong> {escape(finding.description)}</li>",
        f"    <li><strong>How to fix:</strong> {escape(finding.summary)}</li>",
    ]
    if finding.help_reference:
        parts.append(
            f'    <li><strong>Reference:</strong> <a href="{finding.help_reference}" target="_blank" '
            f'style="color: {DEFAULT_IMPACT_COLOR}; text-decoration: none;">Learn more</a></li>'
        )
    parts.append("  </ul>")
    for index, location in enumerate(finding.locations, start=1):
        parts.append(f'  <h4 style="margin: 8px 0 4px 0;">Affected element {index}</h4>')
        parts.append(
            '  <div style="background-color: #f5f5f5; padding: 8px; border-radius: 4px; '
            'font-family: monospace; overflow-x: auto; border: 1px solid #ddd;">'
        )
        parts.append(f"    {escape(location.snippet, quote=False)}")
        parts.append("  </div>")
        parts.append(f'  <p style="margin: 4px 0;"><strong>Failure summary:</strong> {escape(location.remediation)}</p>')
    parts.append("</div>")
    return parts


def render_text_feedback(result: RuleResult, source: str) -> str:
    """Return the plain-text review digest grouped by review bucket."""

    if not result.findings:
        return f"No issues found in {source}. Great job!"

    buckets = group_by_review_label(result)
    sections: List[str] = [f"Review results for {source}:", ""]
    for label in REVIEW_BUCKETS:
        issues = buckets[label]
        if not issues:
            continue
        sections.append(f"{BUCKET_TITLES[label]}:")
        for issue in issues:
            sections.append(f"- [line {issue['line']}] {issue['message']}")
        sections.append("")
    return "\n".join(sections).rstrip("\n") + "\n"


def _file_sections(results: Dict[str, RuleResult]) -> List[str]:
    lines: List[str] = []
    for path, result in results.items():
        if not result.findings:
            continue
        lines.append(f"### `{path}`")
        lines.append("")
        lines.append("```")
        lines.append(render_text_feedback(result, path).rstrip("\n"))
        lines.append("```")
        lines.append("")
    return lines


def render_review_comment(results: Dict[str, RuleResult]) -> str:
    """Markdown body for a pull request comment covering every reviewed file."""

    sections = _file_sections(results)
    if not sections:
        return (
            "## Automated code review\n\n"
            f"All {len(results)} changed file(s) passed the review checks. :white_check_mark:\n"
        )
    return "\n".join(["## Automated code review", ""] + sections)


def render_push_issue(results: Dict[str, RuleResult], ref: str, head_commit: str) -> str:
    """Markdown body for the tracking issue filed after a push."""

    total = sum(len(result.findings) for result in results.values())
    header = f"Automated review of push to `{ref}` (head `{head_commit[:7]}`) found {total} issue(s)."
    return "\n".join([header, ""] + _file_sections(results))
