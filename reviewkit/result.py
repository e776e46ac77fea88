"""Core result data structures and the finding aggregator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .severity import REVIEW_BUCKETS, SEVERITY_ORDER, Severity


@dataclass(frozen=True)
class Location:
    """One concrete occurrence of a finding."""

    snippet: str
    selector_or_line: Union[str, int]
    remediation: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "snippet": self.snippet,
            "selectorOrLine": self.selector_or_line,
            "remediation": self.remediation,
        }


@dataclass(frozen=True)
class Finding:
    """A rule violation aggregating every violating location."""

    rule_id: str
    severity: Severity
    summary: str
    description: str
    locations: Tuple[Location, ...]
    help_reference: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.locations:
            raise ValueError(f"Finding {self.rule_id} needs at least one location")

    def to_dict(self) -> Dict[str, object]:
        return {
            "ruleId": self.rule_id,
            "severity": self.severity.value,
            "summary": self.summary,
            "description": self.description,
            "helpReference": self.help_reference,
            "locations": [location.to_dict() for location in self.locations],
        }


@dataclass(frozen=True)
class Pass:
    """Record that a rule had targets and found nothing wrong."""

    rule_id: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"ruleId": self.rule_id, "description": self.description}


@dataclass(frozen=True)
class RuleResult:
    """Bundle findings and passes in rule evaluation order."""

    findings: Tuple[Finding, ...] = ()
    passes: Tuple[Pass, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "findings": [finding.to_dict() for finding in self.findings],
            "passes": [item.to_dict() for item in self.passes],
        }


@dataclass
class Summary:
    """Aggregate counts over a rule result."""

    total_violations: int = 0
    total_passes: int = 0
    by_rule_id: Dict[str, int] = field(default_factory=dict)
    by_severity: Dict[str, int] = field(
        default_factory=lambda: {severity.value: 0 for severity in SEVERITY_ORDER}
    )

    def add_finding(self, finding: Finding) -> None:
        self.total_violations += 1
        self.by_severity[finding.severity.value] += 1
        self.by_rule_id[finding.rule_id] = self.by_rule_id.get(finding.rule_id, 0) + len(finding.locations)

    def as_rows(self) -> List[Tuple[str, int]]:
        """Return severity/count pairs ordered for reporting."""

        return [(severity.value, self.by_severity[severity.value]) for severity in SEVERITY_ORDER]

    @property
    def passed(self) -> bool:
        return (
            self.by_severity[Severity.CRITICAL.value] == 0
            and self.by_severity[Severity.SERIOUS.value] == 0
            and self.by_severity[Severity.MODERATE.value] == 0
        )

    def exit_code(self) -> int:
        if self.by_severity[Severity.CRITICAL.value] > 0 or self.by_severity[Severity.SERIOUS.value] > 0:
            return 2
        if self.by_severity[Severity.MODERATE.value] > 0:
            return 1
        return 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "totalViolations": self.total_violations,
            "totalPasses": self.total_passes,
            "byRuleId": dict(self.by_rule_id),
            "bySeverity": dict(self.by_severity),
        }


def summarize(result: RuleResult) -> Summary:
    """Count findings by rule id and severity."""

    summary = Summary(total_passes=len(result.passes))
    for finding in result.findings:
        summary.add_finding(finding)
    return summary


def top_findings(result: RuleResult, limit: int = 5) -> List[Finding]:
    """Return findings ordered by severity ranking."""

    ordered = sorted(result.findings, key=lambda finding: (finding.severity.rank, finding.rule_id))
    return ordered[:limit]


def group_by_review_label(result: RuleResult) -> Dict[str, List[Dict[str, object]]]:
    """Split findings into the four review buckets, one issue per location."""

    buckets: Dict[str, List[Dict[str, object]]] = {label: [] for label in REVIEW_BUCKETS}
    for finding in result.findings:
        label = finding.severity.review_label
        for location in finding.locations:
            buckets[label].append(
                {
                    "type": finding.rule_id,
                    "message": finding.summary,
                    "severity": label,
                    "line": location.selector_or_line,
                }
            )
    return buckets


def format_summary_table(result: RuleResult, max_findings: int = 5) -> str:
    """Create a human-readable summary table for console output."""

    summary = summarize(result)
    lines: List[str] = []
    lines.append("Review Summary")
    lines.append("=" * 40)
    header = f"{'Severity':<10} | {'Count':>5}"
    lines.append(header)
    lines.append("-" * len(header))
    for severity, count in summary.as_rows():
        lines.append(f"{severity:<10} | {count:>5}")
    lines.append("-" * len(header))
    status = "PASS" if summary.passed else "FAIL"
    lines.append(f"Status    : {status}")
    lines.append(f"Violations: {summary.total_violations}")
    lines.append(f"Passes    : {summary.total_passes}")

    findings = top_findings(result, max_findings)
    if findings:
        lines.append("")
        lines.append("Top Findings")
        lines.append("-" * 40)
        for finding in findings:
            lines.append(f"[{finding.severity.value}] {finding.rule_id}: {finding.summary}")
            lines.append(f"  Location: {finding.locations[0].selector_or_line}")
    return "\n".join(lines)
