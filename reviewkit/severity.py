"""Severity definitions shared by the accessibility and code review catalogs."""

from __future__ import annotations

from enum import Enum


class Severity(str, Enum):
    """Enumerate the supported severity levels, most severe first."""

    CRITICAL = "critical"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Return the position in the ordered scale (0 is the most severe)."""

        return SEVERITY_ORDER.index(self)

    @property
    def review_label(self) -> str:
        """Return the bucket name used by code review feedback."""

        return REVIEW_LABELS[self]

    @classmethod
    def parse(cls, label: str) -> "Severity":
        """Resolve either vocabulary (axe impacts or review labels) to a severity."""

        try:
            return SEVERITY_ALIASES[str(label).strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown severity label: {label!r}") from None


SEVERITY_ORDER = (
    Severity.CRITICAL,
    Severity.SERIOUS,
    Severity.MODERATE,
    Severity.MINOR,
    Severity.INFO,
)

SEVERITY_ALIASES = {
    "critical": Severity.CRITICAL,
    "serious": Severity.SERIOUS,
    "moderate": Severity.MODERATE,
    "warning": Severity.MODERATE,
    "minor": Severity.MINOR,
    "suggestion": Severity.MINOR,
    "info": Severity.INFO,
}

REVIEW_LABELS = {
    Severity.CRITICAL: "critical",
    Severity.SERIOUS: "critical",
    Severity.MODERATE: "warning",
    Severity.MINOR: "suggestion",
    Severity.INFO: "info",
}

# Bucket order for review feedback.
REVIEW_BUCKETS = ("critical", "warning", "suggestion", "info")
