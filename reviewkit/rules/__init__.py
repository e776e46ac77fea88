"""Rule protocol and shared rule building blocks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Protocol, Sequence, Union

from reviewkit.result import Location
from reviewkit.severity import Severity


class Category(str, Enum):
    """Kinds of input a rule can evaluate."""

    MARKUP = "markup"
    SOURCE = "source"


@dataclass(frozen=True)
class Violation:
    """Detail reported by ``Rule.check`` for one violating candidate."""

    snippet: str
    selector_or_line: Union[str, int]
    remediation: str

    def to_location(self) -> Location:
        return Location(self.snippet, self.selector_or_line, self.remediation)


class Rule(Protocol):
    """Protocol implemented by every rule."""

    id: str
    category: Category
    summary: str
    description: str
    pass_description: str
    help_reference: Optional[str]

    def applies_to(self, subject: Any) -> Sequence[Any]:
        """Return the candidates this rule inspects; empty means not applicable."""

    def check(self, subject: Any, candidate: Any, index: int) -> List[Violation]:
        """Return the violations found on one candidate."""

    def severity_for(self, violations: Sequence[Violation]) -> Severity:
        """Return the severity of the finding built from ``violations``."""


class BaseRule:
    """Convenience base carrying the declarative rule attributes."""

    id = ""
    category = Category.SOURCE
    severity = Severity.INFO
    summary = ""
    description = ""
    pass_description = ""
    help_reference: Optional[str] = None

    def applies_to(self, subject: Any) -> Sequence[Any]:
        raise NotImplementedError

    def check(self, subject: Any, candidate: Any, index: int) -> List[Violation]:
        raise NotImplementedError

    def severity_for(self, violations: Sequence[Violation]) -> Severity:
        return self.severity

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"
