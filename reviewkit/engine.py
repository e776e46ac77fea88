"""Rule engine: evaluates an explicit rule catalog against one input."""

from __future__ import annotations

import logging
from typing import Iterable, List, Tuple, Union

from .result import Finding, Pass, RuleResult
from .rules import Category, Rule, Violation
from .rules.markup import markup_rules
from .rules.source import source_rules
from .utils.code import SourceFile
from .utils.fileio import decode_text
from .utils.markup import MarkupDocument

logger = logging.getLogger(__name__)

Subject = Union[MarkupDocument, SourceFile]


class RuleEngine:
    """Run an immutable tuple of rules; rules are injected, never looked up globally."""

    def __init__(self, rules: Iterable[Rule], disabled: Iterable[str] = ()) -> None:
        skip = set(disabled)
        self._rules: Tuple[Rule, ...] = tuple(rule for rule in rules if rule.id not in skip)

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    @property
    def rule_ids(self) -> Tuple[str, ...]:
        return tuple(rule.id for rule in self._rules)

    def only(self, rule_ids: Iterable[str]) -> "RuleEngine":
        keep = set(rule_ids)
        return RuleEngine(rule for rule in self._rules if rule.id in keep)

    def without(self, rule_ids: Iterable[str]) -> "RuleEngine":
        return RuleEngine(self._rules, disabled=rule_ids)

    def evaluate(self, raw: Union[str, bytes, SourceFile, MarkupDocument], category: Category) -> RuleResult:
        """Evaluate every rule of ``category`` in catalog order.

        Raises ``ParseError`` when ``raw`` cannot be read as that category.
        """

        subject = prepare(raw, category)
        findings: List[Finding] = []
        passes: List[Pass] = []
        for rule in self._rules:
            if rule.category != category:
                continue
            candidates = rule.applies_to(subject)
            if not candidates:
                continue
            violations: List[Violation] = []
            for index, candidate in enumerate(candidates):
                violations.extend(rule.check(subject, candidate, index))
            if violations:
                findings.append(
                    Finding(
                        rule_id=rule.id,
                        severity=rule.severity_for(violations),
                        summary=rule.summary,
                        description=rule.description,
                        locations=tuple(violation.to_location() for violation in violations),
                        help_reference=rule.help_reference,
                    )
                )
            else:
                passes.append(Pass(rule.id, rule.pass_description))
        logger.debug("Evaluated %s input: %d findings, %d passes", category.value, len(findings), len(passes))
        return RuleResult(findings=tuple(findings), passes=tuple(passes))

    def evaluate_markup(self, markup: Union[str, bytes]) -> RuleResult:
        return self.evaluate(markup, Category.MARKUP)

    def evaluate_source(self, path: str, content: Union[str, bytes]) -> RuleResult:
        return self.evaluate(SourceFile(path, decode_text(content, path)), Category.SOURCE)


def prepare(raw: Union[str, bytes, SourceFile, MarkupDocument], category: Category) -> Subject:
    if category is Category.MARKUP:
        if isinstance(raw, MarkupDocument):
            return raw
        return MarkupDocument.parse(raw)
    if isinstance(raw, SourceFile):
        return raw
    return SourceFile("<input>", decode_text(raw))


def default_engine(disabled: Iterable[str] = ()) -> RuleEngine:
    """Build an engine over both default catalogs."""

    return RuleEngine(markup_rules() + source_rules(), disabled=disabled)
