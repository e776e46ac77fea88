import pytest

from reviewkit.engine import RuleEngine, default_engine
from reviewkit.errors import ParseError
from reviewkit.rules import BaseRule, Category, Violation
from reviewkit.rules.markup import ImageAltRule, markup_rules
from reviewkit.rules.source import source_rules
from reviewkit.severity import Severity


class ParagraphRule(BaseRule):
    id = "no-paragraphs"
    category = Category.MARKUP
    summary = "Paragraphs are not allowed"
    description = "Test rule flagging every paragraph."
    pass_description = "No paragraphs."

    def applies_to(self, subject):
        return subject.select("p")

    def check(self, subject, candidate, index):
        if candidate.get_text() == "ok":
            return []
        return [Violation(str(candidate), f"p:nth-of-type({index + 1})", "Remove it.")]

    def severity_for(self, violations):
        return Severity.CRITICAL if len(violations) > 1 else Severity.MINOR


def test_injected_rule_aggregates_locations():
    result = RuleEngine([ParagraphRule()]).evaluate_markup("<p>a</p><p>ok</p><p>b</p>")

    assert len(result.findings) == 1
    finding = result.findings[0]
    assert finding.rule_id == "no-paragraphs"
    assert finding.severity is Severity.CRITICAL
    assert [location.selector_or_line for location in finding.locations] == ["p:nth-of-type(1)", "p:nth-of-type(3)"]


def test_severity_can_depend_on_violations():
    result = RuleEngine([ParagraphRule()]).evaluate_markup("<p>a</p>")

    assert result.findings[0].severity is Severity.MINOR


def test_rule_without_candidates_is_silent():
    result = RuleEngine([ImageAltRule()]).evaluate_markup("<p>no images</p>")

    assert result.findings == ()
    assert result.passes == ()


def test_engine_skips_other_categories():
    result = default_engine().evaluate_markup('<img src="a.png" alt="A">')

    assert {item.rule_id for item in result.passes} == {"image-alt"}


def test_findings_follow_catalog_order():
    content = "eval(code);\nconsole.log(code);\n"
    result = RuleEngine(source_rules()).evaluate_source("app.js", content)

    assert [finding.rule_id for finding in result.findings] == ["console_log", "security_eval"]


def test_only_and_without_filter_rules():
    engine = default_engine()

    assert engine.only(["image-alt", "security_eval"]).rule_ids == ("image-alt", "security_eval")
    assert "image-alt" not in engine.without(["image-alt"]).rule_ids
    assert len(engine.without(["image-alt"]).rules) == len(engine.rules) - 1


def test_disabled_rules_are_not_evaluated():
    engine = default_engine(disabled=["console_log"])
    result = engine.evaluate_source("app.js", "console.log('x');\n")

    assert "console_log" not in engine.rule_ids
    assert result.findings == ()


def test_default_catalog_ids_are_unique():
    ids = default_engine().rule_ids

    assert len(ids) == len(set(ids)) == len(markup_rules()) + len(source_rules())


def test_invalid_utf8_source_raises_parse_error():
    with pytest.raises(ParseError):
        default_engine().evaluate_source("app.js", b"\xff\xfe\x00broken")


def test_invalid_utf8_markup_raises_parse_error():
    with pytest.raises(ParseError):
        default_engine().evaluate_markup(b"<p>\xff</p>")


def test_bytes_are_decoded_as_utf8():
    result = default_engine().evaluate_source("app.js", "console.log('héllo');\n".encode("utf-8"))

    assert [finding.rule_id for finding in result.findings] == ["console_log"]
