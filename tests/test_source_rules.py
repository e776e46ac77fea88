from pathlib import Path

from reviewkit.engine import RuleEngine
from reviewkit.rules.source import MAX_FILE_LINES, MAX_LINE_LENGTH, source_rules
from reviewkit.severity import Severity

SAMPLE_JS = Path(__file__).resolve().parents[1] / "samples" / "problem_code.js"
CLEAN_JS = Path(__file__).resolve().parents[1] / "samples" / "clean_code.js"


def review(path, content):
    return RuleEngine(source_rules()).evaluate_source(path, content)


def finding_for(result, rule_id):
    matches = [finding for finding in result.findings if finding.rule_id == rule_id]
    return matches[0] if matches else None


def test_listener_without_removal_is_a_memory_leak():
    result = review("widget.js", "button.addEventListener('click', onClick);\n")

    finding = finding_for(result, "memory_leak")
    assert finding.severity is Severity.CRITICAL
    assert finding.locations[0].selector_or_line == 1


def test_listener_removal_suppresses_memory_leak():
    content = (
        "button.addEventListener('click', onClick);\n"
        "button.removeEventListener('click', onClick);\n"
    )
    result = review("widget.js", content)

    assert finding_for(result, "memory_leak") is None
    assert "memory_leak" in {item.rule_id for item in result.passes}


def test_large_file_threshold():
    at_limit = "\n".join(["x"] * MAX_FILE_LINES)
    over_limit = "\n".join(["x"] * (MAX_FILE_LINES + 1))

    assert finding_for(review("big.js", at_limit), "large_file") is None
    finding = finding_for(review("big.js", over_limit), "large_file")
    assert finding.severity is Severity.MINOR


def test_long_line_reports_line_number():
    content = "short = 1\n" + "x = '" + "a" * MAX_LINE_LENGTH + "'\n"
    result = review("tool.py", content)

    finding = finding_for(result, "long_line")
    assert [location.selector_or_line for location in finding.locations] == [2]


def test_console_log_location_is_first_occurrence():
    result = review("app.js", "const a = 1;\nconsole.log(a);\nconsole.log(a);\n")

    finding = finding_for(result, "console_log")
    assert finding.severity is Severity.MODERATE
    assert finding.locations[0].selector_or_line == 2
    assert finding.locations[0].snippet == "console.log(a);"


def test_print_statement_only_applies_to_python():
    python = review("tool.py", "print('hello')\n")
    script = review("tool.js", "print('hello')\n")

    assert finding_for(python, "print_statement") is not None
    assert finding_for(script, "print_statement") is None
    assert "print_statement" not in {item.rule_id for item in script.passes}


def test_todo_comment_applies_to_any_language():
    result = review("tool.py", "# TODO: handle retries\nvalue = 1\n")

    finding = finding_for(result, "todo_comment")
    assert finding.severity is Severity.INFO


def test_unused_variable_is_reported_per_declaration():
    content = "const unused = 1;\nconst used = 2;\nrender(used);\n"
    result = review("app.js", content)

    finding = finding_for(result, "unused_variable")
    assert len(finding.locations) == 1
    assert finding.locations[0].selector_or_line == 1
    assert "'unused'" in finding.locations[0].remediation


def test_eval_and_inner_html_are_critical():
    content = "const out = eval(input);\nnode.innerHTML = out;\n"
    result = review("app.js", content)

    assert finding_for(result, "security_eval").severity is Severity.CRITICAL
    assert finding_for(result, "security_innerhtml").locations[0].selector_or_line == 2


def test_inner_html_comparison_is_not_an_assignment():
    result = review("app.js", "if (node.innerHTML === '') { reset(); }\n")

    assert finding_for(result, "security_innerhtml") is None


def test_timer_without_clear_is_reported():
    leaking = review("poll.js", "setTimeout(tick, 10);\n")
    cleared = review("poll.js", "const id = setTimeout(tick, 10);\nclearTimeout(id);\n")

    assert finding_for(leaking, "timer_leak") is not None
    assert finding_for(cleared, "timer_leak") is None


def test_then_without_catch_is_unhandled():
    unhandled = review("api.js", "fetch(url).then(render);\n")
    handled = review("api.js", "fetch(url).then(render).catch(report);\n")

    assert finding_for(unhandled, "unhandled_promise") is not None
    assert finding_for(handled, "unhandled_promise") is None


def test_long_function_is_reported():
    body = "\n".join(f"  step{n}();" for n in range(60))
    content = f"function process() {{\n{body}\n}}\n"
    result = review("steps.js", content)

    finding = finding_for(result, "long_function")
    assert finding.locations[0].selector_or_line == 1
    assert "process" in finding.locations[0].remediation


def test_ui_rules_only_apply_to_components():
    content = '<div onClick={open}><img src="a.png" /></div>\n'
    component = review("Card.jsx", content)
    script = review("card.js", content)

    assert finding_for(component, "a11y_click_handler") is not None
    assert finding_for(component, "a11y_img_alt") is not None
    assert finding_for(script, "a11y_click_handler") is None
    assert finding_for(script, "a11y_img_alt") is None


def test_keyboard_handler_satisfies_click_rule():
    content = '<div onClick={open} onKeyDown={open}><img src="a.png" alt="Cover" /></div>\n'
    result = review("Card.jsx", content)

    assert finding_for(result, "a11y_click_handler") is None
    assert finding_for(result, "a11y_img_alt") is None


def test_evaluation_is_idempotent():
    content = SAMPLE_JS.read_text(encoding="utf-8")

    assert review("problem_code.js", content) == review("problem_code.js", content)


def test_problem_sample_triggers_expected_rules():
    result = review("problem_code.js", SAMPLE_JS.read_text(encoding="utf-8"))
    rule_ids = {finding.rule_id for finding in result.findings}

    assert {
        "console_log",
        "memory_leak",
        "unused_variable",
        "todo_comment",
        "excessive_dom_query",
        "security_eval",
        "security_innerhtml",
        "timer_leak",
        "nested_conditionals",
        "magic_numbers",
        "unhandled_promise",
    } <= rule_ids


def test_clean_sample_has_no_findings():
    result = review("clean_code.js", CLEAN_JS.read_text(encoding="utf-8"))

    assert result.findings == ()
