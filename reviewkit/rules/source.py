"""Heuristic code review checks over a single source file.

These are substring and regex heuristics, not parsers: false positives such as
an unused-variable match inside a longer identifier are part of their contract.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from reviewkit.severity import Severity
from reviewkit.utils.code import SourceFile

from . import BaseRule, Category, Rule, Violation

MAX_FILE_LINES = 100
MAX_LINE_LENGTH = 100
MAX_DOM_QUERIES = 5
MAX_FUNCTION_LINES = 50
MAX_MAGIC_NUMBERS = 5
ALLOWED_NUMBERS = ("0", "1", "100")
MIN_DUPLICATE_LINE_LENGTH = 30
MAX_DUPLICATE_LINES = 3

DECLARATION_PATTERN = re.compile(r"\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)")
DOM_QUERY_PATTERN = re.compile(
    r"\b(?:querySelector|querySelectorAll|getElementById|getElementsByClassName|"
    r"getElementsByTagName|getElementsByName)\s*\("
)
EVAL_PATTERN = re.compile(r"\beval\s*\(|\bnew\s+Function\s*\(")
INNER_HTML_PATTERN = re.compile(r"\.innerHTML\s*(?:\+)?=(?!=)")
NESTED_IF_PATTERN = re.compile(
    r"if\s*\([^)]*\)\s*\{[^}]*if\s*\([^)]*\)\s*\{[^}]*if\s*\([^)]*\)\s*\{"
)
FUNCTION_PATTERN = re.compile(r"function\s*([\w$]*)\s*\([^)]*\)\s*\{")
NUMBER_PATTERN = re.compile(r"\b\d+(?:\.\d+)?\b")
CLICK_HANDLER_PATTERN = re.compile(r"\bonClick\s*=")
KEY_HANDLER_PATTERN = re.compile(r"\bonKey(?:Down|Up|Press)\s*=")
IMG_TAG_PATTERN = re.compile(r"<img\b[^>]*>", re.S)
ALT_ATTRIBUTE_PATTERN = re.compile(r"\balt\s*=")
COMMENT_PREFIXES = ("//", "/*", "*", "#")
TIMER_PAIRS = (("setInterval(", "clearInterval("), ("setTimeout(", "clearTimeout("))


class SourceRule(BaseRule):
    """Rule evaluated against a whole file of one language family.

    ``languages`` limits the rule to ``SourceFile.language`` values; ``None``
    applies it to every file.
    """

    category = Category.SOURCE
    languages: Optional[Tuple[str, ...]] = ("script",)
    ui_only = False

    def matches(self, subject: SourceFile) -> bool:
        if self.ui_only and not subject.is_ui_component:
            return False
        return self.languages is None or subject.language in self.languages

    def applies_to(self, subject: SourceFile) -> Sequence[object]:
        return [subject] if self.matches(subject) else []

    def at_line(self, subject: SourceFile, line: int, remediation: str = "") -> Violation:
        return Violation(subject.line_text(line), line, remediation or self.description)


class ConsoleLogRule(SourceRule):
    id = "console_log"
    severity = Severity.MODERATE
    summary = "Production code contains console.log"
    description = "Remove console.log calls or route them through a logger."
    pass_description = "No console.log calls."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        if "console.log(" not in subject.content:
            return []
        return [self.at_line(subject, subject.find_line("console.log("))]


class PrintStatementRule(SourceRule):
    id = "print_statement"
    languages = ("python",)
    severity = Severity.MODERATE
    summary = "Production code contains print statements"
    description = "Replace print calls with logging."
    pass_description = "No print statements."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        if "print(" not in subject.content:
            return []
        return [self.at_line(subject, subject.find_line("print("))]


class LargeFileRule(SourceRule):
    id = "large_file"
    severity = Severity.MINOR
    summary = f"File is too large; keep it under {MAX_FILE_LINES} lines"
    description = "Split the file into smaller modules."
    pass_description = f"File has at most {MAX_FILE_LINES} lines."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        if len(subject.lines) <= MAX_FILE_LINES:
            return []
        return [Violation(f"{len(subject.lines)} lines", 1, self.description)]


class MemoryLeakRule(SourceRule):
    id = "memory_leak"
    severity = Severity.CRITICAL
    summary = "addEventListener is used without removeEventListener; listeners may leak"
    description = "Remove event listeners when the element or component is torn down."
    pass_description = "Every event listener has a removal path."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        if "addEventListener" not in subject.content or "removeEventListener" in subject.content:
            return []
        return [self.at_line(subject, subject.find_line("addEventListener"))]


class UnusedVariableRule(SourceRule):
    id = "unused_variable"
    severity = Severity.MODERATE
    summary = "Variable is declared but never used"
    description = "Remove the unused declaration."
    pass_description = "Every declared variable is used."

    def applies_to(self, subject: SourceFile) -> Sequence[object]:
        if not self.matches(subject):
            return []
        return list(DECLARATION_PATTERN.finditer(subject.content))

    def check(self, subject: SourceFile, candidate: "re.Match[str]", index: int) -> List[Violation]:
        name = candidate.group(1)
        usage = re.compile(rf"\b{re.escape(name)}\b")
        if usage.search(subject.content, candidate.end()):
            return []
        line = subject.line_of_offset(candidate.start())
        return [self.at_line(subject, line, f"Remove '{name}' or use it.")]


class TodoCommentRule(SourceRule):
    id = "todo_comment"
    languages = None
    severity = Severity.INFO
    summary = "Unfinished TODO comment"
    description = "Resolve the TODO or track it in an issue."
    pass_description = "No TODO comments."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        if "TODO" not in subject.content:
            return []
        return [self.at_line(subject, subject.find_line("TODO"))]


class LongLineRule(SourceRule):
    id = "long_line"
    languages = None
    severity = Severity.MINOR
    summary = f"Line is longer than {MAX_LINE_LENGTH} characters"
    description = "Wrap the line."
    pass_description = f"Every line is at most {MAX_LINE_LENGTH} characters."

    def applies_to(self, subject: SourceFile) -> Sequence[object]:
        return subject.lines if self.matches(subject) else []

    def check(self, subject: SourceFile, candidate: str, index: int) -> List[Violation]:
        if len(candidate) <= MAX_LINE_LENGTH:
            return []
        return [Violation(candidate.strip(), index + 1, self.description)]


class ExcessiveDomQueryRule(SourceRule):
    id = "excessive_dom_query"
    severity = Severity.MINOR
    summary = f"More than {MAX_DOM_QUERIES} DOM queries; cache element references"
    description = "Query each element once and keep the reference."
    pass_description = "DOM queries are kept to a minimum."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        matches = list(DOM_QUERY_PATTERN.finditer(subject.content))
        if len(matches) <= MAX_DOM_QUERIES:
            return []
        line = subject.line_of_offset(matches[0].start())
        return [self.at_line(subject, line, f"{len(matches)} DOM queries found; {self.description}")]


class EvalRule(SourceRule):
    id = "security_eval"
    severity = Severity.CRITICAL
    summary = "Dynamic code execution (eval / new Function) is a security risk"
    description = "Never execute strings as code; parse data explicitly instead."
    pass_description = "No dynamic code execution."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        return [
            self.at_line(subject, subject.line_of_offset(match.start()))
            for match in EVAL_PATTERN.finditer(subject.content)
        ]


class InnerHtmlRule(SourceRule):
    id = "security_innerhtml"
    severity = Severity.CRITICAL
    summary = "Assigning to innerHTML without sanitizing enables XSS"
    description = "Use textContent or sanitize the markup before assigning it."
    pass_description = "No unsanitized innerHTML assignments."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        return [
            self.at_line(subject, subject.line_of_offset(match.start()))
            for match in INNER_HTML_PATTERN.finditer(subject.content)
        ]


class TimerLeakRule(SourceRule):
    id = "timer_leak"
    severity = Severity.MODERATE
    summary = "Timer is set without a matching clear call"
    description = "Keep the timer id and clear it when it is no longer needed."
    pass_description = "Every timer has a matching clear call."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        violations: List[Violation] = []
        for setter, clearer in TIMER_PAIRS:
            if setter in subject.content and clearer not in subject.content:
                violations.append(
                    self.at_line(subject, subject.find_line(setter), f"Call {clearer[:-1]} for every {setter[:-1]}.")
                )
        return violations


class NestedConditionalRule(SourceRule):
    id = "nested_conditionals"
    severity = Severity.MINOR
    summary = "Conditionals are nested three or more levels deep"
    description = "Flatten the logic with early returns or helper functions."
    pass_description = "Conditionals are shallow."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        return [
            self.at_line(subject, subject.line_of_offset(match.start()))
            for match in NESTED_IF_PATTERN.finditer(subject.content)
        ]


class LongFunctionRule(SourceRule):
    id = "long_function"
    severity = Severity.MINOR
    summary = f"Function is longer than {MAX_FUNCTION_LINES} lines"
    description = "Split the function into smaller functions with one job each."
    pass_description = f"Every function is at most {MAX_FUNCTION_LINES} lines."

    def applies_to(self, subject: SourceFile) -> Sequence[object]:
        if not self.matches(subject):
            return []
        return list(FUNCTION_PATTERN.finditer(subject.content))

    def check(self, subject: SourceFile, candidate: "re.Match[str]", index: int) -> List[Violation]:
        end = _closing_brace(subject.content, candidate.end() - 1)
        if end is None:
            return []
        start_line = subject.line_of_offset(candidate.start())
        length = subject.line_of_offset(end) - start_line + 1
        if length <= MAX_FUNCTION_LINES:
            return []
        name = candidate.group(1) or "<anonymous>"
        return [self.at_line(subject, start_line, f"{name} spans {length} lines; {self.description}")]


class MagicNumberRule(SourceRule):
    id = "magic_numbers"
    severity = Severity.MINOR
    summary = f"More than {MAX_MAGIC_NUMBERS} distinct magic numbers"
    description = "Replace numeric literals with named constants."
    pass_description = "Numeric literals are kept to a minimum."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        numbers: List[str] = []
        first_offset = None
        for match in NUMBER_PATTERN.finditer(subject.content):
            value = match.group(0)
            if value in ALLOWED_NUMBERS:
                continue
            if first_offset is None:
                first_offset = match.start()
            if value not in numbers:
                numbers.append(value)
        if len(numbers) <= MAX_MAGIC_NUMBERS:
            return []
        line = subject.line_of_offset(first_offset)
        return [Violation(", ".join(numbers), line, self.description)]


class UnhandledPromiseRule(SourceRule):
    id = "unhandled_promise"
    severity = Severity.MODERATE
    summary = "Promise chain uses .then without .catch"
    description = "Handle rejections with .catch or try/await."
    pass_description = "Promise rejections are handled."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        if ".then(" not in subject.content or ".catch(" in subject.content:
            return []
        return [self.at_line(subject, subject.find_line(".then("))]


class DuplicateCodeRule(SourceRule):
    id = "duplicate_code"
    severity = Severity.MINOR
    summary = "Duplicated lines of code"
    description = "Extract the repeated code into a shared function."
    pass_description = "No significant duplicated code."

    def check(self, subject: SourceFile, candidate: object, index: int) -> List[Violation]:
        first_seen = {}
        counts: Counter = Counter()
        for number, raw in enumerate(subject.lines, start=1):
            line = raw.strip()
            if len(line) <= MIN_DUPLICATE_LINE_LENGTH or line.startswith(COMMENT_PREFIXES):
                continue
            counts[line] += 1
            first_seen.setdefault(line, number)
        duplicates = [line for line, count in counts.items() if count > 1]
        if len(duplicates) <= MAX_DUPLICATE_LINES:
            return []
        return [
            Violation(line, first_seen[line], f"Repeated {counts[line]} times; {self.description}")
            for line in duplicates
        ]


class ClickHandlerRule(SourceRule):
    id = "a11y_click_handler"
    ui_only = True
    severity = Severity.MODERATE
    summary = "onClick handler without a keyboard handler"
    description = "Add onKeyDown (or use a button) so the action works from the keyboard."
    pass_description = "Click handlers have keyboard equivalents."

    def applies_to(self, subject: SourceFile) -> Sequence[object]:
        if not self.matches(subject):
            return []
        return list(CLICK_HANDLER_PATTERN.finditer(subject.content))

    def check(self, subject: SourceFile, candidate: "re.Match[str]", index: int) -> List[Violation]:
        if KEY_HANDLER_PATTERN.search(subject.content):
            return []
        return [self.at_line(subject, subject.line_of_offset(candidate.start()))]


class ImgAltAttributeRule(SourceRule):
    id = "a11y_img_alt"
    ui_only = True
    severity = Severity.MODERATE
    summary = "img element without an alt attribute"
    description = "Add an alt attribute describing the image."
    pass_description = "Every img element has an alt attribute."

    def applies_to(self, subject: SourceFile) -> Sequence[object]:
        if not self.matches(subject):
            return []
        return list(IMG_TAG_PATTERN.finditer(subject.content))

    def check(self, subject: SourceFile, candidate: "re.Match[str]", index: int) -> List[Violation]:
        if ALT_ATTRIBUTE_PATTERN.search(candidate.group(0)):
            return []
        line = subject.line_of_offset(candidate.start())
        return [Violation(candidate.group(0), line, self.description)]


def _closing_brace(content: str, open_index: int) -> Optional[int]:
    """Return the offset of the brace closing the one at ``open_index``."""

    depth = 0
    for offset in range(open_index, len(content)):
        char = content[offset]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return offset
    return None


def source_rules() -> Tuple[Rule, ...]:
    """Return the code review catalog in evaluation order."""

    return (
        ConsoleLogRule(),
        PrintStatementRule(),
        LargeFileRule(),
        MemoryLeakRule(),
        UnusedVariableRule(),
        TodoCommentRule(),
        LongLineRule(),
        ExcessiveDomQueryRule(),
        EvalRule(),
        InnerHtmlRule(),
        TimerLeakRule(),
        NestedConditionalRule(),
        LongFunctionRule(),
        MagicNumberRule(),
        UnhandledPromiseRule(),
        DuplicateCodeRule(),
        ClickHandlerRule(),
        ImgAltAttributeRule(),
    )
