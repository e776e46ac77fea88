"""Accessibility checks over a parsed HTML document."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from bs4 import Tag

from reviewkit.severity import Severity
from reviewkit.utils.markup import (
    MarkupDocument,
    attr,
    is_visually_hidden,
    outer_html,
    parse_tabindex,
    text_content,
)

from . import BaseRule, Category, Rule, Violation

AXE_HELP_URL = "https://dequeuniversity.com/rules/axe/4.4/{}"

VALID_ARIA_ROLES = (
    "alert",
    "alertdialog",
    "application",
    "article",
    "banner",
    "button",
    "cell",
    "checkbox",
    "columnheader",
    "combobox",
    "complementary",
    "contentinfo",
    "definition",
    "dialog",
    "directory",
    "document",
    "feed",
    "figure",
    "form",
    "grid",
    "gridcell",
    "group",
    "heading",
    "img",
    "link",
    "list",
    "listbox",
    "listitem",
    "log",
    "main",
    "marquee",
    "math",
    "menu",
    "menubar",
    "menuitem",
    "menuitemcheckbox",
    "menuitemradio",
    "navigation",
    "none",
    "note",
    "option",
    "presentation",
    "progressbar",
    "radio",
    "radiogroup",
    "region",
    "row",
    "rowgroup",
    "rowheader",
    "scrollbar",
    "search",
    "searchbox",
    "separator",
    "slider",
    "spinbutton",
    "status",
    "switch",
    "tab",
    "table",
    "tablist",
    "tabpanel",
    "term",
    "textbox",
    "timer",
    "toolbar",
    "tooltip",
    "tree",
    "treegrid",
    "treeitem",
)

UNLABELLED_INPUT_TYPES = ("hidden", "button", "submit", "reset")
BOOLEAN_STATE_ATTRIBUTES = ("aria-expanded", "aria-pressed", "aria-checked", "aria-selected")
ID_REFERENCE_ATTRIBUTES = ("aria-controls", "aria-labelledby")
WIDGET_ROLES = ("button", "link", "checkbox", "radio", "tab", "menuitem")
NATIVELY_FOCUSABLE_TAGS = ("a", "button")


def nth(prefix: str, index: int) -> str:
    return f"{prefix}:nth-of-type({index + 1})"


class MarkupRule(BaseRule):
    category = Category.MARKUP


class ImageAltRule(MarkupRule):
    id = "image-alt"
    severity = Severity.SERIOUS
    summary = "Provide alternative text for images"
    description = "Every image must carry alternative text in a non-empty alt attribute."
    pass_description = "Every image provides alternative text."
    help_reference = AXE_HELP_URL.format("image-alt")

    def applies_to(self, subject: MarkupDocument) -> Sequence[Tag]:
        return subject.select("img")

    def check(self, subject: MarkupDocument, candidate: Tag, index: int) -> List[Violation]:
        if (attr(candidate, "alt") or "").strip():
            return []
        return [Violation(outer_html(candidate), nth("img", index), "Add a descriptive alt attribute to this image.")]


class LinkNameRule(MarkupRule):
    id = "link-name"
    severity = Severity.SERIOUS
    summary = "Give links and buttons an accessible name"
    description = "Every link and button must have text content or an aria-label/aria-labelledby attribute."
    pass_description = "Every link and button has an accessible name."
    help_reference = AXE_HELP_URL.format("link-name")

    def applies_to(self, subject: MarkupDocument) -> Sequence[Tag]:
        return subject.select("a, button")

    def check(self, subject: MarkupDocument, candidate: Tag, index: int) -> List[Violation]:
        if text_content(candidate) or candidate.has_attr("aria-label") or candidate.has_attr("aria-labelledby"):
            return []
        return [
            Violation(
                outer_html(candidate),
                nth(candidate.name, index),
                "Add text content or an aria-label attribute to this element.",
            )
        ]


class LabelRule(MarkupRule):
    id = "label"
    severity = Severity.CRITICAL
    summary = "Label form controls"
    description = "Every form control must have an accessible label."
    pass_description = "Every form control has an accessible label."
    help_reference = AXE_HELP_URL.format("label")

    def applies_to(self, subject: MarkupDocument) -> Sequence[Tag]:
        return [control for control in subject.select("input, select, textarea") if not self._is_exempt(control)]

    @staticmethod
    def _is_exempt(control: Tag) -> bool:
        if control.name != "input":
            return False
        return (attr(control, "type") or "text").strip().lower() in UNLABELLED_INPUT_TYPES

    def check(self, subject: MarkupDocument, candidate: Tag, index: int) -> List[Violation]:
        if candidate.has_attr("aria-label") or candidate.has_attr("aria-labelledby"):
            return []
        if subject.has_label_for(attr(candidate, "id")):
            return []
        return [
            Violation(
                outer_html(candidate),
                nth(candidate.name, index),
                "Associate a label element with this control or add an aria-label attribute.",
            )
        ]


class HeadingOrderRule(MarkupRule):
    id = "heading-order"
    severity = Severity.MODERATE
    summary = "Heading levels should only increase by one"
    description = "Heading levels must increase one step at a time (an h1 is followed by an h2, not an h3)."
    pass_description = "Heading levels increase one step at a time."
    help_reference = AXE_HELP_URL.format("heading-order")

    def applies_to(self, subject: MarkupDocument) -> Sequence[Tuple[Tag, int]]:
        candidates: List[Tuple[Tag, int]] = []
        previous = 0
        for heading in subject.select("h1, h2, h3, h4, h5, h6"):
            candidates.append((heading, previous))
            previous = int(heading.name[1])
        return candidates

    def check(self, subject: MarkupDocument, candidate: Tuple[Tag, int], index: int) -> List[Violation]:
        heading, previous = candidate
        level = int(heading.name[1])
        if previous == 0 or level <= previous + 1:
            return []
        return [
            Violation(
                outer_html(heading),
                nth(heading.name, index),
                f"Heading level jumps from {previous} to {level}; increase levels one step at a time.",
            )
        ]


class AriaRolesRule(MarkupRule):
    id = "aria-roles"
    severity = Severity.SERIOUS
    summary = "Use valid ARIA roles"
    description = "ARIA role attributes must use a valid role value."
    pass_description = "Every ARIA role is valid."
    help_reference = AXE_HELP_URL.format("aria-roles")

    def applies_to(self, subject: MarkupDocument) -> Sequence[Tag]:
        return subject.select("[role]")

    def check(self, subject: MarkupDocument, candidate: Tag, index: int) -> List[Violation]:
        role = attr(candidate, "role")
        if role in VALID_ARIA_ROLES:
            return []
        return [Violation(outer_html(candidate), nth(f'[role="{role}"]', index), f'"{role}" is not a valid ARIA role.')]


class AriaStateRule(MarkupRule):
    id = "aria-state-and-properties"
    severity = Severity.SERIOUS
    summary = "Use ARIA states and properties correctly"
    description = (
        "aria-controls and aria-labelledby must reference an existing element id, and "
        "aria-expanded, aria-pressed, aria-checked and aria-selected only accept 'true' or 'false'."
    )
    pass_description = "Every ARIA state and property is used correctly."
    help_reference = AXE_HELP_URL.format("aria-valid-attr-value")

    def applies_to(self, subject: MarkupDocument) -> Sequence[Tag]:
        return subject.select(
            "[aria-expanded], [aria-pressed], [aria-checked], [aria-selected], "
            "[aria-controls], [aria-labelledby], [aria-describedby]"
        )

    def check(self, subject: MarkupDocument, candidate: Tag, index: int) -> List[Violation]:
        violations: List[Violation] = []
        html = outer_html(candidate)
        for name in ID_REFERENCE_ATTRIBUTES:
            if not candidate.has_attr(name):
                continue
            reference = attr(candidate, name)
            if subject.get_element_by_id(reference) is None:
                violations.append(
                    Violation(
                        html,
                        nth(f'[{name}="{reference}"]', index),
                        f'No element matches the id referenced by {name}="{reference}".',
                    )
                )
        for name in BOOLEAN_STATE_ATTRIBUTES:
            if not candidate.has_attr(name):
                continue
            value = attr(candidate, name) or ""
            if value.lower() not in ("true", "false"):
                violations.append(
                    Violation(
                        html,
                        nth(f'[{name}="{value}"]', index),
                        f"{name}=\"{value}\" only accepts 'true' or 'false'.",
                    )
                )
        return violations


class KeyboardAccessibilityRule(MarkupRule):
    id = "keyboard-accessibility"
    severity = Severity.SERIOUS
    summary = "Keep interactive elements reachable by keyboard"
    description = (
        "Elements with widget roles must be focusable, and interactive elements must not use a negative tabindex."
    )
    pass_description = "Every interactive element is reachable by keyboard."
    help_reference = AXE_HELP_URL.format("tabindex")

    def applies_to(self, subject: MarkupDocument) -> Sequence[Tag]:
        return subject.select(
            'a[href], button, [role="button"], [role="link"], [role="checkbox"], '
            '[role="radio"], [role="tab"], [role="menuitem"], [contenteditable="true"]'
        )

    def check(self, subject: MarkupDocument, candidate: Tag, index: int) -> List[Violation]:
        violations: List[Violation] = []
        html = outer_html(candidate)
        role = attr(candidate, "role")
        if (
            role in WIDGET_ROLES
            and not candidate.has_attr("tabindex")
            and candidate.name not in NATIVELY_FOCUSABLE_TAGS
        ):
            violations.append(
                Violation(
                    html,
                    nth(f'[role="{role}"]', index),
                    f'Add a tabindex attribute; elements with role="{role}" must be reachable by keyboard.',
                )
            )
        tabindex = parse_tabindex(candidate)
        if (
            tabindex is not None
            and tabindex < 0
            and not candidate.has_attr("disabled")
            and not candidate.has_attr("aria-hidden")
            and not is_visually_hidden(candidate)
        ):
            violations.append(
                Violation(
                    html,
                    nth(f'[tabindex="{attr(candidate, "tabindex")}"]', index),
                    "Use a tabindex of 0 or remove it; a negative tabindex takes the element out of the tab order.",
                )
            )
        return violations


def markup_rules() -> Tuple[Rule, ...]:
    """Return the accessibility catalog in evaluation order."""

    return (
        ImageAltRule(),
        LinkNameRule(),
        LabelRule(),
        HeadingOrderRule(),
        AriaRolesRule(),
        AriaStateRule(),
        KeyboardAccessibilityRule(),
    )
