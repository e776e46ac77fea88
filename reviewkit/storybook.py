"""Storybook integration for the accessibility checker.

Locates the HTML behind a component's stories, combines every story variant
into one document for ``--docs`` checks, and wires the generated MDX report
into the component's stories file.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .errors import ValidationError
from .utils.fileio import read_text_file, write_text_file

logger = logging.getLogger(__name__)

STORY_ROOTS = ("src/stories", "stories")
REPORT_IMPORT = "import a11yReport from './a11y/report.mdx?raw';\n"
REPORT_STORY_NAME = "accessibility-report.stories.js"
SKIPPED_STORIES = ("Default", "AccessibilityReport")

IMPORT_PATTERN = re.compile(r"import .+?from .+?['\"];?\n")
HTML_IMPORT_PATTERN = re.compile(r"import\s+\w+Html\s+from\s+['\"](.+?)['\"]")
STORY_EXPORT_PATTERN = re.compile(r"export const (\w+) = \{")
PARAMETERS_PATTERN = re.compile(r"parameters\s*:\s*\{")
TITLE_PATTERN = re.compile(r"title\s*:\s*['\"](.+?)['\"]")

REPORT_PARAMETER = """
    a11yReport: {
      disable: false,
      report: a11yReport
    },"""

REPORT_STORY_TEMPLATE = """import a11yReport from './a11y/report.mdx?raw';

export default {{
  title: '{title}/Accessibility Report',
  parameters: {{
    viewMode: 'docs',
    previewTabs: {{
      canvas: {{ hidden: true }}
    }},
    options: {{
      showPanel: false
    }}
  }}
}};

export const Report = {{
  name: 'Accessibility Report',
  render: () => {{
    const container = document.createElement('div');
    container.className = 'a11y-report';
    container.innerHTML = `
      <div style="padding: 20px; font-family: 'Arial', sans-serif;">
        <h1 style="color: #333; border-bottom: 1px solid #eee; padding-bottom: 10px;">Accessibility report</h1>
        <div style="line-height: 1.6;">
          <pre style="white-space: pre-wrap; word-break: break-word;">${{a11yReport}}</pre>
        </div>
      </div>
    `;
    return container;
  }}
}};
"""


def validate_component_html(path: Path) -> None:
    """Only ``.html`` files under a ``stories`` directory are component pages."""

    if not path.exists():
        raise ValidationError(f"{path} does not exist")
    if path.suffix != ".html" or "stories" not in path.as_posix():
        raise ValidationError(
            f"{path} is not a component HTML file (expected src/stories/<Component>/<component>.html)"
        )


def find_stories_file(component: str, root: Union[str, Path] = ".") -> Optional[Path]:
    """Return ``<root>/<stories>/<Component>/<component>.stories.js`` if present."""

    formatted = component[:1].upper() + component[1:]
    for stories_root in STORY_ROOTS:
        candidate = Path(root) / stories_root / formatted / f"{component.lower()}.stories.js"
        if candidate.exists():
            return candidate
    return None


def resolve_story_html(stories_path: Path) -> Path:
    """Return the HTML file imported by the stories file (``import xHtml from '...?raw'``)."""

    content = read_text_file(stories_path)
    match = HTML_IMPORT_PATTERN.search(content)
    if not match:
        raise ValidationError(f"No HTML import found in {stories_path}")
    html_path = stories_path.parent / match.group(1).replace("?raw", "")
    if not html_path.exists():
        raise ValidationError(f"{html_path} does not exist")
    return html_path


def story_names(stories_content: str) -> List[str]:
    return STORY_EXPORT_PATTERN.findall(stories_content)


def combine_story_markup(html: str, names: Iterable[str]) -> str:
    """Append one wrapped copy of ``html`` per story variant.

    Variants only exist when more than one story is exported; the default and
    report stories are never duplicated.
    """

    names = list(names)
    combined = html
    if len(names) <= 1:
        return combined
    for name in names:
        if name in SKIPPED_STORIES:
            continue
        combined += f"\n<!-- {name} variant -->\n<div id=\"{name.lower()}\">{html}</div>"
    return combined


def docs_markup(stories_path: Path) -> Tuple[Path, str]:
    """Return ``(html_path, combined_markup)`` for a component's docs page."""

    html_path = resolve_story_html(stories_path)
    combined = combine_story_markup(read_text_file(html_path), story_names(read_text_file(stories_path)))
    return html_path, combined


def wire_report(html_path: Path) -> Optional[Path]:
    """Import the MDX report into ``<name>.stories.js`` and create the report story.

    Returns the updated stories path, or ``None`` when nothing was changed.
    """

    stories_path = html_path.parent / f"{html_path.stem}.stories.js"
    if not stories_path.exists():
        logger.warning("Stories file %s not found; skipping report wiring", stories_path)
        return None

    content = read_text_file(stories_path)
    if "a11y/report.mdx" in content or "AccessibilityReport" in content:
        logger.info("%s already imports the accessibility report", stories_path)
        return None

    content = _add_report_import(content)
    parameters = PARAMETERS_PATTERN.search(content)
    if parameters and "a11yReport:" not in content:
        position = parameters.end()
        content = content[:position] + REPORT_PARAMETER + content[position:]

    title = ""
    title_match = TITLE_PATTERN.search(content)
    if title_match:
        title = re.sub(r"/variant$", "", title_match.group(1))

    report_story = html_path.parent / REPORT_STORY_NAME
    write_text_file(report_story, REPORT_STORY_TEMPLATE.format(title=title))
    logger.info("Created %s", report_story)
    write_text_file(stories_path, content)
    logger.info("Updated %s", stories_path)
    return stories_path


def _add_report_import(content: str) -> str:
    imports = list(IMPORT_PATTERN.finditer(content))
    if not imports:
        return REPORT_IMPORT + content
    position = imports[-1].end()
    return content[:position] + REPORT_IMPORT + content[position:]
