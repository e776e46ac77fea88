"""Persist rendered reports beside the checked file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .utils.fileio import write_text_file

logger = logging.getLogger(__name__)

REPORT_DIRNAME = "a11y"
HTML_REPORT_NAME = "report.html"
MARKDOWN_REPORT_NAME = "report.mdx"


@dataclass(frozen=True)
class ReportPaths:
    html: Path
    markdown: Path


class ReportStore:
    """Write both report flavours under ``<base_dir>/a11y/``."""

    def __init__(self, base_dir: Union[str, Path]) -> None:
        self.base_dir = Path(base_dir)

    @property
    def report_dir(self) -> Path:
        return self.base_dir / REPORT_DIRNAME

    def paths(self) -> ReportPaths:
        return ReportPaths(
            html=self.report_dir / HTML_REPORT_NAME,
            markdown=self.report_dir / MARKDOWN_REPORT_NAME,
        )

    def write(self, html: str, markdown: str) -> ReportPaths:
        paths = self.paths()
        write_text_file(paths.html, html)
        write_text_file(paths.markdown, markdown)
        logger.info("Reports written to %s", self.report_dir)
        return paths


def store_for(input_path: Union[str, Path]) -> ReportStore:
    """Return the store placing reports next to ``input_path``."""

    return ReportStore(Path(input_path).parent)
