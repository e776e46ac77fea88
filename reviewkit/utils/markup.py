"""HTML document helpers backed by BeautifulSoup."""

from __future__ import annotations

import re
from typing import List, Optional, Union

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from reviewkit.errors import ParseError

from .fileio import decode_text

TABINDEX_PATTERN = re.compile(r"^\s*([+-]?\d+)")
HIDDEN_STYLE_PATTERN = re.compile(r"(?:^|;)\s*(?:display\s*:\s*none|visibility\s*:\s*hidden)\s*(?:!important)?\s*(?:;|$)", re.I)


class MarkupDocument:
    """Parsed HTML with the lookups the accessibility rules need."""

    def __init__(self, soup: BeautifulSoup) -> None:
        self._soup = soup

    @classmethod
    def parse(cls, markup: Union[str, bytes]) -> "MarkupDocument":
        text = decode_text(markup, "markup")
        try:
            soup = BeautifulSoup(text, "html.parser")
        except ParserRejectedMarkup as exc:
            raise ParseError(f"markup could not be parsed: {exc}") from exc
        return cls(soup)

    def select(self, selector: str) -> List[Tag]:
        """Return matching elements in document order."""

        return list(self._soup.select(selector))

    def get_element_by_id(self, element_id: Optional[str]) -> Optional[Tag]:
        if not element_id:
            return None
        return self._soup.find(id=element_id)

    def has_label_for(self, element_id: Optional[str]) -> bool:
        if not element_id:
            return False
        return self._soup.find("label", attrs={"for": element_id}) is not None


def attr(element: Tag, name: str) -> Optional[str]:
    """Return an attribute as a single string (multi-valued attributes are joined)."""

    value = element.get(name)
    if value is None:
        return None
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def text_content(element: Tag) -> str:
    return element.get_text().strip()


def outer_html(element: Tag) -> str:
    return str(element)


def parse_tabindex(element: Tag) -> Optional[int]:
    """Mimic ``parseInt`` on the tabindex attribute; ``None`` when absent or not numeric."""

    value = attr(element, "tabindex")
    if value is None:
        return None
    match = TABINDEX_PATTERN.match(value)
    return int(match.group(1)) if match else None


def is_visually_hidden(element: Tag) -> bool:
    style = attr(element, "style") or ""
    return bool(HIDDEN_STYLE_PATTERN.search(style))
