"""Source code helper utilities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Generator, Iterable, List

SCRIPT_EXTENSIONS = ("js", "jsx", "ts", "tsx")
PYTHON_EXTENSIONS = ("py",)
UI_COMPONENT_EXTENSIONS = ("jsx", "tsx")


@dataclass(frozen=True)
class SourceFile:
    """A file under review: its repository path and decoded text."""

    path: str
    content: str

    @property
    def extension(self) -> str:
        return self.path.rsplit(".", 1)[-1].lower()

    @property
    def language(self) -> str:
        if self.extension in SCRIPT_EXTENSIONS:
            return "script"
        if self.extension in PYTHON_EXTENSIONS:
            return "python"
        return "other"

    @property
    def is_ui_component(self) -> bool:
        return self.extension in UI_COMPONENT_EXTENSIONS

    @property
    def lines(self) -> List[str]:
        return self.content.split("\n")

    def find_line(self, needle: str) -> int:
        """Return the 1-based line of the first occurrence of ``needle``, or 1."""

        for number, line in enumerate(self.lines, start=1):
            if needle in line:
                return number
        return 1

    def line_of_offset(self, offset: int) -> int:
        return self.content.count("\n", 0, offset) + 1

    def line_text(self, number: int) -> str:
        lines = self.lines
        if 1 <= number <= len(lines):
            return lines[number - 1].strip()
        return ""


def iter_code_files(root_paths: Iterable[str], extensions: tuple[str, ...] = (".js",)) -> Generator[Path, None, None]:
    """Yield code files beneath the provided directories."""

    for root in root_paths:
        root_path = Path(root)
        if root_path.is_file():
            if root_path.suffix in extensions:
                yield root_path
            continue
        for path in sorted(root_path.rglob("*")):
            if path.suffix in extensions and path.is_file():
                yield path
