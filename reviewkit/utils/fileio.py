"""Basic file IO helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

import yaml

from reviewkit.errors import ConfigError, ParseError


def read_yaml_file(path: Path) -> Any:
    """Return the parsed YAML if the file exists, otherwise ``None``."""

    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as handle:
        try:
            return yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc


def read_text_file(path: Path) -> str:
    """Return the file contents as UTF-8 text, or an empty string if missing."""

    if not path.exists():
        return ""
    return decode_text(path.read_bytes(), str(path))


def decode_text(data: Union[str, bytes], origin: str = "<input>") -> str:
    """Decode UTF-8 input, turning undecodable bytes into a ``ParseError``."""

    if isinstance(data, str):
        return data
    if not isinstance(data, (bytes, bytearray)):
        raise ParseError(f"{origin}: expected text, got {type(data).__name__}")
    try:
        return bytes(data).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"{origin}: not valid UTF-8 ({exc.reason})") from exc


def write_text_file(path: Path, content: str) -> Path:
    """Write ``content`` creating parent directories as needed."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
