"""Utility helpers for the review toolkit."""

from .fileio import decode_text, read_text_file, read_yaml_file, write_text_file
from .code import SourceFile, iter_code_files
from .markup import MarkupDocument

__all__ = [
    "decode_text",
    "read_text_file",
    "read_yaml_file",
    "write_text_file",
    "SourceFile",
    "iter_code_files",
    "MarkupDocument",
]
