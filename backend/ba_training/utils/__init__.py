"""Utility modules."""

from ba_training.utils.text import (
    extract_json_object,
    parse_json_or_default,
    strip_markdown_json,
    truncate_text,
)

__all__ = [
    "extract_json_object",
    "parse_json_or_default",
    "strip_markdown_json",
    "truncate_text",
]
