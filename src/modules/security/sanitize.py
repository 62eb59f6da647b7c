"""HTML-escaping of attacker-controlled request values."""

from typing import Any

# Keys whose values carry binary upload data
BINARY_KEYS = frozenset({"buffer", "file", "files"})

_REPLACEMENTS = (
    ("&", "&amp;"),  # first, so later entities are not double-escaped
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
)


def escape_string(value: str) -> str:
    for char, entity in _REPLACEMENTS:
        value = value.replace(char, entity)
    return value


def sanitize_value(data: Any) -> Any:
    """Recursively escape every string in `data`, leaving binary fields alone."""
    if isinstance(data, str):
        return escape_string(data)
    if isinstance(data, list):
        return [sanitize_value(item) for item in data]
    if isinstance(data, dict):
        return {
            key: value if key in BINARY_KEYS else sanitize_value(value)
            for key, value in data.items()
        }
    return data
