from datetime import date, datetime, timezone
import json
import re
import textwrap
from typing import Any

from .log_helpers import LOG_FMT, basic_log_config, suppress_logs

__all__ = [
    "LOG_FMT",
    "basic_log_config",
    "suppress_logs",
    "to_snake_case",
    "humanize",
    "today",
    "format_json",
]


def to_snake_case(text: str) -> str:
    """Convert text to snake_case."""
    # Replace spaces and hyphens with underscores
    text = text.strip()
    text = re.sub(r"[\s-]+", "_", text)

    # Convert camelCase, PascalCase, and cases like HTTPHeader to snake_case
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", text)
    text = re.sub(r"([A-Z]+)([A-Z][a-z0-9])", r"\1_\2", text)

    # Convert to lowercase
    return text.lower()


def humanize(text: str) -> str:
    """Turn an identifier into a readable phrase, e.g. 'get_cash_flow' -> 'Get cash flow'."""
    text = re.sub(r"_id$", "", text.strip())
    text = re.sub(r"[_\s]+", " ", text).strip()
    return text[:1].upper() + text[1:].lower()


def today() -> date:
    return datetime.now(tz=timezone.utc).date()


def format_json(data: Any, width: int = 100, indent: int = 2, level: int = 0) -> str:
    """Format JSON data with proper indentation and line wrapping."""
    prefix = " " * (level * indent)

    if isinstance(data, dict):
        if not data:
            return "{}"

        lines = ["{"]
        items = list(data.items())
        for i, (key, value) in enumerate(items):
            key_prefix = f'{prefix}  "{key}": '
            key_indent = " " * len(key_prefix)

            formatted_value = format_json(value, width=width, indent=indent, level=level + 1)

            if isinstance(value, str):
                # Handle each line segment separately
                segments = []
                for segment in value.split("\n"):
                    wrapped = textwrap.fill(
                        segment,
                        width=width - len(key_prefix),
                        initial_indent=key_indent,
                        subsequent_indent=key_indent + " ",
                        drop_whitespace=False,
                    )
                    segments.append(wrapped)
                formatted_value = '"{}"'.format((key_indent + "\n").join(segments).strip())

            comma = "," if i < len(items) - 1 else ""
            lines.append(f"{key_prefix}{formatted_value}{comma}")

        lines.append(prefix + "}")
        return "\n".join(lines)

    elif isinstance(data, list):
        if not data:
            return "[]"

        lines = ["["]
        for i, item in enumerate(data):
            formatted_item = format_json(item, width, indent, level + 1)
            comma = "," if i < len(data) - 1 else ""
            lines.append(f"{prefix}  {formatted_item}{comma}")

        lines.append(prefix + "]")
        return "\n".join(lines)

    elif isinstance(data, str):
        try:
            return format_json(json.loads(data), width, indent, level)
        except json.JSONDecodeError:
            return '"{}"'.format(data)
    elif data is None:
        return "null"
    else:
        return str(data).lower() if isinstance(data, bool) else str(data)
