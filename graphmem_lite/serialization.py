"""Response serialization for GraphMem Lite tools.

Two output formats:
- compact: minified JSON via orjson (default, fewest tokens)
- json: indented JSON, easier for humans to read

Select with GRAPHMEM_LITE_OUTPUT_FORMAT.
"""

import os
from enum import Enum
from typing import Any

import orjson

OUTPUT_FORMAT = os.environ.get("GRAPHMEM_LITE_OUTPUT_FORMAT", "compact")


class OutputFormat(Enum):
    """Output format options for tool responses."""

    JSON = "json"
    COMPACT = "compact"


def to_jsonable(data: Any) -> Any:
    """Convert model objects (anything with ``to_dict``) recursively."""
    if hasattr(data, "to_dict"):
        return data.to_dict()
    if isinstance(data, dict):
        return {k: to_jsonable(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [to_jsonable(v) for v in data]
    return data


def compact_json(data: Any) -> str:
    """Serialize data to compact JSON using orjson.

    Model objects are converted first; keys keep their insertion order.
    """
    return orjson.dumps(to_jsonable(data)).decode("utf-8")


def pretty_json(data: Any) -> str:
    """Serialize data to two-space indented JSON."""
    return orjson.dumps(to_jsonable(data), option=orjson.OPT_INDENT_2).decode("utf-8")


def format_output(data: Any, output_format: str | None = None) -> str:
    """Render a tool result in the configured format.

    Args:
        data: Result to render
        output_format: "compact" or "json" (default: GRAPHMEM_LITE_OUTPUT_FORMAT)
    """
    try:
        fmt = OutputFormat((output_format or OUTPUT_FORMAT).lower())
    except ValueError:
        fmt = OutputFormat.COMPACT
    if fmt is OutputFormat.JSON:
        return pretty_json(data)
    return compact_json(data)
