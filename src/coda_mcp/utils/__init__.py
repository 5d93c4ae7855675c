"""
Coda MCP utility functions.
"""

import json
import sys
from datetime import datetime
from typing import Any


def log(message: str) -> None:
    """Log a message to stderr (MCP protocol compatibility).

    The MCP protocol uses stdout for JSON-RPC communication,
    so all logging must go to stderr to avoid corrupting the protocol.
    """
    print(message, file=sys.stderr)


def format_value(value: Any, indent: int | None = None) -> str:
    """Render a cell value for display, JSON-encoding structured values."""
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=indent)
    return str(value)


def format_date(timestamp: str | None) -> str:
    """
    Format an ISO-8601 timestamp from the Coda API as YYYY-MM-DD.

    Returns 'N/A' for missing values and the raw string if it can't be parsed.
    """
    if not timestamp:
        return "N/A"
    try:
        return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return timestamp
