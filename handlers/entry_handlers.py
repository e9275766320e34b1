"""
Entry Handlers

Handles the `get_entries` and `get_entry` MCP tools.
Normalizes tag parameters, runs the entry pipeline, returns serialized entries.
"""

import json
import logging
from typing import Any

from mcp import types

from errors import EntriesError
from utils.error_messages import enhance_error_message

logger = logging.getLogger(__name__)


def _text(payload: dict) -> list[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps(payload, indent=2))]


def _error(code: str, message: str) -> list[types.TextContent]:
    return _text({"error": True, "code": code, "message": message})


def _tag_value(value: Any) -> str:
    """Tag parameters are strings; booleans map onto the yes/no protocol."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (list, tuple)):
        return "|".join(str(v) for v in value)
    return str(value)


def normalize_parameters(parameters: Any) -> dict[str, str]:
    """Parse and stringify a tag parameter map. Raises ValueError if it is not an object."""
    # MCP clients sometimes send objects as JSON strings
    if isinstance(parameters, str):
        parameters = json.loads(parameters) if parameters.strip() else {}
    if parameters is None:
        return {}
    if not isinstance(parameters, dict):
        raise ValueError("parameters must be an object of tag parameter names to values")
    return {str(name): _tag_value(value) for name, value in parameters.items()}


async def handle_get_entries(repos, arguments: dict[str, Any]) -> list[types.TextContent]:
    """
    Handle the `get_entries` tool.

    Flow:
    1. Normalize tag parameters
    2. Translate, compile and execute the entry query
    3. Hydrate custom fields
    4. Return serialized entries
    """
    try:
        parameters = normalize_parameters(arguments.get("parameters"))
    except (ValueError, json.JSONDecodeError) as e:
        return _error("INVALID_PARAMETERS", str(e))

    try:
        collection = await repos.entries.get_entries(parameters)
    except EntriesError as e:
        return _error("INVALID_PARAMETER", enhance_error_message(e))

    logger.info(f"get_entries: {len(collection)} entries for {len(parameters)} parameters")

    return _text({
        "count": len(collection),
        "entries": collection.to_list(),
    })


async def handle_get_entry(repos, arguments: dict[str, Any]) -> list[types.TextContent]:
    """Handle the `get_entry` tool: one entry by id."""
    entry_id = arguments.get("entry_id")
    try:
        entry_id = int(entry_id)
    except (TypeError, ValueError):
        return _error("INVALID_ENTRY_ID", f"entry_id must be an integer, got {entry_id!r}")

    entry = await repos.entries.find(entry_id)
    if entry is None:
        return _error("NOT_FOUND", f"Entry {entry_id} not found")

    return _text(entry.to_dict())
