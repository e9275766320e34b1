"""
MCP Tools Package

Read-only entry tools. There are no write tools: entries cannot be
persisted through this server.
"""

from .entry_tools import get_entries, get_entry


def get_core_tool_catalog():
    """Get MCP tools."""
    return [
        get_entries(),
        get_entry(),
    ]


__all__ = [
    'get_core_tool_catalog',
    'get_entries',
    'get_entry',
]
