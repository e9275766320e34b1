"""
Handler Registry - Maps tool names to handler functions

Each handler is an async function: handle_<tool_name>(repos, arguments),
where repos is the RegistryContainer owned by the server.

Usage:
    from handlers import get_handler

    handler = get_handler(tool_name)
    if handler:
        result = await handler(repos, arguments)
"""

from typing import Callable, Optional

from . import entry_handlers


HANDLER_REGISTRY = {
    "get_entries": entry_handlers.handle_get_entries,
    "get_entry": entry_handlers.handle_get_entry,
}


def get_handler(tool_name: str) -> Optional[Callable]:
    """Get the handler function for a tool, or None"""
    return HANDLER_REGISTRY.get(tool_name)


def list_all_handlers() -> list[str]:
    """Get list of all registered tool names"""
    return list(HANDLER_REGISTRY.keys())


__all__ = [
    'get_handler',
    'list_all_handlers',
    'HANDLER_REGISTRY'
]
