"""
Entry MCP Tools

Tool definitions for reading channel entries with tag parameters.
"""

from mcp import types


def get_entries() -> types.Tool:
    """Query entries with a flat map of tag parameters."""
    return types.Tool(
        name="get_entries",
        description=(
            "Read channel entries using tag parameters. Returns entries with fixed attributes "
            "(title, url_title, status, dates in UTC) and custom fields keyed by field name.\n\n"
            "LISTS: pipe-delimited, e.g. {\"channel\": \"news|blog\"}.\n"
            "NEGATION: prefix a list with 'not ', e.g. {\"status\": \"not closed\"}.\n"
            "BOOLEANS: only 'yes' is true, e.g. {\"sticky\": \"yes\", \"show_expired\": \"no\"}.\n"
            "SEARCH: {\"search:body\": \"foo|bar\"} matches body containing foo or bar.\n\n"
            "PARAMETERS: author_id, category, category_group, channel, entry_id, entry_id_from, "
            "entry_id_to, fixed_order, group_id, limit, offset, orderby, sort, show_expired, "
            "show_future_entries, start_on, stop_before, status, sticky, uncategorized_entries, "
            "url_title, username, year, month, day, search:<field>. Unknown parameters are ignored."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "parameters": {
                    "type": "object",
                    "description": "Tag parameter names mapped to string values.",
                    "additionalProperties": {"type": "string"},
                },
            },
        },
    )


def get_entry() -> types.Tool:
    """Fetch a single entry by id."""
    return types.Tool(
        name="get_entry",
        description="Read one channel entry by entry_id, with hydrated custom fields.",
        inputSchema={
            "type": "object",
            "properties": {
                "entry_id": {
                    "type": "integer",
                    "description": "The entry id.",
                },
            },
            "required": ["entry_id"],
        },
    )
