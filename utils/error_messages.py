"""
Error Message Utilities

Provides human-readable error messages for tool responses: read-only
violations, malformed tag parameters and database errors.
"""

import re

from errors import InvalidParameterError, UnsupportedOperationError

# Human-readable explanations for common database errors
DATABASE_MESSAGES = {
    "cannot execute INSERT in a read-only transaction": "The content store is read-only through this server.",
    "cannot execute UPDATE in a read-only transaction": "The content store is read-only through this server.",
    "cannot execute DELETE in a read-only transaction": "The content store is read-only through this server.",
}


def enhance_error_message(error: Exception) -> str:
    """
    Enhance error messages with human-readable explanations.

    Handles:
    - Write attempts (entries are read-only)
    - Tag parameters whose value has the wrong type
    - Missing tables/columns (schema does not match the expected layout)
    - Read-only transaction violations

    Returns the enhanced error message string.
    """
    if isinstance(error, UnsupportedOperationError):
        return f"{error}. Entries can only be read."

    if isinstance(error, InvalidParameterError):
        return f"Invalid tag parameter '{error.parameter}': expected {error.expected}, got {error.value!r}."

    error_str = str(error)

    for needle, explanation in DATABASE_MESSAGES.items():
        if needle in error_str:
            return explanation

    column_match = re.search(r'column "?([\w.]+)"? does not exist', error_str)
    if column_match:
        return (
            f"Unknown column '{column_match.group(1)}'. "
            f"A custom field may have been removed without reloading the field registry."
        )

    table_match = re.search(r'relation "(\w+)" does not exist', error_str)
    if table_match:
        return f"Missing table '{table_match.group(1)}'. Is this database a channel entries store?"

    return error_str
