"""
Error types for the entries engine

The engine is read-only over the content store: any write attempt raises
UnsupportedOperationError. Malformed scalar tag parameters raise
InvalidParameterError (also a ValueError, so callers catching ValueError
keep working).
"""


class EntriesError(Exception):
    """Base class for all entries engine errors"""


class UnsupportedOperationError(EntriesError):
    """Raised for any attempt to persist or delete an entry"""

    def __init__(self, operation: str = "save"):
        self.operation = operation
        super().__init__(f"{operation.capitalize()} is not supported: entries are read-only")


class InvalidParameterError(EntriesError, ValueError):
    """Raised when a tag parameter value cannot be coerced to the type its filter needs"""

    def __init__(self, parameter: str, value, expected: str):
        self.parameter = parameter
        self.value = value
        self.expected = expected
        super().__init__(f"Invalid value {value!r} for '{parameter}': expected {expected}")
