"""
SortKey component - fractional ordering keys for blocks and links.
"""

from ._impl import (
    ALPHABET,
    MAX_CHAR,
    MID_CHAR,
    MIN_CHAR,
    SortKeyError,
    between,
    decrement,
    generate,
    increment,
    keys_for_sequence,
    validate_key,
)

__all__ = [
    # Entry points
    "generate",
    "keys_for_sequence",
    # Helpers
    "between",
    "increment",
    "decrement",
    "validate_key",
    # Constants
    "ALPHABET",
    "MIN_CHAR",
    "MAX_CHAR",
    "MID_CHAR",
    # Errors
    "SortKeyError",
]
