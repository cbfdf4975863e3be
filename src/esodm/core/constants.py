"""
Mapping defaults shared by descriptors, converters and the settings loader.

This module is zero-IO and uses only the Python standard library.

Notes:
    - Changing a default here changes every context built without explicit settings.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_TYPE_HINT_FIELD",
    "DATE_FORMAT_SEPARATOR",
    "ENV_PREFIX",
    "JOIN_NAME_KEY",
    "JOIN_PARENT_KEY",
]

# Document key carrying the fully-qualified type name when type hints are written.
DEFAULT_TYPE_HINT_FIELD: str = "_class"

# Separator the engine uses between alternative date formats in a mapping.
DATE_FORMAT_SEPARATOR: str = "||"

# Prefix for environment variables read by esodm.settings.
ENV_PREFIX: str = "ESODM_"

# Keys of a join field inside a document.
JOIN_NAME_KEY: str = "name"
JOIN_PARENT_KEY: str = "parent"
