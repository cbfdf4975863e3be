"""
Lightweight typing aliases used across declarations, descriptors and converters.

This module contains no runtime logic and is zero-IO.

Examples:
    >>> from esodm.core.typing import Document
    >>> def empty() -> Document:
    ...     return {}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

__all__ = [
    "Document",
    "JsonDict",
    "IndexContext",
]

# Ordered key -> value structure exchanged with the I/O layer (dict keeps insertion order).
Document = dict[str, Any]

# Convenient JSON-like mapping alias. Kept intentionally broad for serde boundaries.
JsonDict = dict[str, Any]

# Values available to deferred index-name templates.
IndexContext = Mapping[str, Any]
