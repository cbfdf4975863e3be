"""
JSON serialization helpers for document bodies.

Document JSON keeps key insertion order, so the declaration order of properties survives
into the wire body; non-ASCII text is kept as is. Used by
`DocumentConverter.to_json` / `DocumentConverter.from_json`.

Notes:
    - Inputs are expected to be JSON-serializable already; document conversion turns
      temporal, enum and UUID values into strings before they reach this module.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

__all__ = [
    "json_dumps_document",
    "json_loads",
]


def json_dumps_document(document: Mapping[str, Any]) -> str:
    """
    Serialize a document body, preserving key order.

    Args:
        document (Mapping[str, Any]): Ordered document.

    Returns:
        str: Compact JSON string with ensure_ascii=False.
    """
    return json.dumps(dict(document), separators=(",", ":"), ensure_ascii=False)


def json_loads(s: str | bytes) -> Any:
    """
    Deserialize a JSON string or UTF-8 bytes.

    Notes:
        No datetime parsing or custom hooks; temporal fields are decoded by the
        property converters when a document is read.
    """
    return json.loads(s)
