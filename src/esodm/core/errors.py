"""
Core exception types raised by grammar parsing, entity building, and value conversion.

Provides typed exceptions for mapping-domain failures:
- GrammarError for enum-like tokens that are not lower_snake or not known.
- ConfigurationError for illegal declarations detected while building an entity descriptor.
- ConversionError for individual values that cannot be written or read.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - Configuration errors are fatal for the owning type; the mapping context caches them
      and re-raises the same failure on every later request for that type.
    - Conversion errors are per call and never poison a cached descriptor.

Examples:
    Catch a missing date pattern.

    >>> from esodm.core.errors import ConfigurationError
    >>> try:
    ...     raise ConfigurationError("custom date format requires a pattern", entity="Event")
    ... except ConfigurationError as e:
    ...     msg = str(e)
    >>> "pattern" in msg
    True
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "GrammarError",
    "MappingError",
    "ConfigurationError",
    "ConversionError",
]


class GrammarError(ValueError):
    """Grammar/naming normalization failure (e.g., not lower_snake or invalid enum value)."""


class MappingError(ValueError):
    """Base class for failures of the property-to-field mapping engine."""


class ConfigurationError(MappingError):
    """
    Illegal entity or property declaration, detected when the entity descriptor is built.

    Attributes:
        entity (str | None): Qualified name of the offending type, when known.
        property (str | None): Declared name of the offending property, when known.
    """

    def __init__(self, message: str, *, entity: str | None = None, property: str | None = None):
        prefix = []
        if entity:
            prefix.append(f"entity {entity!r}")
        if property:
            prefix.append(f"property {property!r}")
        super().__init__(f"{', '.join(prefix)}: {message}" if prefix else message)
        self.entity = entity
        self.property = property


class ConversionError(MappingError):
    """
    A single value could not be written to or read from its document representation.

    Attributes:
        entity (str | None): Qualified name of the owning type, when known.
        property (str | None): Declared name of the property being converted.
        value (Any): The raw value that failed.
    """

    def __init__(
        self,
        message: str,
        *,
        entity: str | None = None,
        property: str | None = None,
        value: Any = None,
    ):
        where = ".".join(p for p in (entity, property) if p)
        text = f"{message} (property {where!r}, value {value!r})" if where else message
        super().__init__(text)
        self.entity = entity
        self.property = property
        self.value = value
