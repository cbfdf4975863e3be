"""
Field naming strategies: declared property name -> wire field name.

A strategy is consulted only when a property carries no explicit name. Explicit names
(`Field(name=...)`, or the main field of a `MultiField`) are used verbatim, whatever
their casing or punctuation.

Strategies
- PropertyNameFieldNamingStrategy: identity (default).
- SnakeCaseFieldNamingStrategy: splits at case boundaries, lowercases, joins with "_".
- CamelCaseFieldNamingStrategy: lower_snake property names to lowerCamelCase.
- CallableFieldNamingStrategy: wraps a user-supplied function.

Examples:
    >>> SnakeCaseFieldNamingStrategy().resolve("withoutCustomFieldName")
    'without_custom_field_name'
    >>> PROPERTY_NAME_STRATEGY.resolve("withoutCustomFieldName")
    'withoutCustomFieldName'
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Final, Protocol, runtime_checkable

__all__ = [
    "FieldNamingStrategy",
    "PropertyNameFieldNamingStrategy",
    "SnakeCaseFieldNamingStrategy",
    "CamelCaseFieldNamingStrategy",
    "CallableFieldNamingStrategy",
    "PROPERTY_NAME_STRATEGY",
    "naming_strategy_from_name",
]

# Boundary before an uppercase letter that follows a non-uppercase character, or before
# the last uppercase letter of an acronym that starts a new word ("URLValue" -> URL|Value).
_CASE_BOUNDARY_RE: Final[re.Pattern[str]] = re.compile(r"(?<=[^A-Z])(?=[A-Z])|(?<!^)(?=[A-Z][a-z])")


@runtime_checkable
class FieldNamingStrategy(Protocol):
    """Deterministic, side-effect-free mapping from property name to wire field name."""

    def resolve(self, property_name: str) -> str: ...


class PropertyNameFieldNamingStrategy:
    """Use the declared property name unchanged."""

    def resolve(self, property_name: str) -> str:
        return property_name

    def __repr__(self) -> str:
        return "PropertyNameFieldNamingStrategy()"


class SnakeCaseFieldNamingStrategy:
    """Insert "_" at case boundaries and lowercase the result."""

    def resolve(self, property_name: str) -> str:
        parts = [p for p in _CASE_BOUNDARY_RE.split(property_name) if p]
        return "_".join(parts).lower()

    def __repr__(self) -> str:
        return "SnakeCaseFieldNamingStrategy()"


class CamelCaseFieldNamingStrategy:
    """Turn lower_snake property names into lowerCamelCase; leading underscores are kept."""

    def resolve(self, property_name: str) -> str:
        stripped = property_name.lstrip("_")
        lead = property_name[: len(property_name) - len(stripped)]
        head, *rest = stripped.split("_") if stripped else [""]
        return lead + head + "".join(p[:1].upper() + p[1:] for p in rest if p)

    def __repr__(self) -> str:
        return "CamelCaseFieldNamingStrategy()"


class CallableFieldNamingStrategy:
    """Adapt a plain `str -> str` function to the strategy protocol."""

    def __init__(self, fn: Callable[[str], str]):
        self._fn = fn

    def resolve(self, property_name: str) -> str:
        return self._fn(property_name)

    def __repr__(self) -> str:
        return f"CallableFieldNamingStrategy({self._fn!r})"


PROPERTY_NAME_STRATEGY: Final[PropertyNameFieldNamingStrategy] = PropertyNameFieldNamingStrategy()

_BY_NAME: Final[dict[str, type]] = {
    "property_name": PropertyNameFieldNamingStrategy,
    "snake_case": SnakeCaseFieldNamingStrategy,
    "camel_case": CamelCaseFieldNamingStrategy,
}


def naming_strategy_from_name(name: str) -> FieldNamingStrategy:
    """
    Build a strategy from its settings name.

    Args:
        name (str): One of "property_name", "snake_case", "camel_case".

    Raises:
        ValueError: If the name is unknown.
    """
    try:
        return _BY_NAME[name]()
    except KeyError as exc:
        raise ValueError(
            f"field naming strategy must be one of {sorted(_BY_NAME)} (got {name!r})"
        ) from exc
