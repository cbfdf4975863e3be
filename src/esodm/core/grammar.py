"""
Canonical mapping grammar and helpers.

Defines storage (field) types, named date formats and version types understood by the
search engine, together with zero-IO validators used by declarations and descriptors.

Responsibilities
- Define enums whose serialized values are the engine's lower_snake names.
- Provide parsing helpers that accept either an enum member or its lower_snake value.
- Offer `ensure_all_enum_values_lower_snake` so tests can pin the naming invariant.

Design principles
-----------------
1) One naming standard:
   - Enum classes: PascalCase
   - Enum member names: UPPER_SNAKE (Python constants)
   - Enum serialized values (wire/mapping JSON): lower_snake

2) Declarations may use strings:
   - `Field(type="keyword")` and `Field(type=FieldType.KEYWORD)` are equivalent.
   - Parsing is strict: "Keyword" is rejected rather than silently lowered, so a
     typo never maps to a different storage type.

Downstream usage
----------------
- `esodm.mapping.property` normalizes `Field.type`, `InnerField.type` and
  `Field.format` through `field_type_from_value` / `date_format_from_value`.
- `esodm.core.converters` keys its built-in pattern table by `DateFormat`.
- `esodm.mapping.index_mapping` writes `FieldType.value` and `DateFormat.value`
  verbatim into generated mappings.

Examples
--------
>>> from esodm.core.grammar import FieldType, field_type_from_value
>>> field_type_from_value("keyword") is FieldType.KEYWORD
True
>>> field_type_from_value(FieldType.DATE) is FieldType.DATE
True
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum
from typing import Final

from .errors import GrammarError

__all__ = [
    "FieldType",
    "DateFormat",
    "VersionType",
    "DATE_FIELD_TYPES",
    "ENTITY_FIELD_TYPES",
    # helpers/validators
    "is_lower_snake",
    "assert_lower_snake",
    "field_type_from_value",
    "date_format_from_value",
    "version_type_from_value",
    "ensure_all_enum_values_lower_snake",
]


# ============================================================================
# STORAGE TYPES
# ============================================================================


class FieldType(Enum):
    """
    Storage type of a document field.

    Notes:
      AUTO leaves the choice to the engine's dynamic mapping; properties typed AUTO
      are omitted from generated mappings unless they hold an entity.
    """

    AUTO = "auto"
    TEXT = "text"
    KEYWORD = "keyword"
    LONG = "long"
    INTEGER = "integer"
    SHORT = "short"
    BYTE = "byte"
    DOUBLE = "double"
    FLOAT = "float"
    HALF_FLOAT = "half_float"
    SCALED_FLOAT = "scaled_float"
    DATE = "date"
    DATE_NANOS = "date_nanos"
    BOOLEAN = "boolean"
    BINARY = "binary"
    INTEGER_RANGE = "integer_range"
    FLOAT_RANGE = "float_range"
    LONG_RANGE = "long_range"
    DOUBLE_RANGE = "double_range"
    DATE_RANGE = "date_range"
    IP_RANGE = "ip_range"
    OBJECT = "object"
    NESTED = "nested"
    IP = "ip"
    GEO_POINT = "geo_point"
    JOIN = "join"
    TOKEN_COUNT = "token_count"
    PERCOLATOR = "percolator"
    FLATTENED = "flattened"
    SEARCH_AS_YOU_TYPE = "search_as_you_type"
    RANK_FEATURE = "rank_feature"
    RANK_FEATURES = "rank_features"
    WILDCARD = "wildcard"
    DENSE_VECTOR = "dense_vector"


DATE_FIELD_TYPES: Final[frozenset[FieldType]] = frozenset({FieldType.DATE, FieldType.DATE_NANOS})
ENTITY_FIELD_TYPES: Final[frozenset[FieldType]] = frozenset({FieldType.OBJECT, FieldType.NESTED})


# ============================================================================
# DATE FORMATS
# ============================================================================


class DateFormat(Enum):
    """
    Named date formats of the engine.

    Serialized values are written to the `format` entry of date mappings. CUSTOM means
    "use the property's pattern"; a CUSTOM format without a pattern is a configuration
    error. Week-based formats (weekyear, week_date, ...) are not supported.
    """

    CUSTOM = "custom"
    BASIC_DATE = "basic_date"
    BASIC_DATE_TIME = "basic_date_time"
    BASIC_DATE_TIME_NO_MILLIS = "basic_date_time_no_millis"
    BASIC_ORDINAL_DATE = "basic_ordinal_date"
    BASIC_ORDINAL_DATE_TIME = "basic_ordinal_date_time"
    BASIC_ORDINAL_DATE_TIME_NO_MILLIS = "basic_ordinal_date_time_no_millis"
    BASIC_TIME = "basic_time"
    BASIC_TIME_NO_MILLIS = "basic_time_no_millis"
    BASIC_T_TIME = "basic_t_time"
    BASIC_T_TIME_NO_MILLIS = "basic_t_time_no_millis"
    DATE = "date"
    DATE_HOUR = "date_hour"
    DATE_HOUR_MINUTE = "date_hour_minute"
    DATE_HOUR_MINUTE_SECOND = "date_hour_minute_second"
    DATE_HOUR_MINUTE_SECOND_FRACTION = "date_hour_minute_second_fraction"
    DATE_HOUR_MINUTE_SECOND_MILLIS = "date_hour_minute_second_millis"
    DATE_OPTIONAL_TIME = "date_optional_time"
    DATE_TIME = "date_time"
    DATE_TIME_NO_MILLIS = "date_time_no_millis"
    EPOCH_MILLIS = "epoch_millis"
    EPOCH_SECOND = "epoch_second"
    HOUR = "hour"
    HOUR_MINUTE = "hour_minute"
    HOUR_MINUTE_SECOND = "hour_minute_second"
    HOUR_MINUTE_SECOND_FRACTION = "hour_minute_second_fraction"
    HOUR_MINUTE_SECOND_MILLIS = "hour_minute_second_millis"
    ORDINAL_DATE = "ordinal_date"
    ORDINAL_DATE_TIME = "ordinal_date_time"
    ORDINAL_DATE_TIME_NO_MILLIS = "ordinal_date_time_no_millis"
    TIME = "time"
    TIME_NO_MILLIS = "time_no_millis"
    T_TIME = "t_time"
    T_TIME_NO_MILLIS = "t_time_no_millis"
    YEAR = "year"
    YEAR_MONTH = "year_month"
    YEAR_MONTH_DAY = "year_month_day"


# ============================================================================
# VERSION TYPES
# ============================================================================


class VersionType(Enum):
    """
    Versioning protocol used with an application-supplied version number.

    Serialized values appear in IndexedDocument.version_type for the I/O layer.
    """

    INTERNAL = "internal"
    EXTERNAL = "external"
    EXTERNAL_GTE = "external_gte"


# ============================================================================
# Helpers & Validators (zero I/O)
# ============================================================================

_LOWER_SNAKE_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9]+(?:_[a-z0-9]+)*$")


def is_lower_snake(value: str) -> bool:
    """
    Check whether a string is lower_snake.

    Args:
      value (str): Candidate string to validate.

    Returns:
      bool: True if value matches lower_snake (e.g., "basic_date_time"), False otherwise.

    Examples:
      >>> is_lower_snake("basic_date_time")
      True
      >>> is_lower_snake("BasicDateTime")
      False
    """
    return bool(_LOWER_SNAKE_RE.match(value or ""))


def assert_lower_snake(value: str, what: str = "value") -> None:
    """
    Validate that a string is lower_snake.

    Args:
      value (str): Candidate string to validate.
      what (str): Human-friendly label used in the error message.

    Raises:
      GrammarError: If value is not lower_snake.
    """
    if not is_lower_snake(value):
        raise GrammarError(f"{what} must be lower_snake (got: {value!r})")


def _enum_from_value(enum_cls: type[Enum], value: object, what: str) -> Enum:
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        raise GrammarError(f"{what} must be a {enum_cls.__name__} or str (got: {value!r})")
    assert_lower_snake(value, what)
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise GrammarError(f"unknown {what} {value!r}") from exc


def field_type_from_value(value: FieldType | str) -> FieldType:
    """
    Parse a storage type given as enum member or lower_snake string.

    Args:
      value (FieldType | str): Candidate storage type.

    Returns:
      FieldType: Parsed storage type.

    Raises:
      GrammarError: If value is not lower_snake or is not a known storage type.
    """
    return _enum_from_value(FieldType, value, "field type")  # type: ignore[return-value]


def date_format_from_value(value: DateFormat | str) -> DateFormat:
    """
    Parse a named date format given as enum member or lower_snake string.

    Raises:
      GrammarError: If value is not lower_snake or is not a known date format.
    """
    return _enum_from_value(DateFormat, value, "date format")  # type: ignore[return-value]


def version_type_from_value(value: VersionType | str) -> VersionType:
    """
    Parse a version type given as enum member or lower_snake string.

    Raises:
      GrammarError: If value is not lower_snake or is not a known version type.
    """
    return _enum_from_value(VersionType, value, "version type")  # type: ignore[return-value]


def ensure_all_enum_values_lower_snake(enums: Iterable[type[Enum]]) -> None:
    """
    Assert that every enum member's value is lower_snake.

    Args:
      enums (Iterable[type[Enum]]): Iterable of Enum classes to inspect.

    Raises:
      AssertionError: If any enum member has a non-lower_snake value.

    Examples:
      >>> ensure_all_enum_values_lower_snake([FieldType, DateFormat, VersionType])
    """
    for E in enums:
        for m in E:
            if not is_lower_snake(m.value):
                raise AssertionError(
                    f"{E.__name__}.{m.name} has non-lower_snake value: {m.value!r}"
                )
