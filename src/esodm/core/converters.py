"""
Property value converters: bidirectional value <-> document representation per property.

Responsibilities
- Compile engine-style date patterns ("uuuuMMdd'T'HHmmss.SSSXXX", "dd.MM.uuuu", ...)
  into formatters that both print and parse.
- Bind every named DateFormat to exactly one formatter (the built-in pattern table).
- Resolve the converter of a property: explicit converter, then built-in date converter,
  then converters registered for the property's Python type, then none.

Conventions
- Temporal kinds follow the declared Python type: `date`, `time`, `datetime`,
  `pydantic.NaiveDatetime`, `pydantic.AwareDatetime`.
- Aware values are written in UTC. For `NaiveDatetime` the value is rendered as if it
  were UTC when the pattern carries an offset.
- Plain `datetime` and `time` values must match the write format: aware values for
  formats that carry an offset (epoch formats included), naive values for those that
  do not. ISO-8601 follows the value.
- Fractions are printed and parsed at the pattern's precision ("SSS" = milliseconds);
  ISO-8601 keeps full microsecond precision.
- Collection-valued temporal properties convert element-wise, preserving order;
  map-valued ones convert their values and keep their keys.

Errors
- Invalid configuration (unknown pattern letter, CUSTOM format without pattern, explicit
  converter without read/write) raises ConfigurationError while resolving.
- Values that cannot be printed or parsed raise ConversionError naming the property and
  the raw value.

Examples:
    >>> from datetime import date
    >>> fmt = PatternFormatter("dd.MM.uuuu")
    >>> fmt.format(date(2019, 12, 27))
    '27.12.2019'
    >>> fmt.parse("27.12.2019").date()
    datetime.date(2019, 12, 27)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any, Final, Protocol, runtime_checkable

from pydantic import AwareDatetime, NaiveDatetime

from .errors import ConfigurationError, ConversionError
from .grammar import DATE_FIELD_TYPES, DateFormat, FieldType

__all__ = [
    "PropertyValueConverter",
    "TemporalKind",
    "temporal_kind_of",
    "DateFormatter",
    "PatternFormatter",
    "IsoFormatter",
    "EpochFormatter",
    "BUILTIN_DATE_PATTERNS",
    "formatter_for",
    "TemporalPropertyConverter",
    "CollectionPropertyConverter",
    "MapPropertyConverter",
    "ExplicitPropertyConverter",
    "ConversionTarget",
    "PropertyValueConverterRegistry",
]

logger = logging.getLogger(__name__)

UTC: Final[timezone] = timezone.utc
_EPOCH: Final[datetime] = datetime(1970, 1, 1, tzinfo=UTC)


@runtime_checkable
class PropertyValueConverter(Protocol):
    """Stateless bidirectional conversion for one property."""

    def write(self, value: Any) -> Any: ...

    def read(self, value: Any) -> Any: ...


# ============================================================================
# Temporal kinds
# ============================================================================


class TemporalKind(Enum):
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    NAIVE_DATETIME = "naive_datetime"
    AWARE_DATETIME = "aware_datetime"


def temporal_kind_of(tp: Any) -> TemporalKind | None:
    """
    Classify a declared Python type as a temporal kind.

    Returns:
        TemporalKind | None: None for non-temporal types.
    """
    if tp is AwareDatetime:
        return TemporalKind.AWARE_DATETIME
    if tp is NaiveDatetime:
        return TemporalKind.NAIVE_DATETIME
    if not isinstance(tp, type):
        return None
    # datetime subclasses date, so test it first.
    if issubclass(tp, datetime):
        return TemporalKind.DATETIME
    if issubclass(tp, date):
        return TemporalKind.DATE
    if issubclass(tp, time):
        return TemporalKind.TIME
    return None


def _adapt(kind: TemporalKind, value: date | time) -> date | time:
    """Shape a parsed temporal value into the declared kind."""
    if kind is TemporalKind.TIME:
        if isinstance(value, datetime):
            return value.timetz()
        if isinstance(value, time):
            return value
        raise ValueError("text carries no time of day")
    if isinstance(value, time):
        raise ValueError("text carries no date")
    if kind is TemporalKind.DATE:
        return value.date() if isinstance(value, datetime) else value
    if not isinstance(value, datetime):
        value = datetime.combine(value, time())
    if kind is TemporalKind.NAIVE_DATETIME:
        return value.astimezone(UTC).replace(tzinfo=None) if value.tzinfo else value
    if kind is TemporalKind.AWARE_DATETIME:
        return value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)
    return value


# ============================================================================
# Formatters
# ============================================================================


class DateFormatter(Protocol):
    description: str
    # True if the text always carries an offset, False if never, None if it follows the value.
    carries_offset: bool | None

    def format(self, value: date | time) -> str: ...

    def parse(self, value: Any) -> date | time: ...


_MONTHS: Final[tuple[str, ...]] = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS: Final[tuple[str, ...]] = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)
_SUPPORTED_LETTERS: Final[frozenset[str]] = frozenset("uyMdDHhmsSaEXxZ")
_DATE_LETTERS: Final[frozenset[str]] = frozenset("uyMdDE")
_OFFSET_RE: Final[str] = r"Z|[+-]\d{2}(?::?\d{2})?"


@dataclass(frozen=True, slots=True)
class _Token:
    letter: str | None
    width: int
    literal: str = ""


def _tokenize(pattern: str) -> tuple[_Token, ...]:
    tokens: list[_Token] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "'":
            end = pattern.find("'", i + 1)
            if end == -1:
                raise ValueError(f"unterminated quote in pattern {pattern!r}")
            # '' is an escaped single quote
            tokens.append(_Token(None, 0, pattern[i + 1 : end] or "'"))
            i = end + 1
        elif ch.isalpha():
            if ch not in _SUPPORTED_LETTERS:
                raise ValueError(f"unsupported pattern letter {ch!r} in {pattern!r}")
            j = i
            while j < len(pattern) and pattern[j] == ch:
                j += 1
            tokens.append(_Token(ch, j - i))
            i = j
        else:
            tokens.append(_Token(None, 0, ch))
            i += 1
    return tuple(tokens)


def _format_offset(offset: timedelta, letter: str, width: int) -> str:
    if letter == "X" and not offset:
        return "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    hh, mm = divmod(minutes, 60)
    if letter == "Z":
        return f"{sign}{hh:02d}:{mm:02d}" if width >= 5 else f"{sign}{hh:02d}{mm:02d}"
    if width == 1:
        return f"{sign}{hh:02d}" + (f"{mm:02d}" if mm else "")
    if width == 2:
        return f"{sign}{hh:02d}{mm:02d}"
    return f"{sign}{hh:02d}:{mm:02d}"


def _parse_offset(text: str) -> timezone:
    if text.upper() == "Z":
        return UTC
    sign = -1 if text[0] == "-" else 1
    digits = text[1:].replace(":", "")
    hh = int(digits[:2])
    mm = int(digits[2:4] or 0)
    return timezone(sign * timedelta(hours=hh, minutes=mm))


def _token_regex(tok: _Token) -> str:
    letter, width = tok.letter, tok.width
    if letter in ("u", "y"):
        if width == 2:
            return r"\d{2}"
        return r"\d{4}" if width == 4 else r"[+-]?\d{%d,9}" % width
    if letter == "M":
        if width >= 4:
            return "|".join(_MONTHS)
        if width == 3:
            return "|".join(m[:3] for m in _MONTHS)
    if letter == "E":
        return "|".join(_WEEKDAYS) if width >= 4 else "|".join(d[:3] for d in _WEEKDAYS)
    if letter == "D":
        return r"\d{3}" if width == 3 else r"\d{%d,3}" % width
    if letter == "S":
        return r"\d{%d}" % width
    if letter == "a":
        return "AM|PM"
    if letter in ("X", "x", "Z"):
        return _OFFSET_RE
    # M, d, H, h, m, s
    return r"\d{2}" if width == 2 else r"\d{1,2}"


class PatternFormatter:
    """
    Formatter for an engine-style date pattern.

    Args:
        pattern (str): Pattern such as "uuuu-MM-dd'T'HH:mm:ss.SSSXXX".

    Raises:
        ValueError: If the pattern is empty, has an unterminated quote or uses an
            unsupported letter.
    """

    def __init__(self, pattern: str):
        if not pattern:
            raise ValueError("date pattern must not be empty")
        self.pattern = pattern
        self.description = pattern
        self._tokens = _tokenize(pattern)
        parts = []
        for i, tok in enumerate(self._tokens):
            if tok.letter is None:
                parts.append(re.escape(tok.literal))
            else:
                parts.append(f"(?P<g{i}>{_token_regex(tok)})")
        self._regex = re.compile("".join(parts), re.IGNORECASE)
        self._has_date = any(t.letter in _DATE_LETTERS for t in self._tokens)
        self.carries_offset = any(t.letter in ("X", "x", "Z") for t in self._tokens)

    def __repr__(self) -> str:
        return f"PatternFormatter({self.pattern!r})"

    def format(self, value: date | time) -> str:
        if isinstance(value, datetime):
            dt = value.astimezone(UTC) if value.tzinfo else value
            day: date | None = dt.date()
            tod = dt.time()
            offset = dt.utcoffset() or timedelta(0)
        elif isinstance(value, date):
            day, tod, offset = value, time(), timedelta(0)
        else:
            day, tod = None, value
            offset = value.utcoffset() or timedelta(0)
        if day is None and self._has_date:
            raise ValueError(f"pattern {self.pattern!r} needs a date but got a time of day")
        return "".join(self._format_token(tok, day, tod, offset) for tok in self._tokens)

    def _format_token(self, tok: _Token, day: date | None, tod: time, offset: timedelta) -> str:
        letter, width = tok.letter, tok.width
        if letter is None:
            return tok.literal
        if letter in ("u", "y"):
            return f"{day.year % 100:02d}" if width == 2 else f"{day.year:0{width}d}"
        if letter == "M":
            if width >= 4:
                return _MONTHS[day.month - 1]
            if width == 3:
                return _MONTHS[day.month - 1][:3]
            return f"{day.month:0{width}d}"
        if letter == "d":
            return f"{day.day:0{width}d}"
        if letter == "D":
            return f"{day.timetuple().tm_yday:0{width}d}"
        if letter == "E":
            name = _WEEKDAYS[day.weekday()]
            return name if width >= 4 else name[:3]
        if letter == "H":
            return f"{tod.hour:0{width}d}"
        if letter == "h":
            return f"{(tod.hour % 12) or 12:0{width}d}"
        if letter == "a":
            return "AM" if tod.hour < 12 else "PM"
        if letter == "m":
            return f"{tod.minute:0{width}d}"
        if letter == "s":
            return f"{tod.second:0{width}d}"
        if letter == "S":
            return f"{tod.microsecond:06d}"[:width].ljust(width, "0")
        return _format_offset(offset, letter, width)

    def parse(self, value: Any) -> date | time:
        if not isinstance(value, str):
            raise TypeError(f"pattern {self.pattern!r} parses text, got {type(value).__name__}")
        match = self._regex.fullmatch(value.strip())
        if match is None:
            raise ValueError(f"{value!r} does not match pattern {self.pattern!r}")
        f: dict[str, Any] = {}
        for i, tok in enumerate(self._tokens):
            if tok.letter is None:
                continue
            text = match.group(f"g{i}")
            letter = tok.letter
            if letter in ("u", "y"):
                f["year"] = 2000 + int(text) if tok.width == 2 else int(text)
            elif letter == "M":
                if tok.width >= 3:
                    names = [m if tok.width >= 4 else m[:3] for m in _MONTHS]
                    f["month"] = [n.lower() for n in names].index(text.lower()) + 1
                else:
                    f["month"] = int(text)
            elif letter == "d":
                f["day"] = int(text)
            elif letter == "D":
                f["day_of_year"] = int(text)
            elif letter in ("H", "h"):
                f["hour"] = int(text)
                f["clock_12"] = letter == "h"
            elif letter == "a":
                f["pm"] = text.upper() == "PM"
            elif letter == "m":
                f["minute"] = int(text)
            elif letter == "s":
                f["second"] = int(text)
            elif letter == "S":
                f["microsecond"] = int(text[:6].ljust(6, "0"))
            elif letter in ("X", "x", "Z"):
                f["tzinfo"] = _parse_offset(text)
            # E (weekday) is printed but not needed to rebuild the value
        hour = f.get("hour", 0)
        if f.get("clock_12"):
            hour = hour % 12 + (12 if f.get("pm") else 0)
        tod = time(hour, f.get("minute", 0), f.get("second", 0), f.get("microsecond", 0))
        tz = f.get("tzinfo")
        if "year" not in f:
            if "hour" not in f:
                raise ValueError(f"pattern {self.pattern!r} carries neither date nor time")
            return tod.replace(tzinfo=tz)
        if "day_of_year" in f:
            day = date(f["year"], 1, 1) + timedelta(days=f["day_of_year"] - 1)
        else:
            day = date(f["year"], f.get("month", 1), f.get("day", 1))
        return datetime.combine(day, tod, tzinfo=tz)


class IsoFormatter:
    """ISO-8601 formatter behind `date_optional_time` and unconfigured temporal properties."""

    description = DateFormat.DATE_OPTIONAL_TIME.value
    carries_offset = None

    def __repr__(self) -> str:
        return "IsoFormatter()"

    def format(self, value: date | time) -> str:
        if isinstance(value, datetime):
            if value.tzinfo:
                return value.astimezone(UTC).isoformat().replace("+00:00", "Z")
            return value.isoformat()
        return value.isoformat()

    def parse(self, value: Any) -> date | time:
        if not isinstance(value, str):
            raise TypeError(f"ISO text expected, got {type(value).__name__}")
        text = value.strip()
        if len(text) > 2 and text[2] == ":":
            return time.fromisoformat(text)
        return datetime.fromisoformat(text)


class EpochFormatter:
    """Milliseconds or seconds since the epoch, written as decimal text."""

    def __init__(self, unit: timedelta, description: str):
        self._unit = unit
        self.description = description
        self.carries_offset = True

    def __repr__(self) -> str:
        return f"EpochFormatter({self.description!r})"

    def format(self, value: date | time) -> str:
        if isinstance(value, datetime):
            dt = value if value.tzinfo else value.replace(tzinfo=UTC)
        elif isinstance(value, date):
            dt = datetime.combine(value, time(), tzinfo=UTC)
        else:
            raise ValueError("epoch formats need a date")
        return str((dt - _EPOCH) // self._unit)

    def parse(self, value: Any) -> date | time:
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise TypeError(f"epoch value expected, got {type(value).__name__}")
        number = float(value) if isinstance(value, str) and "." in value else int(value)
        return _EPOCH + number * self._unit


BUILTIN_DATE_PATTERNS: Final[dict[DateFormat, str]] = {
    DateFormat.BASIC_DATE: "uuuuMMdd",
    DateFormat.BASIC_DATE_TIME: "uuuuMMdd'T'HHmmss.SSSXXX",
    DateFormat.BASIC_DATE_TIME_NO_MILLIS: "uuuuMMdd'T'HHmmssXXX",
    DateFormat.BASIC_ORDINAL_DATE: "uuuuDDD",
    DateFormat.BASIC_ORDINAL_DATE_TIME: "uuuuDDD'T'HHmmss.SSSXXX",
    DateFormat.BASIC_ORDINAL_DATE_TIME_NO_MILLIS: "uuuuDDD'T'HHmmssXXX",
    DateFormat.BASIC_TIME: "HHmmss.SSSXXX",
    DateFormat.BASIC_TIME_NO_MILLIS: "HHmmssXXX",
    DateFormat.BASIC_T_TIME: "'T'HHmmss.SSSXXX",
    DateFormat.BASIC_T_TIME_NO_MILLIS: "'T'HHmmssXXX",
    DateFormat.DATE: "uuuu-MM-dd",
    DateFormat.DATE_HOUR: "uuuu-MM-dd'T'HH",
    DateFormat.DATE_HOUR_MINUTE: "uuuu-MM-dd'T'HH:mm",
    DateFormat.DATE_HOUR_MINUTE_SECOND: "uuuu-MM-dd'T'HH:mm:ss",
    DateFormat.DATE_HOUR_MINUTE_SECOND_FRACTION: "uuuu-MM-dd'T'HH:mm:ss.SSS",
    DateFormat.DATE_HOUR_MINUTE_SECOND_MILLIS: "uuuu-MM-dd'T'HH:mm:ss.SSS",
    DateFormat.DATE_TIME: "uuuu-MM-dd'T'HH:mm:ss.SSSXXX",
    DateFormat.DATE_TIME_NO_MILLIS: "uuuu-MM-dd'T'HH:mm:ssXXX",
    DateFormat.HOUR: "HH",
    DateFormat.HOUR_MINUTE: "HH:mm",
    DateFormat.HOUR_MINUTE_SECOND: "HH:mm:ss",
    DateFormat.HOUR_MINUTE_SECOND_FRACTION: "HH:mm:ss.SSS",
    DateFormat.HOUR_MINUTE_SECOND_MILLIS: "HH:mm:ss.SSS",
    DateFormat.ORDINAL_DATE: "uuuu-DDD",
    DateFormat.ORDINAL_DATE_TIME: "uuuu-DDD'T'HH:mm:ss.SSSXXX",
    DateFormat.ORDINAL_DATE_TIME_NO_MILLIS: "uuuu-DDD'T'HH:mm:ssXXX",
    DateFormat.TIME: "HH:mm:ss.SSSXXX",
    DateFormat.TIME_NO_MILLIS: "HH:mm:ssXXX",
    DateFormat.T_TIME: "'T'HH:mm:ss.SSSXXX",
    DateFormat.T_TIME_NO_MILLIS: "'T'HH:mm:ssXXX",
    DateFormat.YEAR: "uuuu",
    DateFormat.YEAR_MONTH: "uuuu-MM",
    DateFormat.YEAR_MONTH_DAY: "uuuu-MM-dd",
}

_ISO: Final[IsoFormatter] = IsoFormatter()
_SPECIAL_FORMATTERS: Final[dict[DateFormat, DateFormatter]] = {
    DateFormat.DATE_OPTIONAL_TIME: _ISO,
    DateFormat.EPOCH_MILLIS: EpochFormatter(timedelta(milliseconds=1), "epoch_millis"),
    DateFormat.EPOCH_SECOND: EpochFormatter(timedelta(seconds=1), "epoch_second"),
}
_BUILTIN_FORMATTERS: Final[dict[DateFormat, DateFormatter]] = {
    **{fmt: PatternFormatter(p) for fmt, p in BUILTIN_DATE_PATTERNS.items()},
    **_SPECIAL_FORMATTERS,
}


def formatter_for(fmt: DateFormat) -> DateFormatter:
    """
    Return the built-in formatter bound to a named format.

    Raises:
        KeyError: For DateFormat.CUSTOM, which has no fixed pattern.
    """
    return _BUILTIN_FORMATTERS[fmt]


# ============================================================================
# Converters
# ============================================================================


@dataclass(frozen=True)
class TemporalPropertyConverter:
    """
    Date/time converter for one property.

    Writes with the first formatter; reads by trying each formatter in order.
    """

    kind: TemporalKind
    formatters: tuple[DateFormatter, ...]
    property: str | None = None
    entity: str | None = None

    def _describe(self) -> str:
        return "||".join(f.description for f in self.formatters)

    def _check_offset(self, value: date | time) -> None:
        # Plain datetime/time values read back in the form the text carries.
        if self.kind not in (TemporalKind.DATETIME, TemporalKind.TIME):
            return
        if not isinstance(value, (datetime, time)):
            return
        formatter = self.formatters[0]
        carries_offset = getattr(formatter, "carries_offset", None)
        if carries_offset is None:
            return
        aware = value.utcoffset() is not None
        if carries_offset and not aware:
            hint = "pass an aware value"
            if self.kind is TemporalKind.DATETIME:
                hint = "pass an aware value or declare the property as pydantic.NaiveDatetime"
            raise ConversionError(
                f"naive value cannot be written as {formatter.description}, which carries an offset; "
                f"{hint}",
                entity=self.entity,
                property=self.property,
                value=value,
            )
        if aware and not carries_offset:
            raise ConversionError(
                f"aware value cannot be written as {formatter.description}, which carries no offset",
                entity=self.entity,
                property=self.property,
                value=value,
            )

    def write(self, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, (date, time)):
            raise ConversionError(
                f"expected a date/time value, got {type(value).__name__}",
                entity=self.entity,
                property=self.property,
                value=value,
            )
        self._check_offset(value)
        try:
            return self.formatters[0].format(value)
        except (ValueError, TypeError, OverflowError) as exc:
            raise ConversionError(
                f"cannot format value as {self.formatters[0].description}: {exc}",
                entity=self.entity,
                property=self.property,
                value=value,
            ) from exc

    def read(self, value: Any) -> Any:
        if value is None:
            return None
        last: Exception | None = None
        for formatter in self.formatters:
            try:
                return _adapt(self.kind, formatter.parse(value))
            except (ValueError, TypeError, OverflowError) as exc:
                last = exc
        raise ConversionError(
            f"cannot parse value as {self._describe()}",
            entity=self.entity,
            property=self.property,
            value=value,
        ) from last


@dataclass(frozen=True)
class CollectionPropertyConverter:
    """Apply an element converter to every element, preserving order."""

    element: PropertyValueConverter
    container: Callable[[Iterable[Any]], Any] = list

    def write(self, value: Any) -> Any:
        if value is None:
            return None
        return [self.element.write(v) for v in value]

    def read(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (str, int, float)):
            value = [value]
        return self.container(self.element.read(v) for v in value)


@dataclass(frozen=True)
class MapPropertyConverter:
    """Apply an element converter to every value of a mapping; keys are kept as text."""

    element: PropertyValueConverter
    property: str | None = None
    entity: str | None = None

    def _mapping(self, value: Any) -> Mapping[Any, Any]:
        if not isinstance(value, Mapping):
            raise ConversionError(
                f"expected a mapping, got {type(value).__name__}",
                entity=self.entity,
                property=self.property,
                value=value,
            )
        return value

    def write(self, value: Any) -> Any:
        if value is None:
            return None
        return {str(k): self.element.write(v) for k, v in self._mapping(value).items()}

    def read(self, value: Any) -> Any:
        if value is None:
            return None
        return {k: self.element.read(v) for k, v in self._mapping(value).items()}


@dataclass(frozen=True)
class ExplicitPropertyConverter:
    """Caller-supplied converter; foreign exceptions surface as ConversionError."""

    delegate: Any
    property: str | None = None
    entity: str | None = None

    def _call(self, fn: Callable[[Any], Any], value: Any, direction: str) -> Any:
        try:
            return fn(value)
        except ConversionError:
            raise
        except Exception as exc:
            raise ConversionError(
                f"{direction} failed in {type(self.delegate).__name__}: {exc}",
                entity=self.entity,
                property=self.property,
                value=value,
            ) from exc

    def write(self, value: Any) -> Any:
        return self._call(self.delegate.write, value, "write")

    def read(self, value: Any) -> Any:
        return self._call(self.delegate.read, value, "read")


# ============================================================================
# Resolution
# ============================================================================


@dataclass(frozen=True)
class ConversionTarget:
    """
    What the registry needs to know about a property to pick its converter.

    Attributes:
        property (str): Declared property name.
        entity (str): Qualified name of the owning type.
        field_type (FieldType): Resolved storage type.
        formats (tuple[DateFormat, ...]): Named formats in declaration order.
        pattern (str | None): Custom pattern.
        element_type (Any): Declared type, or element type for collections.
        container (Callable | None): Collection constructor for collection-valued properties.
        is_map (bool): True for mapping-valued properties (element = value type).
        explicit (Any): Explicit converter from the declaration.
    """

    property: str
    entity: str
    field_type: FieldType = FieldType.AUTO
    formats: tuple[DateFormat, ...] = ()
    pattern: str | None = None
    element_type: Any = None
    container: Callable[[Iterable[Any]], Any] | None = None
    is_map: bool = False
    explicit: Any = None


def _is_converter(obj: Any) -> bool:
    return callable(getattr(obj, "write", None)) and callable(getattr(obj, "read", None))


class PropertyValueConverterRegistry:
    """
    Resolve converters for properties.

    Resolution order:
        1. explicit converter on the declaration (validated here);
        2. built-in date converter from the declared formats/pattern;
        3. converter registered for the property's Python type;
        4. None (value passes through unchanged).
    """

    def __init__(self) -> None:
        self._by_type: dict[type, PropertyValueConverter] = {}

    def register(self, python_type: type, converter: PropertyValueConverter) -> None:
        if not _is_converter(converter):
            raise ConfigurationError(
                f"converter for {python_type.__name__} must define write() and read()"
            )
        self._by_type[python_type] = converter

    def resolve(self, target: ConversionTarget) -> PropertyValueConverter | None:
        """
        Pick the converter for a property.

        Raises:
            ConfigurationError: On an explicit converter without read/write, a CUSTOM
                format without pattern, or an invalid pattern.
        """
        if target.explicit is not None:
            if not _is_converter(target.explicit):
                raise ConfigurationError(
                    "explicit converter must define write() and read()",
                    entity=target.entity,
                    property=target.property,
                )
            return ExplicitPropertyConverter(target.explicit, target.property, target.entity)

        converter = self._date_converter(target)
        if converter is None:
            registered = self._by_type.get(target.element_type)
            if registered is not None:
                converter = ExplicitPropertyConverter(registered, target.property, target.entity)
        if converter is not None and target.is_map:
            return MapPropertyConverter(converter, target.property, target.entity)
        if converter is not None and target.container is not None:
            return CollectionPropertyConverter(converter, target.container)
        return converter

    def _date_converter(self, target: ConversionTarget) -> PropertyValueConverter | None:
        formatters = self._date_formatters(target)
        kind = temporal_kind_of(target.element_type)
        if kind is None:
            return None
        if not formatters:
            logger.debug(
                f"No date format declared for {target.entity}.{target.property}; using ISO-8601"
            )
            formatters = (_ISO,)
        return TemporalPropertyConverter(kind, formatters, target.property, target.entity)

    def _date_formatters(self, target: ConversionTarget) -> tuple[DateFormatter, ...]:
        wants_custom = DateFormat.CUSTOM in target.formats
        if wants_custom and not target.pattern:
            raise ConfigurationError(
                "custom date format requires a non-empty pattern",
                entity=target.entity,
                property=target.property,
            )
        if target.field_type not in DATE_FIELD_TYPES and not target.formats and not target.pattern:
            return ()
        formatters: list[DateFormatter] = [
            formatter_for(f) for f in target.formats if f is not DateFormat.CUSTOM
        ]
        if target.pattern:
            try:
                formatters.append(PatternFormatter(target.pattern))
            except ValueError as exc:
                raise ConfigurationError(
                    f"invalid date pattern: {exc}", entity=target.entity, property=target.property
                ) from exc
        return tuple(formatters)
