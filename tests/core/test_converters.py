from datetime import date, datetime, time, timedelta, timezone

import pytest
from pydantic import AwareDatetime, NaiveDatetime

from esodm.core.converters import (
    BUILTIN_DATE_PATTERNS,
    CollectionPropertyConverter,
    MapPropertyConverter,
    ConversionTarget,
    PatternFormatter,
    PropertyValueConverterRegistry,
    TemporalKind,
    TemporalPropertyConverter,
    formatter_for,
    temporal_kind_of,
)
from esodm.core.errors import ConfigurationError, ConversionError
from esodm.core.grammar import DateFormat, FieldType


def _target(**kwargs) -> ConversionTarget:
    kwargs.setdefault("property", "when")
    kwargs.setdefault("entity", "tests.Event")
    return ConversionTarget(**kwargs)


def test_every_named_format_has_a_formatter() -> None:
    for fmt in DateFormat:
        if fmt is DateFormat.CUSTOM:
            continue
        assert formatter_for(fmt) is not None


def test_custom_pattern_round_trip_for_dates() -> None:
    fmt = PatternFormatter("dd.MM.uuuu")
    assert fmt.format(date(2019, 12, 27)) == "27.12.2019"
    assert fmt.parse("27.12.2019").date() == date(2019, 12, 27)
    assert fmt.format(fmt.parse("27.12.2019")) == "27.12.2019"


def test_basic_date_time_writes_utc_with_millis() -> None:
    converter = TemporalPropertyConverter(
        TemporalKind.AWARE_DATETIME, (formatter_for(DateFormat.BASIC_DATE_TIME),)
    )
    instant = datetime(2020, 4, 19, 19, 44, tzinfo=timezone.utc)
    assert converter.write(instant) == "20200419T194400.000Z"
    assert converter.read("20200419T194400.000Z") == instant


def test_basic_date_time_converts_other_offsets_to_utc() -> None:
    fmt = formatter_for(DateFormat.BASIC_DATE_TIME)
    cest = timezone(timedelta(hours=2))
    assert fmt.format(datetime(2020, 4, 19, 21, 44, tzinfo=cest)) == "20200419T194400.000Z"
    parsed = fmt.parse("20200419T214400.000+02:00")
    assert parsed == datetime(2020, 4, 19, 19, 44, tzinfo=timezone.utc)


def test_pattern_parse_yields_time_when_no_date_letters() -> None:
    assert PatternFormatter("HH:mm").parse("07:05") == time(7, 5)


def test_pattern_month_names_and_ordinal_days() -> None:
    assert PatternFormatter("dd MMM uuuu").format(date(2021, 3, 4)) == "04 Mar 2021"
    assert PatternFormatter("dd MMM uuuu").parse("04 mar 2021").date() == date(2021, 3, 4)
    assert PatternFormatter(BUILTIN_DATE_PATTERNS[DateFormat.BASIC_ORDINAL_DATE]).format(
        date(2021, 2, 1)
    ) == "2021032"


def test_pattern_rejects_unsupported_letters() -> None:
    with pytest.raises(ValueError, match="unsupported pattern letter"):
        PatternFormatter("YYYY-ww")


def test_temporal_kind_follows_declared_type() -> None:
    assert temporal_kind_of(date) is TemporalKind.DATE
    assert temporal_kind_of(datetime) is TemporalKind.DATETIME
    assert temporal_kind_of(time) is TemporalKind.TIME
    assert temporal_kind_of(AwareDatetime) is TemporalKind.AWARE_DATETIME
    assert temporal_kind_of(NaiveDatetime) is TemporalKind.NAIVE_DATETIME
    assert temporal_kind_of(str) is None


def test_epoch_millis_round_trip() -> None:
    converter = TemporalPropertyConverter(
        TemporalKind.AWARE_DATETIME, (formatter_for(DateFormat.EPOCH_MILLIS),)
    )
    instant = datetime(2020, 1, 1, tzinfo=timezone.utc)
    assert converter.write(instant) == "1577836800000"
    assert converter.read(1577836800000) == instant


def test_read_failure_names_property_and_raw_value() -> None:
    converter = TemporalPropertyConverter(
        TemporalKind.DATE, (PatternFormatter("dd.MM.uuuu"),), property="when", entity="tests.Event"
    )
    with pytest.raises(ConversionError) as info:
        converter.read("2019-12-27")
    assert info.value.property == "when"
    assert info.value.value == "2019-12-27"
    assert "tests.Event.when" in str(info.value)


def test_read_tries_each_format_in_order() -> None:
    converter = TemporalPropertyConverter(
        TemporalKind.DATE, (formatter_for(DateFormat.BASIC_DATE), PatternFormatter("dd.MM.uuuu"))
    )
    assert converter.write(date(2019, 12, 27)) == "20191227"
    assert converter.read("27.12.2019") == date(2019, 12, 27)


def test_collection_converter_is_element_wise_and_ordered() -> None:
    element = TemporalPropertyConverter(TemporalKind.DATE, (PatternFormatter("dd.MM.uuuu"),))
    converter = CollectionPropertyConverter(element)
    days = [date(2020, 1, 2), date(2019, 12, 27)]
    assert converter.write(days) == ["02.01.2020", "27.12.2019"]
    assert converter.read(["02.01.2020", "27.12.2019"]) == days


def test_registry_requires_pattern_for_custom_format() -> None:
    registry = PropertyValueConverterRegistry()
    with pytest.raises(ConfigurationError, match="pattern"):
        registry.resolve(_target(field_type=FieldType.DATE, formats=(DateFormat.CUSTOM,), element_type=date))


def test_registry_rejects_invalid_pattern() -> None:
    registry = PropertyValueConverterRegistry()
    with pytest.raises(ConfigurationError, match="invalid date pattern"):
        registry.resolve(_target(field_type=FieldType.DATE, pattern="dd.QQ", element_type=date))


def test_registry_prefers_explicit_converter() -> None:
    class Upper:
        def write(self, value):
            return value.upper()

        def read(self, value):
            return value.lower()

    registry = PropertyValueConverterRegistry()
    converter = registry.resolve(_target(element_type=str, explicit=Upper()))
    assert converter.write("abc") == "ABC"
    assert converter.read("ABC") == "abc"


def test_registry_rejects_malformed_explicit_converter() -> None:
    registry = PropertyValueConverterRegistry()
    with pytest.raises(ConfigurationError, match="write\\(\\) and read\\(\\)"):
        registry.resolve(_target(element_type=str, explicit=object()))


def test_explicit_converter_errors_become_conversion_errors() -> None:
    class Broken:
        def write(self, value):
            raise RuntimeError("boom")

        def read(self, value):
            return value

    converter = PropertyValueConverterRegistry().resolve(_target(element_type=str, explicit=Broken()))
    with pytest.raises(ConversionError, match="boom"):
        converter.write("x")


def test_registry_uses_type_registered_converter() -> None:
    class Cents:
        def write(self, value):
            return int(round(value * 100))

        def read(self, value):
            return value / 100

    registry = PropertyValueConverterRegistry()
    registry.register(float, Cents())
    converter = registry.resolve(_target(element_type=float, container=list))
    assert converter.write([1.25, 2.5]) == [125, 250]
    assert converter.read([125]) == [1.25]


def test_registry_passes_through_plain_values() -> None:
    registry = PropertyValueConverterRegistry()
    assert registry.resolve(_target(element_type=str, field_type=FieldType.KEYWORD)) is None


def test_unconfigured_temporal_property_uses_iso() -> None:
    converter = PropertyValueConverterRegistry().resolve(_target(element_type=datetime))
    assert converter.write(datetime(2020, 4, 19, 19, 44)) == "2020-04-19T19:44:00"
    assert converter.read("2020-04-19T19:44:00.000") == datetime(2020, 4, 19, 19, 44)
    instant = datetime(2020, 4, 19, 19, 44, 0, 123456, tzinfo=timezone.utc)
    assert converter.write(instant) == "2020-04-19T19:44:00.123456Z"
    assert converter.read("2020-04-19T19:44:00.123456Z") == instant


def test_naive_datetime_is_read_in_utc() -> None:
    converter = PropertyValueConverterRegistry().resolve(
        _target(element_type=NaiveDatetime, field_type=FieldType.DATE, formats=(DateFormat.DATE_TIME,))
    )
    assert converter.read("2020-04-19T21:44:00.000+02:00") == datetime(2020, 4, 19, 19, 44)
    assert converter.write(datetime(2020, 4, 19, 19, 44)) == "2020-04-19T19:44:00.000Z"


def test_formatters_report_whether_text_carries_an_offset() -> None:
    assert formatter_for(DateFormat.DATE_TIME).carries_offset is True
    assert formatter_for(DateFormat.EPOCH_MILLIS).carries_offset is True
    assert formatter_for(DateFormat.DATE_HOUR_MINUTE_SECOND).carries_offset is False
    assert formatter_for(DateFormat.DATE_OPTIONAL_TIME).carries_offset is None


def test_plain_datetime_must_match_the_offset_of_the_write_format() -> None:
    converter = TemporalPropertyConverter(
        TemporalKind.DATETIME, (formatter_for(DateFormat.EPOCH_MILLIS),), property="when"
    )
    with pytest.raises(ConversionError, match="naive value"):
        converter.write(datetime(2020, 1, 1))
    assert converter.write(datetime(2020, 1, 1, tzinfo=timezone.utc)) == "1577836800000"


def test_naive_time_is_rejected_by_offset_format() -> None:
    converter = TemporalPropertyConverter(TemporalKind.TIME, (formatter_for(DateFormat.TIME),))
    with pytest.raises(ConversionError, match="pass an aware value"):
        converter.write(time(7, 5))


def test_aware_time_parse_keeps_offset() -> None:
    converter = TemporalPropertyConverter(TemporalKind.TIME, (PatternFormatter("HH:mmXXX"),))
    plus_two = timezone(timedelta(hours=2))
    assert converter.write(time(7, 5, tzinfo=plus_two)) == "07:05+02:00"
    assert converter.read("07:05+02:00").utcoffset() == timedelta(hours=2)


def test_registry_wraps_map_valued_temporal_properties() -> None:
    converter = PropertyValueConverterRegistry().resolve(
        _target(element_type=date, pattern="dd.MM.uuuu", field_type=FieldType.DATE, is_map=True)
    )
    assert isinstance(converter, MapPropertyConverter)
    assert converter.write({"xmas": date(2019, 12, 25)}) == {"xmas": "25.12.2019"}
    assert converter.read({"xmas": "25.12.2019"}) == {"xmas": date(2019, 12, 25)}
    with pytest.raises(ConversionError, match="expected a mapping"):
        converter.read(["25.12.2019"])
