from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Annotated
from uuid import UUID

import pytest
from pydantic import AwareDatetime, BaseModel, ConfigDict, NaiveDatetime

from esodm.core.declarations import (
    Field,
    Id,
    InnerField,
    JoinTypeRelation,
    JoinTypeRelations,
    MultiField,
    Version,
    document,
)
from esodm.core.errors import ConversionError
from esodm.core.grammar import DateFormat, FieldType, VersionType
from esodm.core.values import DocumentEnvelope, GeoPoint, JoinField, SeqNoPrimaryTerm
from esodm.mapping.context import MappingContext
from esodm.mapping.converter import DocumentConverter
from esodm.mapping.entity import type_alias
from esodm.settings import MappingSettings


class Color(Enum):
    RED = "red"
    BLUE = "blue"


@dataclass
class Address:
    street: str | None = None
    city: str | None = None


@document(index_name="people")
@dataclass
class Person:
    id: Annotated[str | None, Id()] = None
    first_name: Annotated[str | None, Field(type=FieldType.TEXT, name="firstName")] = None
    title: Annotated[
        str | None,
        MultiField(main_field=Field(type=FieldType.TEXT), other_fields=(InnerField("raw", FieldType.KEYWORD),)),
    ] = None
    birthday: Annotated[date | None, Field(type=FieldType.DATE, pattern="dd.MM.uuuu")] = None
    holidays: Annotated[list[date] | None, Field(type=FieldType.DATE, pattern="dd.MM.uuuu")] = None
    updated: Annotated[AwareDatetime | None, Field(type=FieldType.DATE, format=DateFormat.BASIC_DATE_TIME)] = None
    favorite: Color | None = None
    token: UUID | None = None
    location: GeoPoint | None = None
    address: Address | None = None
    previous: Annotated[list[Address] | None, Field(type=FieldType.NESTED)] = None
    version: Annotated[int | None, Version()] = None
    seq_no_primary_term: SeqNoPrimaryTerm | None = None


@document(index_name="qa-{tenant}", version_type=VersionType.EXTERNAL)
@dataclass
class Post:
    id: Annotated[str | None, Id()] = None
    text: str | None = None
    relation: Annotated[
        JoinField | None, JoinTypeRelations((JoinTypeRelation("question", ("answer",)),))
    ] = None
    version: Annotated[int | None, Version()] = None
    seq_no_primary_term: SeqNoPrimaryTerm | None = None


@dataclass
class Numbered:
    id: Annotated[int | None, Id()] = None
    name: str | None = None


@dataclass
class Nullable:
    kept: Annotated[str | None, Field(store_null_value=True)] = None
    dropped: str | None = None


@dataclass(frozen=True)
class Frozen:
    id: Annotated[str | None, Id()] = None
    version: Annotated[int | None, Version()] = None


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Annotated[str | None, Id()] = None
    day: Annotated[date | None, Field(type=FieldType.DATE, format=DateFormat.BASIC_DATE)] = None
    seq_no_primary_term: SeqNoPrimaryTerm | None = None


class Counter:
    name: str | None = None
    hits: int | None = None

    def __eq__(self, other):
        return isinstance(other, Counter) and (self.name, self.hits) == (other.name, other.hits)


@dataclass
class Animal:
    name: str | None = None


@dataclass
class Dog(Animal):
    good: bool | None = None


@dataclass
class Camel:
    firstName: str | None = None


def _person() -> Person:
    return Person(
        id="1",
        first_name="Ann",
        title="Dr",
        birthday=date(2019, 12, 27),
        holidays=[date(2020, 1, 2), date(2019, 12, 24)],
        updated=datetime(2020, 4, 19, 19, 44, tzinfo=timezone.utc),
        favorite=Color.RED,
        token=UUID("12345678-1234-5678-1234-567812345678"),
        location=GeoPoint(lat=52.5, lon=13.4),
        address=Address("Main St", "Berlin"),
        previous=[Address("Old St", "Bonn")],
    )


@pytest.fixture
def converter() -> DocumentConverter:
    return DocumentConverter(MappingContext())


def test_writes_ordered_document_with_converted_values(converter: DocumentConverter) -> None:
    document = converter.to_document(_person())
    assert document == {
        "id": "1",
        "firstName": "Ann",
        "title": "Dr",
        "birthday": "27.12.2019",
        "holidays": ["02.01.2020", "24.12.2019"],
        "updated": "20200419T194400.000Z",
        "favorite": "red",
        "token": "12345678-1234-5678-1234-567812345678",
        "location": {"lat": 52.5, "lon": 13.4},
        "address": {"street": "Main St", "city": "Berlin"},
        "previous": [{"street": "Old St", "city": "Bonn"}],
    }
    assert list(document)[:4] == ["id", "firstName", "title", "birthday"]


def test_round_trip_reproduces_readable_and_writable_properties(converter: DocumentConverter) -> None:
    person = _person()
    assert converter.from_document(converter.to_document(person), Person) == person


def test_version_and_seq_no_never_enter_the_body(converter: DocumentConverter) -> None:
    person = _person()
    person.version = 4
    person.seq_no_primary_term = SeqNoPrimaryTerm(sequence_number=1, primary_term=1)
    document = converter.to_document(person)
    assert "version" not in document
    assert "seq_no_primary_term" not in document

    read = converter.from_document({"id": "1", "version": 9, "seq_no_primary_term": {}}, Person)
    assert read.version is None
    assert read.seq_no_primary_term is None


def test_envelope_supplies_out_of_band_values(converter: DocumentConverter) -> None:
    envelope = DocumentEnvelope(id="7", version=3, seq_no=12, primary_term=2)
    person = converter.from_document({"firstName": "Bo"}, Person, envelope)
    assert person.id == "7"
    assert person.version == 3
    assert person.seq_no_primary_term == SeqNoPrimaryTerm(sequence_number=12, primary_term=2)


def test_body_id_wins_over_envelope_id(converter: DocumentConverter) -> None:
    person = converter.from_document({"id": "from-body"}, Person, DocumentEnvelope(id="from-envelope"))
    assert person.id == "from-body"


def test_envelope_id_is_converted_to_the_declared_type(converter: DocumentConverter) -> None:
    assert converter.from_document({"name": "x"}, Numbered, DocumentEnvelope(id="42")) == Numbered(42, "x")


def test_absent_and_unknown_fields(converter: DocumentConverter) -> None:
    person = converter.from_document({"firstName": "Cy", "nickname": "C", "legacy": {"a": 1}}, Person)
    assert person == Person(first_name="Cy")
    assert converter.from_document(None, Person) is None


def test_none_is_omitted_unless_stored(converter: DocumentConverter) -> None:
    assert converter.to_document(Nullable()) == {"kept": None}
    assert converter.from_document({"kept": None}, Nullable) == Nullable()


def test_unparseable_value_raises_conversion_error(converter: DocumentConverter) -> None:
    with pytest.raises(ConversionError) as info:
        converter.from_document({"birthday": "2019-12-27"}, Person)
    assert info.value.property == "birthday"
    assert info.value.value == "2019-12-27"


def test_bad_enum_value_raises_conversion_error(converter: DocumentConverter) -> None:
    with pytest.raises(ConversionError, match="favorite"):
        converter.from_document({"favorite": "green"}, Person)


def test_to_indexed_document(converter: DocumentConverter) -> None:
    post = Post(
        id="2",
        text="yes",
        relation=JoinField(name="answer", parent="1"),
        version=5,
        seq_no_primary_term=SeqNoPrimaryTerm(sequence_number=7, primary_term=2),
    )
    indexed = converter.to_indexed_document(post, {"tenant": "acme"})
    assert indexed.index == "qa-acme"
    assert indexed.id == "2"
    assert indexed.document == {"id": "2", "text": "yes", "relation": {"name": "answer", "parent": "1"}}
    assert indexed.version == 5
    assert indexed.version_type is VersionType.EXTERNAL
    assert (indexed.seq_no, indexed.primary_term) == (7, 2)
    assert indexed.routing == "1"


def test_indexed_document_without_version_has_no_version_type(converter: DocumentConverter) -> None:
    indexed = converter.to_indexed_document(Post(text="q", relation=JoinField(name="question")), {"tenant": "t"})
    assert indexed.id is None
    assert indexed.version is None
    assert indexed.version_type is None
    assert indexed.routing is None


def test_read_search_hit(converter: DocumentConverter) -> None:
    hit = converter.read_search_hit(
        {
            "_index": "people",
            "_id": "9",
            "_seq_no": 4,
            "_primary_term": 1,
            "_version": 2,
            "_score": 1.0,
            "_source": {"firstName": "Bo"},
        },
        Person,
    )
    assert hit.id == "9"
    assert hit.score == 1.0
    assert hit.content == Person(
        id="9",
        first_name="Bo",
        version=2,
        seq_no_primary_term=SeqNoPrimaryTerm(sequence_number=4, primary_term=1),
    )


def test_update_from_envelope_mutates_mutable_instances(converter: DocumentConverter) -> None:
    person = Person(first_name="Di")
    updated = converter.update_from_envelope(person, DocumentEnvelope(id="11", version=1, seq_no=0, primary_term=1))
    assert updated is person
    assert person.id == "11"
    assert person.version == 1
    assert person.seq_no_primary_term == SeqNoPrimaryTerm(sequence_number=0, primary_term=1)


def test_update_from_envelope_copies_immutable_instances(converter: DocumentConverter) -> None:
    original = Frozen()
    updated = converter.update_from_envelope(original, DocumentEnvelope(id="5", version=2))
    assert updated == Frozen(id="5", version=2)
    assert original == Frozen()

    event = Event(id="1", day=date(2024, 2, 29))
    copy = converter.update_from_envelope(event, DocumentEnvelope(seq_no=3, primary_term=1))
    assert copy.seq_no_primary_term == SeqNoPrimaryTerm(sequence_number=3, primary_term=1)
    assert event.seq_no_primary_term is None


def test_pydantic_model_round_trip(converter: DocumentConverter) -> None:
    event = Event(id="1", day=date(2024, 2, 29))
    document = converter.to_document(event)
    assert document == {"id": "1", "day": "20240229"}
    assert converter.from_document(document, Event) == event


def test_plain_class_round_trip_with_setters(converter: DocumentConverter) -> None:
    counter = Counter()
    counter.name = "clicks"
    counter.hits = 3
    assert converter.to_document(counter) == {"name": "clicks", "hits": 3}
    assert converter.from_document({"name": "clicks", "hits": 3}, Counter) == counter


def test_type_hints_select_subclass_on_read() -> None:
    converter = DocumentConverter(MappingContext(MappingSettings(write_type_hints=True)))
    document = converter.to_document(Dog(name="Rex", good=True))
    assert document == {"_class": type_alias(Dog), "name": "Rex", "good": True}
    assert converter.from_document(document, Animal) == Dog(name="Rex", good=True)


def test_type_hint_field_is_configurable() -> None:
    converter = DocumentConverter(
        MappingContext(MappingSettings(write_type_hints=True, type_hint_field="@type"))
    )
    assert converter.to_document(Animal(name="Cat")) == {"@type": type_alias(Animal), "name": "Cat"}


def test_case_insensitive_read() -> None:
    converter = DocumentConverter(MappingContext(MappingSettings(case_sensitive_fields=False)))
    assert converter.from_document({"FIRSTNAME": "Ed"}, Person) == Person(first_name="Ed")


def test_snake_case_naming_round_trip() -> None:
    converter = DocumentConverter(MappingContext(MappingSettings(field_naming_strategy="snake_case")))
    document = converter.to_document(Camel(firstName="Al"))
    assert document == {"first_name": "Al"}
    assert converter.from_document(document, Camel) == Camel(firstName="Al")


@dataclass
class Stamp:
    ts: Annotated[datetime | None, Field(type=FieldType.DATE, format=DateFormat.DATE_TIME)] = None


@dataclass
class NaiveStamp:
    ts: Annotated[NaiveDatetime | None, Field(type=FieldType.DATE, format=DateFormat.DATE_TIME)] = None


@dataclass
class LocalStamp:
    ts: Annotated[
        datetime | None, Field(type=FieldType.DATE, format=DateFormat.DATE_HOUR_MINUTE_SECOND)
    ] = None


@dataclass
class Unconfigured:
    ts: datetime | None = None
    at: time | None = None


@dataclass
class Opening:
    at: Annotated[time | None, Field(type=FieldType.DATE, format=DateFormat.TIME)] = None


@dataclass
class DatesByKey:
    days: Annotated[dict[str, date] | None, Field(type=FieldType.DATE, pattern="dd.MM.uuuu")] = None


def test_offset_format_round_trips_aware_datetime(converter: DocumentConverter) -> None:
    stamp = Stamp(ts=datetime(2020, 4, 19, 21, 44, tzinfo=timezone(timedelta(hours=2))))
    document = converter.to_document(stamp)
    assert document == {"ts": "2020-04-19T19:44:00.000Z"}
    assert converter.from_document(document, Stamp) == stamp


def test_offset_format_rejects_naive_datetime(converter: DocumentConverter) -> None:
    with pytest.raises(ConversionError, match="NaiveDatetime") as info:
        converter.to_document(Stamp(ts=datetime(2020, 4, 19, 19, 44)))
    assert info.value.property == "ts"


def test_naive_datetime_declaration_round_trips_through_offset_format(converter: DocumentConverter) -> None:
    stamp = NaiveStamp(ts=datetime(2020, 4, 19, 19, 44))
    document = converter.to_document(stamp)
    assert document == {"ts": "2020-04-19T19:44:00.000Z"}
    assert converter.from_document(document, NaiveStamp) == stamp


def test_local_format_round_trips_naive_and_rejects_aware(converter: DocumentConverter) -> None:
    stamp = LocalStamp(ts=datetime(2020, 4, 19, 19, 44, 5))
    document = converter.to_document(stamp)
    assert document == {"ts": "2020-04-19T19:44:05"}
    assert converter.from_document(document, LocalStamp) == stamp
    with pytest.raises(ConversionError, match="carries no offset"):
        converter.to_document(LocalStamp(ts=datetime(2020, 4, 19, 19, 44, tzinfo=timezone.utc)))


def test_unconfigured_temporal_values_keep_microseconds(converter: DocumentConverter) -> None:
    value = Unconfigured(
        ts=datetime(2020, 4, 19, 19, 44, 0, 123456, tzinfo=timezone.utc),
        at=time(7, 5, 0, 42),
    )
    document = converter.to_document(value)
    assert document == {"ts": "2020-04-19T19:44:00.123456Z", "at": "07:05:00.000042"}
    assert converter.from_document(document, Unconfigured) == value


def test_aware_time_keeps_its_offset(converter: DocumentConverter) -> None:
    opening = Opening(at=time(7, 5, tzinfo=timezone(timedelta(hours=2))))
    document = converter.to_document(opening)
    assert document == {"at": "07:05:00.000+02:00"}
    back = converter.from_document(document, Opening)
    assert back == opening
    assert back.at.utcoffset() == timedelta(hours=2)


def test_temporal_map_converts_values_and_keeps_keys(converter: DocumentConverter) -> None:
    dates = DatesByKey(days={"xmas": date(2019, 12, 25), "eve": date(2019, 12, 31)})
    document = converter.to_document(dates)
    assert document == {"days": {"xmas": "25.12.2019", "eve": "31.12.2019"}}
    assert converter.from_document(document, DatesByKey) == dates


def test_json_round_trip_keeps_field_order(converter: DocumentConverter) -> None:
    text = converter.to_json(Camel(firstName="Ünal"))
    assert text == '{"firstName":"Ünal"}'
    assert converter.from_json(text, Camel) == Camel(firstName="Ünal")
    assert converter.from_json("null", Camel) is None
