"""
Declarative mapping metadata attached to domain types.

Property metadata is attached with `typing.Annotated`; entity metadata with the
`document` class decorator. Declarations are plain frozen records: nothing here is
validated until the owning entity is built by the mapping context, so an illegal
combination (e.g. a CUSTOM date format without a pattern) surfaces as a
ConfigurationError at build time rather than while the class body executes.

Examples:
    >>> from dataclasses import dataclass
    >>> from typing import Annotated
    >>> from esodm.core.declarations import Field, Id, document
    >>> from esodm.core.grammar import FieldType
    >>> @document(index_name="books")
    ... @dataclass
    ... class Book:
    ...     id: Annotated[str | None, Id()] = None
    ...     title: Annotated[str | None, Field(type=FieldType.TEXT)] = None
    >>> document_spec(Book).index_name
    'books'
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .grammar import DateFormat, FieldType, VersionType

__all__ = [
    "Field",
    "InnerField",
    "MultiField",
    "Id",
    "Version",
    "ReadOnly",
    "Transient",
    "JoinTypeRelation",
    "JoinTypeRelations",
    "IndexSettings",
    "DocumentSpec",
    "document",
    "document_spec",
]

T = TypeVar("T", bound=type)

DOCUMENT_ATTR = "__esodm_document__"


@dataclass(frozen=True, slots=True)
class Field:
    """
    Storage declaration for one property.

    Attributes:
        type (FieldType | str): Storage type; AUTO defers to the engine.
        name (str | None): Explicit wire name; wins over any naming strategy.
        format (DateFormat | str | Sequence | None): Named date format(s). None means "no
            named format"; combine with `pattern` for a custom pattern.
        pattern (str | None): Custom date pattern (e.g. "dd.MM.uuuu").
        index, store, analyzer, search_analyzer, normalizer, fielddata, ignore_above,
        copy_to, null_value: Index options copied into generated mappings.
        store_null_value (bool): Write None values as explicit nulls.
        converter (object | None): Explicit converter with `write(value)` / `read(value)`.
    """

    type: FieldType | str = FieldType.AUTO
    name: str | None = None
    format: DateFormat | str | Sequence[DateFormat | str] | None = None
    pattern: str | None = None
    index: bool = True
    store: bool = False
    analyzer: str | None = None
    search_analyzer: str | None = None
    normalizer: str | None = None
    fielddata: bool = False
    ignore_above: int | None = None
    copy_to: tuple[str, ...] = ()
    null_value: Any = None
    store_null_value: bool = False
    converter: Any = None


@dataclass(frozen=True, slots=True)
class InnerField:
    """Sub-field of a MultiField, indexed under `<main>.<suffix>`; never stored separately."""

    suffix: str
    type: FieldType | str
    analyzer: str | None = None
    search_analyzer: str | None = None
    normalizer: str | None = None
    index: bool = True
    store: bool = False
    ignore_above: int | None = None
    format: DateFormat | str | Sequence[DateFormat | str] | None = None
    pattern: str | None = None


@dataclass(frozen=True, slots=True)
class MultiField:
    """Main field plus index-time projections of the same value."""

    main_field: Field
    other_fields: tuple[InnerField, ...] = ()


@dataclass(frozen=True, slots=True)
class Id:
    """Marks the identifier property."""


@dataclass(frozen=True, slots=True)
class Version:
    """Marks the application-supplied version number property (an int)."""


@dataclass(frozen=True, slots=True)
class ReadOnly:
    """Property is read from documents but never written."""


@dataclass(frozen=True, slots=True)
class Transient:
    """Property is not mapped at all."""


@dataclass(frozen=True, slots=True)
class JoinTypeRelation:
    parent: str
    children: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class JoinTypeRelations:
    """Parent/child relation names for a JoinField property."""

    relations: tuple[JoinTypeRelation, ...]


@dataclass(frozen=True, slots=True)
class IndexSettings:
    """Creation settings handed to the (external) index management layer."""

    shards: int = 1
    replicas: int = 1
    refresh_interval: str = "1s"
    index_store_type: str = "fs"

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": {
                "number_of_shards": self.shards,
                "number_of_replicas": self.replicas,
                "refresh_interval": self.refresh_interval,
                "store": {"type": self.index_store_type},
            }
        }


@dataclass(frozen=True, slots=True)
class DocumentSpec:
    """
    Entity-level declaration recorded by the `document` decorator.

    Attributes:
        index_name (str | Callable[[], str]): Static name, `str.format` template, or a
            zero-argument callable evaluated on each resolution.
        create_index (bool): Whether the index layer may create the index.
        settings (IndexSettings): Creation settings.
        version_type (VersionType | str): Versioning protocol for the version property.
        routing (str | None): Property whose value routes documents to a shard.
    """

    index_name: str | Callable[[], str]
    create_index: bool = True
    settings: IndexSettings = field(default_factory=IndexSettings)
    version_type: VersionType | str = VersionType.INTERNAL
    routing: str | None = None


def document(
    index_name: str | Callable[[], str],
    *,
    create_index: bool = True,
    settings: IndexSettings | None = None,
    version_type: VersionType | str = VersionType.INTERNAL,
    routing: str | None = None,
) -> Callable[[T], T]:
    """
    Class decorator declaring a top-level document type.

    Args:
        index_name: Static name, `str.format` template, or zero-argument callable.
        create_index: Whether the index layer may create the index.
        settings: Creation settings (defaults to IndexSettings()).
        version_type: Versioning protocol for the version property.
        routing: Name of the property used for routing.

    Returns:
        Callable: Decorator returning the class unchanged apart from the attached spec.
    """
    spec = DocumentSpec(
        index_name=index_name,
        create_index=create_index,
        settings=settings or IndexSettings(),
        version_type=version_type,
        routing=routing,
    )

    def decorate(cls: T) -> T:
        # Stored in the class dict so subclasses do not inherit the parent's index.
        setattr(cls, DOCUMENT_ATTR, spec)
        return cls

    return decorate


def document_spec(cls: type) -> DocumentSpec | None:
    """Return the DocumentSpec declared directly on `cls`, if any."""
    return cls.__dict__.get(DOCUMENT_ATTR)
