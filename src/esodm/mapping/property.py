"""
Property descriptors: per-property metadata derived once from a type's declarations.

A PropertyDescriptor answers, for one declared attribute of a domain type:
- under which wire name it is stored (explicit name > naming strategy),
- which storage type, date formats and index options it carries,
- which converter translates its values,
- which role it plays (identifier, version, sequence/term, join field),
- whether it takes part in document writes and reads.

Descriptors are immutable and owned by their PersistentEntityDescriptor. Entity-valued
properties keep only the target *type*; the target's own descriptor is looked up in the
mapping context when values are converted.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import types
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, ClassVar, Union, get_args, get_origin
from uuid import UUID

from pydantic import BaseModel

from esodm.core.converters import (
    ConversionTarget,
    PropertyValueConverter,
    PropertyValueConverterRegistry,
    temporal_kind_of,
)
from esodm.core.declarations import (
    Field,
    Id,
    InnerField,
    JoinTypeRelation,
    JoinTypeRelations,
    MultiField,
    ReadOnly,
    Transient,
    Version,
    document_spec,
)
from esodm.core.errors import ConfigurationError, GrammarError
from esodm.core.grammar import (
    ENTITY_FIELD_TYPES,
    DateFormat,
    FieldType,
    date_format_from_value,
    field_type_from_value,
)
from esodm.core.naming import FieldNamingStrategy
from esodm.core.values import GeoPoint, JoinField, SeqNoPrimaryTerm

__all__ = [
    "InnerFieldDescriptor",
    "PropertyDescriptor",
    "TypeShape",
    "build_property_descriptor",
    "is_entity_type",
    "is_mapped_annotation",
    "type_shape",
]

_VALUE_TYPES: frozenset[type] = frozenset({SeqNoPrimaryTerm, JoinField, GeoPoint})
_SCALAR_TYPES: tuple[type, ...] = (str, bytes, int, float, bool, UUID)
_SEQUENCE_ORIGINS: dict[Any, Callable[[Iterable[Any]], Any]] = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Collection: list,
    collections.abc.Iterable: list,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
}
_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def is_entity_type(tp: Any) -> bool:
    """True for classes the mapping context can describe (dataclasses, pydantic models, @document types)."""
    if not isinstance(tp, type) or tp in _VALUE_TYPES or issubclass(tp, Enum):
        return False
    return dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel) or document_spec(tp) is not None


def is_mapped_annotation(name: str, hint: Any) -> bool:
    """Private names, ClassVars and dataclass InitVars never become properties."""
    if name.startswith("_"):
        return False
    if hint is ClassVar or get_origin(hint) is ClassVar:
        return False
    return not isinstance(hint, dataclasses.InitVar)


@dataclass(frozen=True)
class TypeShape:
    """Declared annotation taken apart: element type, container, and Annotated metadata."""

    declared: Any
    element: Any
    metadata: tuple[Any, ...] = ()
    optional: bool = False
    container: Callable[[Iterable[Any]], Any] | None = None
    is_map: bool = False


def _strip_optional(hint: Any) -> tuple[Any, bool]:
    if get_origin(hint) in (Union, types.UnionType):
        args = get_args(hint)
        rest = [a for a in args if a is not type(None)]
        optional = len(rest) < len(args)
        return (rest[0] if len(rest) == 1 else Any), optional
    return hint, False


def type_shape(hint: Any) -> TypeShape:
    """
    Take a resolved annotation apart.

    Handles `Annotated[X | None, ...]` as well as `Annotated[X, ...] | None`, collections
    of X (list/tuple/set/Sequence/...), and mappings (element = value type).
    """
    metadata: list[Any] = []
    if get_origin(hint) is Annotated:
        hint, *meta = get_args(hint)
        metadata.extend(meta)
    hint, optional = _strip_optional(hint)
    if get_origin(hint) is Annotated:
        hint, *meta = get_args(hint)
        metadata.extend(meta)
    origin = get_origin(hint) or (hint if hint in _SEQUENCE_ORIGINS or hint in _MAP_ORIGINS else None)
    args = get_args(hint)
    if origin in _SEQUENCE_ORIGINS:
        element = _strip_optional(args[0])[0] if args else Any
        return TypeShape(hint, element, tuple(metadata), optional, container=_SEQUENCE_ORIGINS[origin])
    if origin in _MAP_ORIGINS:
        element = _strip_optional(args[1])[0] if len(args) == 2 else Any
        return TypeShape(hint, element, tuple(metadata), optional, is_map=True)
    return TypeShape(hint, hint, tuple(metadata), optional)


@dataclass(frozen=True)
class InnerFieldDescriptor:
    """Resolved sub-field of a multi-field property."""

    suffix: str
    field_type: FieldType
    options: Mapping[str, Any] = field(default_factory=dict)
    date_formats: tuple[DateFormat, ...] = ()
    date_pattern: str | None = None


@dataclass(frozen=True)
class PropertyDescriptor:
    """
    Immutable metadata for one mapped property.

    Attributes:
        name (str): Declared (Python attribute) name.
        field_name (str): Wire field name inside documents.
        owner (str): Qualified name of the owning type.
        shape (TypeShape): Declared type, element type and container shape.
        field_type (FieldType): Storage type.
        date_formats (tuple[DateFormat, ...]): Named date formats in declaration order.
        date_pattern (str | None): Custom date pattern.
        converter (PropertyValueConverter | None): Value converter, if any.
        readable (bool): Filled from the document body on read.
        writable (bool): Emitted into the document body on write.
        is_id_property, is_version_property, is_seq_no_primary_term_property,
        is_join_field_property (bool): Role flags.
        join_relations (tuple[JoinTypeRelation, ...]): Declared parent/child relations.
        multi_fields (tuple[InnerFieldDescriptor, ...]): Index-time sub-fields.
        index_options (Mapping[str, Any]): Non-default mapping options.
        store_null_value (bool): Write None as explicit null.
    """

    name: str
    field_name: str
    owner: str
    shape: TypeShape
    field_type: FieldType = FieldType.AUTO
    date_formats: tuple[DateFormat, ...] = ()
    date_pattern: str | None = None
    converter: PropertyValueConverter | None = None
    readable: bool = True
    writable: bool = True
    is_id_property: bool = False
    is_version_property: bool = False
    is_seq_no_primary_term_property: bool = False
    is_join_field_property: bool = False
    join_relations: tuple[JoinTypeRelation, ...] = ()
    multi_fields: tuple[InnerFieldDescriptor, ...] = ()
    index_options: Mapping[str, Any] = field(default_factory=dict)
    store_null_value: bool = False

    @property
    def has_property_converter(self) -> bool:
        return self.converter is not None

    @property
    def is_multi_field(self) -> bool:
        return bool(self.multi_fields)

    @property
    def is_collection(self) -> bool:
        return self.shape.container is not None

    @property
    def element_type(self) -> Any:
        return self.shape.element

    @property
    def is_entity(self) -> bool:
        return is_entity_type(self.shape.element)

    def get_value(self, instance: Any) -> Any:
        return getattr(instance, self.name, None)


# ============================================================================
# Builder
# ============================================================================


def _single(metadata: tuple[Any, ...], kind: type, owner: str, name: str) -> Any:
    found = [m for m in metadata if isinstance(m, kind)]
    if len(found) > 1:
        raise ConfigurationError(f"declares {kind.__name__} more than once", entity=owner, property=name)
    return found[0] if found else None


def _field_type(value: Any, owner: str, name: str) -> FieldType:
    try:
        return field_type_from_value(value)
    except GrammarError as exc:
        raise ConfigurationError(f"unsupported storage type: {exc}", entity=owner, property=name) from exc


def _date_formats(value: Any, owner: str, name: str) -> tuple[DateFormat, ...]:
    if value is None:
        return ()
    values = [value] if isinstance(value, (str, DateFormat)) else list(value)
    try:
        return tuple(date_format_from_value(v) for v in values)
    except GrammarError as exc:
        raise ConfigurationError(f"unsupported date format: {exc}", entity=owner, property=name) from exc


def _index_options(decl: Field | InnerField) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if not decl.index:
        options["index"] = False
    if decl.store:
        options["store"] = True
    for key in ("analyzer", "search_analyzer", "normalizer", "ignore_above"):
        value = getattr(decl, key)
        if value is not None:
            options[key] = value
    if isinstance(decl, Field):
        if decl.fielddata:
            options["fielddata"] = True
        if decl.copy_to:
            options["copy_to"] = list(decl.copy_to)
        if decl.null_value is not None:
            options["null_value"] = decl.null_value
    return options


def _inner_fields(multi: MultiField, owner: str, name: str) -> tuple[InnerFieldDescriptor, ...]:
    seen: set[str] = set()
    inner: list[InnerFieldDescriptor] = []
    for decl in multi.other_fields:
        if not decl.suffix:
            raise ConfigurationError("multi-field inner field needs a suffix", entity=owner, property=name)
        if decl.suffix in seen:
            raise ConfigurationError(
                f"duplicate multi-field suffix {decl.suffix!r}", entity=owner, property=name
            )
        seen.add(decl.suffix)
        formats = _date_formats(decl.format, owner, name)
        if DateFormat.CUSTOM in formats and not decl.pattern:
            raise ConfigurationError(
                f"custom date format of inner field {decl.suffix!r} requires a non-empty pattern",
                entity=owner,
                property=name,
            )
        inner.append(
            InnerFieldDescriptor(
                suffix=decl.suffix,
                field_type=_field_type(decl.type, owner, name),
                options=types.MappingProxyType(_index_options(decl)),
                date_formats=formats,
                date_pattern=decl.pattern or None,
            )
        )
    return tuple(inner)


def build_property_descriptor(
    name: str,
    hint: Any,
    *,
    owner: str,
    naming_strategy: FieldNamingStrategy,
    converters: PropertyValueConverterRegistry,
) -> PropertyDescriptor | None:
    """
    Build the descriptor of one declared property.

    Args:
        name: Declared attribute name.
        hint: Resolved annotation (with Annotated extras).
        owner: Qualified name of the owning type, used in error messages.
        naming_strategy: Strategy for properties without an explicit name.
        converters: Registry resolving the property's converter.

    Returns:
        PropertyDescriptor | None: None for Transient properties.

    Raises:
        ConfigurationError: On any illegal declaration of this property.
    """
    shape = type_shape(hint)
    meta = shape.metadata
    if _single(meta, Transient, owner, name) is not None:
        return None

    decl: Field | None = _single(meta, Field, owner, name)
    multi: MultiField | None = _single(meta, MultiField, owner, name)
    if decl is not None and multi is not None:
        raise ConfigurationError("declares both Field and MultiField", entity=owner, property=name)
    if multi is not None:
        decl = multi.main_field

    is_id = _single(meta, Id, owner, name) is not None
    is_version = _single(meta, Version, owner, name) is not None
    read_only = _single(meta, ReadOnly, owner, name) is not None
    relations: JoinTypeRelations | None = _single(meta, JoinTypeRelations, owner, name)
    element = shape.element
    is_seq_no = element is SeqNoPrimaryTerm
    is_join = element is JoinField

    if is_id and is_version:
        raise ConfigurationError("cannot be both identifier and version", entity=owner, property=name)
    if is_seq_no and (is_id or is_version):
        raise ConfigurationError(
            "a sequence/term property cannot also be identifier or version", entity=owner, property=name
        )
    if is_version and (element is bool or not (isinstance(element, type) and issubclass(element, int))):
        raise ConfigurationError("version property must be an int", entity=owner, property=name)
    if (is_seq_no or is_version) and shape.container is not None:
        raise ConfigurationError("concurrency properties cannot be collections", entity=owner, property=name)

    field_type = _field_type(decl.type, owner, name) if decl is not None else FieldType.AUTO
    if field_type is FieldType.AUTO:
        if is_join:
            field_type = FieldType.JOIN
        elif element is GeoPoint:
            field_type = FieldType.GEO_POINT
        elif is_entity_type(element):
            field_type = FieldType.OBJECT
    if field_type is FieldType.JOIN and not is_join:
        raise ConfigurationError("join storage type requires a JoinField property", entity=owner, property=name)
    if relations is not None and not is_join:
        raise ConfigurationError("JoinTypeRelations requires a JoinField property", entity=owner, property=name)
    if is_join:
        if relations is None or not relations.relations:
            raise ConfigurationError("join field requires JoinTypeRelations", entity=owner, property=name)
        for rel in relations.relations:
            if not rel.parent or not rel.children or not all(rel.children):
                raise ConfigurationError(
                    "join relations need a parent and at least one child name", entity=owner, property=name
                )
    if field_type in ENTITY_FIELD_TYPES and (
        element in _SCALAR_TYPES or temporal_kind_of(element) is not None
    ):
        raise ConfigurationError(
            f"{field_type.value} storage type cannot hold {getattr(element, '__name__', element)!r} values",
            entity=owner,
            property=name,
        )

    formats = _date_formats(decl.format, owner, name) if decl is not None else ()
    pattern = (decl.pattern or None) if decl is not None else None

    explicit_name = decl.name if decl is not None and decl.name else None
    field_name = explicit_name or naming_strategy.resolve(name)
    if not field_name:
        raise ConfigurationError("resolves to an empty field name", entity=owner, property=name)

    converter = None
    if not (is_seq_no or is_version or is_join or element is GeoPoint or is_entity_type(element)):
        converter = converters.resolve(
            ConversionTarget(
                property=name,
                entity=owner,
                field_type=field_type,
                formats=formats,
                pattern=pattern,
                element_type=element,
                container=shape.container,
                is_map=shape.is_map,
                explicit=decl.converter if decl is not None else None,
            )
        )

    managed = is_seq_no or is_version
    return PropertyDescriptor(
        name=name,
        field_name=field_name,
        owner=owner,
        shape=shape,
        field_type=field_type,
        date_formats=formats,
        date_pattern=pattern,
        converter=converter,
        readable=not managed,
        writable=not (managed or read_only),
        is_id_property=is_id,
        is_version_property=is_version,
        is_seq_no_primary_term_property=is_seq_no,
        is_join_field_property=is_join,
        join_relations=relations.relations if relations is not None else (),
        multi_fields=_inner_fields(multi, owner, name) if multi is not None else (),
        index_options=types.MappingProxyType(_index_options(decl) if decl is not None else {}),
        store_null_value=decl.store_null_value if decl is not None else False,
    )
