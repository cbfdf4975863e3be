"""
Persistent entity descriptors: per-type metadata built once from property descriptors.

A PersistentEntityDescriptor lists a type's mapped properties in declaration order and
records which of them play a special role (identifier, version number, sequence/term,
join field, routing), how the index name is resolved, and how instances are created
when a document is read.

Instantiation
- CONSTRUCTOR: keyword binding of every constructor parameter (dataclasses, pydantic
  models, plain classes whose `__init__` requires arguments). Properties the
  constructor does not accept are assigned afterwards.
- SETTERS: no-argument construction followed by attribute assignment (plain classes
  whose `__init__` needs no arguments).

The capability is chosen once, while the descriptor is built; the read path applies it
uniformly and never inspects the type again.
"""

from __future__ import annotations

import dataclasses
import inspect
import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, get_type_hints

from pydantic import BaseModel

from esodm.core.constants import DEFAULT_TYPE_HINT_FIELD
from esodm.core.converters import PropertyValueConverterRegistry
from esodm.core.declarations import DocumentSpec, IndexSettings, document_spec
from esodm.core.errors import ConfigurationError, ConversionError, GrammarError, MappingError
from esodm.core.grammar import VersionType, version_type_from_value
from esodm.core.naming import PROPERTY_NAME_STRATEGY, FieldNamingStrategy
from esodm.core.typing import IndexContext

from .property import PropertyDescriptor, build_property_descriptor, is_entity_type, is_mapped_annotation

__all__ = [
    "Instantiation",
    "ContextConfiguration",
    "PersistentEntityDescriptor",
    "build_persistent_entity",
    "type_alias",
]


class Instantiation(Enum):
    CONSTRUCTOR = "constructor"
    SETTERS = "setters"


@dataclass(frozen=True)
class ContextConfiguration:
    """
    Context-wide settings every entity descriptor is built with.

    Attributes:
        field_naming_strategy (FieldNamingStrategy): Strategy for properties without an explicit name.
        case_sensitive_fields (bool): Compare wire names case-sensitively.
        write_type_hints (bool): Emit the type alias into written documents.
        type_hint_field (str): Document key carrying the type alias.
    """

    field_naming_strategy: FieldNamingStrategy = PROPERTY_NAME_STRATEGY
    case_sensitive_fields: bool = True
    write_type_hints: bool = False
    type_hint_field: str = DEFAULT_TYPE_HINT_FIELD


def type_alias(cls: type) -> str:
    """Fully-qualified name used in error messages and document type hints."""
    return f"{cls.__module__}.{cls.__qualname__}"


@dataclass(frozen=True)
class PersistentEntityDescriptor:
    """
    Immutable description of one mapped type.

    Attributes:
        type (type): The described class.
        name (str): Fully-qualified type name.
        properties (tuple[PropertyDescriptor, ...]): Mapped properties in declaration order.
        document (DocumentSpec | None): Entity-level declaration, for top-level documents.
        version_type (VersionType): Protocol of the version property.
        instantiation (Instantiation): How instances are created on read.
        case_sensitive_fields (bool): Whether document keys match wire names exactly.
    """

    type: type
    name: str
    properties: tuple[PropertyDescriptor, ...]
    document: DocumentSpec | None = None
    version_type: VersionType = VersionType.INTERNAL
    instantiation: Instantiation = Instantiation.CONSTRUCTOR
    constructor_params: frozenset[str] = frozenset()
    required_params: frozenset[str] = frozenset()
    immutable: bool = False
    case_sensitive_fields: bool = True
    id_property: PropertyDescriptor | None = None
    version_property: PropertyDescriptor | None = None
    seq_no_primary_term_property: PropertyDescriptor | None = None
    join_field_property: PropertyDescriptor | None = None
    routing_property: PropertyDescriptor | None = None
    _by_name: Mapping[str, PropertyDescriptor] = field(default_factory=dict, repr=False)
    _by_field: Mapping[str, PropertyDescriptor] = field(default_factory=dict, repr=False)

    # ------------------------------------------------------------------
    # Property lookup
    # ------------------------------------------------------------------

    def __iter__(self):
        return iter(self.properties)

    def get_persistent_property(self, name: str) -> PropertyDescriptor | None:
        return self._by_name.get(name)

    def get_required_persistent_property(self, name: str) -> PropertyDescriptor:
        """
        Look up a property by its declared name.

        Raises:
            KeyError: If the type has no mapped property of that name.
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"{self.name} has no mapped property {name!r}") from None

    def get_property_by_field_name(self, field_name: str) -> PropertyDescriptor | None:
        key = field_name if self.case_sensitive_fields else field_name.lower()
        return self._by_field.get(key)

    @property
    def has_id_property(self) -> bool:
        return self.id_property is not None

    @property
    def has_version_property(self) -> bool:
        return self.version_property is not None

    @property
    def has_seq_no_primary_term_property(self) -> bool:
        return self.seq_no_primary_term_property is not None

    @property
    def has_join_field_property(self) -> bool:
        return self.join_field_property is not None

    # ------------------------------------------------------------------
    # Entity-level declarations
    # ------------------------------------------------------------------

    @property
    def is_document(self) -> bool:
        return self.document is not None

    @property
    def create_index(self) -> bool:
        return self.document.create_index if self.document is not None else False

    @property
    def settings(self) -> IndexSettings:
        return self.document.settings if self.document is not None else IndexSettings()

    @property
    def join_relations(self) -> dict[str, tuple[str, ...]]:
        """Parent relation name -> child relation names, as declared on the join field."""
        if self.join_field_property is None:
            return {}
        return {rel.parent: tuple(rel.children) for rel in self.join_field_property.join_relations}

    def resolve_index_name(self, context: IndexContext | None = None) -> str:
        """
        Evaluate the index name for one operation.

        Args:
            context: Values for `str.format` placeholders in a template name.

        Raises:
            ConfigurationError: If the type is not declared with `@document`.
            MappingError: If a template placeholder has no value, or the name is empty.
        """
        if self.document is None:
            raise ConfigurationError("is not declared with @document; it has no index name", entity=self.name)
        raw = self.document.index_name
        if callable(raw):
            name = raw()
        else:
            try:
                name = raw.format_map(dict(context or {}))
            except (KeyError, IndexError) as exc:
                raise MappingError(f"index name template {raw!r} of {self.name} needs a value for {exc}") from exc
        if not isinstance(name, str) or not name.strip():
            raise MappingError(f"index name of {self.name} resolved to {name!r}")
        return name

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    def new_instance(self, values: Mapping[str, Any]) -> Any:
        """
        Create an instance from declared-name -> value pairs.

        Raises:
            ConversionError: If the type rejects the values.
        """
        try:
            if self.instantiation is Instantiation.CONSTRUCTOR:
                kwargs = {k: v for k, v in values.items() if k in self.constructor_params}
                for name in self.required_params:
                    kwargs.setdefault(name, None)
                instance = self.type(**kwargs)
                rest = {k: v for k, v in values.items() if k not in self.constructor_params}
            else:
                instance = self.type()
                rest = dict(values)
            for name, value in rest.items():
                setattr(instance, name, value)
        except ConversionError:
            raise
        except Exception as exc:
            raise ConversionError(f"cannot create instance: {exc}", entity=self.name, value=dict(values)) from exc
        return instance

    def with_values(self, instance: Any, values: Mapping[str, Any]) -> Any:
        """Return `instance` with `values` applied; immutable instances are copied."""
        if not values:
            return instance
        if not self.immutable:
            for name, value in values.items():
                setattr(instance, name, value)
            return instance
        if isinstance(instance, BaseModel):
            return instance.model_copy(update=dict(values))
        if dataclasses.is_dataclass(instance):
            return dataclasses.replace(instance, **values)
        current = {p.name: p.get_value(instance) for p in self.properties}
        return self.new_instance({**current, **values})


# ============================================================================
# Builder
# ============================================================================


def _declared_hints(cls: type, name: str) -> dict[str, Any]:
    if issubclass(cls, BaseModel):
        # pydantic keeps foreign Annotated metadata on FieldInfo.metadata
        return {
            k: Annotated[(f.annotation, *f.metadata)] if f.metadata else f.annotation
            for k, f in cls.model_fields.items()
            if is_mapped_annotation(k, f.annotation)
        }
    try:
        hints = get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as exc:
        raise ConfigurationError(f"cannot resolve type annotations: {exc}", entity=name) from exc
    return {k: v for k, v in hints.items() if is_mapped_annotation(k, v)}


def _instantiation(cls: type, name: str, properties: dict[str, PropertyDescriptor]):
    """Return (capability, accepted params, required params, immutable)."""
    if dataclasses.is_dataclass(cls):
        params = {f.name for f in dataclasses.fields(cls) if f.init}
        required = {
            f.name
            for f in dataclasses.fields(cls)
            if f.init and f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        }
        return Instantiation.CONSTRUCTOR, params, required, cls.__dataclass_params__.frozen
    if issubclass(cls, BaseModel):
        fields = cls.model_fields
        params = set(fields)
        required = {k for k, f in fields.items() if f.is_required()}
        return Instantiation.CONSTRUCTOR, params, required, bool(cls.model_config.get("frozen"))

    try:
        sig = inspect.signature(cls)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"cannot inspect constructor: {exc}", entity=name) from exc
    params: set[str] = set()
    required: set[str] = set()
    accepts_any = False
    for p in sig.parameters.values():
        if p.kind is p.VAR_KEYWORD:
            accepts_any = True
        elif p.kind is p.VAR_POSITIONAL:
            continue
        elif p.kind is p.POSITIONAL_ONLY:
            if p.default is p.empty:
                raise ConfigurationError(
                    f"constructor parameter {p.name!r} is positional-only", entity=name
                )
        else:
            params.add(p.name)
            if p.default is p.empty:
                required.add(p.name)
    if not required:
        return Instantiation.SETTERS, set(), set(), False
    unknown = required - set(properties)
    if unknown:
        raise ConfigurationError(
            f"no usable constructor: parameters {sorted(unknown)} are not mapped properties", entity=name
        )
    if accepts_any:
        params |= set(properties)
    return Instantiation.CONSTRUCTOR, params, required, False


def _single_role(
    properties: list[PropertyDescriptor], flag: str, role: str, name: str
) -> PropertyDescriptor | None:
    found = [p for p in properties if getattr(p, flag)]
    if len(found) > 1:
        raise ConfigurationError(
            f"more than one {role} property: {', '.join(p.name for p in found)}", entity=name
        )
    return found[0] if found else None


def build_persistent_entity(
    cls: type,
    configuration: ContextConfiguration,
    converters: PropertyValueConverterRegistry,
) -> PersistentEntityDescriptor:
    """
    Build and validate the descriptor of one type.

    Args:
        cls: Dataclass, pydantic model, or annotated plain class.
        configuration: Context-wide naming and field-matching settings.
        converters: Registry used to resolve property converters.

    Returns:
        PersistentEntityDescriptor: Fully validated, immutable descriptor.

    Raises:
        ConfigurationError: On any illegal declaration, naming the type and property.
    """
    name = type_alias(cls) if isinstance(cls, type) else repr(cls)
    if not is_entity_type(cls) and not (isinstance(cls, type) and _is_plain_entity(cls)):
        raise ConfigurationError("is not a mappable type", entity=name)

    properties: list[PropertyDescriptor] = []
    for prop_name, hint in _declared_hints(cls, name).items():
        prop = build_property_descriptor(
            prop_name,
            hint,
            owner=name,
            naming_strategy=configuration.field_naming_strategy,
            converters=converters,
        )
        if prop is not None:
            properties.append(prop)

    by_field: dict[str, PropertyDescriptor] = {}
    for prop in properties:
        key = prop.field_name if configuration.case_sensitive_fields else prop.field_name.lower()
        if key in by_field:
            raise ConfigurationError(
                f"field name {prop.field_name!r} is already used by property {by_field[key].name!r}",
                entity=name,
                property=prop.name,
            )
        by_field[key] = prop
    if configuration.write_type_hints and configuration.type_hint_field in {p.field_name for p in properties}:
        raise ConfigurationError(
            f"field name {configuration.type_hint_field!r} collides with the type hint field", entity=name
        )
    by_name = {p.name: p for p in properties}

    spec = document_spec(cls)
    routing = None
    version_type = VersionType.INTERNAL
    if spec is not None:
        if not callable(spec.index_name) and not (isinstance(spec.index_name, str) and spec.index_name.strip()):
            raise ConfigurationError("@document needs a non-empty index name", entity=name)
        try:
            version_type = version_type_from_value(spec.version_type)
        except GrammarError as exc:
            raise ConfigurationError(f"unsupported version type: {exc}", entity=name) from exc
        if spec.routing is not None:
            routing = by_name.get(spec.routing)
            if routing is None:
                raise ConfigurationError(
                    f"routing refers to unknown property {spec.routing!r}", entity=name
                )

    instantiation, params, required, immutable = _instantiation(cls, name, by_name)
    return PersistentEntityDescriptor(
        type=cls,
        name=name,
        properties=tuple(properties),
        document=spec,
        version_type=version_type,
        instantiation=instantiation,
        constructor_params=frozenset(params),
        required_params=frozenset(required),
        immutable=immutable,
        case_sensitive_fields=configuration.case_sensitive_fields,
        id_property=_single_role(properties, "is_id_property", "identifier", name),
        version_property=_single_role(properties, "is_version_property", "version", name),
        seq_no_primary_term_property=_single_role(
            properties, "is_seq_no_primary_term_property", "sequence/term", name
        ),
        join_field_property=_single_role(properties, "is_join_field_property", "join field", name),
        routing_property=routing,
        _by_name=types.MappingProxyType(by_name),
        _by_field=types.MappingProxyType(by_field),
    )


def _is_plain_entity(cls: type) -> bool:
    """Plain classes with their own annotations are mappable; builtins and enums are not."""
    if cls.__module__ == "builtins" or issubclass(cls, (Enum, BaseModel)):
        return False
    return bool(getattr(cls, "__annotations__", None))
