"""
Document converter: domain objects <-> ordered documents, driven by entity descriptors.

Write direction
- Every writable property, in declaration order, is read from the instance, converted
  and emitted under its wire name. Multi-field properties emit their main value only.
- None values are omitted unless the field declares `store_null_value`.
- Entity-valued properties (object/nested) are written recursively; their descriptors
  are looked up through the mapping context.
- With type hints enabled, each entity document carries its fully-qualified type name.

Read direction
- Every readable property whose wire name is present is converted back; document keys
  without a property are ignored.
- The identifier falls back to the envelope id; the version and the sequence/term pair
  are taken from the envelope only, never from the body.
- A type hint naming a subclass of the requested type selects that subclass.

No lock is held while converters, accessors or constructors run.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, time
from enum import Enum
from typing import Any, TypeVar
from uuid import UUID

from esodm.core.errors import ConversionError
from esodm.core.serde import json_dumps_document, json_loads
from esodm.core.typing import Document, IndexContext
from esodm.core.values import (
    DocumentEnvelope,
    GeoPoint,
    IndexedDocument,
    JoinField,
    SearchHit,
)

from .context import MappingContext
from .entity import PersistentEntityDescriptor, type_alias
from .property import PropertyDescriptor, is_entity_type

__all__ = ["DocumentConverter"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _find_subclass(cls: type, alias: str) -> type | None:
    for sub in cls.__subclasses__():
        if type_alias(sub) == alias:
            return sub
        found = _find_subclass(sub, alias)
        if found is not None:
            return found
    return None


class DocumentConverter:
    """
    Convert between domain objects and generic documents.

    Args:
        context: Mapping context supplying entity descriptors; a default context
            (default MappingSettings) when omitted.

    Examples:
        >>> from dataclasses import dataclass
        >>> @dataclass
        ... class Point2:
        ...     x: int = 0
        ...     y: int = 0
        >>> DocumentConverter().to_document(Point2(1, 2))
        {'x': 1, 'y': 2}
    """

    def __init__(self, context: MappingContext | None = None):
        self.context = context or MappingContext()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def to_document(self, instance: Any) -> Document:
        """Convert `instance` to an ordered document body."""
        entity = self.context.get_persistent_entity(type(instance))
        return self._write_entity(instance, entity)

    def to_json(self, instance: Any) -> str:
        """Convert `instance` and serialize the body as compact JSON, keeping field order."""
        return json_dumps_document(self.to_document(instance))

    def _write_entity(self, instance: Any, entity: PersistentEntityDescriptor) -> Document:
        config = self.context.configuration
        document: Document = {}
        if config.write_type_hints:
            document[config.type_hint_field] = entity.name
        for prop in entity.properties:
            if not prop.writable:
                continue
            value = prop.get_value(instance)
            if value is None:
                if prop.store_null_value:
                    document[prop.field_name] = None
                continue
            document[prop.field_name] = self._write_property(prop, value)
        return document

    def _write_property(self, prop: PropertyDescriptor, value: Any) -> Any:
        if prop.converter is not None:
            return prop.converter.write(value)
        if prop.shape.is_map and isinstance(value, Mapping):
            return {str(k): self._write_simple(prop, v) for k, v in value.items()}
        if prop.is_collection and not isinstance(value, (str, bytes)):
            return [self._write_simple(prop, v) for v in value]
        return self._write_simple(prop, value)

    def _write_simple(self, prop: PropertyDescriptor, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (JoinField, GeoPoint)):
            return value.to_document()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, (date, time)):
            return value.isoformat()
        if is_entity_type(type(value)):
            return self._write_entity(value, self.context.get_persistent_entity(type(value)))
        if isinstance(value, (set, frozenset, tuple)):
            return [self._write_simple(prop, v) for v in value]
        return value

    def to_indexed_document(self, instance: Any, index_context: IndexContext | None = None) -> IndexedDocument:
        """
        Convert `instance` and collect what the I/O layer needs to address the write.

        Args:
            instance: Instance of a `@document` type.
            index_context: Values for a templated index name.

        Raises:
            ConfigurationError: If the type is misconfigured or not a `@document` type.
            ConversionError: If a property value cannot be written.
        """
        entity = self.context.get_persistent_entity(type(instance))
        document = self._write_entity(instance, entity)

        doc_id = None
        if entity.id_property is not None:
            raw_id = entity.id_property.get_value(instance)
            if raw_id is not None:
                written = self._write_property(entity.id_property, raw_id)
                doc_id = written if isinstance(written, str) else str(written)

        version = None
        if entity.version_property is not None:
            version = entity.version_property.get_value(instance)

        seq_no = primary_term = None
        if entity.seq_no_primary_term_property is not None:
            token = entity.seq_no_primary_term_property.get_value(instance)
            if token is not None:
                seq_no, primary_term = token.sequence_number, token.primary_term

        routing = None
        if entity.routing_property is not None:
            value = entity.routing_property.get_value(instance)
            routing = None if value is None else str(value)
        elif entity.join_field_property is not None:
            join = entity.join_field_property.get_value(instance)
            if join is not None and join.parent is not None:
                routing = join.parent

        return IndexedDocument(
            index=entity.resolve_index_name(index_context),
            id=doc_id,
            document=document,
            version=version,
            version_type=entity.version_type if version is not None else None,
            seq_no=seq_no,
            primary_term=primary_term,
            routing=routing,
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def from_document(
        self,
        document: Mapping[str, Any] | None,
        target_type: type[T],
        envelope: DocumentEnvelope | None = None,
    ) -> T | None:
        """
        Read an instance of `target_type` (or a hinted subclass) from `document`.

        Args:
            document: Document body; None reads as None.
            target_type: Requested type.
            envelope: Out-of-band metadata (id, version, sequence/term).

        Raises:
            ConfigurationError: If the type is misconfigured.
            ConversionError: If a value cannot be read or the type rejects the values.
        """
        if document is None:
            return None
        entity = self._entity_for_read(document, target_type)
        values = self._read_values(document, entity)
        if envelope is not None:
            values.update(self._envelope_values(entity, envelope, values))
        return entity.new_instance(values)

    def from_json(
        self, text: str | bytes, target_type: type[T], envelope: DocumentEnvelope | None = None
    ) -> T | None:
        """Parse a JSON document body and read it as `from_document` does."""
        return self.from_document(json_loads(text), target_type, envelope)

    def _entity_for_read(self, document: Mapping[str, Any], target_type: type) -> PersistentEntityDescriptor:
        config = self.context.configuration
        if config.write_type_hints:
            alias = document.get(config.type_hint_field)
            if isinstance(alias, str) and alias != type_alias(target_type):
                hinted = _find_subclass(target_type, alias)
                if hinted is not None:
                    return self.context.get_persistent_entity(hinted)
                logger.debug(f"Type hint {alias!r} is not a subclass of {type_alias(target_type)}; ignoring it")
        return self.context.get_persistent_entity(target_type)

    def _read_values(self, document: Mapping[str, Any], entity: PersistentEntityDescriptor) -> dict[str, Any]:
        if entity.case_sensitive_fields:
            keys = {k: k for k in document}
        else:
            keys = {k.lower(): k for k in document}
        values: dict[str, Any] = {}
        matched: set[str] = set()
        for prop in entity.properties:
            key = keys.get(prop.field_name if entity.case_sensitive_fields else prop.field_name.lower())
            if key is None:
                continue
            matched.add(key)
            if prop.readable:
                values[prop.name] = self._read_property(prop, document[key])
        unknown = [k for k in document if k not in matched and k != self.context.configuration.type_hint_field]
        if unknown:
            logger.debug(f"Ignoring unmapped fields of {entity.name}: {unknown}")
        return values

    def _read_property(self, prop: PropertyDescriptor, raw: Any) -> Any:
        if raw is None:
            return None
        if prop.converter is not None:
            return prop.converter.read(raw)
        if prop.shape.is_map and isinstance(raw, Mapping):
            return {k: self._read_simple(prop, v) for k, v in raw.items()}
        if prop.is_collection:
            items = raw if isinstance(raw, list) else [raw]
            return prop.shape.container(self._read_simple(prop, v) for v in items)
        return self._read_simple(prop, raw)

    def _read_simple(self, prop: PropertyDescriptor, raw: Any) -> Any:
        if raw is None:
            return None
        element = prop.element_type
        if is_entity_type(element) and isinstance(raw, Mapping):
            return self._read_entity(raw, element)
        try:
            if element is JoinField:
                return JoinField.from_document(raw)
            if element is GeoPoint:
                return GeoPoint.from_document(raw)
            if isinstance(element, type) and issubclass(element, Enum):
                return element(raw)
            if element is UUID:
                return UUID(str(raw))
        except (ValueError, TypeError, KeyError) as exc:
            raise ConversionError(
                f"cannot read {getattr(element, '__name__', element)} value: {exc}",
                entity=prop.owner,
                property=prop.name,
                value=raw,
            ) from exc
        return raw

    def _read_entity(self, document: Mapping[str, Any], target_type: type) -> Any:
        entity = self._entity_for_read(document, target_type)
        return entity.new_instance(self._read_values(document, entity))

    def _envelope_values(
        self, entity: PersistentEntityDescriptor, envelope: DocumentEnvelope, body_values: Mapping[str, Any]
    ) -> dict[str, Any]:
        values: dict[str, Any] = {}
        id_prop = entity.id_property
        if id_prop is not None and envelope.id is not None and body_values.get(id_prop.name) is None:
            values[id_prop.name] = self._read_id(id_prop, envelope.id)
        if entity.version_property is not None and envelope.version is not None:
            values[entity.version_property.name] = envelope.version
        token = envelope.seq_no_primary_term
        if entity.seq_no_primary_term_property is not None and token is not None:
            values[entity.seq_no_primary_term_property.name] = token
        return values

    def _read_id(self, prop: PropertyDescriptor, raw: str) -> Any:
        if prop.converter is not None:
            return prop.converter.read(raw)
        element = prop.element_type
        try:
            if element is int:
                return int(raw)
        except ValueError as exc:
            raise ConversionError("id is not an int", entity=prop.owner, property=prop.name, value=raw) from exc
        return self._read_simple(prop, raw)

    def read_search_hit(self, hit: Mapping[str, Any], target_type: type[T]) -> SearchHit[T]:
        """Read a raw engine hit (`_source` plus `_id`, `_seq_no`, ...) into a SearchHit."""
        envelope = DocumentEnvelope.from_hit(hit)
        content = self.from_document(hit.get("_source") or {}, target_type, envelope)
        return SearchHit(content=content, envelope=envelope)

    # ------------------------------------------------------------------
    # After a write
    # ------------------------------------------------------------------

    def update_from_envelope(self, instance: T, envelope: DocumentEnvelope) -> T:
        """
        Apply the id, version and sequence/term the engine returned for a write.

        Returns:
            The same instance for mutable types; an updated copy for immutable ones.
        """
        entity = self.context.get_persistent_entity(type(instance))
        values = self._envelope_values(entity, envelope, {})
        return entity.with_values(instance, values)
