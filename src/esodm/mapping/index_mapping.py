"""
Index mapping generation from entity descriptors.

`build_index_mapping(cls, context)` returns the engine mapping body
`{"properties": {...}}` for a type:
- properties with an explicit storage type emit it together with their index options;
- date properties emit their formats joined with "||" (named formats first, pattern last);
- multi-field properties emit their inner fields under "fields";
- object/nested properties recurse into the target type; a type already on the current
  path is emitted without "properties";
- join fields emit their parent -> children relations;
- the identifier defaults to "keyword"; properties left on "auto" are not mapped;
- sequence/term and version properties never appear;
- with type hints enabled, the hint field is mapped as a non-indexed keyword.
"""

from __future__ import annotations

from typing import Any

from esodm.core.constants import DATE_FORMAT_SEPARATOR
from esodm.core.grammar import DATE_FIELD_TYPES, ENTITY_FIELD_TYPES, DateFormat, FieldType
from esodm.core.typing import JsonDict

from .context import MappingContext
from .property import InnerFieldDescriptor, PropertyDescriptor, is_entity_type

__all__ = ["build_index_mapping"]


def _date_format(formats: tuple[DateFormat, ...], pattern: str | None) -> str | None:
    parts = [f.value for f in formats if f is not DateFormat.CUSTOM]
    if pattern:
        parts.append(pattern)
    return DATE_FORMAT_SEPARATOR.join(parts) or None


def _inner_field(inner: InnerFieldDescriptor) -> JsonDict:
    out: JsonDict = {"type": inner.field_type.value}
    if inner.field_type in DATE_FIELD_TYPES:
        fmt = _date_format(inner.date_formats, inner.date_pattern)
        if fmt:
            out["format"] = fmt
    out.update(inner.options)
    return out


def _join_relations(prop: PropertyDescriptor) -> JsonDict:
    relations: JsonDict = {}
    for rel in prop.join_relations:
        children = list(rel.children)
        relations[rel.parent] = children[0] if len(children) == 1 else children
    return {"type": FieldType.JOIN.value, "eager_global_ordinals": True, "relations": relations}


def _property_mapping(
    prop: PropertyDescriptor, context: MappingContext, path: tuple[type, ...]
) -> JsonDict | None:
    if prop.is_join_field_property:
        return _join_relations(prop)

    field_type = prop.field_type
    if field_type in ENTITY_FIELD_TYPES and is_entity_type(prop.element_type):
        out: JsonDict = {"type": field_type.value}
        if prop.element_type not in path:
            out["properties"] = _properties(prop.element_type, context, path)
        out.update(prop.index_options)
        return out

    if field_type is FieldType.AUTO:
        if prop.is_id_property:
            return {"type": FieldType.KEYWORD.value}
        return None

    out = {"type": field_type.value}
    if field_type in DATE_FIELD_TYPES:
        fmt = _date_format(prop.date_formats, prop.date_pattern)
        if fmt:
            out["format"] = fmt
    out.update(prop.index_options)
    if prop.multi_fields:
        out["fields"] = {inner.suffix: _inner_field(inner) for inner in prop.multi_fields}
    return out


def _properties(cls: type, context: MappingContext, path: tuple[type, ...]) -> JsonDict:
    entity = context.get_persistent_entity(cls)
    path = (*path, cls)
    properties: JsonDict = {}
    config = context.configuration
    if config.write_type_hints:
        properties[config.type_hint_field] = {"type": "keyword", "index": False, "doc_values": False}
    for prop in entity.properties:
        if prop.is_seq_no_primary_term_property or prop.is_version_property:
            continue
        mapping = _property_mapping(prop, context, path)
        if mapping is not None:
            properties[prop.field_name] = mapping
    return properties


def build_index_mapping(cls: type, context: MappingContext | None = None) -> dict[str, Any]:
    """
    Build the engine mapping for `cls`.

    Args:
        cls: Mappable type.
        context: Mapping context; a default context when omitted.

    Returns:
        dict[str, Any]: `{"properties": {...}}` with keys in declaration order.

    Raises:
        ConfigurationError: If `cls` or a referenced entity type is misconfigured.
    """
    return {"properties": _properties(cls, context or MappingContext(), ())}
