"""
esodm: object-document mapping core for a document search engine.

Declare domain types with `typing.Annotated` metadata, let a MappingContext describe
them once, and convert instances to and from ordered documents with a DocumentConverter.
Transport, query building and index management live outside this package.
"""

from __future__ import annotations

from esodm.core.declarations import (
    Field,
    Id,
    IndexSettings,
    InnerField,
    JoinTypeRelation,
    JoinTypeRelations,
    MultiField,
    ReadOnly,
    Transient,
    Version,
    document,
)
from esodm.core.errors import ConfigurationError, ConversionError, MappingError
from esodm.core.grammar import DateFormat, FieldType, VersionType
from esodm.core.values import DocumentEnvelope, GeoPoint, IndexedDocument, JoinField, SearchHit, SeqNoPrimaryTerm
from esodm.mapping import DocumentConverter, MappingContext, build_index_mapping
from esodm.settings import MappingSettings

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
    "document",
    "FieldType",
    "DateFormat",
    "VersionType",
    "SeqNoPrimaryTerm",
    "JoinField",
    "GeoPoint",
    "DocumentEnvelope",
    "IndexedDocument",
    "SearchHit",
    "MappingError",
    "ConfigurationError",
    "ConversionError",
    "MappingSettings",
    "MappingContext",
    "DocumentConverter",
    "build_index_mapping",
]
