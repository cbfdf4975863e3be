"""
Mapping engine: property/entity descriptors, the mapping context and document conversion.

## Layers
- property: PropertyDescriptor built from one `Annotated` declaration.
- entity: PersistentEntityDescriptor built from all properties of a type.
- context: MappingContext, the single-flight cache of entity descriptors.
- converter: DocumentConverter, domain object <-> document.
- index_mapping: engine mapping generation.

## Import DAG discipline
- Depends on esodm.core and esodm.settings only.
- Performs no IO; documents are handed to (and received from) an external I/O layer.

## Examples
```python
from dataclasses import dataclass
from datetime import date
from typing import Annotated

from esodm.core.declarations import Field, Id, document
from esodm.core.grammar import FieldType
from esodm.mapping import DocumentConverter, MappingContext

@document(index_name="events")
@dataclass
class Event:
    id: Annotated[str | None, Id()] = None
    day: Annotated[date | None, Field(type=FieldType.DATE, pattern="dd.MM.uuuu")] = None

converter = DocumentConverter(MappingContext())
converter.to_document(Event(id="1", day=date(2019, 12, 27)))  # {'id': '1', 'day': '27.12.2019'}
```
"""

from __future__ import annotations

from .context import MappingContext
from .converter import DocumentConverter
from .entity import ContextConfiguration, Instantiation, PersistentEntityDescriptor
from .index_mapping import build_index_mapping
from .property import InnerFieldDescriptor, PropertyDescriptor

__all__ = [
    "MappingContext",
    "DocumentConverter",
    "ContextConfiguration",
    "Instantiation",
    "PersistentEntityDescriptor",
    "PropertyDescriptor",
    "InnerFieldDescriptor",
    "build_index_mapping",
]
