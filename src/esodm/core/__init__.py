"""
Core package aggregator for esodm contracts (grammar, declarations, values, naming, converters).

## Contracts (single source of truth)
- Grammar: lower_snake enums for storage types, date formats and version types.
- Declarations: `Annotated` metadata (Field, MultiField, Id, Version, ...) and `@document`.
- Values: pydantic models for sequence/term tokens, join fields, geo points and envelopes.
- Naming: field naming strategies (identity, snake_case, camelCase, callable).
- Converters: date pattern formatters and the property converter registry.
- Serde: order-preserving document JSON helpers.
- Errors: GrammarError, ConfigurationError, ConversionError.

## Notes
- Zero-IO policy: stdlib + pydantic only; no file/network IO.
- Naming policy: enum `.value` strings are lower_snake.
- Declarations are not validated until the mapping context builds the owning entity.

## Downstream usage
- esodm.mapping builds property/entity descriptors from `declarations` using `grammar`,
  `naming` and `converters`, and exchanges `values` with the I/O layer.
- esodm.settings selects a naming strategy by name from `naming`.

## Examples
```python
from esodm.core.grammar import FieldType, field_type_from_value
field_type_from_value("keyword") == FieldType.KEYWORD  # True

from esodm.core.naming import SnakeCaseFieldNamingStrategy
SnakeCaseFieldNamingStrategy().resolve("withoutCustomFieldName")  # 'without_custom_field_name'

from datetime import date
from esodm.core.converters import PatternFormatter
PatternFormatter("dd.MM.uuuu").format(date(2019, 12, 27))  # '27.12.2019'
```
"""
