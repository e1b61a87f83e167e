"""
Schema Engine

Schemas describe tool arguments: they validate decoded JSON values and
generate the JSON Schema documents advertised to clients.
"""

from mcpkit.schema.base import (
    MULTIPLE_OF_TOLERANCE,
    ArraySchema,
    BaseSchema,
    BooleanSchema,
    EnumSchema,
    NumberSchema,
    ObjectSchema,
    Schema,
    SchemaDefinitionError,
    SchemaType,
    SchemaValidationError,
    StringSchema,
)
from mcpkit.schema.builder import (
    ArraySchemaBuilder,
    BooleanSchemaBuilder,
    EnumSchemaBuilder,
    NumberSchemaBuilder,
    ObjectSchemaBuilder,
    SchemaBuilder,
    SchemaLike,
    StringSchemaBuilder,
    ensure_schema,
)

__all__ = [
    "MULTIPLE_OF_TOLERANCE",
    "ArraySchema",
    "ArraySchemaBuilder",
    "BaseSchema",
    "BooleanSchema",
    "BooleanSchemaBuilder",
    "EnumSchema",
    "EnumSchemaBuilder",
    "NumberSchema",
    "NumberSchemaBuilder",
    "ObjectSchema",
    "ObjectSchemaBuilder",
    "Schema",
    "SchemaBuilder",
    "SchemaDefinitionError",
    "SchemaLike",
    "SchemaType",
    "SchemaValidationError",
    "StringSchema",
    "StringSchemaBuilder",
    "ensure_schema",
]
