"""
Fluent builders for tool input schemas.

Every schema kind has its own builder type, so a constraint can only be set on
a builder of the matching kind. Builders check their constraint values when
they are set and produce a frozen schema from ``build()``.

Example:

    schema = (
        SchemaBuilder.object()
        .add_property("a", SchemaBuilder.number().range(-1000, 1000))
        .add_property("b", SchemaBuilder.number().range(-1000, 1000))
        .build()
    )
"""

import re
from typing import Any, Dict, Optional, TypeVar, Union

from mcpkit.schema.base import (
    ArraySchema,
    BaseSchema,
    BooleanSchema,
    EnumSchema,
    Number,
    NumberSchema,
    ObjectSchema,
    SchemaDefinitionError,
    StringSchema,
    is_finite,
    is_number,
)

B = TypeVar("B", bound="SchemaBuilder")

SchemaLike = Union["SchemaBuilder", BaseSchema]


def ensure_schema(schema: SchemaLike) -> BaseSchema:
    """
    Return a built schema, building it first when given a builder.

    Raises:
        SchemaDefinitionError: If the value is neither a schema nor a builder
    """
    if isinstance(schema, SchemaBuilder):
        return schema.build()
    if isinstance(schema, BaseSchema):
        return schema
    raise SchemaDefinitionError(f"Expected a schema or schema builder, got {type(schema).__name__}")


def _check_count(name: str, value: Optional[int]) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SchemaDefinitionError(f"{name} must be a non-negative integer, got {value!r}")


def _check_bound(name: str, value: Optional[Number]) -> None:
    if value is not None and not (is_number(value) and is_finite(value)):
        raise SchemaDefinitionError(f"{name} must be a finite number, got {value!r}")


class SchemaBuilder:
    """
    Base class for schema builders.

    The class methods are the entry points for each schema kind.
    """

    def __init__(self) -> None:
        self._description: Optional[str] = None
        self._required = True

    @classmethod
    def string(cls) -> "StringSchemaBuilder":
        return StringSchemaBuilder()

    @classmethod
    def number(cls) -> "NumberSchemaBuilder":
        return NumberSchemaBuilder(integer=False)

    @classmethod
    def integer(cls) -> "NumberSchemaBuilder":
        return NumberSchemaBuilder(integer=True)

    @classmethod
    def boolean(cls) -> "BooleanSchemaBuilder":
        return BooleanSchemaBuilder()

    @classmethod
    def array(cls, items: SchemaLike) -> "ArraySchemaBuilder":
        return ArraySchemaBuilder(items)

    @classmethod
    def object(cls) -> "ObjectSchemaBuilder":
        return ObjectSchemaBuilder()

    @classmethod
    def enum(cls, *values: str) -> "EnumSchemaBuilder":
        return EnumSchemaBuilder(*values)

    def set_description(self: B, description: str) -> B:
        """Set the human-readable description."""
        self._description = description
        return self

    def optional(self: B) -> B:
        """Mark the schema as optional when used as an object property."""
        self._required = False
        return self

    def build(self) -> BaseSchema:
        """Create the frozen schema described by this builder."""
        raise NotImplementedError

    def to_json_schema(self) -> Dict[str, Any]:
        return self.build().to_json_schema()

    def _common(self) -> Dict[str, Any]:
        return {"description": self._description, "required": self._required}


class StringSchemaBuilder(SchemaBuilder):
    """Builder for string schemas."""

    def __init__(self) -> None:
        super().__init__()
        self._min_length: Optional[int] = None
        self._max_length: Optional[int] = None
        self._pattern: Optional[str] = None

    def string_length(
        self, min_length: Optional[int] = None, max_length: Optional[int] = None
    ) -> "StringSchemaBuilder":
        """Constrain the string length, in characters."""
        _check_count("min_length", min_length)
        _check_count("max_length", max_length)
        if min_length is not None and max_length is not None and min_length > max_length:
            raise SchemaDefinitionError(
                f"min_length {min_length} is greater than max_length {max_length}"
            )
        self._min_length = min_length
        self._max_length = max_length
        return self

    def set_pattern(self, pattern: str) -> "StringSchemaBuilder":
        """Require the string to contain a match for a regular expression."""
        try:
            re.compile(pattern)
        except (re.error, TypeError) as e:
            raise SchemaDefinitionError(f"Invalid pattern {pattern!r}: {e}") from e
        self._pattern = pattern
        return self

    def build(self) -> StringSchema:
        return StringSchema(
            min_length=self._min_length,
            max_length=self._max_length,
            pattern=self._pattern,
            **self._common(),
        )


class NumberSchemaBuilder(SchemaBuilder):
    """Builder for number and integer schemas."""

    def __init__(self, integer: bool = False) -> None:
        super().__init__()
        self._integer = integer
        self._minimum: Optional[Number] = None
        self._maximum: Optional[Number] = None
        self._exclusive_minimum = False
        self._exclusive_maximum = False
        self._multiple_of: Optional[Number] = None

    def range(
        self, minimum: Optional[Number] = None, maximum: Optional[Number] = None
    ) -> "NumberSchemaBuilder":
        """Set inclusive lower and upper bounds."""
        return self._set_bounds(minimum, maximum, exclusive=False)

    def exclusive_range(
        self, minimum: Optional[Number] = None, maximum: Optional[Number] = None
    ) -> "NumberSchemaBuilder":
        """Set exclusive lower and upper bounds."""
        return self._set_bounds(minimum, maximum, exclusive=True)

    def set_multiple_of(self, value: Number) -> "NumberSchemaBuilder":
        """Require values to be a multiple of a positive number."""
        if not is_number(value) or not is_finite(value) or value <= 0:
            raise SchemaDefinitionError(f"multiple_of must be a positive number, got {value!r}")
        self._multiple_of = value
        return self

    def _set_bounds(
        self, minimum: Optional[Number], maximum: Optional[Number], exclusive: bool
    ) -> "NumberSchemaBuilder":
        _check_bound("minimum", minimum)
        _check_bound("maximum", maximum)
        if minimum is not None and maximum is not None and minimum > maximum:
            raise SchemaDefinitionError(f"minimum {minimum} is greater than maximum {maximum}")
        self._minimum = minimum
        self._maximum = maximum
        self._exclusive_minimum = exclusive and minimum is not None
        self._exclusive_maximum = exclusive and maximum is not None
        return self

    def build(self) -> NumberSchema:
        return NumberSchema(
            kind="integer" if self._integer else "number",
            minimum=self._minimum,
            maximum=self._maximum,
            exclusive_minimum=self._exclusive_minimum,
            exclusive_maximum=self._exclusive_maximum,
            multiple_of=self._multiple_of,
            **self._common(),
        )


class BooleanSchemaBuilder(SchemaBuilder):
    """Builder for boolean schemas."""

    def build(self) -> BooleanSchema:
        return BooleanSchema(**self._common())


class EnumSchemaBuilder(SchemaBuilder):
    """Builder for string enumeration schemas."""

    def __init__(self, *values: str) -> None:
        super().__init__()
        if not values:
            raise SchemaDefinitionError("Enum schema needs at least one value")
        for value in values:
            if not isinstance(value, str):
                raise SchemaDefinitionError(f"Enum values must be strings, got {value!r}")
        self._values = tuple(values)

    def build(self) -> EnumSchema:
        return EnumSchema(values=self._values, **self._common())


class ArraySchemaBuilder(SchemaBuilder):
    """Builder for array schemas."""

    def __init__(self, items: SchemaLike) -> None:
        super().__init__()
        self._items = ensure_schema(items)
        self._min_items: Optional[int] = None
        self._max_items: Optional[int] = None
        self._unique = False

    def length(
        self, min_items: Optional[int] = None, max_items: Optional[int] = None
    ) -> "ArraySchemaBuilder":
        """Constrain the number of items."""
        _check_count("min_items", min_items)
        _check_count("max_items", max_items)
        if min_items is not None and max_items is not None and min_items > max_items:
            raise SchemaDefinitionError(
                f"min_items {min_items} is greater than max_items {max_items}"
            )
        self._min_items = min_items
        self._max_items = max_items
        return self

    def unique(self, value: bool = True) -> "ArraySchemaBuilder":
        """Require all items to be distinct."""
        self._unique = value
        return self

    def build(self) -> ArraySchema:
        return ArraySchema(
            items=self._items,
            min_items=self._min_items,
            max_items=self._max_items,
            unique_items=self._unique,
            **self._common(),
        )


class ObjectSchemaBuilder(SchemaBuilder):
    """Builder for object schemas. Properties keep their insertion order."""

    def __init__(self) -> None:
        super().__init__()
        self._properties: Dict[str, BaseSchema] = {}
        self._additional = False

    def add_property(self, name: str, schema: SchemaLike) -> "ObjectSchemaBuilder":
        """Declare a property. Properties are required unless marked optional."""
        if not isinstance(name, str) or not name:
            raise SchemaDefinitionError("Property name must be a non-empty string")
        self._properties[name] = ensure_schema(schema)
        return self

    def allow_additional(self, allow: bool = True) -> "ObjectSchemaBuilder":
        """Allow keys that are not declared as properties."""
        self._additional = allow
        return self

    def build(self) -> ObjectSchema:
        return ObjectSchema(
            properties=dict(self._properties),
            additional_properties=self._additional,
            **self._common(),
        )
