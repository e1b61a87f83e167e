"""
Schema models for tool input validation.

This module defines the immutable schema types used to describe tool
arguments. Each schema validates runtime values in two passes (a type check
followed by type-specific constraint checks) and projects itself into a
JSON Schema document for the ``tools/list`` response.
"""

import json
import math
import re
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

# Tolerance used when deciding whether a value is a multiple of a divisor.
# The remainder is compared against both zero and the divisor itself, so
# values such as 0.3 with a divisor of 0.1 are accepted.
MULTIPLE_OF_TOLERANCE = 1e-9

Number = Union[int, float]


class SchemaType(str, Enum):
    """Value types a schema can describe."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    ENUM = "enum"


class SchemaValidationError(ValueError):
    """Raised when a value does not satisfy a schema."""

    def __init__(self, message: str, path: str = "") -> None:
        """
        Initialize a schema validation error.

        Args:
            message: Description of the failure
            path: Location of the failing value, empty for the root value
        """
        self.message = message
        self.path = path
        super().__init__(f"{message} at {path or 'root'}")


class SchemaDefinitionError(TypeError):
    """Raised when a schema is built with constraints that make no sense."""


def child_path(path: str, key: str) -> str:
    """Extend a path with an object property name."""
    return f"{path}.{key}" if path else key


def index_path(path: str, index: int) -> str:
    """Extend a path with an array index."""
    return f"{path}[{index}]"


def is_number(value: Any) -> bool:
    """Check for a JSON number; booleans are not numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_integer(value: Any) -> bool:
    """Check for an integral JSON number encoding."""
    return isinstance(value, int) and not isinstance(value, bool)


def is_finite(value: Any) -> bool:
    """Check that a number is finite and representable as a double."""
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def json_equal(left: Any, right: Any) -> bool:
    """
    Compare two decoded JSON values the way JSON defines equality.

    Python treats ``True == 1``; JSON does not, so booleans only equal booleans.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        if left.keys() != right.keys():
            return False
        return all(json_equal(left[key], right[key]) for key in left)
    if isinstance(left, list) and isinstance(right, list):
        if len(left) != len(right):
            return False
        return all(json_equal(a, b) for a, b in zip(left, right))
    return left == right


class BaseSchema(BaseModel):
    """
    Common fields and validation flow shared by every schema kind.

    Schemas are frozen once built. ``required`` only matters when the schema
    is used as an object property.
    """

    model_config = ConfigDict(frozen=True)

    description: Optional[str] = Field(None, description="Human-readable description")
    required: bool = Field(True, description="Whether the property must be present")

    @property
    def schema_type(self) -> SchemaType:
        return SchemaType(self.kind)  # type: ignore[attr-defined]

    def validate_value(self, value: Any, path: str = "") -> None:
        """
        Validate a value against this schema.

        Args:
            value: Decoded JSON value to validate
            path: Location of the value inside the enclosing document

        Raises:
            SchemaValidationError: On the first failure encountered
        """
        self._check_type(value, path)
        self._check_constraints(value, path)

    def is_valid(self, value: Any) -> bool:
        """Return True if the value satisfies this schema."""
        try:
            self.validate_value(value)
        except SchemaValidationError:
            return False
        return True

    def to_json_schema(self) -> Dict[str, Any]:
        """
        Project the schema into a JSON Schema document.

        Returns:
            Dictionary with the type, description and type-specific keys
        """
        document: Dict[str, Any] = {"type": self._json_type()}
        if self.description:
            document["description"] = self.description
        document.update(self._constraint_document())
        return document

    def _json_type(self) -> str:
        return self.schema_type.value

    def _check_type(self, value: Any, path: str) -> None:
        raise NotImplementedError

    def _check_constraints(self, value: Any, path: str) -> None:
        pass

    def _constraint_document(self) -> Dict[str, Any]:
        return {}


class StringSchema(BaseSchema):
    """Schema for string values with optional length and pattern constraints."""

    kind: Literal["string"] = "string"
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None

    def _check_type(self, value: Any, path: str) -> None:
        if not isinstance(value, str):
            raise SchemaValidationError("Expected string value", path)

    def _check_constraints(self, value: str, path: str) -> None:
        # Lengths count characters (code points)
        length = len(value)
        if self.min_length is not None and length < self.min_length:
            raise SchemaValidationError(
                f"String length {length} is less than minimum {self.min_length}", path
            )
        if self.max_length is not None and length > self.max_length:
            raise SchemaValidationError(
                f"String length {length} is greater than maximum {self.max_length}", path
            )
        if self.pattern is not None and re.search(self.pattern, value) is None:
            raise SchemaValidationError(
                f"String does not match pattern '{self.pattern}'", path
            )

    def _constraint_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {}
        if self.min_length is not None:
            document["minLength"] = self.min_length
        if self.max_length is not None:
            document["maxLength"] = self.max_length
        if self.pattern is not None:
            document["pattern"] = self.pattern
        return document


class NumberSchema(BaseSchema):
    """Schema for numbers and integers with bound and multiple-of constraints."""

    kind: Literal["number", "integer"] = "number"
    minimum: Optional[Number] = None
    maximum: Optional[Number] = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    multiple_of: Optional[Number] = None

    def _check_type(self, value: Any, path: str) -> None:
        if self.kind == "integer":
            if not is_integer(value):
                raise SchemaValidationError("Expected integer value", path)
        elif not is_number(value):
            raise SchemaValidationError("Expected number value", path)
        if not is_finite(value):
            raise SchemaValidationError("Expected finite number value", path)

    def _check_constraints(self, value: Number, path: str) -> None:
        if self.minimum is not None:
            if self.exclusive_minimum and value <= self.minimum:
                raise SchemaValidationError(
                    f"Value {value:g} must be greater than {self.minimum:g}", path
                )
            if not self.exclusive_minimum and value < self.minimum:
                raise SchemaValidationError(
                    f"Value {value:g} must be greater than or equal to {self.minimum:g}",
                    path,
                )

        if self.maximum is not None:
            if self.exclusive_maximum and value >= self.maximum:
                raise SchemaValidationError(
                    f"Value {value:g} must be less than {self.maximum:g}", path
                )
            if not self.exclusive_maximum and value > self.maximum:
                raise SchemaValidationError(
                    f"Value {value:g} must be less than or equal to {self.maximum:g}",
                    path,
                )

        if self.multiple_of is not None and not self._is_multiple(value):
            raise SchemaValidationError(
                f"Value {value:g} must be a multiple of {self.multiple_of:g}", path
            )

    def _is_multiple(self, value: Number) -> bool:
        divisor = abs(self.multiple_of)
        remainder = abs(math.fmod(value, divisor))
        return math.isclose(remainder, 0.0, abs_tol=MULTIPLE_OF_TOLERANCE) or math.isclose(
            remainder, divisor, rel_tol=MULTIPLE_OF_TOLERANCE, abs_tol=MULTIPLE_OF_TOLERANCE
        )

    def _constraint_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {}
        if self.minimum is not None:
            key = "exclusiveMinimum" if self.exclusive_minimum else "minimum"
            document[key] = self.minimum
        if self.maximum is not None:
            key = "exclusiveMaximum" if self.exclusive_maximum else "maximum"
            document[key] = self.maximum
        if self.multiple_of is not None:
            document["multipleOf"] = self.multiple_of
        return document


class BooleanSchema(BaseSchema):
    """Schema for boolean values."""

    kind: Literal["boolean"] = "boolean"

    def _check_type(self, value: Any, path: str) -> None:
        if not isinstance(value, bool):
            raise SchemaValidationError("Expected boolean value", path)


class EnumSchema(BaseSchema):
    """Schema for a string drawn from a fixed set of values."""

    kind: Literal["enum"] = "enum"
    values: Tuple[str, ...] = ()

    def _json_type(self) -> str:
        return "string"

    def _check_type(self, value: Any, path: str) -> None:
        if not isinstance(value, str):
            raise SchemaValidationError("Expected string value", path)

    def _check_constraints(self, value: str, path: str) -> None:
        if value not in self.values:
            raise SchemaValidationError(
                f"Value '{value}' must be one of {json.dumps(list(self.values))}", path
            )

    def _constraint_document(self) -> Dict[str, Any]:
        return {"enum": list(self.values)}


class ArraySchema(BaseSchema):
    """Schema for arrays whose elements all satisfy one item schema."""

    kind: Literal["array"] = "array"
    items: "Schema"
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique_items: bool = False

    def _check_type(self, value: Any, path: str) -> None:
        if not isinstance(value, list):
            raise SchemaValidationError("Expected array value", path)

    def _check_constraints(self, value: List[Any], path: str) -> None:
        count = len(value)
        if self.min_items is not None and count < self.min_items:
            raise SchemaValidationError(
                f"Array length {count} is less than minimum {self.min_items}", path
            )
        if self.max_items is not None and count > self.max_items:
            raise SchemaValidationError(
                f"Array length {count} is greater than maximum {self.max_items}", path
            )

        if self.unique_items:
            for i in range(count):
                for j in range(i + 1, count):
                    if json_equal(value[i], value[j]):
                        raise SchemaValidationError("Array must have unique items", path)

        for index, item in enumerate(value):
            self.items.validate_value(item, index_path(path, index))

    def _constraint_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {"items": self.items.to_json_schema()}
        if self.min_items is not None:
            document["minItems"] = self.min_items
        if self.max_items is not None:
            document["maxItems"] = self.max_items
        if self.unique_items:
            document["uniqueItems"] = True
        return document


class ObjectSchema(BaseSchema):
    """
    Schema for objects with declared properties.

    Unlike JSON Schema, keys that are not declared are rejected unless
    ``additional_properties`` is enabled.
    """

    kind: Literal["object"] = "object"
    properties: Dict[str, "Schema"] = Field(default_factory=dict)
    additional_properties: bool = False

    @property
    def required_properties(self) -> List[str]:
        return [name for name, prop in self.properties.items() if prop.required]

    def _check_type(self, value: Any, path: str) -> None:
        if not isinstance(value, dict):
            raise SchemaValidationError("Expected object value", path)

    def _check_constraints(self, value: Dict[str, Any], path: str) -> None:
        for name in self.required_properties:
            if name not in value:
                raise SchemaValidationError(f"Missing required property '{name}'", path)

        for key, item in value.items():
            prop = self.properties.get(key)
            if prop is not None:
                prop.validate_value(item, child_path(path, key))
            elif not self.additional_properties:
                raise SchemaValidationError(
                    f"Additional property '{key}' is not allowed", path
                )

    def _constraint_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {}
        if self.properties:
            document["properties"] = {
                name: prop.to_json_schema() for name, prop in self.properties.items()
            }
            required = self.required_properties
            if required:
                document["required"] = required
        if not self.additional_properties:
            document["additionalProperties"] = False
        return document


Schema = Annotated[
    Union[StringSchema, NumberSchema, BooleanSchema, EnumSchema, ArraySchema, ObjectSchema],
    Field(discriminator="kind"),
]

ArraySchema.model_rebuild()
ObjectSchema.model_rebuild()
