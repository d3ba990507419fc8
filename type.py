from __future__ import annotations

import dataclasses as dc
import math
from typing import Optional, Dict, List, Any, Mapping, Union

from errors import (
    InvalidArgument,
    InvalidRange,
)

# https://github.com/OAI/OpenAPI-Specification/blob/master/versions/3.0.1.md#data-types
DATA_TYPE_INTEGER = "integer"
DATA_TYPE_NUMBER = "number"
DATA_TYPE_STRING = "string"
DATA_TYPE_BOOLEAN = "boolean"
DATA_TYPE_ARRAY = "array"
DATA_TYPE_OBJECT = "object"

DATA_TYPES = (
    DATA_TYPE_INTEGER,
    DATA_TYPE_NUMBER,
    DATA_TYPE_STRING,
    DATA_TYPE_BOOLEAN,
    DATA_TYPE_ARRAY,
    DATA_TYPE_OBJECT,
)

DATA_FORMAT_INT32 = "int32" # signed 32 bits
DATA_FORMAT_INT64 = "int64" # signed 64 bits
DATA_FORMAT_FLOAT = "float"
DATA_FORMAT_DOUBLE = "double"
DATA_FORMAT_BYTE = "byte" # base64 encoded characters
DATA_FORMAT_BINARY = "binary" # any sequence of octets
DATA_FORMAT_DATE = "date" # RFC 3339 full-date
DATA_FORMAT_DATE_TIME = "date-time" # RFC 3339 date-time
DATA_FORMAT_PASSWORD = "password"
DATA_FORMAT_EMAIL = "email"
DATA_FORMAT_UUID = "uuid"

# Formats the mocker knows, keyed by the only type they may be used with.
DATA_FORMATS: Dict[str, tuple] = {
    DATA_TYPE_INTEGER: (
        DATA_FORMAT_INT32,
        DATA_FORMAT_INT64,
    ),
    DATA_TYPE_NUMBER: (
        DATA_FORMAT_FLOAT,
        DATA_FORMAT_DOUBLE,
    ),
    DATA_TYPE_STRING: (
        DATA_FORMAT_BYTE,
        DATA_FORMAT_BINARY,
        DATA_FORMAT_DATE,
        DATA_FORMAT_DATE_TIME,
        DATA_FORMAT_PASSWORD,
        DATA_FORMAT_EMAIL,
        DATA_FORMAT_UUID,
    ),
    DATA_TYPE_BOOLEAN: (),
    DATA_TYPE_ARRAY: (),
    DATA_TYPE_OBJECT: (),
}

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

JSON = Dict[str, Any]
SchemaFragment = Mapping[str, Any]

# Python values carry their own runtime tag: match with isinstance().
MockedValue = Union[
    int,
    float,
    str,
    bool,
    List["MockedValue"],
    Dict[str, "MockedValue"],
]

_SCHEMA_KEYS = {
    "minimum": "minimum",
    "maximum": "maximum",
    "exclusiveMinimum": "exclusive_minimum",
    "exclusiveMaximum": "exclusive_maximum",
    "minLength": "min_length",
    "maxLength": "max_length",
    "enum": "enum",
    "pattern": "pattern",
    "items": "items",
    "minItems": "min_items",
    "maxItems": "max_items",
    "uniqueItems": "unique_items",
    "properties": "properties",
    "minProperties": "min_properties",
    "maxProperties": "max_properties",
    "additionalProperties": "additional_properties",
    "required": "required",
}


@dc.dataclass
class MockerConfig:
    """
    Mocker-wide settings.

    seed:                       None seeds from the clock.
    max_depth:                  nesting guard for items/properties recursion.
    pattern_attempts:           ceiling for pattern + length search.
    unique_attempts:            redraws per element under uniqueItems.
    default_max_length:         maxLength when a string schema sets none.
    default_max_items:          maxItems when an array schema sets none.
    default_integer_maximum:    maximum when an integer schema sets none.
    default_number_maximum:     maximum when a number schema sets none.
    default_additional_schema:  schema for extra properties under
                                additionalProperties: true.
    """

    seed: Optional[int] = None
    max_depth: int = 16
    pattern_attempts: int = 100
    unique_attempts: int = 100
    default_max_length: int = 100
    default_max_items: int = 10
    default_integer_maximum: int = INT32_MAX
    default_number_maximum: float = float(INT32_MAX)
    default_additional_schema: JSON = dc.field(
        default_factory=lambda: {"type": DATA_TYPE_STRING}
    )


@dc.dataclass
class GenerationOptions:
    """
    Constraints applied to a single mock call.

    Field names are the snake_case spelling of the OpenAPI keywords;
    from_mapping() accepts either spelling.
    """

    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    enum: Optional[List[Any]] = None
    pattern: Optional[str] = None
    items: Optional[JSON] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique_items: bool = False
    properties: Optional[JSON] = None
    min_properties: Optional[int] = None
    max_properties: Optional[int] = None
    additional_properties: Union[None, bool, JSON] = None
    required: Optional[List[str]] = None

    @staticmethod
    def from_mapping(
        options: Optional[Mapping[str, Any]],
    ) -> "GenerationOptions":

        if options is None:
            return GenerationOptions()

        if isinstance(options, GenerationOptions):
            return options

        if not isinstance(options, Mapping):
            raise InvalidArgument(
                f"Options must be a mapping, got {type(options).__name__}."
            )

        field_names = {f.name for f in dc.fields(GenerationOptions)}
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = _SCHEMA_KEYS.get(key, key)
            if name in field_names:
                kwargs[name] = value

        # OpenAPI 3.1 spells exclusive bounds as numbers.
        for flag, bound in (
            ("exclusive_minimum", "minimum"),
            ("exclusive_maximum", "maximum"),
        ):
            value = kwargs.get(flag)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                kwargs[bound] = value
                kwargs[flag] = True
            elif value is None:
                kwargs.pop(flag, None)

        if kwargs.get("unique_items") is None:
            kwargs.pop("unique_items", None)

        return GenerationOptions(**kwargs)

    def validate(self) -> "GenerationOptions":
        """Reject contradictory bounds before any value is drawn."""

        for name in ("minimum", "maximum"):
            value = getattr(self, name)
            if value is not None and (
                isinstance(value, bool)
                or not isinstance(value, (int, float))
                or not math.isfinite(value)
            ):
                raise InvalidArgument(
                    f"'{name}' must be a finite number.",
                    {name: value},
                )

        if self.minimum is not None \
            and self.maximum is not None \
                and self.maximum < self.minimum:
            raise InvalidRange(
                f"maximum {self.maximum} is less than minimum {self.minimum}.",
                {"minimum": self.minimum, "maximum": self.maximum},
            )

        for low, high in (
            ("min_length", "max_length"),
            ("min_items", "max_items"),
            ("min_properties", "max_properties"),
        ):
            _check_count_pair(self, low, high)

        if self.enum is not None and not isinstance(self.enum, (list, tuple)):
            raise InvalidArgument(
                "'enum' must be an array.",
                {"enum": self.enum},
            )

        if self.pattern is not None and not isinstance(self.pattern, str):
            raise InvalidArgument(
                "'pattern' must be a string.",
                {"pattern": self.pattern},
            )

        if self.items is not None and not isinstance(self.items, Mapping):
            raise InvalidArgument(
                "'items' must be a schema object.",
                {"items": self.items},
            )

        if self.properties is not None \
            and not isinstance(self.properties, Mapping):
            raise InvalidArgument(
                "'properties' must be an object of schemas.",
                {"properties": self.properties},
            )

        if self.additional_properties is not None \
            and not isinstance(self.additional_properties, (bool, Mapping)):
            raise InvalidArgument(
                "'additionalProperties' must be a boolean or a schema.",
                {"additionalProperties": self.additional_properties},
            )

        if self.required is not None and (
            not isinstance(self.required, (list, tuple))
            or not all(isinstance(name, str) for name in self.required)
        ):
            raise InvalidArgument(
                "'required' must be an array of strings.",
                {"required": self.required},
            )

        return self


def _check_count_pair(
        options: GenerationOptions,
        low: str,
        high: str,
) -> None:

    low_value = getattr(options, low)
    high_value = getattr(options, high)

    for name, value in ((low, low_value), (high, high_value)):
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidArgument(
                f"'{name}' must be an integer.",
                {name: value},
            )
        if value < 0:
            raise InvalidRange(
                f"'{name}' must not be negative.",
                {name: value},
            )

    if low_value is not None \
        and high_value is not None \
            and high_value < low_value:
        raise InvalidRange(
            f"'{high}' {high_value} is less than '{low}' {low_value}.",
            {low: low_value, high: high_value},
        )
