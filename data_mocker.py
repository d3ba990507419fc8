from typing import Optional, Dict, List, Any, Mapping, Tuple, Type, Union
import base64
import dataclasses as dc
import itertools
import logging
import math
import random
import re
import string
import struct
import threading
import time
import uuid
from datetime import timezone

import rstr
from faker import Faker

from errors import (
    InvalidArgument,
    InvalidRange,
    UnsatisfiableConstraint,
)
from model import OpenApiModel
from type import (
    JSON,
    DATA_TYPES,
    DATA_FORMATS,
    DATA_TYPE_INTEGER,
    DATA_TYPE_NUMBER,
    DATA_TYPE_STRING,
    DATA_TYPE_BOOLEAN,
    DATA_TYPE_ARRAY,
    DATA_TYPE_OBJECT,
    DATA_FORMAT_INT32,
    DATA_FORMAT_INT64,
    DATA_FORMAT_FLOAT,
    DATA_FORMAT_BYTE,
    DATA_FORMAT_BINARY,
    DATA_FORMAT_DATE,
    DATA_FORMAT_DATE_TIME,
    DATA_FORMAT_PASSWORD,
    DATA_FORMAT_EMAIL,
    DATA_FORMAT_UUID,
    INT32_MIN,
    INT32_MAX,
    INT64_MIN,
    INT64_MAX,
    GenerationOptions,
    MockedValue,
    MockerConfig,
    SchemaFragment,
)
from utils import (
    derive_rng,
    value_key,
)

logger = logging.getLogger(__name__)

ALPHANUMERIC = string.ascii_letters + string.digits
PASSWORD_ALPHABET = ALPHANUMERIC + string.punctuation

DATE_WIDTH = len("2025-01-01")
DATE_TIME_WIDTH = len("2025-01-01T00:00:00+00:00")
UUID_WIDTH = 36
EMAIL_MIN_LENGTH = len("a@x.io")

_FORMAT_RANGES = {
    DATA_FORMAT_INT32: (INT32_MIN, INT32_MAX),
    DATA_FORMAT_INT64: (INT64_MIN, INT64_MAX),
}

_SCALAR_TYPES = (
    DATA_TYPE_INTEGER,
    DATA_TYPE_NUMBER,
    DATA_TYPE_BOOLEAN,
)


class _PatternExpander(rstr.Rstr):
    """
    Xeger whose repeat counts follow the requested length bounds.

    rstr caps every repeat at a fixed 100, which breaks `a{150}` outright
    and keeps `[a-z]+` from ever reaching a longer minLength. Here open
    repeats stretch up to `repeat_limit`, and no repeat runs fewer than
    `repeat_floor` times unless its own maximum is lower.
    """

    repeat_floor = 0
    repeat_limit = 100

    def _handle_repeat(self, start_range, end_range, value):
        end_range = max(start_range, min(end_range, self.repeat_limit))
        start_range = min(max(start_range, self.repeat_floor), end_range)

        times = self._random.randint(start_range, end_range)

        return "".join(
            "".join(self._handle_state(state) for state in value)
            for _ in range(times)
        )


class _ThreadRandom(threading.local):
    """
    Random state owned by one thread.

    threading.local re-runs __init__ the first time each thread touches
    the instance, so every thread draws from its own generators.
    """

    def __init__(self, seed: int, next_index) -> None:
        self.rng = derive_rng(seed, next_index())
        self.faker = Faker()
        self.faker.seed_instance(self.rng.getrandbits(64))
        self.xeger = _PatternExpander(_random=self.rng)


class OpenApiDataMocker:
    """
    Mocks OpenAPI 3.0 data.

    Every value returned satisfies all constraints declared for it; when
    that is impossible a typed error from `errors` is raised instead.
    A single instance is safe to share between threads.

    https://github.com/OAI/OpenAPI-Specification/blob/master/versions/3.0.1.md#data-types
    """

    def __init__(
            self,
            config: Optional[MockerConfig] = None,
            seed: Optional[int] = None,
    ) -> None:
        self.config = config or MockerConfig()
        if seed is not None:
            self.config = dc.replace(self.config, seed=seed)

        self.seed = self.config.seed if self.config.seed is not None \
            else time.time_ns()

        self._thread_counter = itertools.count()
        self._counter_lock = threading.Lock()
        self._local = _ThreadRandom(self.seed, self._next_thread_index)

    def _next_thread_index(self) -> int:
        with self._counter_lock:
            return next(self._thread_counter)

    @property
    def rng(self) -> random.Random:
        return self._local.rng

    # -- public operations ------------------------------------------------

    def mock(
            self,
            data_type: str,
            data_format: Optional[str] = None,
            options: Union[None, GenerationOptions, Mapping[str, Any]] = None,
    ) -> MockedValue:
        """
        Mocks a value of `data_type`.

        `options` is a GenerationOptions or a mapping of OpenAPI keywords
        (minimum, maxLength, items, required, ...).

        Raises InvalidArgument for unknown types and for formats that
        belong to another type.
        """

        opts = GenerationOptions.from_mapping(options).validate()

        return self._dispatch(
            data_type,
            data_format,
            opts,
            depth=0,
        )

    def mock_integer(
            self,
            data_format: Optional[str] = None,
            minimum: Optional[float] = None,
            maximum: Optional[float] = None,
            exclusive_minimum: Optional[bool] = False,
            exclusive_maximum: Optional[bool] = False,
    ) -> int:
        return self.mock(
            DATA_TYPE_INTEGER,
            data_format,
            GenerationOptions(
                minimum=minimum,
                maximum=maximum,
                exclusive_minimum=bool(exclusive_minimum),
                exclusive_maximum=bool(exclusive_maximum),
            ),
        )

    def mock_number(
            self,
            data_format: Optional[str] = None,
            minimum: Optional[float] = None,
            maximum: Optional[float] = None,
            exclusive_minimum: Optional[bool] = False,
            exclusive_maximum: Optional[bool] = False,
    ) -> float:
        return self.mock(
            DATA_TYPE_NUMBER,
            data_format,
            GenerationOptions(
                minimum=minimum,
                maximum=maximum,
                exclusive_minimum=bool(exclusive_minimum),
                exclusive_maximum=bool(exclusive_maximum),
            ),
        )

    def mock_string(
            self,
            data_format: Optional[str] = None,
            min_length: Optional[int] = 0,
            max_length: Optional[int] = None,
            enum: Optional[List[Any]] = None,
            pattern: Optional[str] = None,
    ) -> str:
        """
        Mocks a string.

        A non-empty `enum` wins over every other argument. Otherwise a
        `pattern` (ECMA 262 style, not implicitly anchored) is combined
        with the length bounds, and without one the `data_format` decides
        the shape of the string.
        """

        return self.mock(
            DATA_TYPE_STRING,
            data_format,
            GenerationOptions(
                min_length=min_length,
                max_length=max_length,
                enum=enum,
                pattern=pattern,
            ),
        )

    def mock_boolean(self) -> bool:
        return self.mock(DATA_TYPE_BOOLEAN)

    def mock_array(
            self,
            items: JSON,
            min_items: Optional[int] = 0,
            max_items: Optional[int] = None,
            unique_items: Optional[bool] = False,
    ) -> List[MockedValue]:
        return self.mock(
            DATA_TYPE_ARRAY,
            None,
            GenerationOptions(
                items=items,
                min_items=min_items,
                max_items=max_items,
                unique_items=bool(unique_items),
            ),
        )

    def mock_object(
            self,
            properties: JSON,
            min_properties: Optional[int] = 0,
            max_properties: Optional[int] = None,
            additional_properties: Union[None, bool, JSON] = None,
            required: Optional[List[str]] = None,
    ) -> Dict[str, MockedValue]:
        """
        Mocks an object.

        Names in `required` are always present. Undeclared names (in
        `required` or to reach `min_properties`) are only produced when
        `additional_properties` is true or a schema.
        """

        return self.mock(
            DATA_TYPE_OBJECT,
            None,
            GenerationOptions(
                properties=properties,
                min_properties=min_properties,
                max_properties=max_properties,
                additional_properties=additional_properties,
                required=required,
            ),
        )

    def mock_from_schema(self, schema: SchemaFragment) -> MockedValue:
        return self._mock_schema(schema, depth=0)

    def mock_model(self, model_cls: Type[OpenApiModel]) -> OpenApiModel:
        """Builds an instance of an OpenApiModel subclass from mocked data."""

        data = self.mock_from_schema(model_cls.get_openapi_schema())

        return model_cls.create_from_data(data)

    # -- dispatch ---------------------------------------------------------

    def _mock_schema(
            self,
            schema: SchemaFragment,
            depth: int,
    ) -> MockedValue:

        if depth > self.config.max_depth:
            raise InvalidArgument(
                f"Schema nesting exceeds {self.config.max_depth} levels; "
                "cyclic schemas are not supported.",
                {"max_depth": self.config.max_depth},
            )

        if not isinstance(schema, Mapping):
            raise InvalidArgument(
                f"Schema must be an object, got {type(schema).__name__}."
            )

        t = schema.get("type")
        if isinstance(t, list):
            t = next(
                (x for x in t if x != "null"),
                None
                )
        if t is None:
            raise InvalidArgument(
                "Schema has no 'type'.",
                {"schema": dict(schema)},
            )

        options = GenerationOptions.from_mapping(schema).validate()

        return self._dispatch(
            t,
            schema.get("format"),
            options,
            depth=depth,
        )

    def _dispatch(
            self,
            data_type: str,
            data_format: Optional[str],
            options: GenerationOptions,
            depth: int,
    ) -> MockedValue:

        data_format = self._check_format(data_type, data_format)

        if data_type in _SCALAR_TYPES and options.enum:
            return self.rng.choice(list(options.enum))

        if data_type == DATA_TYPE_INTEGER:
            low, high = self._integer_bounds(data_format, options)
            return self.rng.randint(low, high)

        if data_type == DATA_TYPE_NUMBER:
            return self._number(data_format, options)

        if data_type == DATA_TYPE_STRING:
            return self._string(data_format, options)

        if data_type == DATA_TYPE_BOOLEAN:
            return bool(self.rng.getrandbits(1))

        if data_type == DATA_TYPE_ARRAY:
            return self._array(options, depth)

        return self._object(options, depth)

    def _check_format(
            self,
            data_type: str,
            data_format: Optional[str],
    ) -> Optional[str]:

        if not isinstance(data_type, str) or data_type not in DATA_TYPES:
            raise InvalidArgument(
                f"Unknown data type: {data_type!r}.",
                {"type": data_type, "expected": list(DATA_TYPES)},
            )

        if data_format is None:
            return None

        if not isinstance(data_format, str):
            raise InvalidArgument(
                f"Format must be a string, got {type(data_format).__name__}.",
                {"format": data_format},
            )

        if data_format in DATA_FORMATS[data_type]:
            return data_format

        for other_type, formats in DATA_FORMATS.items():
            if data_format in formats:
                raise InvalidArgument(
                    f"Format '{data_format}' belongs to type '{other_type}', "
                    f"not '{data_type}'.",
                    {"type": data_type, "format": data_format},
                )

        if data_type in (
            DATA_TYPE_BOOLEAN,
            DATA_TYPE_ARRAY,
            DATA_TYPE_OBJECT,
        ):
            raise InvalidArgument(
                f"Type '{data_type}' does not take a format.",
                {"type": data_type, "format": data_format},
            )

        # OpenAPI formats are open-ended
        logger.debug(
            "Ignoring unrecognized format %r for type %r",
            data_format,
            data_type,
        )
        return None

    # -- numbers ----------------------------------------------------------

    def _integer_bounds(
            self,
            data_format: Optional[str],
            options: GenerationOptions,
    ) -> Tuple[int, int]:
        """Effective closed interval after defaults, format and exclusivity."""

        low = 0 if options.minimum is None else options.minimum
        if options.maximum is None:
            high = self.config.default_integer_maximum
            if low >= high:
                high = low + self.config.default_integer_maximum
        else:
            high = options.maximum

        if high < low:
            raise InvalidRange(
                f"maximum {high} is less than minimum {low}.",
                {"minimum": low, "maximum": high},
            )

        low = math.floor(low) + 1 if options.exclusive_minimum \
            else math.ceil(low)
        high = math.ceil(high) - 1 if options.exclusive_maximum \
            else math.floor(high)

        if data_format in _FORMAT_RANGES:
            floor, ceiling = _FORMAT_RANGES[data_format]
            low = max(low, floor)
            high = min(high, ceiling)

        if low > high:
            raise InvalidRange(
                f"No {data_format or 'integer'} lies within "
                f"the requested bounds.",
                {
                    "minimum": options.minimum,
                    "maximum": options.maximum,
                    "exclusiveMinimum": options.exclusive_minimum,
                    "exclusiveMaximum": options.exclusive_maximum,
                    "format": data_format,
                },
            )

        return (
            int(low),
            int(high),
        )

    def _number_bounds(
            self,
            options: GenerationOptions,
    ) -> Tuple[float, float]:

        low = 0.0 if options.minimum is None else float(options.minimum)
        if options.maximum is None:
            high = self.config.default_number_maximum
            if low >= high:
                high = low + self.config.default_number_maximum
        else:
            high = float(options.maximum)

        if high < low:
            raise InvalidRange(
                f"maximum {high} is less than minimum {low}.",
                {"minimum": low, "maximum": high},
            )

        if options.exclusive_minimum:
            low = math.nextafter(low, math.inf)
        if options.exclusive_maximum:
            high = math.nextafter(high, -math.inf)

        if low > high:
            raise InvalidRange(
                "Exclusive bounds leave no number in range.",
                {
                    "minimum": options.minimum,
                    "maximum": options.maximum,
                    "exclusiveMinimum": options.exclusive_minimum,
                    "exclusiveMaximum": options.exclusive_maximum,
                },
            )

        return (
            low,
            high,
        )

    def _number(
            self,
            data_format: Optional[str],
            options: GenerationOptions,
    ) -> float:

        low, high = self._number_bounds(options)

        # interpolate instead of uniform(): high - low may overflow
        r = self.rng.random()
        value = min(max((1.0 - r) * low + r * high, low), high)

        if data_format == DATA_FORMAT_FLOAT:
            try:
                single = struct.unpack("f", struct.pack("f", value))[0]
            except OverflowError:
                single = value
            if low <= single <= high:
                value = single

        return float(value)

    # -- strings ----------------------------------------------------------

    def _length_bounds(self, options: GenerationOptions) -> Tuple[int, int]:

        min_len = options.min_length or 0
        if options.max_length is None:
            max_len = max(self.config.default_max_length, min_len)
        else:
            max_len = options.max_length

        return (
            min_len,
            max_len,
        )

    def _string(
            self,
            data_format: Optional[str],
            options: GenerationOptions,
    ) -> str:

        if options.enum:
            return self.rng.choice(list(options.enum))

        min_len, max_len = self._length_bounds(options)

        if options.pattern is not None:
            return self._string_from_pattern(
                options.pattern,
                min_len,
                max_len,
            )

        if data_format == DATA_FORMAT_DATE:
            self._check_width(data_format, DATE_WIDTH, min_len, max_len)
            return self._local.faker.date_object().isoformat()

        if data_format == DATA_FORMAT_DATE_TIME:
            self._check_width(data_format, DATE_TIME_WIDTH, min_len, max_len)
            return self._local.faker.date_time(
                tzinfo=timezone.utc
            ).replace(microsecond=0).isoformat()

        if data_format == DATA_FORMAT_UUID:
            self._check_width(data_format, UUID_WIDTH, min_len, max_len)
            return str(
                uuid.UUID(int=self.rng.getrandbits(128), version=4)
            )

        if data_format == DATA_FORMAT_BYTE:
            return self._base64(min_len, max_len)

        if data_format == DATA_FORMAT_BINARY:
            n = self.rng.randint(min_len, max_len)
            return self.rng.randbytes(n).decode("latin-1")

        if data_format == DATA_FORMAT_EMAIL:
            return self._email(min_len, max_len)

        if data_format == DATA_FORMAT_PASSWORD:
            return self._text(PASSWORD_ALPHABET, min_len, max_len)

        return self._text(ALPHANUMERIC, min_len, max_len)

    def _text(self, alphabet: str, min_len: int, max_len: int) -> str:

        n = self.rng.randint(min_len, max_len)

        return "".join(self.rng.choices(alphabet, k=n))

    def _check_width(
            self,
            data_format: str,
            width: int,
            min_len: int,
            max_len: int,
    ) -> None:

        if not min_len <= width <= max_len:
            raise UnsatisfiableConstraint(
                f"Format '{data_format}' is always {width} characters long.",
                {
                    "format": data_format,
                    "minLength": min_len,
                    "maxLength": max_len,
                },
            )

    def _base64(self, min_len: int, max_len: int) -> str:

        # base64 output comes in blocks of 4 characters per 3 bytes
        low_blocks = math.ceil(min_len / 4)
        high_blocks = max_len // 4
        if low_blocks > high_blocks:
            raise UnsatisfiableConstraint(
                "No base64 length lies within the length bounds.",
                {
                    "format": DATA_FORMAT_BYTE,
                    "minLength": min_len,
                    "maxLength": max_len,
                },
            )

        blocks = self.rng.randint(low_blocks, high_blocks)
        size = 3 * blocks - self.rng.randint(0, 2) if blocks else 0

        return base64.b64encode(
            self.rng.randbytes(size)
        ).decode("ascii")

    def _email(self, min_len: int, max_len: int) -> str:

        if max_len < EMAIL_MIN_LENGTH:
            raise UnsatisfiableConstraint(
                f"An email address needs at least {EMAIL_MIN_LENGTH} characters.",
                {
                    "format": DATA_FORMAT_EMAIL,
                    "minLength": min_len,
                    "maxLength": max_len,
                },
            )

        address = self._local.faker.email()
        if min_len <= len(address) <= max_len:
            return address

        n = self.rng.randint(max(min_len, EMAIL_MIN_LENGTH), max_len)
        domain = "example.com" if n > len("@example.com") else "x.io"
        local = "".join(
            self.rng.choices(
                string.ascii_lowercase,
                k=n - len(domain) - 1,
            )
        )

        return f"{local}@{domain}"

    def _string_from_pattern(
            self,
            pattern: str,
            min_len: int,
            max_len: int,
    ) -> str:

        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise InvalidArgument(
                f"Invalid pattern {pattern!r}: {e}",
                {"pattern": pattern},
            ) from e

        xeger = self._local.xeger
        xeger.repeat_limit = max(max_len, 1)
        xeger.repeat_floor = 0

        for _ in range(self.config.pattern_attempts):
            try:
                candidate = xeger.xeger(pattern)
            except (KeyError, ValueError) as e:
                raise InvalidArgument(
                    f"Pattern {pattern!r} uses an unsupported construct.",
                    {"pattern": pattern},
                ) from e

            # steer open repeats toward the bounds on the next draw
            if len(candidate) < min_len:
                xeger.repeat_floor += min_len - len(candidate)
            elif len(candidate) > max_len:
                xeger.repeat_floor = max(
                    0,
                    xeger.repeat_floor - (len(candidate) - max_len),
                )

            # patterns are unanchored, so a padded or cut candidate may
            # still match; search() below has the final word
            if len(candidate) < min_len:
                candidate += self._text(
                    ALPHANUMERIC,
                    min_len - len(candidate),
                    max_len - len(candidate),
                )
            elif len(candidate) > max_len:
                candidate = candidate[:self.rng.randint(min_len, max_len)]

            if min_len <= len(candidate) <= max_len \
                and compiled.search(candidate):
                return candidate

        logger.debug(
            "Gave up on pattern %r within [%d, %d] after %d attempts",
            pattern,
            min_len,
            max_len,
            self.config.pattern_attempts,
        )
        raise UnsatisfiableConstraint(
            f"Could not produce a string matching {pattern!r} "
            f"with length in [{min_len}, {max_len}].",
            {
                "pattern": pattern,
                "minLength": min_len,
                "maxLength": max_len,
                "attempts": self.config.pattern_attempts,
            },
        )

    # -- arrays -----------------------------------------------------------

    def _array(
            self,
            options: GenerationOptions,
            depth: int,
    ) -> List[MockedValue]:

        items = options.items
        if items is None:
            raise InvalidArgument("Array schema requires 'items'.")

        low = options.min_items or 0
        high = options.max_items if options.max_items is not None \
            else max(low, self.config.default_max_items)

        if options.unique_items:
            space = self._value_space(items)
            if space is not None:
                if space < low:
                    raise UnsatisfiableConstraint(
                        f"Items allow only {space} distinct values, "
                        f"{low} unique items required.",
                        {"minItems": low, "distinct_values": space},
                    )
                high = min(high, space)

        length = self.rng.randint(low, high)

        if not options.unique_items:
            return [
                self._mock_schema(items, depth + 1) for _ in range(length)
            ]

        output: List[MockedValue] = []
        seen = set()
        while len(output) < length:
            for _ in range(self.config.unique_attempts):
                value = self._mock_schema(items, depth + 1)
                key = value_key(value)
                if key not in seen:
                    break
            else:
                if len(output) >= low:
                    logger.debug(
                        "Stopping unique array at %d items (wanted %d)",
                        len(output),
                        length,
                    )
                    break
                raise UnsatisfiableConstraint(
                    f"Could not draw {low} distinct items "
                    f"after {self.config.unique_attempts} attempts.",
                    {
                        "minItems": low,
                        "found": len(output),
                        "attempts": self.config.unique_attempts,
                    },
                )

            seen.add(key)
            output.append(value)

        return output

    def _value_space(self, schema: SchemaFragment) -> Optional[int]:
        """
        Number of distinct values `schema` can produce, or None when it
        is too large to matter.
        """

        if not isinstance(schema, Mapping):
            return None

        t = schema.get("type")
        options = GenerationOptions.from_mapping(schema).validate()

        if options.enum and t in _SCALAR_TYPES + (DATA_TYPE_STRING,):
            return len({value_key(v) for v in options.enum})

        if t == DATA_TYPE_BOOLEAN:
            return 2

        if t == DATA_TYPE_INTEGER:
            low, high = self._integer_bounds(
                self._check_format(t, schema.get("format")),
                options,
            )
            return high - low + 1

        if t == DATA_TYPE_NUMBER:
            low, high = self._number_bounds(options)
            return 1 if low == high else None

        if t == DATA_TYPE_STRING \
            and options.pattern is None \
                and options.max_length == 0:
            return 1

        if t == DATA_TYPE_ARRAY and options.max_items == 0:
            return 1

        return None

    # -- objects ----------------------------------------------------------

    def _object(
            self,
            options: GenerationOptions,
            depth: int,
    ) -> Dict[str, MockedValue]:

        properties = options.properties or {}
        additional = options.additional_properties
        allow_extra = additional is True or isinstance(additional, Mapping)

        required = list(dict.fromkeys(options.required or []))
        undeclared = [name for name in required if name not in properties]
        if undeclared and not allow_extra:
            raise InvalidArgument(
                f"Required properties {undeclared} are not declared "
                "and additionalProperties is not enabled.",
                {"required": undeclared},
            )

        names = list(properties) + undeclared
        min_properties = options.min_properties or 0
        max_properties = options.max_properties

        if not allow_extra and min_properties > len(names):
            raise InvalidRange(
                f"minProperties {min_properties} exceeds the "
                f"{len(names)} properties available.",
                {"minProperties": min_properties, "available": len(names)},
            )

        if max_properties is not None and len(required) > max_properties:
            raise InvalidRange(
                f"{len(required)} required properties exceed "
                f"maxProperties {max_properties}.",
                {"required": required, "maxProperties": max_properties},
            )

        low = max(min_properties, len(required))
        if max_properties is None:
            count = max(low, len(names))
        else:
            high = max_properties if allow_extra \
                else min(max_properties, len(names))
            count = self.rng.randint(low, high)

        picked = set(required)
        optional = [name for name in names if name not in picked]
        picked.update(
            self.rng.sample(
                optional,
                min(count - len(picked), len(optional)),
            )
        )

        output: Dict[str, MockedValue] = {}
        for name in names:
            if name not in picked:
                continue
            schema = properties.get(name)
            if schema is None:
                schema = self._additional_schema(additional)
            output[name] = self._mock_schema(schema, depth + 1)

        extra = itertools.count(1)
        while len(output) < count:
            name = f"additionalProp{next(extra)}"
            if name in output or name in properties:
                continue
            output[name] = self._mock_schema(
                self._additional_schema(additional),
                depth + 1,
            )

        return output

    def _additional_schema(self, additional: Union[bool, JSON]) -> JSON:

        # `additionalProperties: {}` allows anything
        if isinstance(additional, Mapping) and additional:
            return additional

        return self.config.default_additional_schema
