"""
Tests for the mock() entry point, option handling, seeding and
concurrent use.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from data_mocker import OpenApiDataMocker
from errors import (
    InvalidArgument,
    InvalidRange,
    OpenApiDataMockerError,
    UnsatisfiableConstraint,
)
from type import DATA_TYPES, GenerationOptions, MockerConfig

MIXED_SCHEMA = {
    "type": "object",
    "properties": {
        "n": {"type": "integer"},
        "x": {"type": "number", "minimum": -1, "maximum": 1},
        "s": {"type": "string", "maxLength": 12},
        "when": {"type": "string", "format": "date-time"},
        "mail": {"type": "string", "format": "email"},
        "code": {"type": "string", "pattern": "^[A-Z]{3}$"},
        "list": {"type": "array", "items": {"type": "boolean"}},
    },
}


class TestMock:
    """Tests for mock()."""

    @pytest.mark.parametrize(
        "data_type, expected",
        [
            ("integer", int),
            ("number", float),
            ("string", str),
            ("boolean", bool),
        ],
    )
    def test_scalar_types(self, openapi_mocker, data_type, expected):
        """Test each scalar type yields the matching Python type."""
        assert isinstance(openapi_mocker.mock(data_type), expected)

    def test_array_with_options_mapping(self, openapi_mocker):
        """Test OpenAPI camelCase options are understood."""
        value = openapi_mocker.mock(
            "array",
            options={"items": {"type": "integer"}, "minItems": 2, "maxItems": 2},
        )
        assert len(value) == 2

    def test_object_with_options_mapping(self, openapi_mocker):
        """Test object options route to mock_object semantics."""
        value = openapi_mocker.mock(
            "object",
            options={"properties": {"id": {"type": "integer"}}, "required": ["id"]},
        )
        assert isinstance(value["id"], int)

    def test_generation_options_instance(self, openapi_mocker):
        """Test a GenerationOptions instance is accepted as-is."""
        options = GenerationOptions(minimum=3, maximum=3)
        assert openapi_mocker.mock("integer", options=options) == 3

    def test_unknown_type(self, openapi_mocker):
        """Test an unknown type raises InvalidArgument."""
        with pytest.raises(InvalidArgument) as exc_info:
            openapi_mocker.mock("decimal")
        assert exc_info.value.details["expected"] == list(DATA_TYPES)

    def test_format_of_other_type(self, openapi_mocker):
        """Test int32 with string raises InvalidArgument."""
        with pytest.raises(InvalidArgument):
            openapi_mocker.mock("string", "int32")

    @pytest.mark.parametrize("data_type", ["boolean", "array", "object"])
    def test_format_on_formatless_type(self, openapi_mocker, data_type):
        """Test any format on boolean/array/object raises InvalidArgument."""
        with pytest.raises(InvalidArgument):
            openapi_mocker.mock(data_type, "custom")

    def test_invalid_range_in_options(self, openapi_mocker):
        """Test options are validated before generation."""
        with pytest.raises(InvalidRange):
            openapi_mocker.mock("integer", options={"minimum": 5, "maximum": 1})

    def test_options_not_a_mapping(self, openapi_mocker):
        """Test non-mapping options raise InvalidArgument."""
        with pytest.raises(InvalidArgument):
            openapi_mocker.mock("integer", options=[1, 2])


class TestGenerationOptions:
    """Tests for GenerationOptions parsing and validation."""

    def test_from_camel_case(self):
        """Test OpenAPI keys map onto dataclass fields."""
        options = GenerationOptions.from_mapping(
            {"minLength": 2, "maxLength": 4, "uniqueItems": True, "x-extension": 1}
        )
        assert options.min_length == 2
        assert options.max_length == 4
        assert options.unique_items is True

    def test_from_snake_case(self):
        """Test snake_case keys are accepted too."""
        options = GenerationOptions.from_mapping({"min_items": 1, "additional_properties": False})
        assert options.min_items == 1
        assert options.additional_properties is False

    def test_none(self):
        """Test None yields defaults."""
        assert GenerationOptions.from_mapping(None) == GenerationOptions()

    @pytest.mark.parametrize(
        "options",
        [
            {"minLength": 5, "maxLength": 1},
            {"minItems": -1},
            {"minProperties": 2, "maxProperties": 0},
            {"minimum": 1, "maximum": 0},
        ],
    )
    def test_invalid_ranges(self, options):
        """Test contradictory bounds raise InvalidRange."""
        with pytest.raises(InvalidRange):
            GenerationOptions.from_mapping(options).validate()

    @pytest.mark.parametrize(
        "options",
        [
            {"enum": "abc"},
            {"pattern": 5},
            {"minLength": 1.5},
            {"additionalProperties": "yes"},
            {"minimum": float("inf")},
        ],
    )
    def test_invalid_arguments(self, options):
        """Test malformed option values raise InvalidArgument."""
        with pytest.raises(InvalidArgument):
            GenerationOptions.from_mapping(options).validate()


class TestErrors:
    """Tests for the error taxonomy."""

    def test_hierarchy(self):
        """Test every kind derives from the base error."""
        for kind in (InvalidArgument, InvalidRange, UnsatisfiableConstraint):
            assert issubclass(kind, OpenApiDataMockerError)
        assert issubclass(InvalidArgument, ValueError)
        assert issubclass(InvalidRange, ValueError)

    def test_details(self, openapi_mocker):
        """Test errors carry the offending bounds."""
        with pytest.raises(InvalidRange) as exc_info:
            openapi_mocker.mock_integer(minimum=10, maximum=5)
        assert exc_info.value.details == {"minimum": 10, "maximum": 5}
        assert "maximum" in exc_info.value.message


class TestSeeding:
    """Tests for reproducibility and concurrent use."""

    def test_same_seed_same_values(self):
        """Test two mockers with one seed produce one sequence."""
        first = OpenApiDataMocker(seed=42)
        second = OpenApiDataMocker(MockerConfig(seed=42))
        assert [first.mock_from_schema(MIXED_SCHEMA) for _ in range(5)] == [
            second.mock_from_schema(MIXED_SCHEMA) for _ in range(5)
        ]

    def test_different_seeds_differ(self):
        """Test different seeds give different sequences."""
        first = OpenApiDataMocker(seed=1)
        second = OpenApiDataMocker(seed=2)
        assert [first.mock_integer() for _ in range(5)] != [
            second.mock_integer() for _ in range(5)
        ]

    def test_unseeded_mocker_reports_seed(self):
        """Test a clock seed is recorded for replay."""
        mocker = OpenApiDataMocker()
        assert isinstance(mocker.seed, int)
        replay = OpenApiDataMocker(seed=mocker.seed)
        assert mocker.mock_integer() == replay.mock_integer()

    def test_shared_across_threads(self, openapi_mocker):
        """Test one mocker serves many threads without breaking bounds."""

        def work(_):
            return [
                openapi_mocker.mock_array(
                    {"type": "integer", "minimum": 0, "maximum": 100},
                    min_items=5,
                    max_items=5,
                    unique_items=True,
                )
                for _ in range(20)
            ]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = [arr for batch in pool.map(work, range(16)) for arr in batch]

        assert len(results) == 16 * 20
        for arr in results:
            assert len(arr) == 5 and len(set(arr)) == 5
            assert all(0 <= v <= 100 for v in arr)
