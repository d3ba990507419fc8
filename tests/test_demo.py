"""
Tests for the openapi-mock command line.
"""

import json

import pytest

from demo import main
from utils import read_schema_file


class TestCli:
    """Tests for demo.main()."""

    def test_json_schema(self, tmp_path):
        """Test a JSON schema file is mocked successfully."""
        path = tmp_path / "schema.json"
        path.write_text(
            json.dumps({"type": "array", "items": {"type": "integer"}, "maxItems": 3}),
            encoding="utf-8",
        )
        assert main([str(path), "--seed", "1", "--count", "2"]) == 0

    def test_yaml_schema(self, tmp_path):
        """Test a YAML schema file is mocked successfully."""
        path = tmp_path / "schema.yaml"
        path.write_text(
            "type: object\n"
            "required: [id]\n"
            "properties:\n"
            "  id:\n"
            "    type: string\n"
            "    format: uuid\n",
            encoding="utf-8",
        )
        assert main([str(path), "--seed", "7"]) == 0

    def test_unsatisfiable_schema(self, tmp_path):
        """Test mocking errors exit with status 1."""
        path = tmp_path / "schema.json"
        path.write_text(
            json.dumps(
                {"type": "array", "items": {"type": "boolean"}, "minItems": 3, "uniqueItems": True}
            ),
            encoding="utf-8",
        )
        assert main([str(path), "-v"]) == 1


class TestReadSchemaFile:
    """Tests for utils.read_schema_file()."""

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            read_schema_file(tmp_path / "nope.json")

    def test_empty_file(self, tmp_path):
        """Test an empty file raises ValueError."""
        path = tmp_path / "empty.yaml"
        path.write_text("  \n", encoding="utf-8")
        with pytest.raises(ValueError):
            read_schema_file(path)

    def test_bad_yaml(self, tmp_path):
        """Test unparsable YAML raises ValueError."""
        path = tmp_path / "bad.yaml"
        path.write_text("type: [unclosed\n", encoding="utf-8")
        with pytest.raises(ValueError):
            read_schema_file(path)
