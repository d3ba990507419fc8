from __future__ import annotations

import dataclasses as dc
from typing import Any, Dict, Mapping

from errors import InvalidArgument
from type import JSON


class OpenApiModel:
    """
    Base for models that carry their own OAS 3.0 schema.

    Subclasses are dataclasses whose field names match the schema's
    property names:

        @dc.dataclass
        class Pet(OpenApiModel):
            id: int
            name: str

            @classmethod
            def get_openapi_schema(cls):
                return {"type": "object", "required": ["id", "name"], ...}

    so that `OpenApiDataMocker.mock_model(Pet)` returns a Pet.
    """

    @classmethod
    def get_openapi_schema(cls) -> JSON:
        raise NotImplementedError(
            f"{cls.__name__} does not define an OpenAPI schema."
        )

    @classmethod
    def create_from_data(cls, data: Any) -> "OpenApiModel":

        if not isinstance(data, Mapping):
            raise InvalidArgument(
                f"{cls.__name__} expects an object, got {type(data).__name__}."
            )

        schema = cls.get_openapi_schema()
        missing = [
            name for name in schema.get("required", []) if name not in data
        ]
        if missing:
            raise InvalidArgument(
                f"{cls.__name__} is missing required properties {missing}.",
                {"missing": missing},
            )

        if not dc.is_dataclass(cls):
            raise TypeError(
                f"{cls.__name__} must be a dataclass or override create_from_data()."
            )

        kwargs: Dict[str, Any] = {
            f.name: data[f.name] for f in dc.fields(cls) if f.name in data
        }

        return cls(**kwargs)

    def to_json(self) -> JSON:
        return {
            key: value
            for key, value in dc.asdict(self).items()
            if value is not None
        }
