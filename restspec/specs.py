"""
Declaration models: application setup, path specs, operation specs and validators.

All models accept either snake_case field names or the OpenAPI camelCase spelling
(``operation_id`` or ``operationId``), so plain dicts copied from an OpenAPI document
work as declarations.
"""

from typing import Annotated, Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from .introspect import is_schema


class SpecModel(BaseModel):
    """Base class for declaration models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="forbid",
    )

    @classmethod
    def coerce(cls, value: Any):
        """Accept an instance, a mapping or None."""
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls.model_validate(value)
        raise TypeError(f"Expected {cls.__name__} or dict, got {type(value).__name__}")

    def provided(self) -> Dict[str, Any]:
        """Fields explicitly given a value (explicit None counts as not given)."""
        values = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is not None:
                values[name] = value
        return values

    def merged(self, other: "SpecModel"):
        """Return a copy updated with the fields ``other`` provides."""
        return type(self)(**{**self.provided(), **other.provided()})


def _as_list(value: Any) -> Any:
    if isinstance(value, str):
        return [value]
    return value


MediaTypes = Annotated[List[str], BeforeValidator(_as_list)]


class ResponseSpec(SpecModel):
    """A declared response: status code plus optional description and headers."""

    code: int
    description: Optional[str] = None
    headers: Optional[Dict[str, Any]] = None


ResponseEntry = Union[int, ResponseSpec]


class Validators(SpecModel):
    """Validation schemas keyed by location.

    ``body`` may be keyed by content type and ``response`` by status code; every
    other location takes one object schema or a mapping of member name to schema.
    """

    path: Any = None
    header: Any = None
    cookie: Any = None
    query: Any = None
    body: Any = None
    response: Any = None

    @field_validator("path", "header", "cookie", "query", "body", "response")
    @classmethod
    def _check_schema(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or is_schema(value):
            return value
        if isinstance(value, Mapping) and value and all(is_schema(v) for v in value.values()):
            if info.field_name == "response":
                return {int(code): schema for code, schema in value.items()}
            return dict(value)
        raise ValueError(
            f"'{info.field_name}' validator must be a pydantic model, a TypeAdapter, "
            f"or a non-empty mapping of them"
        )

    def as_dict(self) -> Dict[str, Any]:
        """The locations that carry a schema."""
        return {
            name: getattr(self, name)
            for name in type(self).model_fields
            if getattr(self, name) is not None
        }


class PathSpec(SpecModel):
    """Shared description of a path, and the defaults its operations inherit."""

    summary: Optional[str] = None
    description: Optional[str] = None
    servers: Optional[List[Dict[str, Any]]] = None
    parameters: Optional[List[Dict[str, Any]]] = None
    responses: Optional[List[ResponseEntry]] = None
    accepts: Optional[MediaTypes] = None
    sends: Optional[MediaTypes] = None
    validators: Optional[Validators] = None


class OperationSpec(SpecModel):
    """Description of one method on one path."""

    responses: Optional[List[ResponseEntry]] = None
    parameters: Optional[List[Dict[str, Any]]] = None
    request_body: Optional[Dict[str, Any]] = None
    tags: Optional[List[str]] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    external_docs: Optional[Dict[str, Any]] = None
    operation_id: Optional[str] = None
    deprecated: Optional[bool] = None
    security: Optional[List[Dict[str, Any]]] = None
    callbacks: Optional[Dict[str, Any]] = None
    servers: Optional[List[Dict[str, Any]]] = None
    accepts: Optional[MediaTypes] = None
    sends: Optional[MediaTypes] = None
    validators: Optional[Validators] = None


class Setup(SpecModel):
    """Application-level configuration.

    Holds the document metadata, the global operation defaults, and where the finished
    document is served (``doc_route``) or written (``write_path``). Set either to None
    to disable it.
    """

    info: Optional[Dict[str, Any]] = None
    servers: Optional[List[Dict[str, Any]]] = None
    components: Optional[Dict[str, Any]] = None
    security: Optional[List[Dict[str, Any]]] = None
    tags: Optional[List[Any]] = None
    external_docs: Optional[Dict[str, Any]] = None
    responses: List[ResponseEntry] = [200]
    accepts: MediaTypes = ["application/json"]
    sends: MediaTypes = ["application/json"]
    doc_route: Optional[str] = "/openapi.json"
    write_path: Optional[str] = None
