"""
Schema introspection: pydantic schemas to OpenAPI 3.0 schema fragments.

A schema is either a ``pydantic.BaseModel`` subclass or a ``pydantic.TypeAdapter``
instance. The conversion starts from pydantic's JSON schema and rewrites it into the
OpenAPI 3.0 dialect: references are inlined, ``Optional`` unions become ``nullable``,
``const`` becomes a single-value ``enum`` and single examples collapse to ``example``.

Every function here is pure; nothing is cached except the ``TypeAdapter`` built for a
model class.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.errors import PydanticInvalidForJsonSchema, PydanticSchemaGenerationError

logger = logging.getLogger(__name__)

_REF_PREFIX = "#/$defs/"

# JSON schema keywords whose values are schemas, lists of schemas or maps of schemas.
_SCHEMA_KEYWORDS = ("items", "additionalProperties", "not")
_SCHEMA_LIST_KEYWORDS = ("anyOf", "oneOf", "allOf")
_SCHEMA_MAP_KEYWORDS = ("properties", "patternProperties")

_DROPPED_KEYWORDS = ("title", "$defs", "$schema")


@dataclass
class MemberField:
    """One member of an object schema, ready to become a parameter."""

    name: str
    fragment: Dict[str, Any]
    required: bool
    deprecated: bool = False


def is_schema(obj: Any) -> bool:
    """Check whether ``obj`` is a validation schema (model class or TypeAdapter)."""
    if isinstance(obj, TypeAdapter):
        return True
    return isinstance(obj, type) and issubclass(obj, BaseModel)


@lru_cache(maxsize=None)
def _model_adapter(model: type) -> TypeAdapter:
    return TypeAdapter(model)


def get_adapter(schema: Any) -> TypeAdapter:
    """Return the TypeAdapter used to validate and describe ``schema``."""
    if isinstance(schema, TypeAdapter):
        return schema
    return _model_adapter(schema)


def validate_value(schema: Any, value: Any) -> Optional[str]:
    """Validate ``value`` against ``schema``.

    Returns:
        A one-line error message, or None if the value is valid
    """
    try:
        get_adapter(schema).validate_python(value)
    except ValidationError as error:
        return format_validation_error(error)
    return None


def format_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        loc = ".".join(str(part) for part in detail.get("loc", ()))
        parts.append(f"{loc}: {detail['msg']}" if loc else detail["msg"])
    return "; ".join(parts)


def _json_schema(schema: Any) -> Optional[Dict[str, Any]]:
    try:
        return get_adapter(schema).json_schema()
    except (PydanticInvalidForJsonSchema, PydanticSchemaGenerationError) as e:
        logger.debug(f"Cannot introspect schema {schema!r}: {e}")
        return None


def _resolve_ref(ref: str, defs: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    if not ref.startswith(_REF_PREFIX):
        return None
    return defs.get(ref[len(_REF_PREFIX):])


def _convert(node: Any, defs: Mapping[str, Any], seen: FrozenSet[str] = frozenset()) -> Any:
    """Convert one pydantic JSON schema node to OpenAPI 3.0."""
    if not isinstance(node, dict):
        return node

    if "$ref" in node:
        ref = node["$ref"]
        target = _resolve_ref(ref, defs)
        if target is None or ref in seen:
            # recursive models cannot be inlined
            return {"type": "object"}
        siblings = {key: value for key, value in node.items() if key != "$ref"}
        return _convert({**target, **siblings}, defs, seen | {ref})

    converted: Dict[str, Any] = {}
    for key, value in node.items():
        if key in _DROPPED_KEYWORDS:
            continue
        if key == "anyOf" and isinstance(value, list):
            converted.update(_convert_anyof_to_nullable(value, defs, seen))
        elif key == "const":
            converted["enum"] = [value]
        elif key in ("exclusiveMinimum", "exclusiveMaximum") and isinstance(value, (int, float)) \
                and not isinstance(value, bool):
            # OpenAPI 3.0 uses a boolean flag next to minimum/maximum
            converted["minimum" if key == "exclusiveMinimum" else "maximum"] = value
            converted[key] = True
        elif key == "default" and value is None:
            continue
        elif key in _SCHEMA_KEYWORDS and isinstance(value, dict):
            converted[key] = _convert(value, defs, seen)
        elif key in _SCHEMA_LIST_KEYWORDS and isinstance(value, list):
            converted[key] = [_convert(item, defs, seen) for item in value]
        elif key in _SCHEMA_MAP_KEYWORDS and isinstance(value, dict):
            converted[key] = {name: _convert(sub, defs, seen) for name, sub in value.items()}
        else:
            converted[key] = value
    return converted


def _convert_anyof_to_nullable(anyof_list: List[Any], defs: Mapping[str, Any], seen: FrozenSet[str]) -> Dict[str, Any]:
    """Convert anyOf with null to a nullable schema."""
    non_null = [item for item in anyof_list if not (isinstance(item, dict) and item.get("type") == "null")]
    has_null = len(non_null) != len(anyof_list)

    if has_null and len(non_null) == 1:
        result = _convert(non_null[0], defs, seen)
        result["nullable"] = True
        return result

    result = {"anyOf": [_convert(item, defs, seen) for item in non_null]}
    if has_null:
        result["nullable"] = True
    return result


def _normalize_examples(node: Any, top: bool = True) -> Any:
    """Collapse ``examples`` lists.

    A single example becomes ``example``. Several examples are kept as ``examples`` on the
    top-level fragment only (they get hoisted out of the schema); nested schemas keep
    just the first one, since OpenAPI 3.0 schema objects only know ``example``.
    """
    if not isinstance(node, dict):
        return node

    examples = node.get("examples")
    if isinstance(examples, list):
        if len(examples) > 1 and top:
            node.pop("example", None)
        else:
            node.pop("examples")
            if examples:
                node.setdefault("example", examples[0])

    for key in _SCHEMA_KEYWORDS:
        if isinstance(node.get(key), dict):
            _normalize_examples(node[key], top=False)
    for key in _SCHEMA_LIST_KEYWORDS:
        if isinstance(node.get(key), list):
            for item in node[key]:
                _normalize_examples(item, top=False)
    for key in _SCHEMA_MAP_KEYWORDS:
        if isinstance(node.get(key), dict):
            for sub in node[key].values():
                _normalize_examples(sub, top=False)
    return node


def _openapi_schema(schema: Any) -> Dict[str, Any]:
    raw = _json_schema(schema)
    if raw is None:
        return {}
    return _convert(raw, raw.get("$defs", {}))


def introspect(schema: Any) -> Dict[str, Any]:
    """Convert a schema to an OpenAPI 3.0 schema fragment.

    The fragment keeps ``description``, ``example``/``examples`` and ``deprecated`` in
    place; callers building parameters or media types hoist them out. Schemas that
    cannot be described produce an empty fragment.
    """
    return _normalize_examples(_openapi_schema(schema), top=True)


def is_required(schema: Any) -> bool:
    """Presence flag of a schema: required unless it accepts None."""
    return not introspect(schema).get("nullable", False)


def _deprecated_members(schema: Any) -> FrozenSet[str]:
    """Names of model fields flagged deprecated in their metadata.

    Only model classes are inspected; adapters rely on the JSON schema ``deprecated``.
    """
    if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
        return frozenset()

    names = set()
    for name, field_info in schema.model_fields.items():
        extra = field_info.json_schema_extra
        if getattr(field_info, "deprecated", None) or (isinstance(extra, dict) and extra.get("deprecated")):
            names.add(field_info.alias or name)
    return frozenset(names)


def member_fields(schema: Any) -> List[MemberField]:
    """List the members of an object schema.

    Args:
        schema: An object schema, or a mapping of member name to schema

    Returns:
        One MemberField per member, in declaration order
    """
    if isinstance(schema, Mapping):
        members = []
        for name, sub in schema.items():
            if not is_schema(sub):
                continue
            fragment = introspect(sub)
            deprecated = bool(fragment.pop("deprecated", False))
            members.append(MemberField(name, fragment, not fragment.get("nullable", False), deprecated))
        return members

    fragment = _openapi_schema(schema)
    required = set(fragment.get("required", []))
    flagged = _deprecated_members(schema)

    members = []
    for name, prop in fragment.get("properties", {}).items():
        prop = _normalize_examples(dict(prop), top=True)
        deprecated = bool(prop.pop("deprecated", False)) or name in flagged
        members.append(MemberField(name, prop, name in required, deprecated))
    return members
