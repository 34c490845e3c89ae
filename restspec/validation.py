"""
Request validation guard built from the same schemas that describe an operation.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .introspect import is_required, is_schema, member_fields, validate_value
from .models import Request, Response, media_type

logger = logging.getLogger(__name__)

# Checked in this order; the first failing location short-circuits.
INPUT_LOCATIONS = ("path", "query", "header", "cookie", "body")

Guard = Callable[[Request, Response], None]


def normalize_keyed_schemas(schema: Any, keys: Iterable[Any]) -> Optional[Dict[Any, Any]]:
    """Expand a single schema into a mapping with one entry per key.

    Body schemas are keyed by content type and response schemas by status code. A value
    that is already a mapping is returned as a copy.
    """
    if schema is None:
        return None
    if is_schema(schema):
        return {key: schema for key in keys}
    return dict(schema)


def _member_names(schema: Any) -> List[str]:
    if is_schema(schema):
        return [member.name for member in member_fields(schema)]
    return list(schema)


def _header_values(request: Request, names: List[str]) -> Dict[str, str]:
    """Request headers keyed by the schema's own member names, matched case-insensitively."""
    if not names:
        return request.lower_headers
    values = {}
    for name in names:
        value = request.get_header(name)
        if value is not None:
            values[name] = value
    return values


def _location_values(request: Request, location: str, names: Optional[List[str]] = None) -> Dict[str, Any]:
    if location == "path":
        return request.path_params or {}
    if location == "query":
        return request.query_params or {}
    if location == "header":
        return _header_values(request, names or [])
    if location == "cookie":
        return request.cookies
    raise ValueError(f"Unknown parameter location: {location}")


def _validate_members(schemas: Mapping[str, Any], values: Mapping[str, Any],
                      required: Mapping[str, bool]) -> Optional[str]:
    """Validate a mapping of member name to schema against a dict of values."""
    for name, schema in schemas.items():
        if name not in values:
            if required[name]:
                return f"{name}: Field required"
            continue
        error = validate_value(schema, values[name])
        if error:
            return f"{name}: {error}"
    return None


def _validate_body(request: Request, schemas: Mapping[str, Any], accepts: Iterable[str]) -> Optional[str]:
    mime = media_type(request.get_content_type()) or next(iter(accepts), None)
    schema = schemas.get(mime) if mime else None
    if schema is None:
        logger.debug(f"No body schema for content type {mime!r} on {request.method.value} {request.path}")
        return None
    try:
        body = request.parsed_body()
    except ValueError as e:
        return f"malformed body: {e}"
    return validate_value(schema, body)


def create_validator(
    accepts: Iterable[str],
    input_validators: Optional[Mapping[str, Any]] = None,
    output_validators: Optional[Mapping[int, Any]] = None,
) -> Guard:
    """Create the guard that runs ahead of an operation's handlers.

    Args:
        accepts: Accepted request content types; the first one is assumed when a
                 request carries no Content-Type
        input_validators: Schemas keyed by location (path, query, header, cookie, body);
                          the body entry must already be keyed by content type
        output_validators: Response schemas keyed by status code, attached to the
                           response for the validated senders

    Returns:
        A handler taking (request, response). It finishes the response with a 400 on
        the first input that fails to validate, and otherwise lets the chain continue.
    """
    accepts = list(accepts)
    input_validators = {key: value for key, value in (input_validators or {}).items() if value is not None}
    output_validators = dict(output_validators) if output_validators else None

    # Worked out once here so requests never regenerate JSON schemas.
    header_names = _member_names(input_validators["header"]) if "header" in input_validators else []
    required = {
        location: {name: is_required(member) for name, member in schema.items()}
        for location, schema in input_validators.items()
        if location != "body" and not is_schema(schema)
    }

    def validate_request(request: Request, response: Response) -> None:
        for location in INPUT_LOCATIONS:
            schema = input_validators.get(location)
            if schema is None:
                continue

            if location == "body":
                error = _validate_body(request, schema, accepts)
            elif is_schema(schema):
                error = validate_value(schema, _location_values(request, location, header_names))
            else:
                error = _validate_members(schema, _location_values(request, location, header_names),
                                          required[location])

            if error:
                message = f"{location} failed to validate: {error}"
                logger.warning(f"Rejected {request.method.value} {request.path}: {message}")
                response.status(400).json({"error": message})
                return

        if output_validators:
            response.output_validators = output_validators

    return validate_request
