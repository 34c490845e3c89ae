"""
Derivation of OpenAPI parameters, request bodies and responses from validation schemas.
"""

import copy
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .introspect import MemberField, introspect, member_fields
from .models import status_text
from .specs import ResponseSpec

PARAMETER_LOCATIONS = ("path", "query", "header", "cookie")


def _hoist_examples(schema: Dict[str, Any], target: Dict[str, Any]) -> None:
    """Move example(s) from a schema fragment to its parameter or media type object."""
    if "example" in schema:
        target["example"] = schema.pop("example")
    examples = schema.pop("examples", None)
    if examples:
        target["examples"] = {
            f"example{index}": {"value": value} for index, value in enumerate(examples, start=1)
        }


def _member_to_parameter(member: MemberField, location: str) -> Dict[str, Any]:
    schema = dict(member.fragment)
    parameter: Dict[str, Any] = {"name": member.name, "in": location}

    description = schema.pop("description", None)
    if description:
        parameter["description"] = description
    if member.deprecated:
        parameter["deprecated"] = True
    _hoist_examples(schema, parameter)

    # path segments can never be absent
    if location == "path" or member.required:
        parameter["required"] = True

    parameter["schema"] = schema
    return parameter


def create_parameters(validators: Mapping[str, Any]) -> Optional[List[Dict[str, Any]]]:
    """Expand the path/query/header/cookie schemas into OpenAPI parameter objects.

    Args:
        validators: Schemas keyed by location; body and response entries are ignored

    Returns:
        The parameter list, or None when no location yields a parameter
    """
    parameters = []
    for location in PARAMETER_LOCATIONS:
        schema = validators.get(location)
        if schema is None:
            continue
        for member in member_fields(schema):
            parameters.append(_member_to_parameter(member, location))
    return parameters or None


def create_request_body(body: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Build a request body object from body schemas keyed by content type."""
    if not body:
        return None

    description = None
    required = False
    content = {}

    for mime, schema in body.items():
        fragment = introspect(schema)
        if not fragment.get("nullable", False):
            required = True

        top_description = fragment.pop("description", None)
        if top_description:
            description = top_description

        media_type: Dict[str, Any] = {}
        _hoist_examples(fragment, media_type)
        content[mime] = {"schema": fragment, **media_type}

    request_body: Dict[str, Any] = {}
    if description:
        request_body["description"] = description
    if required:
        request_body["required"] = True
    request_body["content"] = content
    return request_body


def create_response_content(schema: Any, sends: Iterable[str]) -> Dict[str, Any]:
    """Build a response ``content`` map holding the same schema for every sent type."""
    fragment = introspect(schema)
    media_type: Dict[str, Any] = {}
    _hoist_examples(fragment, media_type)
    media_type = {"schema": fragment, **media_type}
    return {mime: copy.deepcopy(media_type) for mime in sends}


def create_responses(
    responses: Sequence[Any],
    sends: Sequence[str],
    has_input_validators: bool,
    output_validators: Optional[Mapping[int, Any]] = None,
) -> Dict[str, Any]:
    """Build the responses map of an operation.

    Declared responses are kept as given. Only missing entries are synthesized: 200 is
    always described, 400 when the request is validated, 500 plus every validated code
    when the response is validated.
    """
    final: Dict[str, Any] = {}

    for res in responses:
        if isinstance(res, ResponseSpec):
            entry: Dict[str, Any] = {"description": res.description or status_text(res.code)}
            if res.headers:
                entry["headers"] = res.headers
            final[str(res.code)] = entry
        else:
            final[str(res)] = {"description": status_text(int(res))}

    final.setdefault("200", {"description": status_text(200)})

    if has_input_validators:
        # invalid input is a reachable outcome
        final.setdefault("400", {"description": status_text(400)})

    if output_validators:
        final.setdefault("500", {"description": status_text(500)})
        for code, schema in output_validators.items():
            entry = final.setdefault(str(code), {"description": status_text(int(code))})
            entry["content"] = create_response_content(schema, sends)

    return final
