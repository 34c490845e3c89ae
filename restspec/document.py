"""
The OpenAPI document builder.

A DocumentBuilder accumulates path and operation declarations for one routing tree.
Declarations are applied in call order: declaring a path again only overwrites the
fields the new declaration provides, and operations inherit the defaults of their path
(responses, accepted and sent content types, validators) unless they override them.
"""

import copy
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .derivation import PARAMETER_LOCATIONS, create_parameters, create_request_body, create_responses
from .specs import OperationSpec, PathSpec, ResponseSpec, Setup
from .validation import create_validator, normalize_keyed_schemas

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.0"

# Serialization order of the top-level document fields
DOCUMENT_KEY_ORDER = (
    "openapi",
    "info",
    "paths",
    "components",
    "externalDocs",
    "security",
    "servers",
    "tags",
)

PATH_ITEM_FIELDS = ("summary", "description", "servers", "parameters")

_EXPRESS_PARAM_PATTERN = re.compile(r":(\w+)")


def to_openapi_path(path: str) -> str:
    """Convert ``:name`` placeholders to ``{name}``. Idempotent."""
    return _EXPRESS_PARAM_PATTERN.sub(r"{\1}", path)


def response_code(entry: Any) -> int:
    if isinstance(entry, ResponseSpec):
        return entry.code
    return int(entry)


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    for key in [key for key, value in values.items() if value is None]:
        del values[key]
    return values


@dataclass
class OperationDefaults:
    """Resolved defaults for one operation."""

    responses: List[Any]
    accepts: List[str]
    sends: List[str]
    validators: Dict[str, Any] = field(default_factory=dict)


class DocumentBuilder:
    """Builds the OpenAPI document of one routing tree (an application or a router)."""

    def __init__(self, setup: Optional[Setup] = None):
        setup = Setup.coerce(setup) or Setup()
        self.doc: Dict[str, Any] = _drop_none({
            "openapi": OPENAPI_VERSION,
            "info": setup.info,
            "paths": {},
            "components": setup.components,
            "externalDocs": setup.external_docs,
            "security": setup.security,
            "servers": setup.servers,
            "tags": setup.tags,
        })
        self.defaults = OperationDefaults(
            responses=list(setup.responses),
            accepts=list(setup.accepts),
            sends=list(setup.sends),
        )
        self._path_specs: Dict[str, PathSpec] = {}

    @property
    def document(self) -> Dict[str, Any]:
        return self.doc

    @property
    def paths(self) -> Dict[str, Dict[str, Any]]:
        return self.doc["paths"]

    def has_path_spec(self, path: str) -> bool:
        return to_openapi_path(path) in self._path_specs

    def declare_path(self, path: str, spec: Any) -> None:
        """Declare shared fields and operation defaults for a path.

        Only the fields ``spec`` provides are written; fields set by earlier
        declarations of the same path are kept.
        """
        path = to_openapi_path(path)
        spec = PathSpec.coerce(spec) or PathSpec()

        previous = self._path_specs.get(path)
        self._path_specs[path] = previous.merged(spec) if previous else spec

        path_item = self.paths.setdefault(path, {})
        provided = spec.provided()
        for name in PATH_ITEM_FIELDS:
            if name in provided:
                path_item[name] = provided[name]

        logger.debug(f"Declared path {path} ({', '.join(sorted(provided)) or 'no fields'})")

    def resolve_defaults(self, path: str, spec: Optional[OperationSpec] = None) -> OperationDefaults:
        """Resolve operation defaults: operation value, then path value, then global default.

        Validators are merged per location, operation-level schemas winning.
        """
        path_spec = self._path_specs.get(to_openapi_path(path)) or PathSpec()
        spec = spec or OperationSpec()

        def pick(name: str) -> List[Any]:
            for source in (spec, path_spec):
                value = getattr(source, name)
                if value is not None:
                    return list(value)
            return list(getattr(self.defaults, name))

        validators: Dict[str, Any] = {}
        if path_spec.validators is not None:
            validators.update(path_spec.validators.as_dict())
        if spec.validators is not None:
            validators.update(spec.validators.as_dict())

        return OperationDefaults(
            responses=pick("responses"),
            accepts=pick("accepts"),
            sends=pick("sends"),
            validators=validators,
        )

    def declare_operation(
        self,
        path: str,
        method: str,
        spec: Any,
        handlers: Sequence[Callable],
    ) -> List[Callable]:
        """Describe one operation and return the handlers to register for it.

        Without a spec, and without a declared path to inherit from, nothing is
        documented and the handlers come back unchanged. When validation is declared the
        returned list starts with the validation guard.
        """
        path = to_openapi_path(path)
        method = method.lower()
        handlers = list(handlers)

        spec = OperationSpec.coerce(spec)
        if spec is None:
            if path not in self._path_specs:
                logger.debug(f"{method.upper()} {path} has no declaration, registering undocumented")
                return handlers
            spec = OperationSpec()

        defaults = self.resolve_defaults(path, spec)
        validators = defaults.validators
        path_item = self.paths.setdefault(path, {})

        input_validators = {location: validators.get(location) for location in PARAMETER_LOCATIONS}
        # body schemas are keyed by content type, response schemas by status code
        input_validators["body"] = normalize_keyed_schemas(validators.get("body"), defaults.accepts)
        input_validators = _drop_none(input_validators)
        output_validators = normalize_keyed_schemas(
            validators.get("response"), [response_code(entry) for entry in defaults.responses]
        )
        has_input_validators = bool(input_validators)

        if has_input_validators or output_validators:
            handlers.insert(0, create_validator(defaults.accepts, input_validators, output_validators))

        parameters = None
        request_body = None
        if has_input_validators:
            parameters = create_parameters(input_validators)
            request_body = create_request_body(input_validators.get("body"))

        operation = _drop_none({
            "tags": spec.tags,
            "summary": spec.summary,
            "description": spec.description,
            "externalDocs": spec.external_docs,
            "operationId": spec.operation_id,
            "parameters": spec.parameters if spec.parameters is not None else parameters,
            "requestBody": spec.request_body if spec.request_body is not None else request_body,
            "responses": create_responses(
                defaults.responses, defaults.sends, has_input_validators, output_validators
            ),
            "callbacks": spec.callbacks,
            "deprecated": spec.deprecated,
            "security": spec.security,
            "servers": spec.servers,
        })
        path_item[method] = operation

        logger.debug(
            f"Declared operation {method.upper()} {path}"
            f" (input validation: {sorted(input_validators) or 'none'},"
            f" output validation: {sorted(output_validators) if output_validators else 'none'})"
        )
        return handlers

    def mount(self, prefix: str, child: "DocumentBuilder") -> None:
        """Copy every path of ``child`` under ``prefix``.

        Each path item is copied, so later changes on either side stay separate.
        Existing entries at the same combined path are replaced; later mounts win.
        """
        prefix = to_openapi_path(prefix)
        if prefix.endswith("/"):
            prefix = prefix[:-1]
        for path, path_item in child.paths.items():
            self.paths[prefix + path] = copy.deepcopy(path_item)
        logger.debug(f"Mounted {len(child.paths)} path(s) under {prefix or '/'}")

    def ordered_document(self) -> Dict[str, Any]:
        ordered = {key: self.doc[key] for key in DOCUMENT_KEY_ORDER if key in self.doc}
        ordered.update((key, value) for key, value in self.doc.items() if key not in ordered)
        return ordered

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Serialize the document with a stable top-level key order."""
        return json.dumps(self.ordered_document(), indent=indent)
