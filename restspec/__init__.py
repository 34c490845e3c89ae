"""
Build an OpenAPI 3.0 document while declaring routes, and validate requests and
responses with the same pydantic schemas that describe them.

Routes declared on a RestApplication (or a standalone Router) carry an optional spec:
metadata, response codes, content types and validators. The spec is turned into the
operation's OpenAPI description, and its validators into a guard that runs ahead of the
handlers.
"""

from http import HTTPStatus

from .application import RestApplication
from .document import DocumentBuilder, OperationDefaults, to_openapi_path
from .exceptions import ConfigurationError, RestSpecError, ValidationError
from .introspect import introspect
from .models import HTTPMethod, Request, Response
from .router import Mountable, RouteRegistrar, RouteTable, Router
from .specs import OperationSpec, PathSpec, ResponseSpec, Setup, Validators
from .validation import create_validator

__version__ = "0.1.0"
__author__ = "restspec Contributors"
__license__ = "MIT"

__all__ = [
    "RestApplication",
    "Router",
    "RouteTable",
    "RouteRegistrar",
    "Mountable",
    "DocumentBuilder",
    "OperationDefaults",
    "Setup",
    "PathSpec",
    "OperationSpec",
    "ResponseSpec",
    "Validators",
    "Request",
    "Response",
    "HTTPMethod",
    "HTTPStatus",
    "RestSpecError",
    "ConfigurationError",
    "ValidationError",
    "create_validator",
    "introspect",
    "to_openapi_path",
]
