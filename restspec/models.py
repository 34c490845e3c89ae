"""
Core HTTP data models for restspec.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from http.cookies import CookieError, SimpleCookie
from typing import Any, Dict, Optional, Union
from urllib.parse import parse_qs

from .senders import create_validated_sender

logger = logging.getLogger(__name__)

_JSONP_CALLBACK_PATTERN = re.compile(r"[^\[\]\w$.]")


class HTTPMethod(Enum):
    """Enumeration of the HTTP methods an OpenAPI path item can describe."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"
    TRACE = "TRACE"


def status_text(status_code: int) -> str:
    """Return the standard reason phrase for a status code."""
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return f"Status {status_code}"


def media_type(content_type: Optional[str]) -> Optional[str]:
    """Strip parameters (charset, boundary, ...) from a Content-Type value."""
    if not content_type:
        return None
    return content_type.split(";")[0].strip().lower() or None


@dataclass
class Request:
    """Represents an HTTP request."""

    method: HTTPMethod
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Union[str, bytes]] = None
    query_params: Optional[Dict[str, Any]] = None
    path_params: Optional[Dict[str, str]] = None

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a header value, matching the name case-insensitively."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def get_content_type(self) -> Optional[str]:
        """Get the Content-Type header."""
        return self.get_header("Content-Type")

    @property
    def lower_headers(self) -> Dict[str, str]:
        return {key.lower(): value for key, value in self.headers.items()}

    @property
    def cookies(self) -> Dict[str, str]:
        """Cookies parsed from the Cookie header."""
        raw = self.get_header("Cookie")
        if not raw:
            return {}
        jar: SimpleCookie = SimpleCookie()
        try:
            jar.load(raw)
        except CookieError:
            logger.warning(f"Ignoring malformed Cookie header on {self.method.value} {self.path}")
            return {}
        return {name: morsel.value for name, morsel in jar.items()}

    def get_body_text(self) -> Optional[str]:
        if self.body is None:
            return None
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def parsed_body(self) -> Any:
        """Parse the body according to the request content type.

        JSON bodies are decoded, form bodies become a dict (single values unwrapped),
        anything else is returned as text.

        Raises:
            ValueError: If a JSON body cannot be decoded.
        """
        text = self.get_body_text()
        if text is None or text == "":
            return None

        mime = media_type(self.get_content_type())
        if mime is None or mime == "application/json" or mime.endswith("+json"):
            return json.loads(text)
        if mime == "application/x-www-form-urlencoded":
            parsed = parse_qs(text, keep_blank_values=True)
            return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}
        return text


def _serialize(data: Any) -> Any:
    """Convert pydantic models (possibly nested in lists/dicts) to plain data."""
    if hasattr(data, "model_dump"):
        return data.model_dump(mode="json")
    elif isinstance(data, list):
        return [_serialize(item) for item in data]
    elif isinstance(data, dict):
        return {key: _serialize(value) for key, value in data.items()}
    return data


@dataclass
class Response:
    """An in-flight HTTP response.

    Handlers receive the response, set its status and headers, and finish it with one
    of the ``send`` variants. Once finished, the remaining handlers are skipped.
    """

    status_code: int = 200
    body: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    content_type: Optional[str] = None
    request: Optional[Request] = None
    output_validators: Optional[Dict[int, Any]] = None
    finished: bool = False

    def status(self, status_code: int) -> "Response":
        self.status_code = status_code
        return self

    def set_header(self, name: str, value: str) -> "Response":
        self.headers[name] = value
        return self

    def send(self, body: Any = None) -> "Response":
        """Finish the response with the given body.

        Strings are sent as text, dicts/lists/pydantic models as JSON.
        """
        if isinstance(body, bytes):
            body = body.decode("utf-8")
        if body is not None and not isinstance(body, str):
            return self.json(body)

        if self.content_type is None and body is not None:
            self.content_type = "text/plain; charset=utf-8"
        self.body = body
        self._finish()
        return self

    def json(self, data: Any) -> "Response":
        """Finish the response with a JSON body."""
        self.content_type = "application/json"
        self.body = json.dumps(_serialize(data))
        self._finish()
        return self

    def jsonp(self, data: Any) -> "Response":
        """Finish the response with JSON wrapped in the ``callback`` query parameter.

        Without a callback parameter this behaves like :meth:`json`.
        """
        callback = None
        if self.request is not None and self.request.query_params:
            callback = self.request.query_params.get("callback")
        if isinstance(callback, list):
            callback = callback[0] if callback else None
        if not callback:
            return self.json(data)

        callback = _JSONP_CALLBACK_PATTERN.sub("", callback)
        payload = json.dumps(_serialize(data))
        self.content_type = "text/javascript; charset=utf-8"
        self.headers["X-Content-Type-Options"] = "nosniff"
        self.body = f"/**/ typeof {callback} === 'function' && {callback}({payload});"
        self._finish()
        return self

    def send_status(self, status_code: int) -> "Response":
        """Set the status and send its reason phrase as the body."""
        self.status_code = status_code
        return self.send(status_text(status_code))

    send_validated = create_validated_sender("json")
    send_validated_jsonp = create_validated_sender("jsonp")

    def _finish(self):
        if self.content_type:
            self.headers["Content-Type"] = self.content_type
        # Do not include Content-Length for 204 responses
        if self.status_code != 204:
            content_length = len(self.body.encode("utf-8")) if self.body else 0
            self.headers["Content-Length"] = str(content_length)
        self.finished = True

    def get_json(self) -> Any:
        """Decode a JSON body (test and client convenience)."""
        if self.body is None:
            return None
        return json.loads(self.body)
