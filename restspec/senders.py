"""
Response senders that check the payload against the declared response schemas.
"""

import logging
from typing import Any, Callable, Literal

from .introspect import validate_value

logger = logging.getLogger(__name__)

INVALID_RESPONSE_BODY = "500 Server Error: Response did not validate."


def create_validated_sender(sender: Literal["json", "jsonp"]) -> Callable[[Any, Any], Any]:
    """Create a ``Response`` method that validates before delegating to ``json``/``jsonp``.

    The schema is looked up in ``response.output_validators`` by the status code that is
    set when the method is called. Codes without a schema are sent unchecked. A payload
    that fails validation is never sent: the response becomes a 500 instead.
    """

    def send_validated(self, obj: Any):
        validators = self.output_validators
        if validators:
            schema = validators.get(self.status_code)
            if schema is not None:
                error = validate_value(schema, obj)
                if error:
                    request = self.request
                    where = f"{request.method.value} {request.path}" if request is not None else "response"
                    logger.error(f"Response for {where} with status {self.status_code} did not validate: {error}")
                    self.content_type = "text/plain; charset=utf-8"
                    return self.status(500).send(INVALID_RESPONSE_BODY)
        return getattr(self, sender)(obj)

    send_validated.__name__ = f"send_validated_{sender}" if sender != "json" else "send_validated"
    return send_validated
