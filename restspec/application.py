"""
The application root: a Router that owns the global configuration and the final document.
"""

import logging
import os
from typing import Any, Dict, Optional, Union

from .document import DocumentBuilder
from .exceptions import ConfigurationError
from .models import HTTPMethod, Request, Response
from .router import RouteRegistrar, Router
from .specs import Setup

logger = logging.getLogger(__name__)


class RestApplication(Router):
    """Root of a documented routing tree.

    Example:
        app = RestApplication({"info": {"title": "Pets", "version": "1.0.0"}})

        @app.get("/pets/:id", {"validators": {"path": PetPath}})
        def get_pet(request, response):
            return {"id": request.path_params["id"]}

        app.startup()
        app.execute(Request(HTTPMethod.GET, "/openapi.json"))
    """

    def __init__(
        self,
        setup: Union[Setup, Dict[str, Any], None] = None,
        registrar: Optional[RouteRegistrar] = None,
    ):
        self.setup = Setup.coerce(setup) or Setup()
        super().__init__(registrar=registrar, builder=DocumentBuilder(self.setup))
        self._started = False

    def startup(self) -> "RestApplication":
        """Finish configuration: serve the document at ``doc_route`` and write it to ``write_path``.

        Call once, after every route is declared.

        Raises:
            ConfigurationError: If the document is served or written without ``info``.
        """
        if self._started:
            return self

        setup = self.setup
        if (setup.doc_route or setup.write_path) and not setup.info:
            raise ConfigurationError(
                "Setup.info is required to serve or write the OpenAPI document "
                "(set doc_route and write_path to None to disable both)"
            )

        if setup.doc_route:
            self.registrar.register_route(HTTPMethod.GET, setup.doc_route, [self._serve_document])
            logger.info(f"Serving OpenAPI document at {setup.doc_route}")

        if setup.write_path:
            self.save_openapi_json(setup.write_path)

        self._started = True
        return self

    def _serve_document(self, request: Request, response: Response) -> None:
        response.json(self.builder.ordered_document())

    def generate_openapi_json(self, indent: Optional[int] = 2) -> str:
        """Generate the OpenAPI 3.0 JSON text of everything declared so far."""
        return self.builder.to_json(indent=indent)

    def save_openapi_json(self, file_path: str) -> str:
        """Write the OpenAPI document to ``file_path`` (4-space indented JSON)."""
        directory = os.path.dirname(file_path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)

        with open(file_path, "w", encoding="utf-8") as f:
            f.write(self.generate_openapi_json(indent=4))

        logger.info(f"Wrote OpenAPI document to {file_path}")
        return file_path
