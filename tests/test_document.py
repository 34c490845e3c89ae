"""
Tests for the document builder: path merging, default inheritance and operation building.
"""

import json

import pytest
from pydantic import TypeAdapter

from restspec import ValidationError
from restspec.document import DocumentBuilder, to_openapi_path
from restspec.specs import OperationSpec, PathSpec, Setup, Validators
from tests.models import API_INFO, CheckBody, ItemPath, Person, SearchQuery


def handler(request, response):
    return {"ok": True}


class TestToOpenAPIPath:
    def test_converts_placeholders(self):
        assert to_openapi_path("/users/:id/posts/:postId") == "/users/{id}/posts/{postId}"

    def test_is_idempotent(self):
        once = to_openapi_path("/users/:id")
        assert to_openapi_path(once) == once == "/users/{id}"


class TestDocumentMetadata:
    def test_minimal_document(self):
        builder = DocumentBuilder()
        assert builder.doc == {"openapi": "3.0.0", "paths": {}}

    def test_metadata_from_setup(self):
        builder = DocumentBuilder(Setup(info=API_INFO, servers=[{"url": "https://api.example.com"}]))

        assert builder.doc["info"] == API_INFO
        assert builder.doc["servers"] == [{"url": "https://api.example.com"}]
        assert "tags" not in builder.doc

    def test_camel_case_setup(self):
        builder = DocumentBuilder({"info": API_INFO, "externalDocs": {"url": "https://docs.example.com"}})
        assert builder.doc["externalDocs"] == {"url": "https://docs.example.com"}

    def test_stable_key_order(self):
        builder = DocumentBuilder({
            "tags": [{"name": "pets"}],
            "servers": [{"url": "/"}],
            "components": {"securitySchemes": {}},
            "info": API_INFO,
        })
        data = json.loads(builder.to_json())

        assert list(data) == ["openapi", "info", "paths", "components", "servers", "tags"]

    def test_to_json_indent(self):
        builder = DocumentBuilder({"info": API_INFO})
        assert '\n    "info"' in builder.to_json(indent=4)


class TestDeclarePath:
    def test_path_fields(self):
        builder = DocumentBuilder()
        builder.declare_path("/pets/:id", {"summary": "A pet", "description": "One pet"})

        assert builder.paths["/pets/{id}"] == {"summary": "A pet", "description": "One pet"}

    def test_partial_redeclaration_keeps_earlier_fields(self):
        builder = DocumentBuilder()
        builder.declare_path("/a", {"summary": "S"})
        builder.declare_path("/a", {"description": "D"})

        assert builder.paths["/a"] == {"summary": "S", "description": "D"}

    def test_redeclaration_overrides_given_fields(self):
        builder = DocumentBuilder()
        builder.declare_path("/a", {"summary": "S", "description": "D"})
        builder.declare_path("/a", PathSpec(summary="T"))

        assert builder.paths["/a"] == {"summary": "T", "description": "D"}

    def test_defaults_are_not_written_to_the_document(self):
        builder = DocumentBuilder()
        builder.declare_path("/a", {"responses": [404], "accepts": "text/plain"})

        assert builder.paths["/a"] == {}

    def test_invalid_declaration(self):
        with pytest.raises(ValidationError):
            DocumentBuilder().declare_path("/a", {"unknown_field": 1})


class TestResolveDefaults:
    def setup_method(self):
        self.builder = DocumentBuilder(Setup(responses=[200, 500]))
        self.builder.declare_path("/texts", {"accepts": ["text/plain"], "responses": [201]})

    def test_global_defaults(self):
        defaults = self.builder.resolve_defaults("/other")

        assert defaults.responses == [200, 500]
        assert defaults.accepts == ["application/json"]
        assert defaults.sends == ["application/json"]
        assert defaults.validators == {}

    def test_path_defaults(self):
        defaults = self.builder.resolve_defaults("/texts")

        assert defaults.accepts == ["text/plain"]
        assert defaults.responses == [201]
        assert defaults.sends == ["application/json"]

    def test_operation_overrides(self):
        defaults = self.builder.resolve_defaults("/texts", OperationSpec(accepts="application/xml"))

        assert defaults.accepts == ["application/xml"]
        assert defaults.responses == [201]

    def test_validators_merge_per_location(self):
        self.builder.declare_path("/items/:id", {"validators": {"path": ItemPath, "query": SearchQuery}})
        spec = OperationSpec(validators=Validators(query=TypeAdapter(dict), body=Person))

        validators = self.builder.resolve_defaults("/items/{id}", spec).validators

        assert validators["path"] is ItemPath
        assert validators["body"] is Person
        assert isinstance(validators["query"], TypeAdapter)


class TestDeclareOperation:
    def test_undeclared_operation_is_not_documented(self):
        builder = DocumentBuilder()
        handlers = [handler]

        result = builder.declare_operation("/plain", "get", None, handlers)

        assert result == [handler]
        assert builder.paths == {}

    def test_declared_path_documents_operations_without_spec(self):
        builder = DocumentBuilder()
        builder.declare_path("/things", {"summary": "Things"})

        builder.declare_operation("/things", "get", None, [handler])

        assert builder.paths["/things"]["get"] == {"responses": {"200": {"description": "OK"}}}

    def test_operation_fields(self):
        builder = DocumentBuilder()
        builder.declare_operation("/pets", "POST", {
            "summary": "Create a pet",
            "operationId": "createPet",
            "tags": ["pets"],
            "deprecated": False,
        }, [handler])

        operation = builder.paths["/pets"]["post"]
        assert operation["summary"] == "Create a pet"
        assert operation["operationId"] == "createPet"
        assert operation["tags"] == ["pets"]
        assert operation["deprecated"] is False
        assert "description" not in operation
        assert "parameters" not in operation
        assert "requestBody" not in operation

    def test_validation_prepends_guard(self):
        builder = DocumentBuilder()
        handlers = [handler]

        result = builder.declare_operation("/check", "post", {"validators": {"body": CheckBody}}, handlers)

        assert len(result) == 2
        assert result[1] is handler
        assert handlers == [handler]

    def test_no_guard_without_validators(self):
        builder = DocumentBuilder()
        result = builder.declare_operation("/open", "get", {"summary": "Open"}, [handler])
        assert result == [handler]

    def test_derived_parameters_and_body(self):
        builder = DocumentBuilder()
        builder.declare_operation("/items/:id", "put", {
            "validators": {"path": ItemPath, "body": Person},
        }, [handler])

        operation = builder.paths["/items/{id}"]["put"]
        assert [p["name"] for p in operation["parameters"]] == ["id"]
        assert "application/json" in operation["requestBody"]["content"]
        assert set(operation["responses"]) == {"200", "400"}

    def test_body_is_keyed_by_accepted_types(self):
        builder = DocumentBuilder()
        builder.declare_operation("/forms", "post", {
            "accepts": ["application/json", "application/x-www-form-urlencoded"],
            "validators": {"body": Person},
        }, [handler])

        content = builder.paths["/forms"]["post"]["requestBody"]["content"]
        assert list(content) == ["application/json", "application/x-www-form-urlencoded"]

    def test_response_schema_keyed_by_declared_codes(self):
        builder = DocumentBuilder()
        builder.declare_operation("/people", "get", {
            "responses": [200, 201],
            "sends": ["application/json", "text/csv"],
            "validators": {"response": Person},
        }, [handler])

        responses = builder.paths["/people"]["get"]["responses"]
        assert set(responses) == {"200", "201", "500"}
        assert list(responses["201"]["content"]) == ["application/json", "text/csv"]
        assert "400" not in responses

    def test_path_validators_are_inherited(self):
        builder = DocumentBuilder()
        builder.declare_path("/items/:id", {"validators": {"path": ItemPath}})
        result = builder.declare_operation("/items/:id", "delete", {"summary": "Delete"}, [handler])

        operation = builder.paths["/items/{id}"]["delete"]
        assert operation["parameters"][0]["in"] == "path"
        assert len(result) == 2

    def test_explicit_parameters_win(self):
        builder = DocumentBuilder()
        explicit = [{"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}]
        builder.declare_operation("/items/:id", "get", {
            "parameters": explicit,
            "validators": {"path": ItemPath},
        }, [handler])

        assert builder.paths["/items/{id}"]["get"]["parameters"] == explicit

    def test_explicit_request_body_wins(self):
        builder = DocumentBuilder()
        explicit = {"content": {"text/plain": {"schema": {"type": "string"}}}}
        builder.declare_operation("/notes", "post", {
            "requestBody": explicit,
            "validators": {"body": Person},
        }, [handler])

        assert builder.paths["/notes"]["post"]["requestBody"] == explicit

    def test_operations_share_the_path_item(self):
        builder = DocumentBuilder()
        builder.declare_path("/pets", {"summary": "Pets"})
        builder.declare_operation("/pets", "get", {}, [handler])
        builder.declare_operation("/pets", "post", {}, [handler])

        assert set(builder.paths["/pets"]) == {"summary", "get", "post"}

    def test_invalid_validator(self):
        with pytest.raises(ValidationError):
            DocumentBuilder().declare_operation("/bad", "get", {"validators": {"body": "nope"}}, [handler])
