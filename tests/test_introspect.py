"""
Tests for converting pydantic schemas to OpenAPI 3.0 fragments.
"""

import json
from typing import Annotated, Callable, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, TypeAdapter

from restspec.introspect import introspect, is_required, is_schema, member_fields, validate_value
from tests.models import Customer, Person, SearchQuery


class Node(BaseModel):
    value: int
    children: List["Node"] = []


class TestIsSchema:
    def test_model_class_and_type_adapter(self):
        assert is_schema(Person)
        assert is_schema(TypeAdapter(int))

    def test_other_values(self):
        assert not is_schema(Person(name="Ada"))
        assert not is_schema({"type": "string"})
        assert not is_schema(None)


class TestIntrospect:
    def test_object_schema(self):
        fragment = introspect(Person)

        assert fragment["type"] == "object"
        assert fragment["required"] == ["name"]
        assert fragment["properties"]["name"]["type"] == "string"
        assert fragment["properties"]["name"]["description"] == "Full name"

        age = fragment["properties"]["age"]
        assert age["type"] == "integer"
        assert age["minimum"] == 0
        assert age["maximum"] == 130
        assert age["default"] == 0

    def test_titles_are_removed(self):
        text = json.dumps(introspect(Customer))
        assert '"title"' not in text

    def test_nested_models_are_inlined(self):
        fragment = introspect(Customer)
        text = json.dumps(fragment)

        assert "$ref" not in text
        assert "$defs" not in text
        assert fragment["properties"]["address"]["properties"]["city"]["type"] == "string"
        assert fragment["properties"]["previous"]["items"]["required"] == ["city"]

    def test_email_format_survives(self):
        fragment = introspect(Customer)
        assert fragment["properties"]["email"]["format"] == "email"
        assert introspect(TypeAdapter(EmailStr))["format"] == "email"

    def test_optional_becomes_nullable(self):
        fragment = introspect(TypeAdapter(Optional[int]))
        assert fragment == {"type": "integer", "nullable": True}

    def test_optional_member_drops_none_default(self):
        limit = introspect(SearchQuery)["properties"]["limit"]
        assert limit["nullable"] is True
        assert "default" not in limit
        assert "anyOf" not in limit

    def test_const_becomes_enum(self):
        fragment = introspect(TypeAdapter(Literal["one"]))
        assert fragment["enum"] == ["one"]
        assert "const" not in fragment

    def test_literal_choices(self):
        fragment = introspect(TypeAdapter(Literal["one", "two"]))
        assert fragment["enum"] == ["one", "two"]

    def test_exclusive_bounds_use_boolean_flags(self):
        fragment = introspect(TypeAdapter(Annotated[int, Field(gt=0, lt=10)]))
        assert fragment["minimum"] == 0
        assert fragment["exclusiveMinimum"] is True
        assert fragment["maximum"] == 10
        assert fragment["exclusiveMaximum"] is True

    def test_single_example(self):
        fragment = introspect(TypeAdapter(Annotated[str, Field(examples=["a"])]))
        assert fragment["example"] == "a"
        assert "examples" not in fragment

    def test_multiple_examples_stay_at_top_level(self):
        fragment = introspect(TypeAdapter(Annotated[str, Field(examples=["a", "b"])]))
        assert fragment["examples"] == ["a", "b"]
        assert "example" not in fragment

    def test_nested_examples_reduced_to_one(self):
        name = introspect(Person)["properties"]["name"]
        assert name["example"] == "Ada"
        assert "examples" not in name

    def test_recursive_model(self):
        fragment = introspect(Node)
        assert fragment["properties"]["value"]["type"] == "integer"
        assert fragment["properties"]["children"]["type"] == "array"
        assert "$ref" not in json.dumps(fragment)

    def test_schema_without_json_schema(self):
        assert introspect(TypeAdapter(Callable[[], int])) == {}


class TestIsRequired:
    def test_plain_schema_is_required(self):
        assert is_required(Person)
        assert is_required(TypeAdapter(int))

    def test_nullable_schema_is_optional(self):
        assert not is_required(TypeAdapter(Optional[Person]))
        assert not is_required(TypeAdapter(Optional[str]))


class TestMemberFields:
    def test_object_members(self):
        members = member_fields(SearchQuery)

        assert [m.name for m in members] == ["q", "limit", "legacy"]
        assert [m.required for m in members] == [True, False, False]
        assert members[0].fragment["minLength"] == 1

    def test_deprecated_field(self):
        members = {m.name: m for m in member_fields(SearchQuery)}
        assert members["legacy"].deprecated
        assert not members["q"].deprecated
        assert "deprecated" not in members["legacy"].fragment

    def test_deprecated_from_json_schema_extra(self):
        class Legacy(BaseModel):
            old: Optional[str] = Field(None, json_schema_extra={"deprecated": True})

        assert member_fields(Legacy)[0].deprecated

    def test_deprecated_field_through_type_adapter(self):
        members = {m.name: m for m in member_fields(TypeAdapter(SearchQuery))}
        assert members["legacy"].deprecated
        assert not members["q"].deprecated

    def test_mapping_of_schemas(self):
        members = member_fields({"page": TypeAdapter(int), "sort": TypeAdapter(Optional[str])})

        assert [m.name for m in members] == ["page", "sort"]
        assert members[0].required
        assert members[0].fragment == {"type": "integer"}
        assert not members[1].required


class TestValidateValue:
    def test_valid_value(self):
        assert validate_value(Person, {"name": "Ada", "age": 36}) is None

    def test_invalid_value_names_the_field(self):
        error = validate_value(Person, {"name": "Ada", "age": 200})
        assert error is not None
        assert error.startswith("age:")

    def test_missing_field(self):
        error = validate_value(Person, {})
        assert "name" in error
        assert "required" in error.lower()

    def test_scalar_schema(self):
        assert validate_value(TypeAdapter(Literal["one", "two"]), "one") is None
        assert validate_value(TypeAdapter(Literal["one", "two"]), "three") is not None
