"""Tests for the schema translator."""

import pytest
from pydantic import ValidationError

from openapi_mcp.models import Operation, Parameter, RequestBody
from openapi_mcp.schema import (
    ArrayRule,
    EnumRule,
    ObjectRule,
    ParameterField,
    PermissiveRule,
    ScalarKind,
    ScalarRule,
    build_input_model,
    coerce_array_value,
    translate_fragment,
    translate_operation,
    translate_parameter,
    translate_request_body,
)


def _validate(rule, value, required=True):
    model = build_input_model("Probe", {"value": ParameterField(rule, required)})
    return model.model_validate({"value": value}).model_dump(by_alias=True)["value"]


def _json_body(schema, required=False):
    return RequestBody(required=required, content={"application/json": {"schema": schema}})


class TestTranslateFragment:
    """OpenAPI type → rule mapping, including the degradations."""

    def test_string(self):
        assert translate_fragment({"type": "string"}) == ScalarRule(ScalarKind.STRING)

    def test_string_enum(self):
        assert translate_fragment({"type": "string", "enum": ["a", "b"]}) == EnumRule(("a", "b"))

    def test_string_date_time(self):
        rule = translate_fragment({"type": "string", "format": "date-time"})
        assert rule == ScalarRule(ScalarKind.DATETIME)

    def test_date_time_wins_over_enum(self):
        rule = translate_fragment({"type": "string", "format": "date-time", "enum": ["x"]})
        assert rule == ScalarRule(ScalarKind.DATETIME)

    @pytest.mark.parametrize(
        "schema_type, kind",
        [
            ("number", ScalarKind.NUMBER),
            ("integer", ScalarKind.INTEGER),
            ("boolean", ScalarKind.BOOLEAN),
        ],
    )
    def test_scalars(self, schema_type, kind):
        assert translate_fragment({"type": schema_type}) == ScalarRule(kind)

    @pytest.mark.parametrize("item_type", ["string", "number", "integer", "boolean"])
    def test_array_of_scalars(self, item_type):
        rule = translate_fragment({"type": "array", "items": {"type": item_type}})
        assert isinstance(rule, ArrayRule)
        assert rule.element == translate_fragment({"type": item_type})

    def test_array_of_objects(self):
        rule = translate_fragment({"type": "array", "items": {"type": "object"}})
        assert rule == ArrayRule(PermissiveRule())

    def test_array_of_refs(self):
        rule = translate_fragment({"type": "array", "items": {"$ref": "#/components/schemas/Pet"}})
        assert rule == ArrayRule(PermissiveRule())

    def test_array_without_items(self):
        assert translate_fragment({"type": "array"}) == ArrayRule(PermissiveRule())

    def test_object_with_properties(self):
        rule = translate_fragment(
            {
                "type": "object",
                "required": ["id"],
                "properties": {"id": {"type": "integer"}, "meta": {"type": "mystery"}},
            }
        )
        assert isinstance(rule, ObjectRule)
        assert rule.fields["id"] == ParameterField(ScalarRule(ScalarKind.INTEGER), True)
        assert rule.fields["meta"] == ParameterField(PermissiveRule(), False)

    def test_nested_object_degrades(self):
        rule = translate_fragment(
            {
                "type": "object",
                "properties": {
                    "inner": {"type": "object", "properties": {"x": {"type": "string"}}}
                },
            }
        )
        assert rule.fields["inner"].rule == PermissiveRule(structured=True)

    def test_object_without_properties(self):
        assert translate_fragment({"type": "object"}) == PermissiveRule(structured=True)

    def test_ref(self):
        assert translate_fragment({"$ref": "#/components/schemas/Pet"}) == PermissiveRule(
            structured=True
        )

    @pytest.mark.parametrize("fragment", [{}, {"type": "null"}, {"oneOf": []}, None, "string"])
    def test_unrecognized(self, fragment):
        assert translate_fragment(fragment) == PermissiveRule()


class TestTranslateParameter:
    def test_required_flag(self):
        field = translate_parameter(
            Parameter("petId", "path", required=True, schema={"type": "string"}, description="Id")
        )
        assert field == ParameterField(ScalarRule(ScalarKind.STRING), True, "Id")

    def test_optional_by_default(self):
        field = translate_parameter(Parameter("limit", "query", schema={"type": "integer"}))
        assert field.required is False


class TestTranslateRequestBody:
    def test_object_body_is_flattened(self):
        fields = translate_request_body(
            _json_body(
                {
                    "type": "object",
                    "required": ["name"],
                    "properties": {
                        "name": {"type": "string", "description": "Pet name"},
                        "tag": {"type": "string"},
                    },
                }
            )
        )
        assert list(fields) == ["name", "tag"]
        assert fields["name"].required is True
        assert fields["name"].description == "Pet name"
        assert fields["tag"].required is False

    def test_body_properties_do_not_expand_objects(self):
        fields = translate_request_body(
            _json_body(
                {
                    "type": "object",
                    "properties": {"owner": {"type": "object", "properties": {"id": {}}}},
                }
            )
        )
        assert fields["owner"].rule == PermissiveRule(structured=True)

    def test_ref_body(self):
        fields = translate_request_body(_json_body({"$ref": "#/components/schemas/NewPet"}))
        assert fields == {
            "body": ParameterField(PermissiveRule(structured=True), True, "Request body")
        }

    def test_property_less_object_body(self):
        fields = translate_request_body(_json_body({"type": "object"}))
        assert fields["body"].rule == PermissiveRule(structured=True)

    def test_array_body(self):
        fields = translate_request_body(_json_body({"type": "array", "items": {"type": "string"}}))
        assert fields == {"body": ParameterField(ArrayRule(PermissiveRule()), True, "Array of items")}

    def test_non_json_body_is_ignored(self):
        body = RequestBody(
            content={"multipart/form-data": {"schema": {"type": "object", "properties": {"f": {}}}}}
        )
        assert translate_request_body(body) == {}

    def test_no_body(self):
        assert translate_request_body(None) == {}


class TestTranslateOperation:
    def test_body_field_overwrites_parameter(self):
        operation = Operation(
            path="/pets/{name}",
            method="PUT",
            operation_id="renamePet",
            parameters=(Parameter("name", "path", required=True, schema={"type": "string"}),),
            request_body=_json_body({"type": "object", "properties": {"name": {"type": "integer"}}}),
        )
        fields = translate_operation(operation)
        assert list(fields) == ["name"]
        assert fields["name"] == ParameterField(ScalarRule(ScalarKind.INTEGER), False)


class TestCoerceArrayValue:
    def test_json_literal(self):
        assert coerce_array_value('[1, "two", 3]') == [1, "two", 3]

    def test_comma_separated(self):
        assert coerce_array_value("a, b ,c") == ["a", "b", "c"]

    def test_single_value(self):
        assert coerce_array_value("solo") == ["solo"]

    def test_malformed_json_falls_back_to_split(self):
        assert coerce_array_value("[a, b]") == ["[a", "b]"]

    def test_blank_string_is_wrapped(self):
        assert coerce_array_value("   ") == ["   "]

    def test_lists_pass_through(self):
        value = ["x"]
        assert coerce_array_value(value) is value

    def test_numeric_parts_are_parsed(self):
        assert coerce_array_value("1, 2.5", ScalarKind.NUMBER) == [1, 2.5]
        assert coerce_array_value("1,2", ScalarKind.INTEGER) == [1, 2]

    def test_boolean_parts_are_parsed(self):
        assert coerce_array_value("true,false", ScalarKind.BOOLEAN) == [True, False]

    def test_unparseable_parts_stay_strings(self):
        assert coerce_array_value("1,two", ScalarKind.INTEGER) == [1, "two"]

    def test_string_elements_are_not_parsed(self):
        assert coerce_array_value("1,true", ScalarKind.STRING) == ["1", "true"]


class TestInputModel:
    def test_enum_accepts_only_listed_values(self):
        rule = EnumRule(("a", "b"))
        assert _validate(rule, "a") == "a"
        assert _validate(rule, "b") == "b"
        with pytest.raises(ValidationError):
            _validate(rule, "c")

    def test_integer_rejects_strings_and_floats(self):
        rule = ScalarRule(ScalarKind.INTEGER)
        assert _validate(rule, 3) == 3
        with pytest.raises(ValidationError):
            _validate(rule, "3")
        with pytest.raises(ValidationError):
            _validate(rule, 3.5)

    def test_number_keeps_ints(self):
        rule = ScalarRule(ScalarKind.NUMBER)
        assert _validate(rule, 3) == 3
        assert _validate(rule, 2.5) == 2.5
        with pytest.raises(ValidationError):
            _validate(rule, "2.5")

    def test_boolean(self):
        assert _validate(ScalarRule(ScalarKind.BOOLEAN), True) is True
        with pytest.raises(ValidationError):
            _validate(ScalarRule(ScalarKind.BOOLEAN), "yes")

    def test_datetime(self):
        rule = ScalarRule(ScalarKind.DATETIME)
        assert _validate(rule, "2024-05-01T10:30:00Z") == "2024-05-01T10:30:00Z"
        assert _validate(rule, "2024-05-01T10:30:00.123+02:00") == "2024-05-01T10:30:00.123+02:00"
        with pytest.raises(ValidationError):
            _validate(rule, "yesterday")
        with pytest.raises(ValidationError):
            _validate(rule, "2024-13-01T10:30:00Z")

    @pytest.mark.parametrize(
        "value", ["2024-01-01T10:00", "2024-01-01T10:00:00", "2024-01-01T10:00Z"]
    )
    def test_datetime_requires_seconds_and_timezone(self, value):
        with pytest.raises(ValidationError):
            _validate(ScalarRule(ScalarKind.DATETIME), value)

    def test_integer_array_accepts_comma_string(self):
        assert _validate(ArrayRule(ScalarRule(ScalarKind.INTEGER)), "1,2") == [1, 2]

    def test_boolean_array_accepts_comma_string(self):
        assert _validate(ArrayRule(ScalarRule(ScalarKind.BOOLEAN)), "true, false") == [True, False]

    def test_scalar_array_accepts_comma_string(self):
        rule = ArrayRule(ScalarRule(ScalarKind.STRING))
        assert _validate(rule, "red,green") == ["red", "green"]

    def test_scalar_array_accepts_json_string(self):
        rule = ArrayRule(ScalarRule(ScalarKind.INTEGER))
        assert _validate(rule, "[1, 2]") == [1, 2]

    def test_array_of_any(self):
        assert _validate(ArrayRule(PermissiveRule()), [{"a": 1}, 2]) == [{"a": 1}, 2]

    def test_permissive_object(self):
        rule = PermissiveRule(structured=True)
        assert _validate(rule, {"anything": [1]}) == {"anything": [1]}
        with pytest.raises(ValidationError):
            _validate(rule, "not an object")

    def test_object_rule_validates_fields(self):
        rule = ObjectRule({"id": ParameterField(ScalarRule(ScalarKind.INTEGER), True)})
        assert _validate(rule, {"id": 1, "extra": "kept"}) == {"id": 1, "extra": "kept"}
        with pytest.raises(ValidationError):
            _validate(rule, {})

    def test_optional_fields_may_be_omitted(self):
        model = build_input_model(
            "Probe",
            {
                "name": ParameterField(ScalarRule(ScalarKind.STRING), True),
                "tag": ParameterField(ScalarRule(ScalarKind.STRING), False),
            },
        )
        dumped = model.model_validate({"name": "Rex"}).model_dump(by_alias=True, exclude_unset=True)
        assert dumped == {"name": "Rex"}
        with pytest.raises(ValidationError):
            model.model_validate({"tag": "x"})

    def test_non_identifier_names_and_extras(self):
        model = build_input_model(
            "Probe", {"X-Request-Id": ParameterField(ScalarRule(ScalarKind.STRING), False)}
        )
        dumped = model.model_validate({"X-Request-Id": "abc", "body": {"a": 1}}).model_dump(
            by_alias=True, exclude_unset=True
        )
        assert dumped == {"X-Request-Id": "abc", "body": {"a": 1}}

    def test_json_schema_uses_original_names(self):
        model = build_input_model(
            "Probe",
            {
                "petId": ParameterField(ScalarRule(ScalarKind.STRING), True, "The id"),
                "status": ParameterField(EnumRule(("a", "b")), False),
            },
        )
        schema = model.model_json_schema()
        assert schema["required"] == ["petId"]
        assert schema["properties"]["petId"]["description"] == "The id"
        assert set(schema["properties"]) == {"petId", "status"}
