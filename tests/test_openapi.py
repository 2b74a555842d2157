"""Tests for operation extraction."""

import pytest

from openapi_mcp.errors import ValidationError
from openapi_mcp.openapi import document_base_url, extract_operations, synthesize_operation_id


def _by_id(operations):
    return {operation.operation_id: operation for operation in operations}


class TestSynthesizeOperationId:
    def test_replaces_non_word_characters(self):
        assert synthesize_operation_id("delete", "/pets/{petId}") == "DELETE__pets__petId_"

    def test_keeps_word_characters(self):
        assert synthesize_operation_id("get", "/v1/user_info") == "GET__v1_user_info"

    def test_dashes_and_dots(self):
        assert synthesize_operation_id("Patch", "/a-b/c.d") == "PATCH__a_b_c_d"

    def test_is_deterministic(self):
        first = synthesize_operation_id("get", "/pets/{petId}/photo")
        assert first == synthesize_operation_id("get", "/pets/{petId}/photo")


class TestExtractOperations:
    def test_one_operation_per_path_and_verb(self, petstore):
        operations = extract_operations(petstore)
        assert len(operations) == 7
        pairs = [(operation.method, operation.path) for operation in operations]
        assert ("GET", "/pets") in pairs
        assert ("DELETE", "/pets/{petId}") in pairs

    def test_path_level_entries_are_not_operations(self, petstore):
        operations = extract_operations(petstore)
        assert all(operation.method != "PARAMETERS" for operation in operations)

    def test_explicit_operation_id(self, petstore):
        operations = _by_id(extract_operations(petstore))
        assert operations["listPets"].summary == "List all pets"

    def test_synthesized_operation_id(self, petstore):
        operations = _by_id(extract_operations(petstore))
        assert "DELETE__pets__petId_" in operations

    def test_all_seven_verbs_are_recognized(self, minimal_document):
        verbs = ["get", "post", "put", "delete", "patch", "options", "head"]
        minimal_document["paths"] = {"/x": {verb: {} for verb in verbs}}
        minimal_document["paths"]["/x"]["trace"] = {}
        methods = [operation.method for operation in extract_operations(minimal_document)]
        assert methods == [verb.upper() for verb in verbs]

    def test_parameters_keep_declared_order(self, petstore):
        operation = _by_id(extract_operations(petstore))["listPets"]
        assert [param.name for param in operation.parameters] == [
            "X-Request-Id",
            "limit",
            "status",
            "tags",
        ]
        limit = operation.parameters[1]
        assert limit.location == "query"
        assert limit.required is False
        assert limit.schema["type"] == "integer"

    def test_operation_parameter_overrides_shared_one(self, minimal_document):
        minimal_document["paths"] = {
            "/items": {
                "parameters": [{"name": "q", "in": "query", "schema": {"type": "string"}}],
                "get": {
                    "parameters": [
                        {"name": "q", "in": "query", "required": True, "schema": {"type": "integer"}}
                    ]
                },
            }
        }
        (operation,) = extract_operations(minimal_document)
        assert len(operation.parameters) == 1
        assert operation.parameters[0].required is True

    def test_unnamed_parameters_are_skipped(self, minimal_document):
        minimal_document["paths"] = {
            "/items": {"get": {"parameters": [{"$ref": "#/components/parameters/Limit"}]}}
        }
        (operation,) = extract_operations(minimal_document)
        assert operation.parameters == ()

    def test_request_body(self, petstore):
        operation = _by_id(extract_operations(petstore))["createPet"]
        assert operation.request_body.required is True
        assert operation.request_body_schema["required"] == ["name"]

    def test_operation_servers_override(self, minimal_document):
        minimal_document["paths"] = {
            "/items": {"get": {"servers": [{"url": "https://other.test"}]}, "post": {}}
        }
        get, post = extract_operations(minimal_document)
        assert get.base_url == "https://other.test"
        assert post.base_url is None

    def test_missing_path_table(self):
        with pytest.raises(ValidationError):
            extract_operations({"openapi": "3.0.0", "info": {}})

    def test_extraction_is_repeatable(self, petstore):
        assert extract_operations(petstore) == extract_operations(petstore)


class TestDocumentBaseUrl:
    def test_first_server(self, petstore):
        assert document_base_url(petstore) == "http://petstore.test/v1"

    def test_no_servers(self, minimal_document):
        assert document_base_url(minimal_document) is None
