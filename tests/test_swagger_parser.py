from pathlib import Path

import pytest

from api_contract_gen.errors import SpecLoadError
from api_contract_gen.parser.swagger import dereference, detect_format, load_openapi, parse_document

FIXTURES = Path(__file__).parent / "fixtures"


def _op(spec, method, path):
    return next(op for op in spec.operations if op.method == method and op.path == path)


class TestDetectFormat:
    def test_detect_openapi(self):
        assert detect_format({"openapi": "3.0.3"}) == "openapi"

    def test_detect_swagger(self):
        assert detect_format({"swagger": "2.0"}) == "swagger"

    def test_detect_unknown(self):
        assert detect_format({"info": {}}) == "unknown"
        assert detect_format(["not", "a", "dict"]) == "unknown"


class TestOpenApiLoader:
    def test_operation_count(self):
        spec = load_openapi(FIXTURES / "petstore.yaml")
        assert len(spec.operations) == 6

    def test_document_info(self):
        spec = load_openapi(FIXTURES / "petstore.yaml")
        assert spec.title == "Pet Store API"
        assert spec.version == "1.2.0"
        assert spec.servers == ["https://api.petstore.test/v1"]
        assert set(spec.schemas) == {"NewPet", "Pet", "User", "Order"}

    def test_methods_upper_cased(self):
        spec = load_openapi(FIXTURES / "petstore.yaml")
        assert {op.method for op in spec.operations} == {"GET", "POST", "DELETE"}

    def test_path_level_parameters_shared(self):
        spec = load_openapi(FIXTURES / "petstore.yaml")
        for method in ("GET", "DELETE"):
            params = _op(spec, method, "/pets/{petId}").parameters
            assert [p.name for p in params] == ["petId"]
            assert params[0].location == "path"
            assert params[0].required is True

    def test_query_parameters(self):
        spec = load_openapi(FIXTURES / "petstore.yaml")
        params = _op(spec, "GET", "/pets").parameters_in("query")
        assert [p.name for p in params] == ["limit", "status"]
        assert params[0].param_schema["maximum"] == 100
        assert params[0].required is False

    def test_request_body_dereferenced(self):
        spec = load_openapi(FIXTURES / "petstore.yaml")
        schema = _op(spec, "POST", "/pets").request_schema()
        assert "$ref" not in schema
        assert schema["required"] == ["name"]
        assert set(schema["properties"]) == {"name", "tag", "status"}

    def test_all_of_kept_for_analysis(self):
        spec = load_openapi(FIXTURES / "petstore.yaml")
        schema = _op(spec, "GET", "/pets/{petId}").response_schema(200)
        assert "allOf" in schema
        assert schema["allOf"][0]["properties"]["name"]["maxLength"] == 50

    def test_security_override(self):
        spec = load_openapi(FIXTURES / "petstore.yaml")
        assert _op(spec, "GET", "/pets").security == []
        assert _op(spec, "POST", "/pets").security == [{"oauth": ["pets:write"]}]
        assert _op(spec, "GET", "/pets/{petId}").security is None
        assert spec.security == [{"bearerAuth": []}]

    def test_success_status(self):
        spec = load_openapi(FIXTURES / "petstore.yaml")
        assert _op(spec, "POST", "/pets").success_status() == 201
        assert _op(spec, "DELETE", "/pets/{petId}").success_status() == 204
        assert _op(spec, "GET", "/pets").success_status() == 200

    def test_declared_statuses_in_order(self):
        spec = load_openapi(FIXTURES / "petstore.yaml")
        assert _op(spec, "POST", "/pets").declared_statuses() == [201, 400, 409]

    def test_tags_default(self):
        spec = parse_document({
            "openapi": "3.0.0",
            "info": {"title": "Mini"},
            "paths": {"/ping": {"get": {"responses": {"200": {"description": "ok"}}}}},
        })
        assert spec.operations[0].tags == ["default"]


class TestSwaggerLoader:
    def test_servers_from_host(self):
        spec = load_openapi(FIXTURES / "inventory_swagger.yaml")
        assert spec.servers == ["https://inventory.test/api"]

    def test_body_parameter_becomes_request_body(self):
        spec = load_openapi(FIXTURES / "inventory_swagger.yaml")
        op = _op(spec, "POST", "/items")
        assert op.parameters == []
        assert op.request_body["required"] is True
        assert op.request_schema()["properties"]["sku"]["pattern"] == "^[A-Z]{3}-[0-9]{4}$"

    def test_form_data_becomes_multipart(self):
        spec = load_openapi(FIXTURES / "inventory_swagger.yaml")
        op = _op(spec, "POST", "/items/{itemId}/photo")
        assert [p.name for p in op.parameters] == ["itemId"]
        content = op.request_body["content"]
        assert "multipart/form-data" in content
        assert content["multipart/form-data"]["schema"]["required"] == ["photo"]

    def test_inline_parameter_schema(self):
        spec = load_openapi(FIXTURES / "inventory_swagger.yaml")
        page = _op(spec, "GET", "/items").parameters[0]
        assert page.param_schema == {"type": "integer", "minimum": 1}

    def test_response_schema_wrapped_in_content(self):
        spec = load_openapi(FIXTURES / "inventory_swagger.yaml")
        schema = _op(spec, "GET", "/items").response_schema(200)
        assert schema["type"] == "array"

    def test_basic_scheme_normalized(self):
        spec = load_openapi(FIXTURES / "inventory_swagger.yaml")
        assert spec.security_schemes["basic"] == {"type": "http", "scheme": "basic"}
        assert spec.security_schemes["apiKey"]["in"] == "header"


class TestLoaderErrors:
    def test_not_an_api_document(self, tmp_path):
        f = tmp_path / "doc.yaml"
        f.write_text("name: just some yaml\n")
        with pytest.raises(SpecLoadError):
            load_openapi(f)

    def test_missing_paths(self, tmp_path):
        f = tmp_path / "doc.yaml"
        f.write_text("openapi: 3.0.0\ninfo:\n  title: Empty\npaths: {}\n")
        with pytest.raises(SpecLoadError, match="no paths"):
            load_openapi(f)

    def test_invalid_yaml(self, tmp_path):
        f = tmp_path / "doc.yaml"
        f.write_text("openapi: [unclosed\n")
        with pytest.raises(SpecLoadError):
            load_openapi(f)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SpecLoadError):
            load_openapi(tmp_path / "absent.yaml")


class TestDereference:
    def test_circular_reference_left_in_place(self):
        doc = {
            "components": {
                "schemas": {
                    "Node": {
                        "type": "object",
                        "properties": {"child": {"$ref": "#/components/schemas/Node"}},
                    }
                }
            }
        }
        resolved = dereference(doc)
        child = resolved["components"]["schemas"]["Node"]["properties"]["child"]
        assert child["type"] == "object"
        assert child["properties"]["child"] == {"$ref": "#/components/schemas/Node"}

    def test_unknown_reference_left_in_place(self):
        doc = {"a": {"$ref": "#/missing/thing"}}
        assert dereference(doc) == doc

    def test_sibling_keys_merged(self):
        doc = {
            "defs": {"Name": {"type": "string"}},
            "field": {"$ref": "#/defs/Name", "description": "A name"},
        }
        assert dereference(doc)["field"] == {"type": "string", "description": "A name"}
