import base64
from pathlib import Path

from api_contract_gen.generator.models import RequestModification
from api_contract_gen.parser.swagger import load_openapi
from api_contract_gen.synth.base import RequestParts
from api_contract_gen.synth.error import ErrorSynthesizer, apply_modification

FIXTURES = Path(__file__).parent / "fixtures"


def _error(ctx) -> ErrorSynthesizer:
    return ErrorSynthesizer(ctx.analyzer, ctx.mock, ctx.security)


def _by_name(cases) -> dict:
    return {c.name: c for c in cases}


class TestScenarioSelection:
    def test_secured_item_operation(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets/{petId}")
        names = [c.name for c in _error(ctx).synthesize(ctx.operation, ctx.analysis)]
        assert names == [
            "get_pets_petId_error_missing_authentication",
            "get_pets_petId_error_invalid_token",
            "get_pets_petId_error_expired_token",
            "get_pets_petId_error_insufficient_permissions",
            "get_pets_petId_error_resource_not_found",
            "get_pets_petId_error_internal_server_error",
        ]

    def test_create_with_body(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        names = [c.name.removeprefix("post_pets_error_") for c in _error(ctx).synthesize(ctx.operation, ctx.analysis)]
        assert names == [
            "missing_authentication",
            "invalid_token",
            "expired_token",
            "insufficient_permissions",
            "invalid_request_body",
            "missing_required_fields",
            "invalid_field_types",
            "conflict",
            "internal_server_error",
        ]

    def test_public_collection(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets")
        names = [c.name for c in _error(ctx).synthesize(ctx.operation, ctx.analysis)]
        assert names == ["get_pets_error_internal_server_error"]

    def test_undeclared_statuses_are_candidates_only(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets")
        candidates = [s["name"] for s in _error(ctx).scenarios(ctx.operation, ctx.analysis)]
        assert "method_not_allowed" in candidates
        assert "rate_limit_exceeded" in candidates
        assert "service_unavailable" in candidates

    def test_path_words_imply_auth(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/users")
        cases = _by_name(_error(ctx).synthesize(ctx.operation, ctx.analysis))
        assert "post_users_error_missing_authentication" in cases
        assert cases["post_users_error_conflict"].response.status == 409


class TestErrorCases:
    def test_missing_authentication_strips_credentials(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        case = _by_name(_error(ctx).synthesize(ctx.operation, ctx.analysis))["post_pets_error_missing_authentication"]
        assert "Authorization" not in case.request.headers
        assert "Authorization" in case.modification.remove_headers
        assert case.response.body == {"error": {"code": "UNAUTHORIZED", "message": "Authentication required"}}
        assert case.provider_state == "user is not authenticated"

    def test_invalid_token(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        case = _by_name(_error(ctx).synthesize(ctx.operation, ctx.analysis))["post_pets_error_invalid_token"]
        assert case.request.headers["Authorization"] == "Bearer invalid.jwt.token"
        assert case.expected_error.code == "INVALID_TOKEN"

    def test_expired_and_insufficient_replace_bearer(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        cases = _by_name(_error(ctx).synthesize(ctx.operation, ctx.analysis))
        valid = ctx.analysis.base_request.headers["Authorization"]
        expired = cases["post_pets_error_expired_token"].request.headers["Authorization"]
        insufficient = cases["post_pets_error_insufficient_permissions"].request.headers["Authorization"]
        assert expired.startswith("Bearer ") and expired != valid
        assert insufficient.startswith("Bearer ") and insufficient not in (valid, expired)

    def test_api_key_replaced_not_added(self, analyze):
        spec = load_openapi(FIXTURES / "inventory_swagger.yaml")
        ctx = analyze(spec, "GET", "/items")
        cases = _by_name(_error(ctx).synthesize(ctx.operation, ctx.analysis))
        assert ctx.analysis.base_request.headers["X-API-Key"].startswith("test-api-key-")

        invalid = cases["get_items_error_invalid_token"]
        assert invalid.request.headers["X-API-Key"] == "invalid-api-key"
        assert "Authorization" not in invalid.request.headers
        assert invalid.modification.add_headers == {"X-API-Key": "invalid-api-key"}
        assert "X-API-Key" in invalid.modification.remove_headers

        expired = cases["get_items_error_expired_token"]
        assert expired.request.headers["X-API-Key"].startswith("expired-api-key-")
        assert "Authorization" not in expired.request.headers
        assert "X-API-Key" not in cases["get_items_error_missing_authentication"].request.headers

    def test_basic_credentials_replaced(self, analyze):
        spec = load_openapi(FIXTURES / "inventory_swagger.yaml")
        ctx = analyze(spec, "POST", "/items")
        case = _by_name(_error(ctx).synthesize(ctx.operation, ctx.analysis))["post_items_error_invalid_token"]
        assert case.request.headers["Authorization"] == "Basic " + base64.b64encode(b"testuser:wrongpass").decode()

    def test_invalid_body_replaced(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        case = _by_name(_error(ctx).synthesize(ctx.operation, ctx.analysis))["post_pets_error_invalid_request_body"]
        assert case.request.body == "invalid_json_string"
        assert case.response.status == 400

    def test_missing_required_fields(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        case = _by_name(_error(ctx).synthesize(ctx.operation, ctx.analysis))["post_pets_error_missing_required_fields"]
        assert "name" not in case.request.body
        assert case.expected_error.details == {"missing_fields": ["name"]}
        assert case.response.body["error"]["details"] == {"missing_fields": ["name"]}

    def test_invalid_field_types(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        case = _by_name(_error(ctx).synthesize(ctx.operation, ctx.analysis))["post_pets_error_invalid_field_types"]
        assert case.request.body["name"] == 12345

    def test_resource_not_found_uses_missing_id(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets/{petId}")
        case = _by_name(_error(ctx).synthesize(ctx.operation, ctx.analysis))["get_pets_petId_error_resource_not_found"]
        assert case.request.path == "/pets/999999999"
        assert case.response.status == 404
        assert case.expected_error.code == "NOT_FOUND"


class TestApplyModification:
    def test_headers_and_fields(self):
        base = RequestParts(headers={"Authorization": "Bearer x", "Accept": "application/json"},
                            body={"name": "Rex", "age": 3, "tags": ["a"]})
        modification = RequestModification(
            remove_headers=["Authorization"],
            add_headers={"X-Trace": "1"},
            remove_body_fields=["tags"],
            invalidate_body_fields=["name", "age"],
        )
        parts = apply_modification(base, modification)
        assert parts.headers == {"Accept": "application/json", "X-Trace": "1"}
        assert parts.body == {"name": 12345, "age": "not-a-number"}
        assert base.body["name"] == "Rex"

    def test_merge_body(self):
        base = RequestParts(body={"name": "Rex"})
        parts = apply_modification(base, RequestModification(modify_body={"tag": "good"}))
        assert parts.body == {"name": "Rex", "tag": "good"}

    def test_query_credentials(self):
        base = RequestParts(query={"api_key": "test-api-key-1", "limit": "10"})
        modification = RequestModification(remove_query=["api_key"], add_query={"api_key": "invalid-api-key"})
        parts = apply_modification(base, modification)
        assert parts.query == {"limit": "10", "api_key": "invalid-api-key"}
        assert base.query["api_key"] == "test-api-key-1"
