from api_contract_gen.analysis.schema import SchemaAnalyzer, SchemaContext
from api_contract_gen.generator.mock_data import MockDataGenerator
from api_contract_gen.synth.base import apply_field, case_name, concrete_path, default_provider_state, sanitize_path
from api_contract_gen.synth.boundary import BoundarySynthesizer
from api_contract_gen.synth.success import SuccessSynthesizer
from api_contract_gen.parser.base import ParsedOperation


def _boundary() -> BoundarySynthesizer:
    analyzer = SchemaAnalyzer()
    return BoundarySynthesizer(analyzer, MockDataGenerator(analyzer, seed=1))


def _resolved(schema: dict, name: str = "field", required: bool = True):
    ctx = SchemaContext(field_path=["requestBody"], is_required=required)
    return SchemaAnalyzer().analyze_schema(schema, name, ctx)


class TestNaming:
    def test_sanitize_path(self):
        assert sanitize_path("/users/{id}/posts") == "users_id_posts"
        assert sanitize_path("/") == "root"

    def test_case_name(self):
        op = ParsedOperation(path="/pets/{petId}", method="GET")
        assert case_name(op, "boundary", "parameter.petId_below_minimum") == "get_pets_petId_boundary_parameter_petId_below_minimum"

    def test_default_provider_state(self):
        assert default_provider_state(ParsedOperation(path="/pets/{petId}", method="GET")) == "pet exists"
        assert default_provider_state(ParsedOperation(path="/pets", method="POST")) == "pets can be created"
        assert default_provider_state(ParsedOperation(path="/pets", method="GET")) == "pets exist"

    def test_concrete_path(self):
        assert concrete_path("/a/{x}/b/{y}", {"x": 1, "y": True}) == "/a/1/b/true"
        assert concrete_path("/a/{x}", {}) == "/a/{x}"


class TestApplyField:
    def test_nested_body_field(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        parts = apply_field(ctx.analysis.base_request, ctx.operation, "requestBody.name", "x")
        assert parts.body["name"] == "x"

    def test_omit_body_field(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        parts = apply_field(ctx.analysis.base_request, ctx.operation, "requestBody.name", None, omit=True)
        assert "name" not in parts.body
        assert "name" in ctx.analysis.base_request.body

    def test_query_parameter(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets")
        parts = apply_field(ctx.analysis.base_request, ctx.operation, "query.limit", 0)
        assert parts.query == {"limit": 0}

    def test_path_parameter(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets/{petId}")
        parts = apply_field(ctx.analysis.base_request, ctx.operation, "parameter.petId", 0)
        assert parts.to_spec(ctx.operation).path == "/pets/0"


class TestSuccessSynthesizer:
    def test_three_variants(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        cases = SuccessSynthesizer(ctx.analyzer, ctx.mock, ctx.security).synthesize(ctx.operation, ctx.analysis)
        assert [c.name for c in cases] == ["post_pets_success", "post_pets_success_minimal", "post_pets_success_maximal"]
        assert all(c.type == "success" for c in cases)
        assert all(c.response.status == 201 for c in cases)

    def test_minimal_has_required_only(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        cases = SuccessSynthesizer(ctx.analyzer, ctx.mock, ctx.security).synthesize(ctx.operation, ctx.analysis)
        minimal = cases[1]
        assert set(minimal.request.body) == {"name"}
        assert minimal.request.headers["Content-Type"] == "application/json"
        assert minimal.request.headers["Authorization"].startswith("Bearer ")

    def test_maximal_has_every_field(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        cases = SuccessSynthesizer(ctx.analyzer, ctx.mock, ctx.security).synthesize(ctx.operation, ctx.analysis)
        assert set(cases[2].request.body) == {"name", "tag", "status"}

    def test_description_names_the_operation(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets")
        cases = SuccessSynthesizer(ctx.analyzer, ctx.mock, ctx.security).synthesize(ctx.operation, ctx.analysis)
        assert cases[0].description == "List all pets succeeds with a typical valid request on GET /pets"
        assert cases[0].provider_state == "pets exist"
        assert "happy-path" in cases[0].tags

    def test_no_content_response(self, petstore, analyze):
        ctx = analyze(petstore, "DELETE", "/pets/{petId}")
        cases = SuccessSynthesizer(ctx.analyzer, ctx.mock, ctx.security).synthesize(ctx.operation, ctx.analysis)
        assert cases[0].response.status == 204
        assert cases[0].response.body is None


class TestBoundaryVariants:
    def test_integer_bounds(self):
        variants = _boundary().numeric_variants(_resolved({"type": "integer", "minimum": 1, "maximum": 10}, "qty"), "requestBody.qty")
        by_name = {p.name: p for p in variants}
        assert by_name["requestBody.qty_minimum_valid"].value == 1
        assert by_name["requestBody.qty_below_minimum"].value == 0
        assert by_name["requestBody.qty_below_minimum"].expected == "invalid"
        assert by_name["requestBody.qty_maximum_valid"].value == 10
        assert by_name["requestBody.qty_above_maximum"].value == 11

    def test_exclusive_bounds(self):
        resolved = _resolved({"type": "number", "minimum": 0, "exclusiveMinimum": True}, "rate")
        names = [p.name for p in _boundary().numeric_variants(resolved, "requestBody.rate")]
        assert names == [
            "requestBody.rate_exclusive_minimum_invalid",
            "requestBody.rate_above_exclusive_minimum",
            "requestBody.rate_below_minimum",
        ]

    def test_multiple_of(self):
        resolved = _resolved({"type": "number", "multipleOf": 5, "minimum": 0, "maximum": 100}, "step")
        by_name = {p.name: p for p in _boundary().numeric_variants(resolved, "requestBody.step")}
        assert by_name["requestBody.step_multiple_of_valid"].value == 15
        assert by_name["requestBody.step_not_multiple_of"].value == 17.5

    def test_string_lengths_pattern_and_format(self):
        resolved = _resolved({"type": "string", "minLength": 2, "maxLength": 4, "pattern": "^[a-z]+$", "format": "email"}, "code")
        by_name = {p.name: p for p in _boundary().string_variants(resolved, "requestBody.code")}
        assert by_name["requestBody.code_below_min_length"].value == "a"
        assert by_name["requestBody.code_above_max_length"].value == "aaaaa"
        assert by_name["requestBody.code_pattern_invalid"].expected == "invalid"
        assert by_name["requestBody.code_invalid_format"].value == "invalid-email"

    def test_array_items(self):
        resolved = _resolved({"type": "array", "minItems": 1, "maxItems": 2}, "tags")
        by_name = {p.name: p for p in _boundary().array_variants(resolved, "requestBody.tags")}
        assert by_name["requestBody.tags_below_min_items"].value == []
        assert by_name["requestBody.tags_above_max_items"].value == ["item", "item", "item"]

    def test_null_variants(self):
        required = _boundary().null_variants(_resolved({"type": "string"}, "name"), "requestBody.name")
        assert [p.name for p in required] == ["requestBody.name_null_required", "requestBody.name_undefined_required"]
        assert required[1].omit is True
        optional = _boundary().null_variants(_resolved({"type": "string"}, "tag", required=False), "requestBody.tag")
        assert [(p.name, p.expected) for p in optional] == [("requestBody.tag_null_optional", "valid")]

    def test_type_mismatch_skips_own_family(self):
        variants = _boundary().type_mismatch_variants(_resolved({"type": "integer"}, "qty"), "requestBody.qty")
        assert len(variants) == 4
        assert all(not isinstance(p.value, (int, float)) or isinstance(p.value, bool) for p in variants)


class TestBoundarySynthesizer:
    def test_query_parameter_variant(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets")
        cases = BoundarySynthesizer(ctx.analyzer, ctx.mock, ctx.security).synthesize(ctx.operation, ctx.analysis)
        case = next(c for c in cases if c.name == "get_pets_boundary_query_limit_below_minimum")
        assert case.request.query == {"limit": 0}
        assert case.response.status == 400
        assert case.response.body["error"]["code"] == "VALIDATION_ERROR"
        assert case.response.body["error"]["details"] == {"field": "query.limit"}

    def test_path_parameter_variant(self, petstore, analyze):
        ctx = analyze(petstore, "GET", "/pets/{petId}")
        cases = BoundarySynthesizer(ctx.analyzer, ctx.mock, ctx.security).synthesize(ctx.operation, ctx.analysis)
        case = next(c for c in cases if c.name.endswith("parameter_petId_below_minimum"))
        assert case.request.path == "/pets/0"

    def test_valid_variant_expects_success_body(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        cases = BoundarySynthesizer(ctx.analyzer, ctx.mock, ctx.security).synthesize(ctx.operation, ctx.analysis)
        case = next(c for c in cases if c.name == "post_pets_boundary_requestBody_name_max_length_valid")
        assert case.request.body["name"] == "a" * 50
        assert case.response.status == 200
        assert case.response.body == ctx.analysis.success_body
        assert case.variant.category == "string"

    def test_undefined_required_drops_field(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/pets")
        cases = BoundarySynthesizer(ctx.analyzer, ctx.mock, ctx.security).synthesize(ctx.operation, ctx.analysis)
        case = next(c for c in cases if c.name == "post_pets_boundary_requestBody_name_undefined_required")
        assert "name" not in case.request.body

    def test_every_case_named_by_operation(self, petstore, analyze):
        ctx = analyze(petstore, "POST", "/orders")
        cases = BoundarySynthesizer(ctx.analyzer, ctx.mock, ctx.security).synthesize(ctx.operation, ctx.analysis)
        assert cases
        assert all(c.name.startswith("post_orders_boundary_") for c in cases)
        assert all(c.type == "boundary" for c in cases)
