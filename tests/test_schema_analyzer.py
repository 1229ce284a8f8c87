import pytest

from api_contract_gen.analysis.schema import (
    SchemaAnalyzer,
    SchemaContext,
    get_boundary_values,
    is_valid_format,
)


class TestComposition:
    def test_all_of_merges_properties_and_required(self):
        schema = {
            "allOf": [
                {"type": "object", "properties": {"a": {"type": "string"}}, "required": ["a"]},
                {"properties": {"b": {"type": "integer"}}, "required": ["b"]},
            ]
        }
        resolved = SchemaAnalyzer().analyze_schema(schema, "body")
        assert resolved.type == "object"
        assert set(resolved.properties()) == {"a", "b"}
        assert resolved.required_fields() == ["a", "b"]

    def test_one_of_takes_first_branch(self):
        schema = {"oneOf": [{"type": "string", "maxLength": 5}, {"type": "integer"}]}
        resolved = SchemaAnalyzer().analyze_schema(schema, "value")
        assert resolved.type == "string"
        assert resolved.constraints["maxLength"] == 5

    def test_any_of_keeps_siblings(self):
        schema = {"description": "either", "anyOf": [{"type": "number"}, {"type": "string"}]}
        resolved = SchemaAnalyzer().analyze_schema(schema, "value")
        assert resolved.type == "number"
        assert resolved.constraints["description"] == "either"

    def test_alternatives_under_all_strategy(self):
        schema = {"oneOf": [{"type": "string"}, {"type": "integer"}]}
        assert SchemaAnalyzer().alternatives(schema) == [schema]
        branches = SchemaAnalyzer(composition_strategy="all").alternatives(schema)
        assert branches == [{"type": "string"}, {"type": "integer"}]

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValueError):
            SchemaAnalyzer(composition_strategy="merge-everything")


class TestDegradation:
    def test_unresolved_reference(self):
        resolved = SchemaAnalyzer().analyze_schema({"$ref": "#/components/schemas/Missing"}, "thing")
        assert resolved.type == "string"
        assert any("Unresolved reference" in w for w in resolved.warnings)

    def test_non_object_schema(self):
        resolved = SchemaAnalyzer().analyze_schema("garbage", "thing")
        assert resolved.type == "string"
        assert resolved.warnings

    def test_depth_limit(self):
        analyzer = SchemaAnalyzer(max_depth=1)
        resolved = analyzer.analyze_schema({"type": "integer"}, "deep", SchemaContext(depth=1))
        assert resolved.type == "string"
        assert any("Maximum schema depth" in w for w in resolved.warnings)

    def test_circular_composition(self):
        schema = {"allOf": []}
        schema["allOf"].append(schema)
        resolved = SchemaAnalyzer().analyze_schema(schema, "loop")
        assert any("Circular composition" in w for w in resolved.warnings)


class TestConstraints:
    def test_type_array_with_null(self):
        resolved = SchemaAnalyzer().analyze_schema({"type": ["string", "null"]}, "nickname")
        assert resolved.type == "string"
        assert resolved.constraints["nullable"] is True

    def test_numeric_exclusive_bounds(self):
        resolved = SchemaAnalyzer().analyze_schema({"type": "number", "exclusiveMinimum": 5}, "score")
        assert resolved.constraints["minimum"] == 5
        assert resolved.constraints["exclusiveMinimum"] is True

    def test_type_inferred(self):
        analyzer = SchemaAnalyzer()
        assert analyzer.analyze_schema({"properties": {}}, "o").type == "object"
        assert analyzer.analyze_schema({"items": {"type": "string"}}, "l").type == "array"
        assert analyzer.analyze_schema({}, "s").type == "string"

    def test_field_path_and_required(self):
        ctx = SchemaContext(field_path=["requestBody"], is_required=True)
        resolved = SchemaAnalyzer().analyze_schema({"type": "string"}, "name", ctx)
        assert resolved.path == "requestBody.name"
        assert resolved.name == "name"
        assert resolved.is_required is True
        assert resolved.context.depth == 1

    def test_properties_inherit_required(self):
        analyzer = SchemaAnalyzer()
        parent = analyzer.analyze_schema(
            {"type": "object", "required": ["id"], "properties": {"id": {"type": "string"}, "note": {"type": "string"}}},
            "requestBody",
        )
        children = {c.name: c for c in analyzer.analyze_properties(parent)}
        assert children["id"].is_required is True
        assert children["note"].is_required is False
        assert children["id"].path == "requestBody.id"

    def test_items(self):
        analyzer = SchemaAnalyzer()
        parent = analyzer.analyze_schema({"type": "array", "items": {"type": "integer"}}, "ids")
        items = analyzer.analyze_items(parent)
        assert items.type == "integer"
        assert items.path == "ids.items"

    def test_domain_hints_attached(self):
        resolved = SchemaAnalyzer().analyze_schema({"type": "string", "format": "email"}, "email")
        hint = resolved.hint("personal")
        assert hint is not None
        assert hint.specific_type == "email"
        assert resolved.hint("financial") is None


class TestFormatValidation:
    def test_known_formats(self):
        assert is_valid_format("a@b.co", "email")
        assert not is_valid_format("invalid-email", "email")
        assert is_valid_format("2024-02-29", "date")
        assert is_valid_format("2024-01-01T12:00:00Z", "date-time")
        assert not is_valid_format("999.999.999.999", "ipv4")

    def test_unknown_format_passes(self):
        assert is_valid_format("anything", "custom-format")


class TestBoundaryValues:
    def test_string_lengths(self):
        assert get_boundary_values({"type": "string", "minLength": 2, "maxLength": 4}) == ["AA", "A", "AAAA", "AAAAA"]

    def test_numeric_bounds(self):
        assert get_boundary_values({"type": "integer", "minimum": 1, "maximum": 10}) == [1, 0, 10, 11]

    def test_exclusive_bounds(self):
        values = get_boundary_values({"type": "number", "minimum": 1, "exclusiveMinimum": True, "maximum": 10})
        assert values == [1, 10, 11]

    def test_array_counts(self):
        assert get_boundary_values({"type": "array", "minItems": 1, "maxItems": 3}) == [1, 3, 0, 4]

    def test_unconstrained(self):
        assert get_boundary_values({"type": "boolean"}) == []
