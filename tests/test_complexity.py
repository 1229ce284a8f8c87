from pathlib import Path

from api_contract_gen.parser.base import Parameter, ParsedOperation, ParsedSpec
from api_contract_gen.parser.complexity import analyze_complexity
from api_contract_gen.parser.swagger import load_openapi

FIXTURES = Path(__file__).parent / "fixtures"


def _spec(count: int, **kwargs) -> ParsedSpec:
    operations = [ParsedOperation(path=f"/r{i}", method="GET", operation_id=f"op{i}") for i in range(count)]
    return ParsedSpec(title="Sized", operations=operations, **kwargs)


class TestAnalyzeComplexity:
    def test_petstore(self):
        complexity = analyze_complexity(load_openapi(FIXTURES / "petstore.yaml"))
        assert complexity.endpoint_count == 6
        assert complexity.schema_count == 4
        assert complexity.size == "small"
        assert complexity.warnings == []

    def test_score_formula(self):
        spec = ParsedSpec(
            title="Scored",
            operations=[
                ParsedOperation(path="/a", method="GET", operation_id="a", parameters=[
                    Parameter(name="x", location="query"),
                    Parameter(name="y", location="query"),
                ]),
                ParsedOperation(path="/b", method="GET", operation_id="b"),
            ],
            schemas={
                "A": {
                    "type": "object",
                    "properties": {"b": {"type": "object", "properties": {"c": {"type": "string"}}}},
                },
            },
        )
        complexity = analyze_complexity(spec)
        assert complexity.average_parameters == 1.0
        assert complexity.max_schema_depth == 3
        # 2 * 0.5 + 1 * 1 + 1.0 * 2 + 3 * 3
        assert complexity.score == 13

    def test_size_buckets(self):
        assert analyze_complexity(_spec(49)).size == "small"
        assert analyze_complexity(_spec(50)).size == "medium"
        assert analyze_complexity(_spec(200)).size == "large"
        assert analyze_complexity(_spec(500)).size == "xl"

    def test_large_spec_warning(self):
        complexity = analyze_complexity(_spec(500))
        assert any("Very large" in w for w in complexity.warnings)

    def test_missing_operation_ids_warning(self):
        spec = ParsedSpec(title="Anon", operations=[ParsedOperation(path="/a", method="GET")])
        complexity = analyze_complexity(spec)
        assert "1 operations have no operationId" in complexity.warnings

    def test_empty_spec(self):
        complexity = analyze_complexity(ParsedSpec(title="Empty"))
        assert complexity.average_parameters == 0.0
        assert complexity.score == 0
