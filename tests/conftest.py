from pathlib import Path
from types import SimpleNamespace

import pytest

from api_contract_gen.analysis.schema import SchemaAnalyzer
from api_contract_gen.analysis.security import SecurityAnalyzer
from api_contract_gen.generator.mock_data import MockDataGenerator
from api_contract_gen.generator.suite import TestGenerator
from api_contract_gen.parser.swagger import load_openapi

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def petstore():
    return load_openapi(FIXTURES / "petstore.yaml")


@pytest.fixture
def analyze():
    """Build the synthesizer toolkit and OperationAnalysis for one operation of a spec."""

    def _analyze(spec, method: str, path: str, seed: int = 7, strategy: str = "first"):
        analyzer = SchemaAnalyzer(composition_strategy=strategy)
        mock = MockDataGenerator(analyzer, seed=seed)
        security = SecurityAnalyzer(spec, rng=mock.rng, clock=lambda: 1_700_000_000)
        operation = next(op for op in spec.operations if op.method == method and op.path == path)
        path_methods = [op.method for op in spec.operations if op.path == path]
        analysis = TestGenerator().analyze_operation(operation, analyzer, mock, security, path_methods)
        return SimpleNamespace(
            analyzer=analyzer, mock=mock, security=security, operation=operation, analysis=analysis,
        )

    return _analyze
